"""Authentication endpoints: OTP registration, password login, sessions.

Endpoints:
- POST /auth/register: snapshot the account, email a verification code
- POST /auth/verify-otp: check the code, create the user, issue JWT cookie
- POST /auth/resend-otp: email a fresh code (per-email cooldown)
- POST /auth/login: email + password, issue JWT cookie
- POST /auth/logout: clear auth cookie
- GET /auth/me: current user info

Security considerations:
- Codes never appear in a response body; they travel by email only.
- login: unknown emails still run a bcrypt check against DUMMY_HASH.
- All unauthenticated endpoints are IP rate limited on top of the
  workflow's own cooldown.
"""

import logging

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from inkwell.api.deps import CurrentUserId, DbSession, OtpSender, OtpWorkflowDep
from inkwell.core.auth import (
    clear_auth_cookie,
    create_jwt,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from inkwell.core.config import settings
from inkwell.core.errors import ConflictError, UnauthorizedError
from inkwell.core.rate_limiting import limiter
from inkwell.core.responses import DataResponse
from inkwell.models.user import DEFAULT_ROLE, User
from inkwell.repositories.user_repository import UserRepository
from inkwell.services.account_promotion import PromotionResult, promote_pending_user
from inkwell.services.otp_workflow import normalize_email
from inkwell.services.pending_verification_store import PendingUser

logger = logging.getLogger(__name__)

router = APIRouter()

_INVALID_CREDENTIALS_MSG = "Invalid login credentials."


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    avatar: str | None = Field(None, max_length=2048)


class VerifyOtpRequest(BaseModel):
    """Request body for POST /auth/verify-otp."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    code: str = Field(min_length=1, max_length=12)


class ResendOtpRequest(BaseModel):
    """Request body for POST /auth/resend-otp."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


def _user_to_response(user: User) -> dict:
    """Build the public user payload. Never includes the password hash."""
    return {
        "id": str(user.id),
        "name": user.name,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "avatar": user.avatar,
    }


def _issue_session(response: Response, user: User) -> None:
    """Sign a JWT for the user and set it as the auth cookie."""
    token = create_jwt(
        user_id=str(user.id),
        secret=settings.auth_secret.get_secret_value(),
    )
    set_auth_cookie(response, token)


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register")
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    db: DbSession,
    workflow: OtpWorkflowDep,
    send_otp: OtpSender,
) -> DataResponse[dict]:
    """Start registration by emailing a one-time passcode.

    No user row is written here. The account snapshot (with a bcrypt hash,
    never the plain password) waits in the pending-verification store
    until the code is verified. Registering again for the same email
    replaces the pending snapshot and code.
    """
    email = normalize_email(body.email)

    if await UserRepository.get_by_email(db, email) is not None:
        raise ConflictError(
            code="EMAIL_ALREADY_EXISTS",
            message="User already registered.",
        )

    pending_user = PendingUser(
        name=body.name.strip(),
        email=email,
        password_hash=hash_password(body.password),
        role=DEFAULT_ROLE,
        avatar=body.avatar,
    )
    record = await workflow.issue(email, pending_user, send_otp)

    return DataResponse(
        data={
            "message": "OTP sent to your email for verification.",
            "email": record.email,
            "expires_at": record.expires_at.isoformat(),
        }
    )


# ===================================================================
# POST /auth/verify-otp
# ===================================================================


@router.post("/verify-otp")
@limiter.limit(lambda: settings.rate_limit_verify)
async def verify_otp(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyOtpRequest,
    response: Response,
    db: DbSession,
    workflow: OtpWorkflowDep,
) -> DataResponse[dict]:
    """Verify the emailed code and complete registration.

    On first success the user is created and signed in. If a concurrent
    request already promoted the registration, the response reports the
    email as already verified and asks the client to sign in.
    """

    async def promote(email: str, pending_user: PendingUser) -> PromotionResult:
        return await promote_pending_user(db, email=email, pending_user=pending_user)

    result = await workflow.verify(body.email, body.code, promote)

    if not result.created:
        return DataResponse(
            data={
                "message": "Email already verified. Please sign in.",
                "user": _user_to_response(result.user),
            }
        )

    _issue_session(response, result.user)
    return DataResponse(
        data={
            "message": "Email verified. Registration complete.",
            "user": _user_to_response(result.user),
        }
    )


# ===================================================================
# POST /auth/resend-otp
# ===================================================================


@router.post("/resend-otp")
@limiter.limit(lambda: settings.rate_limit_resend)
async def resend_otp(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResendOtpRequest,
    workflow: OtpWorkflowDep,
    send_otp: OtpSender,
) -> DataResponse[dict]:
    """Email a fresh code for a pending registration.

    Cooldown violations return 429 RESEND_TOO_SOON with wait_seconds in
    the error details; the client derives its countdown from that value.
    """
    record = await workflow.resend(body.email, send_otp)

    return DataResponse(
        data={
            "message": "OTP resent successfully.",
            "expires_at": record.expires_at.isoformat(),
            "resend_available_in": int(workflow.resend_interval.total_seconds()),
        }
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    db: DbSession,
) -> DataResponse[dict]:
    """Verify email + password and issue JWT cookie."""
    user = await UserRepository.get_by_email(db, body.email)

    password_hash = user.password_hash if user else None
    if not verify_password(body.password, password_hash) or user is None:
        raise UnauthorizedError(_INVALID_CREDENTIALS_MSG)

    _issue_session(response, user)
    return DataResponse(
        data={"message": "Login successful.", "user": _user_to_response(user)}
    )


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear auth cookie. No auth required."""
    clear_auth_cookie(response)
    return DataResponse(data={"message": "Logout successful."})


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def get_me(user_id: CurrentUserId, db: DbSession) -> DataResponse[dict]:
    """Return current user info from JWT."""
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError()

    return DataResponse(data=_user_to_response(user))
