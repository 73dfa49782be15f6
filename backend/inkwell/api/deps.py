"""Shared dependencies for API endpoints.

Authentication (JWT from httpOnly cookie), request-scoped database session,
and the OTP workflow with its notification sink. Tests replace these
through app.dependency_overrides.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.auth import JWT_AUDIENCE
from inkwell.core.config import settings
from inkwell.core.database import get_db
from inkwell.core.email import send_otp_email
from inkwell.models import User
from inkwell.services.otp_workflow import OtpWorkflow, SendOtp
from inkwell.services.pending_verification_store import (
    get_pending_verification_store,
)

# Same 401 detail for every auth failure
_UNAUTHORIZED_DETAIL = {
    "code": "UNAUTHORIZED",
    "message": "Authentication required",
}

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_id(request: Request, db: DbSession) -> uuid.UUID:
    """Get current user ID from the JWT cookie.

    Validation steps:
    1. Read JWT from cookie
    2. Decode + verify signature (HS256), exp, aud, iss
    3. Extract sub as UUID
    4. Check token_invalidated_before (revocation)

    Raises:
        HTTPException: 401 for any auth failure.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        )

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=settings.auth_issuer,
        )
        user_id = uuid.UUID(payload["sub"])
        iat = payload["iat"]
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        ) from exc

    result = await db.execute(
        select(User.token_invalidated_before).where(User.id == user_id)
    )
    invalidated_before = result.scalar_one_or_none()
    if invalidated_before is not None and iat < invalidated_before.timestamp():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        )

    return user_id


def get_otp_workflow(db: DbSession) -> OtpWorkflow:
    """Build the OTP workflow over the configured pending-verification store."""
    return OtpWorkflow(get_pending_verification_store(db))


def get_otp_sender() -> SendOtp:
    """Notification sink for verification codes (overridden in tests)."""
    return send_otp_email


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
OtpWorkflowDep = Annotated[OtpWorkflow, Depends(get_otp_workflow)]
OtpSender = Annotated[SendOtp, Depends(get_otp_sender)]
