"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status the exception handler in inkwell.main maps it to.

Security: No error in this module may carry a one-time passcode in its
message or details.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


# =============================================================================
# One-time passcode workflow
# =============================================================================


class OtpNotFoundError(APIError):
    """No pending verification exists for the email (404).

    Either a code was never issued, or it was already consumed or purged.
    Recoverable by registering again.
    """

    def __init__(self) -> None:
        super().__init__(
            code="OTP_NOT_FOUND",
            message="No pending verification found for this email. Please register again.",
            status_code=404,
        )


class OtpExpiredError(APIError):
    """The pending verification's window has passed (400).

    The record is purged as a side effect of detecting this.
    """

    def __init__(self) -> None:
        super().__init__(
            code="OTP_EXPIRED",
            message="OTP expired. Please request a new one.",
            status_code=400,
        )


class InvalidOtpError(APIError):
    """Submitted code does not match the active code (400).

    The record survives and its attempt counter has been incremented.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OTP",
            message="Invalid OTP code.",
            status_code=400,
        )


class ResendTooSoonError(APIError):
    """Resend cooldown has not elapsed (429).

    Args:
        wait_seconds: Whole seconds the client must wait before resending.
    """

    def __init__(self, wait_seconds: int) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(
            code="RESEND_TOO_SOON",
            message=f"Resend allowed after {wait_seconds} second(s).",
            status_code=429,
            details=[{"wait_seconds": wait_seconds}],
        )


class PendingDataIncompleteError(APIError):
    """Stored registration snapshot cannot be promoted (400).

    The original registration payload is unrecoverable, so the client must
    register from scratch.
    """

    def __init__(self) -> None:
        super().__init__(
            code="PENDING_DATA_INCOMPLETE",
            message="Pending registration data is incomplete. Please register again.",
            status_code=400,
        )


class EmailDeliveryError(APIError):
    """Verification email could not be handed to the mail provider (502)."""

    def __init__(self) -> None:
        super().__init__(
            code="EMAIL_DELIVERY_FAILED",
            message="We could not send the verification email. Please try again.",
            status_code=502,
        )

