"""Response envelope models.

Success responses use a {"data": ...} envelope; errors use
{"error": {"code", "message", "details"}}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/auth/me")
        async def get_me(...) -> DataResponse[dict]:
            return DataResponse(data=user_to_response(user))
    """

    data: T


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "OTP_EXPIRED").
        message: Human-readable error message.
        details: Optional list of extra fields (e.g., wait_seconds).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail
