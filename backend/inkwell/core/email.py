"""Email sending via Resend API.

Verification codes are delivered as a simple HTTP POST to Resend. This is
the only place a one-time passcode leaves the server; it is never logged
here either.
"""

import logging
from datetime import datetime

import httpx

from inkwell.core.config import settings
from inkwell.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


def _minutes_until(expires_at: datetime) -> int:
    """Whole minutes (at least 1) between now and expires_at."""
    remaining = expires_at - datetime.now(expires_at.tzinfo)
    return max(1, round(remaining.total_seconds() / 60))


async def send_otp_email(*, email: str, code: str, expires_at: datetime) -> None:
    """Send a registration verification code via Resend.

    A failed send raises; the caller decides what survives.

    Args:
        email: Recipient email address.
        code: Plain numeric passcode.
        expires_at: When the code stops being accepted.

    Raises:
        EmailDeliveryError: If Resend is unreachable or rejects the request.
    """
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                },
                json={
                    "from": settings.email_from,
                    "to": email,
                    "subject": "Inkwell - Email verification code",
                    "text": (
                        f"Your verification code is {code}\n\n"
                        f"It expires in {_minutes_until(expires_at)} minute(s). "
                        "If you didn't create an Inkwell account, you can "
                        "safely ignore this email."
                    ),
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        # Security: the exception may embed the request body; log its type only
        logger.warning(
            "Failed to send verification email (%s)", type(exc).__name__
        )
        raise EmailDeliveryError() from exc
