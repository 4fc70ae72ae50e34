"""Email verification codes: generation and checking."""

import hmac
import secrets
from datetime import datetime, timedelta

from auth.exceptions import InvalidOTPError, OTPExpiredError
from auth.types import EmailChallenge
from utils.timezone import now_utc

OTP_LENGTH = 6


def generate_otp() -> str:
    """Random 6-digit code, never with a leading zero."""
    return str(100000 + secrets.randbelow(900000))


def new_email_challenge(expiry_minutes: int, now: datetime | None = None) -> EmailChallenge:
    """Fresh challenge: new code, new expiry, zero attempts, unverified."""
    now = now or now_utc()
    return EmailChallenge(
        code=generate_otp(),
        expires_at=now + timedelta(minutes=expiry_minutes),
        verified=False,
        attempts=0,
    )


def check_email_otp(challenge: EmailChallenge, submitted: str, now: datetime | None = None) -> None:
    """
    Compare a submitted code with the challenge. Expiry is checked first.

    Raises:
        OTPExpiredError: The challenge is past its expiry.
        InvalidOTPError: The code does not match exactly.
    """
    now = now or now_utc()
    if now > challenge.expires_at:
        raise OTPExpiredError("OTP has expired")

    if not hmac.compare_digest(challenge.code.encode("utf-8"), submitted.encode("utf-8")):
        raise InvalidOTPError("Invalid OTP")
