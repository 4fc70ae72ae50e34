"""Typed exceptions for auth failures.

Each class maps to exactly one HTTP status and error code (api/errors.py),
so callers can tell "retype the code" from "request a new code" from
"start over".
"""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidInputError(AuthError):
    """Malformed name, email, phone, password or OTP channel. Nothing was changed."""


class EmailAlreadyRegisteredError(AuthError):
    """An account with this email already exists."""


class RegistrationSessionNotFoundError(AuthError):
    """Pending registration does not exist, expired, or was already completed."""

    def __init__(self, message: str = "Session not found or expired"):
        super().__init__(message)


class InvalidOTPError(AuthError):
    """Submitted code does not match. The caller may retry."""


class OTPExpiredError(AuthError):
    """Code is past its expiry. The caller must request a new one."""


class OTPAttemptsExceededError(AuthError):
    """Too many wrong codes. The caller must request a new one."""

    def __init__(self, message: str = "Too many attempts. Please request a new OTP."):
        super().__init__(message)


class EmailNotVerifiedError(AuthError):
    """Mobile verification attempted before the email code was verified."""

    def __init__(self, message: str = "Please verify email first"):
        super().__init__(message)


class DeliveryError(AuthError):
    """Email or SMS provider failed. Never swallowed."""


class InvalidCredentialsError(AuthError):
    """
    Wrong email or password.

    Deliberately the same for unknown emails, to avoid account enumeration.
    """

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Bearer token missing, malformed, expired, revoked, or for a deleted user."""


class PasswordResetTokenError(AuthError):
    """Password reset token is unknown, expired, or already used."""

    def __init__(self, message: str = "Invalid or expired reset token"):
        super().__init__(message)


class UserNotFoundError(AuthError):
    """
    User ID not associated with any account.

    Note: never raised for email lookups in user-facing flows.
    """


class RateLimitedError(AuthError):
    """Too many requests. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")


class ServiceUnavailableError(AuthError):
    """An upstream the request depends on (speed test endpoints) is unreachable."""
