"""Input validation for account fields.

Every check raises InvalidInputError with a user-facing message and returns
the normalized value.
"""

import re

from email_validator import EmailNotValidError, validate_email as _validate_email

from auth.exceptions import InvalidInputError

MAX_EMAIL_LENGTH = 255
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100

# Leading + (country code), then digits with common separators; 7-15 digits in total (E.164 max)
_PHONE_CHARS = re.compile(r"^\+[\d\s\-().]+$")


def validate_email(email: str | None) -> str:
    """Return the email lower-cased and trimmed."""
    if not email or not isinstance(email, str):
        raise InvalidInputError("Email is required")

    email = email.strip().lower()
    if len(email) > MAX_EMAIL_LENGTH:
        raise InvalidInputError("Email too long")

    try:
        _validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInputError("Invalid email format")
    return email


def validate_password(password: str | None) -> str:
    if not password or not isinstance(password, str):
        raise InvalidInputError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise InvalidInputError("Password too long")
    return password


def validate_phone(phone: str | None) -> str:
    """Return the phone in E.164 form: + followed by digits only."""
    if not phone or not isinstance(phone, str):
        raise InvalidInputError("Phone number is required")

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not _PHONE_CHARS.match(phone) or not 7 <= len(digits) <= 15:
        raise InvalidInputError("Invalid phone number format. Must include country code (e.g., +1234567890)")
    return "+" + digits


def validate_name(name: str | None) -> str:
    if not name or not isinstance(name, str) or len(name.strip()) < MIN_NAME_LENGTH:
        raise InvalidInputError(f"Name must be at least {MIN_NAME_LENGTH} characters")

    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInputError(f"Name cannot exceed {MAX_NAME_LENGTH} characters")
    return name


def require_otp(otp: str | None) -> str:
    """Codes are compared exactly as submitted; only absence is a validation error."""
    if not otp or not isinstance(otp, str):
        raise InvalidInputError("OTP is required")
    return otp
