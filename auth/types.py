"""Pydantic models for the auth domain."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class OTPChannel(str, Enum):
    """Where a verification code is delivered."""

    EMAIL = "email"
    MOBILE = "mobile"


class PublicUser(BaseModel):
    """User projection safe to return to clients."""

    id: UUID
    name: str
    email: str
    phone: str


class User(BaseModel):
    """A registered account. The password hash is never part of this model."""

    id: UUID
    name: str
    email: str
    phone: str
    is_email_verified: bool = False
    is_phone_verified: bool = False
    two_factor_enabled: bool = False
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}

    def public(self) -> PublicUser:
        return PublicUser(id=self.id, name=self.name, email=self.email, phone=self.phone)


# ---------------------------------------------------------------------------
# Registration session (stored in Valkey)
# ---------------------------------------------------------------------------


class PendingUser(BaseModel):
    """Candidate account fields. The password is hashed only at account creation."""

    name: str
    email: str
    phone: str
    password: str


class EmailChallenge(BaseModel):
    code: str
    expires_at: datetime
    verified: bool = False
    attempts: int = 0


class MobileChallenge(BaseModel):
    """The code itself lives in Twilio Verify, keyed by phone number."""

    verified: bool = False
    attempts: int = 0


class RegistrationSession(BaseModel):
    """A pending registration awaiting email and SMS verification."""

    session_id: str
    pending_user: PendingUser
    email_challenge: EmailChallenge
    mobile_challenge: MobileChallenge = Field(default_factory=MobileChallenge)
    created_at: datetime
    expires_at: datetime


@dataclass
class RegistrationStarted:
    """Result of a registration request."""

    session_id: str
    requires_otp: bool = True
    dev_email_otp: str | None = None


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class IssuedToken(BaseModel):
    """A signed bearer token and its decoded claims."""

    token: str = Field(..., description="Encoded JWT")
    user_id: UUID
    jti: str
    issued_at: datetime
    expires_at: datetime


class AuthenticatedUser(BaseModel):
    """User info returned after registration or login."""

    user: User
    token: IssuedToken


# ---------------------------------------------------------------------------
# Request bodies (wire names match the web and extension clients)
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    name: str
    email: str
    phone: str
    password: str


class OTPVerificationRequest(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    otp: str

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}


class ResendOTPRequest(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    type: str

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    password: str


class ProfileUpdateRequest(BaseModel):
    """Only the fields actually sent are applied."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
