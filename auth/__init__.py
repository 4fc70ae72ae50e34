"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    InvalidInputError,
    EmailAlreadyRegisteredError,
    RegistrationSessionNotFoundError,
    InvalidOTPError,
    OTPExpiredError,
    OTPAttemptsExceededError,
    EmailNotVerifiedError,
    DeliveryError,
    InvalidCredentialsError,
    InvalidTokenError,
    PasswordResetTokenError,
    UserNotFoundError,
    RateLimitedError,
)
from auth.types import (
    User,
    PublicUser,
    RegistrationSession,
    RegistrationStarted,
    IssuedToken,
    AuthenticatedUser,
    OTPChannel,
)
from auth.config import AuthConfig, load_auth_config
from auth.database import AuthDatabase
from auth.rate_limiter import RateLimiter
from auth.registration_store import RegistrationSessionStore
from auth.registration import RegistrationManager
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import TokenManager
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
