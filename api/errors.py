"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from auth.exceptions import (
    AuthError,
    DeliveryError,
    EmailAlreadyRegisteredError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidOTPError,
    InvalidTokenError,
    OTPAttemptsExceededError,
    OTPExpiredError,
    PasswordResetTokenError,
    RateLimitedError,
    RegistrationSessionNotFoundError,
    ServiceUnavailableError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

# Exception class -> (HTTP status, error code)
AUTH_ERROR_STATUS: dict[type[AuthError], tuple[int, str]] = {
    InvalidInputError: (400, ErrorCodes.VALIDATION_ERROR),
    EmailAlreadyRegisteredError: (409, ErrorCodes.ALREADY_EXISTS),
    RegistrationSessionNotFoundError: (404, ErrorCodes.SESSION_NOT_FOUND),
    InvalidOTPError: (400, ErrorCodes.INVALID_OTP),
    OTPExpiredError: (400, ErrorCodes.OTP_EXPIRED),
    OTPAttemptsExceededError: (429, ErrorCodes.TOO_MANY_ATTEMPTS),
    EmailNotVerifiedError: (400, ErrorCodes.EMAIL_NOT_VERIFIED),
    DeliveryError: (502, ErrorCodes.DELIVERY_FAILED),
    InvalidCredentialsError: (401, ErrorCodes.INVALID_CREDENTIALS),
    InvalidTokenError: (401, ErrorCodes.NOT_AUTHENTICATED),
    PasswordResetTokenError: (400, ErrorCodes.INVALID_TOKEN),
    UserNotFoundError: (404, ErrorCodes.NOT_FOUND),
    RateLimitedError: (429, ErrorCodes.RATE_LIMITED),
    ServiceUnavailableError: (503, ErrorCodes.SERVICE_UNAVAILABLE),
}


def status_for(exc: AuthError) -> tuple[int, str]:
    """Status and code for an auth error, walking base classes."""
    for cls in type(exc).__mro__:
        if cls in AUTH_ERROR_STATUS:
            return AUTH_ERROR_STATUS[cls]
    return 400, ErrorCodes.INVALID_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        status_code, code = status_for(exc)
        headers = None
        message = str(exc)

        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
            message = f"Too many requests. Please wait {exc.retry_after_seconds} seconds."
        elif isinstance(exc, InvalidTokenError):
            message = "Authentication required"

        if status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")

        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=error_response(code, message).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
            ).model_dump(mode="json"),
        )
