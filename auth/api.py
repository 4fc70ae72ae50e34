"""HTTP routes for registration, login and account management."""

import ipaddress

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from auth.registration import RegistrationManager
from auth.security_middleware import extract_bearer_token
from auth.service import AuthService
from auth.types import (
    AuthenticatedUser,
    ForgotPasswordRequest,
    LoginRequest,
    OTPVerificationRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResendOTPRequest,
    ResetPasswordRequest,
    User,
)
from api.base import success_response

PASSWORD_RESET_MESSAGE = "If an account exists for this email, you will receive a password reset link"


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _public_user(user: User) -> dict:
    return user.public().model_dump(mode="json")


def _profile(user: User) -> dict:
    return {
        **_public_user(user),
        "isEmailVerified": user.is_email_verified,
        "isPhoneVerified": user.is_phone_verified,
        "twoFactorEnabled": user.two_factor_enabled,
        "createdAt": user.created_at.isoformat(),
        "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
    }


def _token_payload(result: AuthenticatedUser) -> dict:
    return {
        "token": result.token.token,
        "expiresAt": result.token.expires_at.isoformat(),
        "user": _public_user(result.user),
    }


def create_auth_router(registration: RegistrationManager, auth_service: AuthService) -> APIRouter:
    """Create auth router with injected services."""
    router = APIRouter(tags=["auth"])

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @router.post("/register")
    async def register(request: Request, body: RegisterRequest):
        """Start a registration; sends an email code and an SMS code."""
        result = registration.register(
            name=body.name,
            email=body.email,
            phone=body.phone,
            password=body.password,
            ip_address=_get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

        data = {"sessionId": result.session_id, "requiresOTP": result.requires_otp}
        if result.dev_email_otp is not None:
            data["devEmailOTP"] = result.dev_email_otp

        return success_response(data, message="OTPs sent to email and phone")

    @router.post("/verify-email-otp")
    async def verify_email_otp(body: OTPVerificationRequest):
        registration.verify_email_otp(body.session_id, body.otp)
        return success_response(message="Email verified successfully")

    @router.post("/verify-mobile-otp")
    async def verify_mobile_otp(request: Request, body: OTPVerificationRequest):
        """Verify the SMS code and create the account."""
        result = registration.verify_mobile_otp(
            body.session_id,
            body.otp,
            ip_address=_get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return JSONResponse(
            status_code=201,
            content=success_response(
                _token_payload(result),
                message="Registration successful",
            ).model_dump(mode="json"),
        )

    @router.post("/resend-otp")
    async def resend_otp(body: ResendOTPRequest):
        dev_code = registration.resend_otp(body.session_id, body.type)

        target = "email" if body.type == "email" else "phone"
        data = {"devOTP": dev_code} if dev_code is not None else None
        return success_response(data, message=f"New OTP sent to {target}")

    # ------------------------------------------------------------------
    # Login / logout / password reset
    # ------------------------------------------------------------------

    @router.post("/login")
    async def login(request: Request, body: LoginRequest):
        result = auth_service.login(
            email=body.email,
            password=body.password,
            ip_address=_get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

        data = _token_payload(result)
        data["user"]["twoFactorEnabled"] = result.user.two_factor_enabled
        return success_response(data, message="Login successful")

    @router.post("/logout")
    async def logout(request: Request):
        """Revoke the bearer token if one was sent. Always succeeds."""
        auth_service.logout(extract_bearer_token(request), ip_address=_get_client_ip(request))
        return success_response(message="Logged out successfully")

    @router.post("/forgot-password")
    async def forgot_password(request: Request, body: ForgotPasswordRequest):
        """Same response whether or not the account exists."""
        auth_service.request_password_reset(body.email, ip_address=_get_client_ip(request))
        return success_response(message=PASSWORD_RESET_MESSAGE)

    @router.post("/reset-password")
    async def reset_password(request: Request, body: ResetPasswordRequest):
        auth_service.reset_password(body.token, body.password, ip_address=_get_client_ip(request))
        return success_response(message="Password reset successfully")

    # ------------------------------------------------------------------
    # Account (authenticated; middleware sets request.state.user_id)
    # ------------------------------------------------------------------

    @router.get("/me")
    async def get_profile(request: Request):
        user = auth_service.get_profile(request.state.user_id)
        return success_response(_profile(user))

    @router.put("/me")
    async def update_profile(request: Request, body: ProfileUpdateRequest):
        user = auth_service.update_profile(
            request.state.user_id,
            name=body.name,
            email=body.email,
            phone=body.phone,
        )
        return success_response(_public_user(user), message="Profile updated successfully")

    @router.delete("/account")
    async def delete_account(request: Request):
        auth_service.delete_account(request.state.user_id)
        return success_response(message="Account deleted successfully")

    return router
