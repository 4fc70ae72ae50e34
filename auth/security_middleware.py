"""Security middleware for FastAPI - bearer token validation and user context."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.exceptions import InvalidTokenError
from auth.service import AuthService
from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id


def extract_bearer_token(request: Request) -> str | None:
    """Token from 'Authorization: Bearer <token>', or None."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the bearer token and sets user context.

    For protected routes:
    1. Extracts the token from the Authorization header
    2. Resolves it to a user via AuthService
    3. Sets user_id in request.state and user context (for RLS)
    4. Clears context after request completes

    Every authentication failure gets the same 401 body. Public paths bypass
    authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/register",
        "/auth/verify-email-otp",
        "/auth/verify-mobile-otp",
        "/auth/resend-otp",
        "/auth/login",
        "/auth/logout",
        "/auth/forgot-password",
        "/auth/reset-password",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, auth_service: AuthService):
        super().__init__(app)
        self._auth_service = auth_service

    def _is_public_path(self, path: str) -> bool:
        path = path.rstrip("/") or "/"
        return path in self.PUBLIC_PATHS or path.startswith("/docs/")

    @staticmethod
    def _unauthorized() -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(
                ErrorCodes.NOT_AUTHENTICATED,
                "Authentication required",
            ).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if request.method == "OPTIONS" or self._is_public_path(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request)
        if not token:
            return self._unauthorized()

        try:
            user = self._auth_service.authenticate(token)
        except InvalidTokenError:
            return self._unauthorized()

        # Set user context for RLS
        set_current_user_id(user.id)
        request.state.user_id = user.id
        request.state.user = user

        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
