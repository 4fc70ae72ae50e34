"""Shared test fixtures for the ONE-Go Security test suite."""

import pytest
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

# Reset vault client singleton so no test sees a cached secret
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from starlette.testclient import TestClient

from auth.config import AuthConfig
from auth.rate_limiter import RateLimiter
from auth.registration import RegistrationManager
from auth.registration_store import RegistrationSessionStore
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import TokenManager
from clients.email_client import EmailGatewayClient
from clients.sms_client import TwilioVerifyClient, VerificationCheck
from clients.speed_test_client import SpeedTestClient, SpeedTestResult
from core.activity import ActivityLogger
from tests.fakes import InMemoryAuthDatabase, InMemoryValkey
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

TEST_JWT_SECRET = "test-signing-secret-with-enough-entropy-0123456789"
TEST_PHONE = "+15551234567"


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# CONFIG & INFRASTRUCTURE DOUBLES
# =============================================================================


@pytest.fixture
def config():
    """Test config: cheap bcrypt, default limits."""
    return AuthConfig(
        environment="test",
        bcrypt_rounds=4,
        app_base_url="https://api.example.com",
        frontend_url="https://app.example.com",
    )


@pytest.fixture
def valkey():
    return InMemoryValkey()


@pytest.fixture
def auth_db():
    return InMemoryAuthDatabase()


@pytest.fixture
def token_manager(valkey, config):
    return TokenManager(valkey, config, TEST_JWT_SECRET)


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def mock_email_client():
    """Mock email client - no actual emails sent in tests."""
    mock = Mock(spec=EmailGatewayClient)
    mock.send_otp.return_value = None
    mock.send_password_reset.return_value = None
    return mock


@pytest.fixture
def mock_sms_client():
    """Mock Twilio Verify client that approves any code by default."""
    mock = Mock(spec=TwilioVerifyClient)
    mock.send_verification.return_value = "pending"
    mock.check_verification.return_value = VerificationCheck(status="approved")
    return mock


# =============================================================================
# SERVICES & APP
# =============================================================================


@pytest.fixture
def registration_manager(config, valkey, auth_db, token_manager, mock_email_client, mock_sms_client, mock_security_logger):
    """Real RegistrationManager over the in-memory store, mocked delivery."""
    return RegistrationManager(
        config=config,
        store=RegistrationSessionStore(valkey, config),
        auth_db=auth_db,
        token_manager=token_manager,
        email_client=mock_email_client,
        sms_client=mock_sms_client,
        security_logger=mock_security_logger,
        resend_limiter=RateLimiter(valkey, config, scope="resend"),
    )


@pytest.fixture
def auth_service(config, valkey, auth_db, token_manager, mock_email_client, mock_security_logger):
    """Real AuthService over the in-memory store, mocked delivery."""
    return AuthService(
        config=config,
        auth_db=auth_db,
        token_manager=token_manager,
        login_limiter=RateLimiter(valkey, config, scope="login"),
        reset_limiter=RateLimiter(valkey, config, scope="password_reset"),
        email_client=mock_email_client,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def mock_activity():
    mock = Mock(spec=ActivityLogger)
    mock.list_for_user.return_value = []
    return mock


@pytest.fixture
def mock_speed_test():
    mock = Mock(spec=SpeedTestClient)
    mock.run.return_value = SpeedTestResult(download=94.12, upload=38.5, ping=12.3, jitter=1.8)
    return mock


@pytest.fixture
def app(config, registration_manager, auth_service, mock_activity, mock_speed_test, valkey):
    """The full application wired around in-memory collaborators."""
    from main import build_app

    return build_app(config, registration_manager, auth_service, mock_activity, mock_speed_test, valkey=valkey)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)
