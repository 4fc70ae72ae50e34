# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_valkey_url,
    get_jwt_secret,
    get_email_config,
    get_twilio_config,
)
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.email_client import EmailGatewayClient, EmailGatewayError
from clients.sms_client import TwilioVerifyClient, SMSVerificationError, VerificationCheck
from clients.speed_test_client import SpeedTestClient, SpeedTestError, SpeedTestResult
