"""
Tests for EmailGatewayClient.

HTTP is mocked with the responses library; tests cover the contract with
calling code (payload, signature, failure mapping).
"""

import hashlib
import hmac
import json

import pytest
import requests
import responses

from clients.email_client import EmailGatewayClient, EmailGatewayError

GATEWAY_URL = "https://gateway.example.com/send"


@pytest.fixture
def client():
    return EmailGatewayClient(
        gateway_url=GATEWAY_URL,
        api_key="test-api-key",
        hmac_secret="test-hmac-secret",
    )


class TestEmailGatewayClientInit:
    """Fail-fast on invalid config."""

    @pytest.mark.parametrize("missing", ["gateway_url", "api_key", "hmac_secret"])
    def test_rejects_empty_credential(self, missing):
        kwargs = {
            "gateway_url": GATEWAY_URL,
            "api_key": "test-api-key",
            "hmac_secret": "test-hmac-secret",
        }
        kwargs[missing] = ""
        with pytest.raises(ValueError, match=missing):
            EmailGatewayClient(**kwargs)


class TestSendOtp:
    """send_otp posts a signed 'otp' payload."""

    @responses.activate
    def test_payload_and_signature(self, client):
        """Body carries the code; X-Signature is HMAC-SHA256 of the exact body."""
        responses.add(responses.POST, GATEWAY_URL, json={"success": True}, status=200)

        client.send_otp(email="user@example.com", code="123456", expires_in_minutes=10)

        request = responses.calls[0].request
        body = request.body.decode("utf-8") if isinstance(request.body, bytes) else request.body
        assert json.loads(body) == {
            "type": "otp",
            "email": "user@example.com",
            "code": "123456",
            "expires_in_minutes": 10,
        }
        expected = hmac.new(b"test-hmac-secret", body.encode("utf-8"), hashlib.sha256).hexdigest()
        assert request.headers["X-Signature"] == expected
        assert request.headers["X-API-Key"] == "test-api-key"

    @responses.activate
    def test_gateway_500_raises_error(self, client):
        responses.add(
            responses.POST,
            GATEWAY_URL,
            json={"success": False, "message": "Internal error"},
            status=500,
        )
        with pytest.raises(EmailGatewayError, match="Internal error"):
            client.send_otp(email="user@example.com", code="123456", expires_in_minutes=10)

    @responses.activate
    def test_success_false_raises_error(self, client):
        """HTTP 200 with success=false is still a failure."""
        responses.add(
            responses.POST,
            GATEWAY_URL,
            json={"success": False, "message": "Mailbox unavailable"},
            status=200,
        )
        with pytest.raises(EmailGatewayError):
            client.send_otp(email="user@example.com", code="123456", expires_in_minutes=10)

    @responses.activate
    def test_connection_failure_raises_error(self, client):
        responses.add(
            responses.POST,
            GATEWAY_URL,
            body=requests.exceptions.ConnectionError("Network unreachable"),
        )
        with pytest.raises(EmailGatewayError, match="Connection failed"):
            client.send_otp(email="user@example.com", code="123456", expires_in_minutes=10)

    @responses.activate
    def test_invalid_json_response_raises_error(self, client):
        responses.add(responses.POST, GATEWAY_URL, body="not json", status=200)
        with pytest.raises(EmailGatewayError, match="Invalid response"):
            client.send_otp(email="user@example.com", code="123456", expires_in_minutes=10)


class TestSendPasswordReset:
    """send_password_reset posts a 'password_reset' payload with the link."""

    @responses.activate
    def test_payload(self, client):
        responses.add(responses.POST, GATEWAY_URL, json={"success": True}, status=200)

        client.send_password_reset(
            email="user@example.com",
            reset_url="https://app.example.com/reset-password?token=abc",
            expires_in_minutes=60,
        )

        payload = json.loads(responses.calls[0].request.body)
        assert payload["type"] == "password_reset"
        assert payload["reset_url"] == "https://app.example.com/reset-password?token=abc"
        assert payload["expires_in_minutes"] == 60
