"""Tests for VaultClient - HashiCorp Vault secrets, hvac mocked."""

from unittest.mock import patch

import hvac
import pytest
from hvac.exceptions import InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_jwt_secret, get_twilio_config


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role-id")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret-id")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(vault_env):
    """Authenticated hvac.Client double."""
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = client_cls.return_value
        client.auth.approle.login.return_value = {"auth": {"client_token": "s.token"}}
        client.is_authenticated.return_value = True
        yield client


@pytest.fixture(autouse=True)
def reset_vault_singleton():
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


def _secret(data: dict) -> dict:
    return {"data": {"data": data}}


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com:8200")
        monkeypatch.delenv("VAULT_ROLE_ID", raising=False)
        monkeypatch.delenv("VAULT_SECRET_ID", raising=False)
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_failed_approle_login_raises_permission_error(self, hvac_client):
        hvac_client.auth.approle.login.side_effect = hvac.exceptions.InvalidRequest("invalid role_id")
        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()

    def test_login_sets_client_token(self, hvac_client):
        client = VaultClient()
        assert client.client.token == "s.token"


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to onego/."""

    def test_reads_under_prefix(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({"url": "redis://cache:6379/0"})

        assert VaultClient().get_secret("valkey", "url") == "redis://cache:6379/0"
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="onego/valkey", raise_on_deleted_version=True
        )

    def test_missing_path_raises(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath()
        with pytest.raises(PermissionError, match="not found"):
            VaultClient().get_secret("nonexistent", "field")

    def test_missing_field_raises_keyerror(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({"url": "x"})
        with pytest.raises(KeyError, match="not found"):
            VaultClient().get_secret("database", "nonexistent_field")


class TestConvenienceFunctions:
    """Module-level helpers cache per process."""

    def test_jwt_secret_is_cached(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({"secret": "k"})

        assert get_jwt_secret() == "k"
        assert get_jwt_secret() == "k"
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1

    def test_twilio_config_fields(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({
            "account_sid": "AC1",
            "auth_token": "tok",
            "verify_service_sid": "VA1",
        })

        assert get_twilio_config() == {
            "account_sid": "AC1",
            "auth_token": "tok",
            "verify_service_sid": "VA1",
        }
