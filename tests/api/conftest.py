"""API test fixtures - the full app plus a signed-in user."""

import pytest

from auth.passwords import hash_password


@pytest.fixture
def signed_in_user(auth_db):
    return auth_db.create_user(
        name="Ada Lovelace",
        email="ada@example.com",
        phone="+15551234567",
        password_hash=hash_password("analytical-engine", rounds=4),
        is_email_verified=True,
        is_phone_verified=True,
    )


@pytest.fixture
def auth_headers(signed_in_user, token_manager):
    token = token_manager.create_token(signed_in_user.id).token
    return {"Authorization": f"Bearer {token}"}
