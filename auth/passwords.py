"""bcrypt password hashing."""

import bcrypt

# bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    """UTF-8 encode and cut to 72 bytes on a character boundary."""
    encoded = password.encode("utf-8")
    if len(encoded) <= MAX_PASSWORD_BYTES:
        return encoded
    return encoded[:MAX_PASSWORD_BYTES].decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a plaintext password. Returns the bcrypt string ($2b$...)."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a plaintext password against a stored hash. False for a missing hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash
        return False
