"""Security utilities - password hashing and opaque access-token secrets"""

from typing import Optional, Tuple
import hashlib
import hmac
import secrets

import bcrypt

TOKEN_SECRET_LENGTH = 40
TOKEN_SEPARATOR = "|"
# Largest id the access_tokens primary key column can hold
MAX_TOKEN_ID = 2**31 - 1


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Malformed hash in storage is a failed login, not a server error.
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def generate_token_secret() -> str:
    """Random URL-safe secret of exactly ``TOKEN_SECRET_LENGTH`` characters."""
    return secrets.token_urlsafe(TOKEN_SECRET_LENGTH)[:TOKEN_SECRET_LENGTH]


def hash_token_secret(secret: str) -> str:
    """SHA-256 hex digest stored in place of the secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def secrets_match(secret: str, secret_hash: str) -> bool:
    return hmac.compare_digest(hash_token_secret(secret), secret_hash)


def format_plaintext_token(token_id: int, secret: str) -> str:
    return f"{token_id}{TOKEN_SEPARATOR}{secret}"


def split_plaintext_token(token: str) -> Tuple[Optional[int], str]:
    """
    Split ``"<id>|<secret>"`` into its parts.

    Tokens without a usable id prefix are returned as ``(None, token)`` so the
    caller can fall back to a lookup by hash.
    """
    if TOKEN_SEPARATOR not in token:
        return None, token
    raw_id, secret = token.split(TOKEN_SEPARATOR, 1)
    if not (raw_id.isascii() and raw_id.isdigit()):
        return None, token
    return int(raw_id), secret
