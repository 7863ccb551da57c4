"""Raw token generation and hashing for emailed links."""

import hashlib
import secrets

TOKEN_BYTES = 32


def generate_token() -> str:
    """Return a fresh URL-safe token (64 hex characters)."""

    return secrets.token_hex(TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def token_prefix(token_hash: str) -> str:
    """Shortened hash for logs."""

    return f"{token_hash[:12]}..."
