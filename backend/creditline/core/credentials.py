"""API key token generation and hashing."""

import hashlib
import hmac
import secrets
from typing import Optional

from creditline.core.config import settings


def generate_api_key_token(livemode: bool) -> str:
    """Generate a new plain API key token for the given livemode partition."""
    prefix = "sk_live_" if livemode else "sk_test_"
    return prefix + secrets.token_urlsafe(32)


def hash_api_key_token(token: str, secret: Optional[str] = None) -> str:
    """HMAC-SHA256 of a plain token, hex encoded. Only this digest is stored."""
    key = (secret if secret is not None else settings.API_KEY_HASH_SECRET).encode()
    return hmac.new(key, token.encode(), hashlib.sha256).hexdigest()
