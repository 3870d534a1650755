"""Tests for API key token generation and hashing."""

from creditline.core.credentials import generate_api_key_token, hash_api_key_token


def test_token_prefix_follows_livemode():
    assert generate_api_key_token(True).startswith("sk_live_")
    assert generate_api_key_token(False).startswith("sk_test_")


def test_tokens_are_unique():
    assert generate_api_key_token(True) != generate_api_key_token(True)


def test_hash_is_keyed_and_stable():
    token = "sk_live_abc"

    assert hash_api_key_token(token, "s1") == hash_api_key_token(token, "s1")
    assert hash_api_key_token(token, "s1") != hash_api_key_token(token, "s2")
    assert len(hash_api_key_token(token, "s1")) == 64
    assert token not in hash_api_key_token(token, "s1")


def test_hash_defaults_to_configured_secret():
    from creditline.core.config import settings

    assert hash_api_key_token("tok") == hash_api_key_token("tok", settings.API_KEY_HASH_SECRET)
