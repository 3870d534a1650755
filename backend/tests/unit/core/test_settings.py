"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from creditline.core.config import Settings


def test_database_uri_is_assembled_from_parts():
    s = Settings(POSTGRES_HOST="db", POSTGRES_PORT=6543, POSTGRES_DB="ledger")

    uri = str(s.SQLALCHEMY_ASYNC_DATABASE_URI)
    assert uri.startswith("postgresql+asyncpg://")
    assert "@db:6543/ledger" in uri


@pytest.mark.parametrize("role", ['merchant"; DROP ROLE x; --', "has space", "9role"])
def test_role_names_must_be_identifiers(role):
    with pytest.raises(ValidationError):
        Settings(DB_TENANT_ROLE=role)


def test_at_least_one_attempt():
    with pytest.raises(ValidationError):
        Settings(TRANSACTION_MAX_ATTEMPTS=0)


def test_unknown_sslmode_is_rejected():
    with pytest.raises(ValidationError):
        Settings(POSTGRES_SSLMODE="sometimes")
