"""Application settings loaded from the environment."""

import re
from typing import Literal, Optional

from pydantic import PostgresDsn, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from creditline.core.config.enums import Environment

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Settings for the Creditline backend.

    The tenant role is interpolated into ``SET LOCAL ROLE`` statements (roles cannot
    be bound as parameters), so it is validated as a plain SQL identifier here.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    TESTING: bool = False

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "creditline"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "creditline"
    POSTGRES_SSLMODE: Literal[
        "disable", "allow", "prefer", "require", "verify-ca", "verify-full"
    ] = "prefer"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[PostgresDsn] = None

    db_pool_size: int = 20
    db_pool_max_overflow: int = 40

    # Role assumed by authenticated and impersonated tenant transactions.
    DB_TENANT_ROLE: str = "merchant"

    TRANSACTION_MAX_ATTEMPTS: int = 3

    API_KEY_HASH_SECRET: str = "creditline-dev-api-key-secret"

    @field_validator("DB_TENANT_ROLE")
    @classmethod
    def check_role_identifier(cls, v: str) -> str:
        """Reject role names that are not plain SQL identifiers."""
        if not _IDENTIFIER.match(v):
            raise ValueError(f"Invalid database role name: {v!r}")
        return v

    @field_validator("TRANSACTION_MAX_ATTEMPTS")
    @classmethod
    def check_max_attempts(cls, v: int) -> int:
        """At least one attempt is always made."""
        if v < 1:
            raise ValueError("TRANSACTION_MAX_ATTEMPTS must be at least 1")
        return v

    @model_validator(mode="after")
    def assemble_db_connection(self) -> "Settings":
        """Build the async database URI from the individual POSTGRES_* fields."""
        if self.SQLALCHEMY_ASYNC_DATABASE_URI is None:
            self.SQLALCHEMY_ASYNC_DATABASE_URI = PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD or None,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        return self
