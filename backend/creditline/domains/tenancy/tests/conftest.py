"""Tenancy domain test fixtures and helpers.

``RecordingSession`` stands in for an AsyncSession and records every statement
and transaction boundary in order, so tests can assert on the exact sequence
sent to the database.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import DBAPIError

from creditline.core.shared_models import AuthMethod
from creditline.domains.identity.fakes.resolver import FakeIdentityResolver
from creditline.domains.identity.types import ApiKeyCredential, ResolvedIdentity
from creditline.domains.tenancy.service import TenantTransactionService

DEFAULT_ORG_ID = UUID("00000000-0000-0000-0000-000000000001")
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-0000000000a1")
TOKEN = "sk_test_valid"


class _FakeOrigError(Exception):
    def __init__(self, sqlstate: str):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def _db_error(sqlstate: str) -> DBAPIError:
    return DBAPIError("SELECT 1", {}, _FakeOrigError(sqlstate))


class RecordingSession:
    """AsyncSession stand-in recording statements and transaction boundaries.

    ``fail_on`` maps a statement substring to the exception to raise for it.
    Once any statement fails the transaction counts as aborted and every later
    statement raises too, as PostgreSQL does.
    """

    def __init__(self, log: list, fail_on: Optional[dict[str, BaseException]] = None) -> None:
        self.log = log
        self.fail_on = dict(fail_on or {})
        self.aborted = False

    async def execute(self, statement: Any, params: Optional[dict] = None):
        sql = str(statement)
        if self.aborted:
            self.log.append(("rejected", sql))
            raise _db_error("25P02")
        for fragment, exc in self.fail_on.items():
            if fragment in sql:
                self.aborted = True
                self.log.append(("failed", sql))
                raise exc
        self.log.append(("execute", sql, params))

    @asynccontextmanager
    async def begin(self):
        self.log.append(("begin",))
        try:
            yield self
        except BaseException:
            self.log.append(("rollback",))
            raise
        else:
            self.log.append(("commit",))


class RecordingSessionFactory:
    """Session factory producing RecordingSessions that share one log."""

    def __init__(self, fail_on_attempts: Optional[list[dict[str, BaseException]]] = None):
        self.log: list = []
        self.opened = 0
        self._fail_on_attempts = list(fail_on_attempts or [])

    @asynccontextmanager
    async def __call__(self):
        fail_on = None
        if self.opened < len(self._fail_on_attempts):
            fail_on = self._fail_on_attempts[self.opened]
        self.opened += 1
        self.log.append(("open",))
        try:
            yield RecordingSession(self.log, fail_on)
        finally:
            self.log.append(("close",))

    def statements(self) -> list[str]:
        return [entry[1] for entry in self.log if entry[0] == "execute"]

    def events(self) -> list[str]:
        return [entry[0] for entry in self.log]


def _make_identity(**overrides: Any) -> ResolvedIdentity:
    defaults = dict(
        organization_id=DEFAULT_ORG_ID,
        user_id=DEFAULT_USER_ID,
        livemode=False,
        role="merchant",
        auth_method=AuthMethod.API_KEY,
        email="owner@example.com",
    )
    defaults.update(overrides)
    return ResolvedIdentity(**defaults)


def _make_service(
    *,
    factory: Optional[RecordingSessionFactory] = None,
    resolver: Optional[FakeIdentityResolver] = None,
    max_attempts: int = 3,
):
    """Build a TenantTransactionService with TOKEN registered to the default identity."""
    f = factory or RecordingSessionFactory()
    r = resolver or FakeIdentityResolver()
    r.register(ApiKeyCredential(TOKEN), _make_identity())
    r.register_user(DEFAULT_USER_ID, _make_identity(auth_method=AuthMethod.IMPERSONATION))
    service = TenantTransactionService(
        session_factory=f, identity_resolver=r, max_attempts=max_attempts
    )
    return service, f, r
