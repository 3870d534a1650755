"""Ledger domain test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

from creditline.core.context import RequestContext, SystemContext
from creditline.core.shared_models import AuthMethod
from creditline.domains.ledger.balance import BalanceAggregator
from creditline.domains.ledger.commands import (
    PromoCreditGrantedCommand,
    UsageEventProcessedCommand,
)
from creditline.domains.ledger.fakes.repository import (
    FakeLedgerAccountRepository,
    FakeLedgerEntryRepository,
    FakeLedgerTransactionRepository,
    FakeSubscriptionRepository,
    FakeUsageCreditApplicationRepository,
)
from creditline.domains.ledger.processor import LedgerCommandProcessor
from creditline.domains.tenancy.types import TenantTransaction
from creditline.models.subscription import Subscription
from creditline.schemas.usage import UsageCredit, UsageEvent

DEFAULT_ORG_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_ORG_ID = UUID("00000000-0000-0000-0000-000000000002")
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-0000000000a1")
DEFAULT_SUBSCRIPTION_ID = UUID("00000000-0000-0000-0000-0000000000b1")
DEFAULT_METER_ID = UUID("00000000-0000-0000-0000-0000000000c1")
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clock() -> datetime:
    return NOW


def _make_ctx(org_id: UUID = DEFAULT_ORG_ID, livemode: bool = True) -> RequestContext:
    return RequestContext(
        organization_id=org_id,
        livemode=livemode,
        acting_user_id=DEFAULT_USER_ID,
        role="merchant",
        auth_method=AuthMethod.API_KEY,
    )


def _make_tx(ctx=None) -> TenantTransaction:
    return TenantTransaction(session=AsyncMock(), ctx=ctx or _make_ctx())


def _make_admin_tx(livemode: bool = True) -> TenantTransaction:
    return TenantTransaction(
        session=AsyncMock(), ctx=SystemContext(organization_id=None, livemode=livemode)
    )


def _make_subscription(
    subscription_id: UUID = DEFAULT_SUBSCRIPTION_ID,
    org_id: UUID = DEFAULT_ORG_ID,
    livemode: bool = True,
) -> Subscription:
    return Subscription(
        id=subscription_id, organization_id=org_id, livemode=livemode, status="active"
    )


def _make_usage_event(amount: int = 100, **overrides: Any) -> UsageEvent:
    defaults = dict(
        id=uuid4(),
        organization_id=DEFAULT_ORG_ID,
        subscription_id=DEFAULT_SUBSCRIPTION_ID,
        usage_meter_id=DEFAULT_METER_ID,
        livemode=True,
        amount=amount,
        usage_date=NOW,
        transaction_id=f"evt_{uuid4().hex[:8]}",
    )
    defaults.update(overrides)
    return UsageEvent(**defaults)


def _make_usage_credit(
    issued_amount: int,
    expires_in: Optional[timedelta] = None,
    **overrides: Any,
) -> UsageCredit:
    defaults = dict(
        id=uuid4(),
        organization_id=DEFAULT_ORG_ID,
        subscription_id=DEFAULT_SUBSCRIPTION_ID,
        usage_meter_id=DEFAULT_METER_ID,
        livemode=True,
        credit_type="grant",
        issued_amount=issued_amount,
        issued_at=NOW - timedelta(days=1),
        expires_at=NOW + expires_in if expires_in is not None else None,
        source_reference_type="manual",
    )
    defaults.update(overrides)
    return UsageCredit(**defaults)


def _usage_command(event: UsageEvent, **overrides: Any) -> UsageEventProcessedCommand:
    defaults = dict(
        organization_id=event.organization_id,
        subscription_id=event.subscription_id,
        livemode=event.livemode,
        usage_event=event,
    )
    defaults.update(overrides)
    return UsageEventProcessedCommand(**defaults)


def _grant_command(credit: UsageCredit) -> PromoCreditGrantedCommand:
    return PromoCreditGrantedCommand(
        organization_id=credit.organization_id,
        subscription_id=credit.subscription_id,
        livemode=credit.livemode,
        usage_credit=credit,
    )


def _make_processor(*, seed_subscription: bool = True):
    """Build a LedgerCommandProcessor and BalanceAggregator wired to shared fakes."""
    subs = FakeSubscriptionRepository()
    accounts = FakeLedgerAccountRepository()
    transactions = FakeLedgerTransactionRepository()
    entries = FakeLedgerEntryRepository()
    applications = FakeUsageCreditApplicationRepository()

    if seed_subscription:
        subs.seed(_make_subscription())

    processor = LedgerCommandProcessor(
        subscription_repo=subs,
        account_repo=accounts,
        transaction_repo=transactions,
        entry_repo=entries,
        application_repo=applications,
        clock=_clock,
    )
    aggregator = BalanceAggregator(account_repo=accounts, entry_repo=entries, clock=_clock)
    fakes = dict(
        subscriptions=subs,
        accounts=accounts,
        transactions=transactions,
        entries=entries,
        applications=applications,
    )
    return processor, aggregator, fakes


async def _grant(processor, fakes, tx, credit: UsageCredit):
    """Record a promotional grant for ``credit`` and register its expiry."""
    fakes["entries"].seed_usage_credit(credit)
    return await processor.process(_grant_command(credit), tx)
