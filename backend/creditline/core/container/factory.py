"""Container Factory.

All construction logic lives here. The factory reads settings and wires the
real repositories, session factories and services into a Container.
"""

from creditline.core.config import Settings
from creditline.core.container.container import Container
from creditline.core.logging import logger
from creditline.db.immutability import register_immutability_listeners
from creditline.db.session import AsyncSessionLocal, get_db_context
from creditline.domains.identity.repository import (
    ApiKeyRepository,
    MembershipRepository,
    UserRepository,
)
from creditline.domains.identity.resolver import IdentityResolver
from creditline.domains.ledger.balance import BalanceAggregator
from creditline.domains.ledger.processor import LedgerCommandProcessor
from creditline.domains.ledger.repository import (
    LedgerAccountRepository,
    LedgerEntryRepository,
    LedgerTransactionRepository,
    SubscriptionRepository,
    UsageCreditApplicationRepository,
)
from creditline.domains.tenancy.service import TenantTransactionService


def create_container(settings: Settings) -> Container:
    """Build the container from settings.

    Args:
        settings: Application settings (from core/config)

    Returns:
        Fully constructed Container ready for use
    """
    register_immutability_listeners()

    identity_resolver = IdentityResolver(
        api_key_repo=ApiKeyRepository(),
        membership_repo=MembershipRepository(),
        user_repo=UserRepository(),
        db_context=get_db_context,
        tenant_role=settings.DB_TENANT_ROLE,
        hash_secret=settings.API_KEY_HASH_SECRET,
    )
    tenant_transactions = TenantTransactionService(
        session_factory=AsyncSessionLocal,
        identity_resolver=identity_resolver,
        max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
    )

    ledger_services = _create_ledger_services()

    logger.with_context(environment=settings.ENVIRONMENT.value).info("Container initialized")
    return Container(
        identity_resolver=identity_resolver,
        tenant_transactions=tenant_transactions,
        ledger_processor=ledger_services["ledger_processor"],
        balance_aggregator=ledger_services["balance_aggregator"],
    )


def _create_ledger_services() -> dict:
    """Create the ledger processor and balance aggregator over shared repositories."""
    account_repo = LedgerAccountRepository()
    entry_repo = LedgerEntryRepository()

    ledger_processor = LedgerCommandProcessor(
        subscription_repo=SubscriptionRepository(),
        account_repo=account_repo,
        transaction_repo=LedgerTransactionRepository(),
        entry_repo=entry_repo,
        application_repo=UsageCreditApplicationRepository(),
    )
    balance_aggregator = BalanceAggregator(account_repo=account_repo, entry_repo=entry_repo)

    return {
        "ledger_processor": ledger_processor,
        "balance_aggregator": balance_aggregator,
    }
