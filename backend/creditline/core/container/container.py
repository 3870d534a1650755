"""Dependency Injection Container.

The container is an immutable dataclass holding protocol implementations.
Construction belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from creditline.domains.identity.protocols import IdentityResolverProtocol
from creditline.domains.ledger.protocols import (
    BalanceAggregatorProtocol,
    LedgerCommandProcessorProtocol,
)
from creditline.domains.tenancy.protocols import TenantTransactionServiceProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by the factory
        from creditline.core.container import container

        async def record(tx):
            return await container.ledger_processor.process(command, tx)

        await container.tenant_transactions.run_as_tenant(credential, record)

        # Testing: construct directly with fakes
        test_container = Container(
            identity_resolver=FakeIdentityResolver(),
            tenant_transactions=FakeTenantTransactionService(org_id),
            ledger_processor=processor,
            balance_aggregator=aggregator,
        )
    """

    # Credential -> tenant identity
    identity_resolver: IdentityResolverProtocol

    # Tenant-scoped database transactions (RLS claims, role, retries)
    tenant_transactions: TenantTransactionServiceProtocol

    # Ledger domain
    ledger_processor: LedgerCommandProcessorProtocol
    balance_aggregator: BalanceAggregatorProtocol

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

            modified = container.replace(ledger_processor=other_processor)
        """
        return replace(self, **changes)
