"""Tests for the DI container and its factory."""

import pytest
from sqlalchemy import event

from creditline.core import container as container_module
from creditline.core.config import Settings
from creditline.core.container import Container, create_container, initialize_container
from creditline.db.immutability import unregister_immutability_listeners
from creditline.domains.identity.protocols import IdentityResolverProtocol
from creditline.domains.ledger.protocols import (
    BalanceAggregatorProtocol,
    LedgerCommandProcessorProtocol,
)
from creditline.domains.tenancy.protocols import TenantTransactionServiceProtocol
from creditline.domains.tenancy.service import TenantTransactionService
from creditline.models.ledger_entry import LedgerEntry


@pytest.fixture
def clean_container():
    container_module.reset_container()
    yield
    container_module.reset_container()
    unregister_immutability_listeners()


class TestCreateContainer:
    def test_wires_every_protocol(self, clean_container):
        c = create_container(Settings(TRANSACTION_MAX_ATTEMPTS=5))

        assert isinstance(c.identity_resolver, IdentityResolverProtocol)
        assert isinstance(c.tenant_transactions, TenantTransactionServiceProtocol)
        assert isinstance(c.ledger_processor, LedgerCommandProcessorProtocol)
        assert isinstance(c.balance_aggregator, BalanceAggregatorProtocol)
        assert isinstance(c.tenant_transactions, TenantTransactionService)
        assert c.tenant_transactions._max_attempts == 5

    def test_registers_immutability_listeners(self, clean_container):
        from creditline.db.immutability import _check_ledger_entry_update

        unregister_immutability_listeners()
        create_container(Settings())

        assert event.contains(LedgerEntry, "before_update", _check_ledger_entry_update)


class TestGlobalContainer:
    def test_initialize_sets_global(self, clean_container):
        initialize_container(Settings())

        assert isinstance(container_module.container, Container)

    def test_initialize_twice_raises(self, clean_container):
        initialize_container(Settings())

        with pytest.raises(RuntimeError, match="already initialized"):
            initialize_container(Settings())

    def test_replace_swaps_one_dependency(self, test_container, fake_identity_resolver):
        from creditline.domains.identity.fakes.resolver import FakeIdentityResolver

        other = FakeIdentityResolver()
        modified = test_container.replace(identity_resolver=other)

        assert modified.identity_resolver is other
        assert test_container.identity_resolver is fake_identity_resolver
        assert modified.ledger_processor is test_container.ledger_processor
