"""Fake implementations for tenancy domain testing."""

from creditline.domains.tenancy.fakes.service import FakeTenantTransactionService

__all__ = ["FakeTenantTransactionService"]
