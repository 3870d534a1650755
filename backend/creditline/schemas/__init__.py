"""Schemas for the application."""

from .api_key import APIKeyCreate
from .ledger import LedgerAccountCreate, LedgerEntryCreate, LedgerTransactionCreate
from .payment import Payment, Refund
from .usage import (
    UsageCredit,
    UsageCreditApplicationCreate,
    UsageCreditBalanceAdjustment,
    UsageEvent,
)

__all__ = [
    "APIKeyCreate",
    "LedgerAccountCreate",
    "LedgerEntryCreate",
    "LedgerTransactionCreate",
    "Payment",
    "Refund",
    "UsageCredit",
    "UsageCreditApplicationCreate",
    "UsageCreditBalanceAdjustment",
    "UsageEvent",
]
