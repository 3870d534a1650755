"""CRUD layer operations."""

from .crud_api_key import api_key
from .crud_ledger_account import ledger_account
from .crud_ledger_entry import ledger_entry
from .crud_ledger_transaction import ledger_transaction
from .crud_membership import membership, user
from .crud_usage import subscription, usage_credit_application

__all__ = [
    "api_key",
    "ledger_account",
    "ledger_entry",
    "ledger_transaction",
    "membership",
    "subscription",
    "usage_credit_application",
    "user",
]
