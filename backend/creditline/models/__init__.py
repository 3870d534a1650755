"""Models for the application."""

from ._base import Base, DeclarativeModel, OrganizationBase
from .api_key import APIKey
from .ledger_account import LedgerAccount
from .ledger_entry import LedgerEntry
from .ledger_transaction import LedgerTransaction
from .membership import Membership
from .organization import Organization
from .subscription import Subscription
from .usage_credit import UsageCredit
from .usage_credit_application import UsageCreditApplication
from .usage_credit_balance_adjustment import UsageCreditBalanceAdjustment
from .usage_event import UsageEvent
from .usage_meter import UsageMeter
from .user import User

__all__ = [
    "APIKey",
    "Base",
    "DeclarativeModel",
    "LedgerAccount",
    "LedgerEntry",
    "LedgerTransaction",
    "Membership",
    "Organization",
    "OrganizationBase",
    "Subscription",
    "UsageCredit",
    "UsageCreditApplication",
    "UsageCreditBalanceAdjustment",
    "UsageEvent",
    "UsageMeter",
    "User",
]
