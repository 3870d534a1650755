"""Ledger commands: a closed union discriminated on ``type``.

Each command carries records that were already resolved by the caller. The
processor never looks up payments, refunds or usage events on its own.
"""

from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from creditline.domains.ledger.types import LedgerTransactionType
from creditline.schemas.payment import Payment, Refund
from creditline.schemas.usage import UsageCredit, UsageCreditBalanceAdjustment, UsageEvent


class LedgerCommandBase(BaseModel):
    """Fields shared by every ledger command."""

    organization_id: UUID
    subscription_id: UUID
    livemode: bool
    description: Optional[str] = None
    transaction_metadata: Optional[dict[str, Any]] = None
    idempotency_key: Optional[str] = None


class UsageEventProcessedCommand(LedgerCommandBase):
    """Charge a usage event, covering it from available usage credits."""

    type: Literal[LedgerTransactionType.USAGE_EVENT_PROCESSED] = (
        LedgerTransactionType.USAGE_EVENT_PROCESSED
    )
    usage_event: UsageEvent


class PaymentConfirmedCommand(LedgerCommandBase):
    """Recognize the usage credit purchased by a confirmed payment."""

    type: Literal[LedgerTransactionType.PAYMENT_CONFIRMED] = (
        LedgerTransactionType.PAYMENT_CONFIRMED
    )
    payment: Payment
    usage_credit: UsageCredit


class PromoCreditGrantedCommand(LedgerCommandBase):
    """Recognize a promotional usage credit."""

    type: Literal[LedgerTransactionType.PROMO_CREDIT_GRANTED] = (
        LedgerTransactionType.PROMO_CREDIT_GRANTED
    )
    usage_credit: UsageCredit


class BillingRunUsageProcessedCommand(LedgerCommandBase):
    """Record that a billing run processed usage. Header only."""

    type: Literal[LedgerTransactionType.BILLING_RUN_USAGE_PROCESSED] = (
        LedgerTransactionType.BILLING_RUN_USAGE_PROCESSED
    )
    billing_run_id: UUID


class BillingRunCreditAppliedCommand(LedgerCommandBase):
    """Recognize the usage credits granted by a billing run."""

    type: Literal[LedgerTransactionType.BILLING_RUN_CREDIT_APPLIED] = (
        LedgerTransactionType.BILLING_RUN_CREDIT_APPLIED
    )
    billing_run_id: UUID
    usage_credits: list[UsageCredit] = Field(..., min_length=1)
    # Set while the payment funding these credits has not settled; entries are
    # then written pending and can be discarded if the payment fails.
    pending_payment_id: Optional[UUID] = None


class AdminCreditAdjustedCommand(LedgerCommandBase):
    """Reduce a usage credit's balance by an administrative adjustment."""

    type: Literal[LedgerTransactionType.ADMIN_CREDIT_ADJUSTED] = (
        LedgerTransactionType.ADMIN_CREDIT_ADJUSTED
    )
    adjustment: UsageCreditBalanceAdjustment
    usage_credit: UsageCredit


class CreditGrantExpiredCommand(LedgerCommandBase):
    """Write off whatever is left of an expired usage credit."""

    type: Literal[LedgerTransactionType.CREDIT_GRANT_EXPIRED] = (
        LedgerTransactionType.CREDIT_GRANT_EXPIRED
    )
    usage_credit: UsageCredit


class PaymentRefundedCommand(LedgerCommandBase):
    """Claw back the usage credit bought by a refunded payment."""

    type: Literal[LedgerTransactionType.PAYMENT_REFUNDED] = (
        LedgerTransactionType.PAYMENT_REFUNDED
    )
    refund: Refund
    usage_credit: UsageCredit


class BillingRecalculatedCommand(LedgerCommandBase):
    """Record that a billing calculation was redone. Header only."""

    type: Literal[LedgerTransactionType.BILLING_RECALCULATED] = (
        LedgerTransactionType.BILLING_RECALCULATED
    )
    calculation_id: UUID


class BillingPeriodTransitionCommand(LedgerCommandBase):
    """Roll a subscription into a new billing period.

    Writes off what is left of the ending period's expiring credits and
    recognizes the credits granted for the new period, all in one ledger
    transaction keyed on the new period.
    """

    type: Literal[LedgerTransactionType.BILLING_PERIOD_TRANSITION] = (
        LedgerTransactionType.BILLING_PERIOD_TRANSITION
    )
    billing_period_id: UUID
    expiring_usage_credits: list[UsageCredit] = Field(default_factory=list)
    granted_usage_credits: list[UsageCredit] = Field(default_factory=list)


LedgerCommand = Annotated[
    Union[
        UsageEventProcessedCommand,
        PaymentConfirmedCommand,
        PromoCreditGrantedCommand,
        BillingRunUsageProcessedCommand,
        BillingRunCreditAppliedCommand,
        AdminCreditAdjustedCommand,
        CreditGrantExpiredCommand,
        PaymentRefundedCommand,
        BillingRecalculatedCommand,
        BillingPeriodTransitionCommand,
    ],
    Field(discriminator="type"),
]

ledger_command_adapter: TypeAdapter[LedgerCommand] = TypeAdapter(LedgerCommand)


def parse_ledger_command(data: dict[str, Any]) -> LedgerCommand:
    """Validate a raw payload into the matching command variant."""
    return ledger_command_adapter.validate_python(data)
