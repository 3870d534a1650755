"""Ledger command processor.

Every command becomes exactly one ledger transaction header plus zero or more
entries, written in the caller's database transaction. The header goes first
and is keyed on the business event that initiated it; when that key already
exists the command is a replay and nothing else is written.
"""

from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext, SystemContext
from creditline.core.datetime_utils import utc_now
from creditline.core.exceptions import PermissionException
from creditline.domains.ledger.commands import (
    AdminCreditAdjustedCommand,
    BillingPeriodTransitionCommand,
    BillingRecalculatedCommand,
    BillingRunCreditAppliedCommand,
    BillingRunUsageProcessedCommand,
    CreditGrantExpiredCommand,
    LedgerCommand,
    LedgerCommandBase,
    PaymentConfirmedCommand,
    PaymentRefundedCommand,
    PromoCreditGrantedCommand,
    UsageEventProcessedCommand,
)
from creditline.domains.ledger.exceptions import (
    LedgerInvariantError,
    LedgerReferenceError,
    UnsupportedLedgerCommandError,
)
from creditline.domains.ledger.protocols import LedgerCommandProcessorProtocol
from creditline.domains.ledger.repository import (
    LedgerAccountRepositoryProtocol,
    LedgerEntryRepositoryProtocol,
    LedgerTransactionRepositoryProtocol,
    SubscriptionRepositoryProtocol,
    UsageCreditApplicationRepositoryProtocol,
)
from creditline.domains.ledger.types import (
    InitiatingSourceType,
    LedgerCommandResult,
    LedgerEntryDirection,
    LedgerEntryStatus,
    LedgerEntryType,
    LedgerTransactionType,
    NormalBalance,
    allocate_credits,
)
from creditline.domains.tenancy.types import TenantTransaction
from creditline.schemas.ledger import (
    LedgerAccountCreate,
    LedgerEntryCreate,
    LedgerTransactionCreate,
)
from creditline.schemas.usage import UsageCredit, UsageCreditApplicationCreate

Handler = Callable[[AsyncSession, LedgerCommand, BaseContext], Awaitable[LedgerCommandResult]]


class LedgerCommandProcessor(LedgerCommandProcessorProtocol):
    """Dispatches ledger commands to one handler per transaction type."""

    def __init__(
        self,
        *,
        subscription_repo: SubscriptionRepositoryProtocol,
        account_repo: LedgerAccountRepositoryProtocol,
        transaction_repo: LedgerTransactionRepositoryProtocol,
        entry_repo: LedgerEntryRepositoryProtocol,
        application_repo: UsageCreditApplicationRepositoryProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize with repositories; fails if any transaction type lacks a handler."""
        self._subscriptions = subscription_repo
        self._accounts = account_repo
        self._transactions = transaction_repo
        self._entries = entry_repo
        self._applications = application_repo
        self._clock = clock

        self._handlers: dict[LedgerTransactionType, Handler] = {
            LedgerTransactionType.USAGE_EVENT_PROCESSED: self._usage_event_processed,
            LedgerTransactionType.PAYMENT_CONFIRMED: self._payment_confirmed,
            LedgerTransactionType.PROMO_CREDIT_GRANTED: self._promo_credit_granted,
            LedgerTransactionType.BILLING_RUN_USAGE_PROCESSED: self._billing_run_usage_processed,
            LedgerTransactionType.BILLING_RUN_CREDIT_APPLIED: self._billing_run_credit_applied,
            LedgerTransactionType.ADMIN_CREDIT_ADJUSTED: self._admin_credit_adjusted,
            LedgerTransactionType.CREDIT_GRANT_EXPIRED: self._credit_grant_expired,
            LedgerTransactionType.PAYMENT_REFUNDED: self._payment_refunded,
            LedgerTransactionType.BILLING_RECALCULATED: self._billing_recalculated,
            LedgerTransactionType.BILLING_PERIOD_TRANSITION: self._billing_period_transition,
        }
        missing = set(LedgerTransactionType) - set(self._handlers)
        if missing:
            raise UnsupportedLedgerCommandError(sorted(t.value for t in missing))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, command: LedgerCommand, tx: TenantTransaction) -> LedgerCommandResult:
        """Record ``command`` as one ledger transaction and its entries.

        Raises:
            UnsupportedLedgerCommandError: no handler for the command type
            PermissionException: command belongs to another tenant or livemode
            LedgerReferenceError: subscription not visible in this transaction
            LedgerInvariantError: records in the command disagree with each other
        """
        handler = self._handlers.get(getattr(command, "type", None))
        if handler is None:
            raise UnsupportedLedgerCommandError(getattr(command, "type", type(command).__name__))

        ctx = self._command_context(command, tx.ctx)
        ctx.logger.info(f"Processing ledger command {command.type.value}")

        if await self._subscriptions.get(tx.session, command.subscription_id, ctx) is None:
            raise LedgerReferenceError(f"Subscription {command.subscription_id} not found")

        return await handler(tx.session, command, ctx)

    async def expire_pending_entries_for_payment(
        self, payment_id: UUID, subscription_id: UUID, tx: TenantTransaction
    ) -> int:
        """Discard a payment's pending entries. Posted entries are never touched."""
        count = await self._entries.discard_pending_for_payment(
            tx.session,
            payment_id=payment_id,
            subscription_id=subscription_id,
            now=self._clock(),
            ctx=tx.ctx,
        )
        tx.ctx.logger.info(f"Discarded {count} pending ledger entries for payment {payment_id}")
        return count

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _usage_event_processed(
        self, db: AsyncSession, command: UsageEventProcessedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        event = command.usage_event
        self._check_record(command, event, "usage event")

        account = await self._account(db, command.subscription_id, event.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.USAGE_EVENT, event.id, ctx
        )
        if not created:
            result = await self._replay(db, header, ctx)
            result.usage_credit_applications = await self._applications.get_by_usage_event(
                db, usage_event_id=event.id, ctx=ctx
            )
            return result

        now = self._clock()
        balances = await self._entries.usage_credit_balances(
            db,
            ledger_account_id=account.id,
            normal_balance=NormalBalance(account.normal_balance),
            now=now,
            ctx=ctx,
        )
        allocations = allocate_credits(event.amount, balances)
        applications = await self._applications.create_many(
            db,
            objs_in=[
                UsageCreditApplicationCreate(
                    usage_credit_id=allocation.usage_credit_id,
                    usage_event_id=event.id,
                    amount_applied=allocation.amount,
                    applied_at=now,
                    target_usage_meter_id=event.usage_meter_id,
                )
                for allocation in allocations
            ],
            ctx=ctx,
        )

        common = dict(
            ledger_account_id=account.id,
            subscription_id=command.subscription_id,
            usage_meter_id=event.usage_meter_id,
            entry_timestamp=now,
            billing_period_id=event.billing_period_id,
            source_usage_event_id=event.id,
        )
        entries = [
            LedgerEntryCreate(
                direction=LedgerEntryDirection.DEBIT.value,
                entry_type=LedgerEntryType.USAGE_COST.value,
                amount=event.amount,
                description=f"Usage event {event.transaction_id}",
                **common,
            )
        ]
        for application in applications:
            entries.append(
                LedgerEntryCreate(
                    direction=LedgerEntryDirection.DEBIT.value,
                    entry_type=LedgerEntryType.CREDIT_APPLICATION_DEBIT_FROM_CREDIT_BALANCE.value,
                    amount=application.amount_applied,
                    source_usage_credit_id=application.usage_credit_id,
                    source_credit_application_id=application.id,
                    **common,
                )
            )
            entries.append(
                LedgerEntryCreate(
                    direction=LedgerEntryDirection.CREDIT.value,
                    entry_type=LedgerEntryType.CREDIT_APPLICATION_CREDIT_TOWARDS_USAGE_COST.value,
                    amount=application.amount_applied,
                    source_credit_application_id=application.id,
                    **common,
                )
            )

        result = await self._write_entries(db, header, entries, ctx)
        result.usage_credit_applications = applications
        applied = sum(a.amount_applied for a in applications)
        ctx.logger.info(
            f"Usage event {event.id}: charged {event.amount}, "
            f"{applied} covered by {len(applications)} credit(s)"
        )
        return result

    async def _payment_confirmed(
        self, db: AsyncSession, command: PaymentConfirmedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        payment, credit = command.payment, command.usage_credit
        self._check_record(command, payment, "payment")
        self._check_record(command, credit, "usage credit")
        if credit.payment_id is not None and credit.payment_id != payment.id:
            raise LedgerInvariantError(
                f"Usage credit {credit.id} was not bought by payment {payment.id}"
            )

        account = await self._account(db, command.subscription_id, credit.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.PAYMENT, payment.id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        entry = self._credit_entry(
            account.id,
            credit,
            LedgerEntryDirection.CREDIT,
            LedgerEntryType.PAYMENT_RECOGNIZED,
            credit.issued_amount,
            source_payment_id=payment.id,
        )
        return await self._write_entries(db, header, [entry], ctx)

    async def _promo_credit_granted(
        self, db: AsyncSession, command: PromoCreditGrantedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        credit = command.usage_credit
        self._check_record(command, credit, "usage credit")

        account = await self._account(db, command.subscription_id, credit.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.USAGE_CREDIT, credit.id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        entry = self._credit_entry(
            account.id,
            credit,
            LedgerEntryDirection.CREDIT,
            LedgerEntryType.CREDIT_GRANT_RECOGNIZED,
            credit.issued_amount,
        )
        return await self._write_entries(db, header, [entry], ctx)

    async def _billing_run_credit_applied(
        self, db: AsyncSession, command: BillingRunCreditAppliedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        for credit in command.usage_credits:
            self._check_record(command, credit, "usage credit")

        accounts = await self._accounts_by_meter(
            db, command.subscription_id, [c.usage_meter_id for c in command.usage_credits], ctx
        )
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.BILLING_RUN, command.billing_run_id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        status = LedgerEntryStatus.POSTED
        if command.pending_payment_id is not None:
            status = LedgerEntryStatus.PENDING
        entries = [
            self._credit_entry(
                accounts[credit.usage_meter_id].id,
                credit,
                LedgerEntryDirection.CREDIT,
                LedgerEntryType.CREDIT_GRANT_RECOGNIZED,
                credit.issued_amount,
                status=status,
                source_payment_id=command.pending_payment_id,
            )
            for credit in command.usage_credits
        ]
        return await self._write_entries(db, header, entries, ctx)

    async def _admin_credit_adjusted(
        self, db: AsyncSession, command: AdminCreditAdjustedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        adjustment, credit = command.adjustment, command.usage_credit
        self._check_record(command, adjustment, "adjustment")
        self._check_record(command, credit, "usage credit")
        if adjustment.adjusted_usage_credit_id != credit.id:
            raise LedgerInvariantError(
                f"Adjustment {adjustment.id} does not target usage credit {credit.id}"
            )

        account = await self._account(db, command.subscription_id, credit.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.CREDIT_BALANCE_ADJUSTMENT, adjustment.id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        remaining = await self._credit_remaining(db, credit, account.normal_balance, ctx)
        if adjustment.amount_adjusted > remaining:
            raise LedgerInvariantError(
                f"Adjustment of {adjustment.amount_adjusted} exceeds the {remaining} "
                f"remaining on usage credit {credit.id}"
            )
        entry = self._credit_entry(
            account.id,
            credit,
            LedgerEntryDirection.DEBIT,
            LedgerEntryType.CREDIT_BALANCE_ADJUSTED,
            adjustment.amount_adjusted,
            source_credit_balance_adjustment_id=adjustment.id,
            description=adjustment.reason,
        )
        return await self._write_entries(db, header, [entry], ctx)

    async def _credit_grant_expired(
        self, db: AsyncSession, command: CreditGrantExpiredCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        credit = command.usage_credit
        self._check_record(command, credit, "usage credit")

        account = await self._account(db, command.subscription_id, credit.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.USAGE_CREDIT, credit.id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        remaining = await self._credit_remaining(db, credit, account.normal_balance, ctx)
        entries = []
        if remaining > 0:
            entries.append(
                self._credit_entry(
                    account.id,
                    credit,
                    LedgerEntryDirection.DEBIT,
                    LedgerEntryType.CREDIT_GRANT_EXPIRED,
                    remaining,
                )
            )
        return await self._write_entries(db, header, entries, ctx)

    async def _payment_refunded(
        self, db: AsyncSession, command: PaymentRefundedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        refund, credit = command.refund, command.usage_credit
        self._check_record(command, refund, "refund")
        self._check_record(command, credit, "usage credit")
        if credit.payment_id != refund.payment_id:
            raise LedgerInvariantError(
                f"Usage credit {credit.id} was not bought by refunded payment {refund.payment_id}"
            )

        account = await self._account(db, command.subscription_id, credit.usage_meter_id, ctx)
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.REFUND, refund.id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        remaining = await self._credit_remaining(db, credit, account.normal_balance, ctx)
        clawback = min(refund.amount, remaining)
        entries = []
        if clawback > 0:
            entries.append(
                self._credit_entry(
                    account.id,
                    credit,
                    LedgerEntryDirection.DEBIT,
                    LedgerEntryType.PAYMENT_REFUNDED,
                    clawback,
                    source_payment_id=refund.payment_id,
                    source_refund_id=refund.id,
                )
            )
        return await self._write_entries(db, header, entries, ctx)

    async def _billing_run_usage_processed(
        self, db: AsyncSession, command: BillingRunUsageProcessedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        return await self._header_only(
            db, command, InitiatingSourceType.BILLING_RUN, command.billing_run_id, ctx
        )

    async def _billing_recalculated(
        self, db: AsyncSession, command: BillingRecalculatedCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        return await self._header_only(
            db, command, InitiatingSourceType.BILLING_CALCULATION, command.calculation_id, ctx
        )

    async def _billing_period_transition(
        self, db: AsyncSession, command: BillingPeriodTransitionCommand, ctx: BaseContext
    ) -> LedgerCommandResult:
        expiring, granted = command.expiring_usage_credits, command.granted_usage_credits
        for credit in [*expiring, *granted]:
            self._check_record(command, credit, "usage credit")
        for credit in expiring:
            if credit.expires_at is None:
                raise LedgerInvariantError(f"Usage credit {credit.id} never expires")
        for credit in granted:
            if credit.billing_period_id != command.billing_period_id:
                raise LedgerInvariantError(
                    f"Usage credit {credit.id} was not granted for billing period "
                    f"{command.billing_period_id}"
                )
        if {c.id for c in expiring} & {c.id for c in granted}:
            raise LedgerInvariantError("A usage credit cannot both expire and be granted")

        accounts = await self._accounts_by_meter(
            db,
            command.subscription_id,
            [c.usage_meter_id for c in [*expiring, *granted]],
            ctx,
        )
        header, created = await self._open_transaction(
            db, command, InitiatingSourceType.BILLING_PERIOD, command.billing_period_id, ctx
        )
        if not created:
            return await self._replay(db, header, ctx)

        entries = []
        for credit in expiring:
            account = accounts[credit.usage_meter_id]
            remaining = await self._credit_remaining(db, credit, account.normal_balance, ctx)
            if remaining > 0:
                entries.append(
                    self._credit_entry(
                        account.id,
                        credit,
                        LedgerEntryDirection.DEBIT,
                        LedgerEntryType.CREDIT_GRANT_EXPIRED,
                        remaining,
                    )
                )
        expired = len(entries)
        for credit in granted:
            entries.append(
                self._credit_entry(
                    accounts[credit.usage_meter_id].id,
                    credit,
                    LedgerEntryDirection.CREDIT,
                    LedgerEntryType.CREDIT_GRANT_RECOGNIZED,
                    credit.issued_amount,
                )
            )
        ctx.logger.info(
            f"Billing period {command.billing_period_id}: expired {expired} credit(s), "
            f"granted {len(granted)}"
        )
        return await self._write_entries(db, header, entries, ctx)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _command_context(command: LedgerCommandBase, ctx: BaseContext) -> BaseContext:
        """Scope for the command's writes; admin work is narrowed to the command's tenant."""
        if command.livemode != ctx.livemode:
            raise PermissionException("Command livemode does not match the transaction")
        if ctx.is_admin:
            return SystemContext(organization_id=command.organization_id, livemode=ctx.livemode)
        if command.organization_id != ctx.organization_id:
            raise PermissionException("Command belongs to another organization")
        return ctx

    @staticmethod
    def _check_record(command: LedgerCommandBase, record, label: str) -> None:
        if record.organization_id != command.organization_id or record.livemode != command.livemode:
            raise LedgerInvariantError(f"The {label} {record.id} belongs to another tenant scope")
        subscription_id = getattr(record, "subscription_id", command.subscription_id)
        if subscription_id != command.subscription_id:
            raise LedgerInvariantError(
                f"The {label} {record.id} belongs to subscription {subscription_id}"
            )

    async def _account(self, db: AsyncSession, subscription_id: UUID, usage_meter_id: UUID, ctx):
        return await self._accounts.find_or_create(
            db,
            obj_in=LedgerAccountCreate(
                subscription_id=subscription_id,
                usage_meter_id=usage_meter_id,
                normal_balance=NormalBalance.CREDIT.value,
            ),
            ctx=ctx,
        )

    async def _accounts_by_meter(
        self, db: AsyncSession, subscription_id: UUID, usage_meter_ids: Sequence[UUID], ctx
    ) -> dict:
        """Lock one account per meter, always in meter id order."""
        accounts = {}
        for usage_meter_id in sorted(set(usage_meter_ids)):
            accounts[usage_meter_id] = await self._account(db, subscription_id, usage_meter_id, ctx)
        return accounts

    async def _open_transaction(
        self,
        db: AsyncSession,
        command: LedgerCommandBase,
        source_type: InitiatingSourceType,
        source_id: UUID,
        ctx: BaseContext,
    ):
        return await self._transactions.insert_or_get_existing(
            db,
            obj_in=LedgerTransactionCreate(
                subscription_id=command.subscription_id,
                type=command.type.value,
                initiating_source_type=source_type.value,
                initiating_source_id=str(source_id),
                description=command.description,
                transaction_metadata=command.transaction_metadata,
                idempotency_key=command.idempotency_key,
            ),
            ctx=ctx,
        )

    async def _replay(self, db: AsyncSession, header, ctx: BaseContext) -> LedgerCommandResult:
        ctx.logger.info(
            f"Ledger command {header.type} for {header.initiating_source_type}:"
            f"{header.initiating_source_id} already processed"
        )
        entries = await self._entries.get_by_transaction(
            db, ledger_transaction_id=header.id, ctx=ctx
        )
        return LedgerCommandResult(
            ledger_transaction=header, ledger_entries=entries, already_processed=True
        )

    async def _header_only(
        self,
        db: AsyncSession,
        command: LedgerCommandBase,
        source_type: InitiatingSourceType,
        source_id: UUID,
        ctx: BaseContext,
    ) -> LedgerCommandResult:
        header, created = await self._open_transaction(db, command, source_type, source_id, ctx)
        if not created:
            return await self._replay(db, header, ctx)
        return LedgerCommandResult(ledger_transaction=header)

    async def _write_entries(
        self,
        db: AsyncSession,
        header,
        entries: Sequence[LedgerEntryCreate],
        ctx: BaseContext,
    ) -> LedgerCommandResult:
        rows = [{**entry.model_dump(), "ledger_transaction_id": header.id} for entry in entries]
        persisted = await self._entries.create_many(db, objs_in=rows, ctx=ctx)
        return LedgerCommandResult(ledger_transaction=header, ledger_entries=persisted)

    async def _credit_remaining(
        self, db: AsyncSession, credit: UsageCredit, normal_balance: str, ctx: BaseContext
    ) -> int:
        return await self._entries.balance_for_usage_credit(
            db,
            usage_credit_id=credit.id,
            normal_balance=NormalBalance(normal_balance),
            now=self._clock(),
            ctx=ctx,
        )

    def _credit_entry(
        self,
        ledger_account_id: UUID,
        credit: UsageCredit,
        direction: LedgerEntryDirection,
        entry_type: LedgerEntryType,
        amount: int,
        description: Optional[str] = None,
        status: LedgerEntryStatus = LedgerEntryStatus.POSTED,
        **sources,
    ) -> LedgerEntryCreate:
        return LedgerEntryCreate(
            ledger_account_id=ledger_account_id,
            subscription_id=credit.subscription_id,
            usage_meter_id=credit.usage_meter_id,
            direction=direction.value,
            entry_type=entry_type.value,
            status=status.value,
            amount=amount,
            description=description,
            entry_timestamp=self._clock(),
            billing_period_id=credit.billing_period_id,
            source_usage_credit_id=credit.id,
            **sources,
        )
