"""Tests for ledger command parsing."""

from typing import get_args
from uuid import uuid4

import pytest
from pydantic import ValidationError

from creditline.domains.ledger.commands import (
    BillingPeriodTransitionCommand,
    BillingRecalculatedCommand,
    BillingRunCreditAppliedCommand,
    LedgerCommand,
    UsageEventProcessedCommand,
    parse_ledger_command,
)
from creditline.domains.ledger.tests.conftest import (
    DEFAULT_ORG_ID,
    DEFAULT_SUBSCRIPTION_ID,
    _make_usage_event,
)
from creditline.domains.ledger.types import LedgerTransactionType


def _payload(**fields):
    return dict(
        organization_id=str(DEFAULT_ORG_ID),
        subscription_id=str(DEFAULT_SUBSCRIPTION_ID),
        livemode=True,
        **fields,
    )


def test_usage_event_payload_parses_to_its_variant():
    event = _make_usage_event(12)

    command = parse_ledger_command(
        _payload(type="usage_event_processed", usage_event=event.model_dump(mode="json"))
    )

    assert isinstance(command, UsageEventProcessedCommand)
    assert command.type is LedgerTransactionType.USAGE_EVENT_PROCESSED
    assert command.usage_event.amount == 12


def test_header_only_payload_parses():
    calculation_id = uuid4()

    command = parse_ledger_command(
        _payload(type="billing_recalculated", calculation_id=str(calculation_id))
    )

    assert isinstance(command, BillingRecalculatedCommand)
    assert command.calculation_id == calculation_id


def test_billing_period_transition_defaults_to_no_credits():
    period_id = uuid4()

    command = parse_ledger_command(
        _payload(type="billing_period_transition", billing_period_id=str(period_id))
    )

    assert isinstance(command, BillingPeriodTransitionCommand)
    assert command.billing_period_id == period_id
    assert command.expiring_usage_credits == []
    assert command.granted_usage_credits == []


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_ledger_command(_payload(type="invoice_voided"))


def test_missing_variant_field_is_rejected():
    with pytest.raises(ValidationError):
        parse_ledger_command(_payload(type="promo_credit_granted"))


def test_billing_run_credit_applied_requires_credits():
    with pytest.raises(ValidationError):
        parse_ledger_command(
            _payload(type="billing_run_credit_applied", billing_run_id=str(uuid4()), usage_credits=[])
        )

    command = parse_ledger_command(
        _payload(
            type="billing_run_credit_applied",
            billing_run_id=str(uuid4()),
            usage_credits=[
                dict(
                    id=str(uuid4()),
                    organization_id=str(DEFAULT_ORG_ID),
                    subscription_id=str(DEFAULT_SUBSCRIPTION_ID),
                    usage_meter_id=str(uuid4()),
                    livemode=True,
                    credit_type="grant",
                    issued_amount=10,
                    issued_at="2026-01-01T00:00:00Z",
                    source_reference_type="billing_run",
                )
            ],
        )
    )
    assert isinstance(command, BillingRunCreditAppliedCommand)
    assert command.pending_payment_id is None


def test_every_transaction_type_has_a_command_variant():
    variants = get_args(get_args(LedgerCommand)[0])

    assert {v.model_fields["type"].default for v in variants} == set(LedgerTransactionType)
