"""Create tenancy, usage and ledger tables.

Revision ID: c1d2e3f4a5b6
Revises:
Create Date: 2026-01-12 00:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

from alembic import op

# revision identifiers, used by Alembic.
revision = "c1d2e3f4a5b6"
down_revision = None
branch_labels = None
depends_on = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "modified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    ]


def _tenant_columns() -> list[sa.Column]:
    return _base_columns() + [
        sa.Column(
            "organization_id",
            UUID(as_uuid=True),
            sa.ForeignKey("organization.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("livemode", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    ]


def _fk(name: str, target: str, ondelete: str = "RESTRICT", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        UUID(as_uuid=True),
        sa.ForeignKey(f"{target}.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create every table with its unique keys and check constraints."""
    op.create_table(
        "organization",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
    )
    op.create_table(
        "user",
        *_base_columns(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("auth_provider_id", sa.String(255), nullable=True),
    )
    op.create_index("ix_user_auth_provider_id", "user", ["auth_provider_id"], unique=True)

    op.create_table(
        "membership",
        *_tenant_columns(),
        _fk("user_id", "user", ondelete="CASCADE"),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("focused", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_membership_user_id", "membership", ["user_id"])
    op.create_index(
        "uq_membership_user_org", "membership", ["user_id", "organization_id"], unique=True
    )

    op.create_table(
        "api_key",
        *_tenant_columns(),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("key_type", sa.String(20), nullable=False),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=True),
        _fk("created_by_user_id", "user", ondelete="SET NULL", nullable=True),
    )
    op.create_index("ix_api_key_token_hash", "api_key", ["token_hash"], unique=True)

    op.create_table(
        "subscription",
        *_tenant_columns(),
        sa.Column("customer_external_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
    )
    op.create_table(
        "usage_meter",
        *_tenant_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
    )
    op.create_index(
        "uq_usage_meter_slug", "usage_meter", ["organization_id", "livemode", "slug"], unique=True
    )

    op.create_table(
        "usage_event",
        *_tenant_columns(),
        _fk("subscription_id", "subscription", ondelete="CASCADE"),
        _fk("usage_meter_id", "usage_meter", ondelete="CASCADE"),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("usage_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("billing_period_id", UUID(as_uuid=True), nullable=True),
        sa.Column("transaction_id", sa.String(255), nullable=False),
    )
    op.create_index(
        "uq_usage_event_transaction",
        "usage_event",
        ["organization_id", "livemode", "transaction_id"],
        unique=True,
    )
    op.create_index(
        "idx_usage_event_subscription_meter", "usage_event", ["subscription_id", "usage_meter_id"]
    )

    op.create_table(
        "usage_credit",
        *_tenant_columns(),
        _fk("subscription_id", "subscription", ondelete="CASCADE"),
        _fk("usage_meter_id", "usage_meter", ondelete="CASCADE"),
        sa.Column("credit_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("issued_amount", sa.BigInteger(), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_reference_type", sa.String(50), nullable=False),
        sa.Column("source_reference_id", sa.String(255), nullable=True),
        sa.Column("payment_id", UUID(as_uuid=True), nullable=True),
        sa.Column("billing_period_id", UUID(as_uuid=True), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("metadata", JSONB(), nullable=True),
    )
    op.create_index(
        "idx_usage_credit_subscription_meter", "usage_credit", ["subscription_id", "usage_meter_id"]
    )
    op.create_index("idx_usage_credit_expires_at", "usage_credit", ["expires_at"])

    op.create_table(
        "usage_credit_application",
        *_tenant_columns(),
        _fk("usage_credit_id", "usage_credit"),
        _fk("usage_event_id", "usage_event", nullable=True),
        sa.Column("amount_applied", sa.BigInteger(), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        _fk("target_usage_meter_id", "usage_meter"),
        sa.Column("status", sa.String(20), nullable=False),
    )
    op.create_index(
        "idx_usage_credit_application_credit", "usage_credit_application", ["usage_credit_id"]
    )
    op.create_index(
        "idx_usage_credit_application_event", "usage_credit_application", ["usage_event_id"]
    )

    op.create_table(
        "usage_credit_balance_adjustment",
        *_tenant_columns(),
        _fk("adjusted_usage_credit_id", "usage_credit"),
        sa.Column("amount_adjusted", sa.BigInteger(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        _fk("adjusted_by_user_id", "user", ondelete="SET NULL", nullable=True),
        sa.Column("adjustment_initiated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "ledger_account",
        *_tenant_columns(),
        _fk("subscription_id", "subscription"),
        _fk("usage_meter_id", "usage_meter"),
        sa.Column(
            "normal_balance", sa.String(10), nullable=False, server_default=sa.text("'credit'")
        ),
    )
    op.create_index(
        "uq_ledger_account_scope",
        "ledger_account",
        ["organization_id", "subscription_id", "usage_meter_id", "livemode"],
        unique=True,
    )

    op.create_table(
        "ledger_transaction",
        *_tenant_columns(),
        _fk("subscription_id", "subscription"),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("initiating_source_type", sa.String(50), nullable=False),
        sa.Column("initiating_source_id", sa.String(255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("metadata", JSONB(), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
    )
    op.create_index(
        "uq_ledger_transaction_source",
        "ledger_transaction",
        ["type", "initiating_source_type", "initiating_source_id", "livemode", "organization_id"],
        unique=True,
    )
    op.create_index(
        "uq_ledger_transaction_idempotency_key",
        "ledger_transaction",
        ["subscription_id", "idempotency_key"],
        unique=True,
        postgresql_where=sa.text("idempotency_key IS NOT NULL"),
    )

    op.create_table(
        "ledger_entry",
        *_tenant_columns(),
        _fk("ledger_transaction_id", "ledger_transaction"),
        _fk("ledger_account_id", "ledger_account"),
        _fk("subscription_id", "subscription"),
        _fk("usage_meter_id", "usage_meter", nullable=True),
        sa.Column("direction", sa.String(10), nullable=False),
        sa.Column("entry_type", sa.String(60), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default=sa.text("'posted'")),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("entry_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("discarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("billing_period_id", UUID(as_uuid=True), nullable=True),
        sa.Column("metadata", JSONB(), nullable=True),
        _fk("source_usage_event_id", "usage_event", nullable=True),
        _fk("source_usage_credit_id", "usage_credit", nullable=True),
        _fk("source_credit_application_id", "usage_credit_application", nullable=True),
        _fk(
            "source_credit_balance_adjustment_id", "usage_credit_balance_adjustment", nullable=True
        ),
        sa.Column("source_payment_id", UUID(as_uuid=True), nullable=True),
        sa.Column("source_refund_id", UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_entry_amount_non_negative"),
        sa.CheckConstraint("direction IN ('debit', 'credit')", name="ck_ledger_entry_direction"),
        sa.CheckConstraint("status IN ('posted', 'pending')", name="ck_ledger_entry_status"),
    )
    op.create_index(
        "ix_ledger_entry_ledger_transaction_id", "ledger_entry", ["ledger_transaction_id"]
    )
    op.create_index("ix_ledger_entry_ledger_account_id", "ledger_entry", ["ledger_account_id"])
    op.create_index(
        "idx_ledger_entry_account_status", "ledger_entry", ["ledger_account_id", "status"]
    )
    op.create_index("idx_ledger_entry_usage_credit", "ledger_entry", ["source_usage_credit_id"])
    op.create_index("idx_ledger_entry_payment", "ledger_entry", ["source_payment_id"])


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    for table in (
        "ledger_entry",
        "ledger_transaction",
        "ledger_account",
        "usage_credit_balance_adjustment",
        "usage_credit_application",
        "usage_credit",
        "usage_event",
        "usage_meter",
        "subscription",
        "api_key",
        "membership",
        "user",
        "organization",
    ):
        op.drop_table(table)
