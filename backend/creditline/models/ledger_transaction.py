"""Ledger transaction model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class LedgerTransaction(OrganizationBase):
    """Immutable header grouping the entries produced by one ledger command.

    The initiating source uniquely identifies the business event, so replaying a
    command finds the existing header instead of writing a second one.
    """

    __tablename__ = "ledger_transaction"

    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="RESTRICT"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    initiating_source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    initiating_source_id: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    transaction_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONB, nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index(
            "uq_ledger_transaction_source",
            "type",
            "initiating_source_type",
            "initiating_source_id",
            "livemode",
            "organization_id",
            unique=True,
        ),
        Index(
            "uq_ledger_transaction_idempotency_key",
            "subscription_id",
            "idempotency_key",
            unique=True,
            postgresql_where=text("idempotency_key IS NOT NULL"),
        ),
    )
