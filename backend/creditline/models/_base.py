"""Declarative base classes for all models."""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class DeclarativeModel(DeclarativeBase):
    """Holds the shared metadata."""


class Base(DeclarativeModel):
    """Base class for all models: UUID primary key and audit timestamps."""

    __abstract__ = True

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class OrganizationBase(Base):
    """Base class for tenant-scoped tables.

    Every subclass carries ``organization_id`` and ``livemode``; both columns are
    referenced by the row-level security policies installed in the migrations.
    """

    __abstract__ = True

    @declared_attr
    def organization_id(cls) -> Mapped[UUID]:
        """Owning organization."""
        return mapped_column(
            ForeignKey("organization.id", ondelete="CASCADE"), nullable=False, index=True
        )

    livemode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
