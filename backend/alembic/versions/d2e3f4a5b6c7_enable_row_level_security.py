"""Enable row-level security, tenant roles and ledger immutability triggers.

Revision ID: d2e3f4a5b6c7
Revises: c1d2e3f4a5b6
Create Date: 2026-01-12 00:10:00.000000

"""

import sqlalchemy as sa

from alembic import op
from creditline.core.config import settings
from creditline.db import rls

# revision identifiers, used by Alembic.
revision = "d2e3f4a5b6c7"
down_revision = "c1d2e3f4a5b6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Install the tenant role, claim helpers, per-table policies and append-only triggers.

    The role name comes from DB_TENANT_ROLE so the policies match the role
    tenant transactions switch to.
    """
    for statement in rls.upgrade_statements(settings.DB_TENANT_ROLE):
        op.execute(sa.text(statement))


def downgrade() -> None:
    """Remove policies, helpers and triggers. The role is kept."""
    for statement in rls.downgrade_statements(settings.DB_TENANT_ROLE):
        op.execute(sa.text(statement))
