"""Row-level security DDL.

Tenant transactions switch to an unprivileged role and publish their claims in
``request.jwt.claims`` and ``app.livemode``. The helpers below read those
settings back, and one policy per tenant table compares them with the row's
``organization_id`` and ``livemode``. Claims cleared to an empty string read as
NULL, so a transaction without claims matches no rows.

The statements are plain strings so the Alembic migrations can replay them.
"""

import re

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TENANT_TABLES = (
    "membership",
    "api_key",
    "subscription",
    "usage_meter",
    "usage_event",
    "usage_credit",
    "usage_credit_application",
    "usage_credit_balance_adjustment",
    "ledger_account",
    "ledger_transaction",
    "ledger_entry",
)

APPEND_ONLY_TABLES = ("ledger_transaction", "usage_credit_application")

HELPER_FUNCTIONS = (
    """
    CREATE OR REPLACE FUNCTION current_claims() RETURNS json AS $$
        SELECT NULLIF(current_setting('request.jwt.claims', true), '')::json;
    $$ LANGUAGE sql STABLE
    """,
    """
    CREATE OR REPLACE FUNCTION current_organization_id() RETURNS uuid AS $$
        SELECT NULLIF(current_claims()->>'organization_id', '')::uuid;
    $$ LANGUAGE sql STABLE
    """,
    """
    CREATE OR REPLACE FUNCTION requesting_user_id() RETURNS uuid AS $$
        SELECT NULLIF(current_claims()->>'sub', '')::uuid;
    $$ LANGUAGE sql STABLE
    """,
    """
    CREATE OR REPLACE FUNCTION current_livemode() RETURNS boolean AS $$
        SELECT NULLIF(current_setting('app.livemode', true), '')::boolean;
    $$ LANGUAGE sql STABLE
    """,
)

DROP_HELPER_FUNCTIONS = (
    "DROP FUNCTION IF EXISTS current_livemode()",
    "DROP FUNCTION IF EXISTS requesting_user_id()",
    "DROP FUNCTION IF EXISTS current_organization_id()",
    "DROP FUNCTION IF EXISTS current_claims()",
)

IMMUTABILITY_FUNCTIONS = (
    """
    CREATE OR REPLACE FUNCTION reject_ledger_mutation() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION '% rows are append-only', TG_TABLE_NAME
            USING ERRCODE = 'restrict_violation';
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION check_ledger_entry_update() RETURNS trigger AS $$
    BEGIN
        IF TG_OP = 'DELETE' THEN
            RAISE EXCEPTION 'ledger_entry rows cannot be deleted'
                USING ERRCODE = 'restrict_violation';
        END IF;
        IF OLD.status <> 'pending'
           OR (to_jsonb(NEW) - 'discarded_at' - 'modified_at')
              IS DISTINCT FROM (to_jsonb(OLD) - 'discarded_at' - 'modified_at') THEN
            RAISE EXCEPTION 'only discarded_at of a pending ledger_entry may change'
                USING ERRCODE = 'restrict_violation';
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
)


def _quote_role(role: str) -> str:
    if not _IDENTIFIER.match(role):
        raise ValueError(f"Invalid database role name: {role!r}")
    return f'"{role}"'


def create_role_statements(*roles: str) -> list[str]:
    """Create each NOLOGIN role if missing and let the migrating user switch to it."""
    statements = []
    for role in roles:
        quoted = _quote_role(role)
        statements.append(
            f"""
            DO $$ BEGIN
                CREATE ROLE {quoted} NOLOGIN;
            EXCEPTION
                WHEN duplicate_object THEN null;
            END $$
            """
        )
        statements.append(f"GRANT {quoted} TO CURRENT_USER")
        statements.append(f"GRANT USAGE ON SCHEMA public TO {quoted}")
    return statements


def tenant_policy_statements(table: str, tenant_role: str) -> list[str]:
    """Enable RLS on ``table`` and restrict ``tenant_role`` to its own organization and mode."""
    role = _quote_role(tenant_role)
    predicate = "organization_id = current_organization_id() AND livemode = current_livemode()"
    return [
        f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY",
        f"GRANT SELECT, INSERT, UPDATE ON TABLE {table} TO {role}",
        f"DROP POLICY IF EXISTS tenant_isolation_{table} ON {table}",
        f"CREATE POLICY tenant_isolation_{table} ON {table} AS PERMISSIVE FOR ALL TO {role} "
        f"USING ({predicate}) WITH CHECK ({predicate})",
    ]


def immutability_trigger_statements() -> list[str]:
    """Triggers that back the ORM immutability listeners for bulk statements."""
    statements = list(IMMUTABILITY_FUNCTIONS)
    for table in APPEND_ONLY_TABLES:
        statements.append(f"DROP TRIGGER IF EXISTS {table}_append_only ON {table}")
        statements.append(
            f"CREATE TRIGGER {table}_append_only BEFORE UPDATE OR DELETE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION reject_ledger_mutation()"
        )
    statements.append("DROP TRIGGER IF EXISTS ledger_entry_append_only ON ledger_entry")
    statements.append(
        "CREATE TRIGGER ledger_entry_append_only BEFORE UPDATE OR DELETE ON ledger_entry "
        "FOR EACH ROW EXECUTE FUNCTION check_ledger_entry_update()"
    )
    return statements


def upgrade_statements(tenant_role: str) -> list[str]:
    """Every statement needed to install tenant isolation, in order."""
    statements = create_role_statements(tenant_role)
    statements.extend(HELPER_FUNCTIONS)
    statements.append(f"GRANT SELECT ON TABLE organization TO {_quote_role(tenant_role)}")
    for table in TENANT_TABLES:
        statements.extend(tenant_policy_statements(table, tenant_role))
    statements.extend(immutability_trigger_statements())
    return statements


def downgrade_statements(tenant_role: str) -> list[str]:
    """Undo ``upgrade_statements``. The role itself is left in place."""
    statements = ["DROP TRIGGER IF EXISTS ledger_entry_append_only ON ledger_entry"]
    for table in APPEND_ONLY_TABLES:
        statements.append(f"DROP TRIGGER IF EXISTS {table}_append_only ON {table}")
    statements.append("DROP FUNCTION IF EXISTS check_ledger_entry_update()")
    statements.append("DROP FUNCTION IF EXISTS reject_ledger_mutation()")
    for table in TENANT_TABLES:
        statements.append(f"DROP POLICY IF EXISTS tenant_isolation_{table} ON {table}")
        statements.append(f"REVOKE ALL ON TABLE {table} FROM {_quote_role(tenant_role)}")
        statements.append(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
    statements.append(f"REVOKE ALL ON TABLE organization FROM {_quote_role(tenant_role)}")
    statements.extend(DROP_HELPER_FUNCTIONS)
    return statements
