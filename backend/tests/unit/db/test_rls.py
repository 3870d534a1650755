"""Tests for the row-level security DDL builders."""

import pytest

from creditline.db import rls
from creditline.models import Base


def _joined(statements):
    return "\n".join(" ".join(s.split()) for s in statements)


class TestUpgradeStatements:
    def test_every_tenant_table_gets_a_policy(self):
        sql = _joined(rls.upgrade_statements("merchant"))

        for table in rls.TENANT_TABLES:
            assert f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" in sql
            assert f"CREATE POLICY tenant_isolation_{table} ON {table}" in sql

    def test_tenant_tables_cover_all_organization_scoped_models(self):
        scoped = {
            table.name for table in Base.metadata.sorted_tables if "organization_id" in table.c
        }

        assert scoped == set(rls.TENANT_TABLES)

    def test_policy_compares_organization_and_livemode(self):
        (policy,) = [
            s
            for s in rls.tenant_policy_statements("ledger_entry", "merchant")
            if s.startswith("CREATE POLICY")
        ]

        assert 'TO "merchant"' in policy
        assert "organization_id = current_organization_id()" in policy
        assert "livemode = current_livemode()" in policy
        assert "WITH CHECK" in policy

    def test_empty_claims_read_as_null(self):
        helpers = _joined(rls.HELPER_FUNCTIONS)

        assert "NULLIF(current_setting('request.jwt.claims', true), '')" in helpers
        assert "NULLIF(current_setting('app.livemode', true), '')" in helpers

    def test_only_the_tenant_role_is_granted_table_access(self):
        statements = rls.upgrade_statements("merchant")
        grants = [s for s in statements if s.startswith("GRANT") and " ON TABLE " in s]
        policies = [s for s in statements if s.startswith("CREATE POLICY")]

        assert grants
        assert all(s.endswith('TO "merchant"') for s in grants)
        assert len(policies) == len(rls.TENANT_TABLES)
        assert all('TO "merchant"' in s for s in policies)
        assert not any("FOR SELECT" in s for s in policies)

    def test_ledger_tables_get_append_only_triggers(self):
        sql = _joined(rls.immutability_trigger_statements())

        assert "ON ledger_transaction FOR EACH ROW EXECUTE FUNCTION reject_ledger_mutation()" in sql
        assert "ON usage_credit_application FOR EACH ROW" in sql
        assert "EXECUTE FUNCTION check_ledger_entry_update()" in sql

    @pytest.mark.parametrize("role", ["merchant; DROP TABLE ledger_entry", 'a"b', "", "1abc"])
    def test_invalid_role_names_are_rejected(self, role):
        with pytest.raises(ValueError):
            rls.upgrade_statements(role)


class TestDowngradeStatements:
    def test_removes_what_upgrade_installs(self):
        sql = _joined(rls.downgrade_statements("merchant"))

        for table in rls.TENANT_TABLES:
            assert f"DROP POLICY IF EXISTS tenant_isolation_{table} ON {table}" in sql
            assert f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY" in sql
        assert "DROP FUNCTION IF EXISTS current_organization_id()" in sql
