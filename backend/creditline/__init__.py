"""Creditline: multi-tenant usage ledger backend."""
