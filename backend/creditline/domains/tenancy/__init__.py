"""Tenancy domain: tenant-scoped database transactions."""
