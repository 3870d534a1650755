"""Ledger domain: usage ledger commands and balances."""
