"""Kernel services: write-side guardians of the ledger invariants."""
