"""Counterparties: customers, vendors and employees."""
