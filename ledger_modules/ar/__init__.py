"""Accounts receivable: customer invoices and receipts."""
