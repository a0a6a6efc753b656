"""Accounts payable: vendor bills, TDS withholding and payments."""
