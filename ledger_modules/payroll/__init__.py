"""Payroll: monthly salary records, statutory deductions and salary payments."""
