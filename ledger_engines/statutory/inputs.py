"""
Statutory compiler inputs.

Frozen snapshots of the transaction records a return is compiled from.
The services layer builds them from ORM rows; the compilers never see a
session.  Optional text fields default to "" and amounts to zero, so a
sparse record aggregates instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.domain.values import ZERO, money_sum


@dataclass(frozen=True)
class InvoiceRecord:
    invoice_id: str
    invoice_number: str
    invoice_date: date
    customer_name: str
    customer_gstin: str = ""
    place_of_supply: str = ""
    subtotal: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    total_amount: Decimal = ZERO

    @property
    def tax_amount(self) -> Decimal:
        return money_sum((self.cgst_amount, self.sgst_amount, self.igst_amount))


@dataclass(frozen=True)
class BillRecord:
    bill_id: str
    bill_number: str
    bill_date: date
    vendor_name: str
    vendor_gstin: str = ""
    vendor_pan: str = ""
    subtotal: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    tds_section: str = ""
    tds_rate: Decimal = ZERO
    tds_amount: Decimal = ZERO


@dataclass(frozen=True)
class PayrollInput:
    """One processed payroll record (one employee, one month)."""

    record_id: str
    employee_code: str
    employee_name: str
    pay_period: str
    pay_date: date
    basic_salary: Decimal = ZERO
    hra: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    other_allowances: Decimal = ZERO
    tds_amount: Decimal = ZERO
    employee_pan: str = ""
    uan: str = ""
    esi_ip_number: str = ""
    days_worked: int = 30
    ncp_days: int = 0

    @property
    def gross(self) -> Decimal:
        return money_sum(
            (self.basic_salary, self.hra, self.transport_allowance, self.other_allowances)
        )
