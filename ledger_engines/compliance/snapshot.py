"""
Audit snapshot -- the frozen, read-only view of one financial year that
the compliance engines evaluate.

The services layer assembles it from the ledger, the sub-ledgers, the
latest reconciliation records and the compiled statutory returns.  The
engines never query anything; everything they judge is in here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from ledger_kernel.domain.values import ZERO


@dataclass(frozen=True)
class EntrySnapshot:
    entry_id: str
    entry_date: date
    created_at: datetime
    source_type: str
    amount: Decimal
    is_approved: bool = True
    is_admin_override: bool = False
    source_module: str | None = None
    reference: str | None = None

    @property
    def is_manual(self) -> bool:
        return self.source_type == "manual"

    @property
    def posting_lag_days(self) -> int:
        """Days between the accounting date and when the entry was recorded."""
        return (self.created_at.date() - self.entry_date).days


@dataclass(frozen=True)
class PartySnapshot:
    party_id: str
    kind: str  # "customer" or "vendor"
    name: str
    gstin: str = ""
    pan: str = ""


@dataclass(frozen=True)
class InvoiceAudit:
    invoice_id: str
    invoice_number: str
    invoice_date: date
    customer_id: str
    subtotal: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class BillAudit:
    bill_id: str
    bill_number: str
    bill_date: date
    vendor_id: str
    vendor_name: str
    vendor_gstin: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    tds_amount: Decimal = ZERO


@dataclass(frozen=True)
class ExpenseAudit:
    expense_id: str
    expense_date: date
    category: str
    amount: Decimal
    payment_mode: str
    tds_amount: Decimal = ZERO

    @property
    def is_cash(self) -> bool:
        return self.payment_mode == "cash"


@dataclass(frozen=True)
class AssetAudit:
    asset_id: str
    asset_tag: str
    status: str
    depreciation_method: str
    depreciation_start_date: date
    depreciation_line_count: int
    disposal_price: Decimal | None = None


@dataclass(frozen=True)
class ReconciliationVariance:
    module: str
    gl_balance: Decimal
    subledger_balance: Decimal
    variance: Decimal
    is_reconciled: bool
    severity: str


@dataclass(frozen=True)
class StatutoryTotals:
    """GL postings against what the compiled returns report for the year."""

    gl_output_tax: Decimal = ZERO
    gstr1_tax: Decimal = ZERO
    gl_tds_non_salary: Decimal = ZERO
    tds_26q: Decimal = ZERO
    gl_tds_salary: Decimal = ZERO
    tds_24q: Decimal = ZERO


@dataclass(frozen=True)
class MonthPoint:
    label: str  # "YYYY-MM"
    value: Decimal


@dataclass(frozen=True)
class MonthlySeries:
    """
    One category's monthly totals, oldest first.

    Points before ``report_from`` are history only (the months preceding
    the financial year); anomalies are reported for the rest.
    """

    category: str
    points: tuple[MonthPoint, ...]
    report_from: int = 0


@dataclass(frozen=True)
class AuditSnapshot:
    financial_year: str
    fy_start: date
    fy_end: date
    entries: tuple[EntrySnapshot, ...] = ()
    parties: tuple[PartySnapshot, ...] = ()
    invoices: tuple[InvoiceAudit, ...] = ()
    bills: tuple[BillAudit, ...] = ()
    expenses: tuple[ExpenseAudit, ...] = ()
    assets: tuple[AssetAudit, ...] = ()
    reconciliation: tuple[ReconciliationVariance, ...] = ()
    statutory: StatutoryTotals = field(default_factory=StatutoryTotals)
    unbalanced_entry_count: int = 0
    trial_balance_difference: Decimal = ZERO
    monthly: tuple[MonthlySeries, ...] = ()

    def parties_of(self, kind: str) -> tuple[PartySnapshot, ...]:
        return tuple(p for p in self.parties if p.kind == kind)
