"""
Statutory report rows -- one tagged dataclass per regulatory form.

Every row carries a literal ``form`` discriminator, so a consumer can
dispatch on ``row.form`` and a type checker knows which fields exist.
``StatutoryReturn`` bundles the rows of one form for one date range and
renders them to a canonical dict / JSON whose bytes depend only on the
input data.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Literal, Union

from ledger_kernel.domain.values import ZERO


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, date):
        return value.isoformat()
    return value


class _Row:
    def to_dict(self) -> dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in dataclasses.fields(self)}


@dataclass(frozen=True)
class GSTR1Row(_Row):
    invoice_number: str
    invoice_date: date
    customer_name: str
    customer_gstin: str
    place_of_supply: str
    invoice_type: Literal["B2B", "B2C"]
    taxable_value: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_tax: Decimal
    total_amount: Decimal
    form: Literal["GSTR-1"] = "GSTR-1"


@dataclass(frozen=True)
class GSTR3BSummary(_Row):
    outward_taxable: Decimal = ZERO
    outward_exempt: Decimal = ZERO
    inward_taxable: Decimal = ZERO
    cgst_payable: Decimal = ZERO
    sgst_payable: Decimal = ZERO
    igst_payable: Decimal = ZERO
    total_tax_payable: Decimal = ZERO
    itc_cgst: Decimal = ZERO
    itc_sgst: Decimal = ZERO
    itc_igst: Decimal = ZERO
    total_itc: Decimal = ZERO
    net_cgst: Decimal = ZERO
    net_sgst: Decimal = ZERO
    net_igst: Decimal = ZERO
    net_payable: Decimal = ZERO
    form: Literal["GSTR-3B"] = "GSTR-3B"


@dataclass(frozen=True)
class TDS24QRow(_Row):
    employee_code: str
    employee_name: str
    employee_pan: str
    pay_period: str
    gross_salary: Decimal
    hra_exempt: Decimal
    standard_deduction: Decimal
    taxable_income: Decimal
    tds_deducted: Decimal
    surcharge: Decimal
    cess: Decimal
    total_tds: Decimal
    form: Literal["24Q"] = "24Q"


@dataclass(frozen=True)
class TDS26QRow(_Row):
    deductee_name: str
    deductee_pan: str
    section_code: str
    payment_date: date
    reference: str
    amount_paid: Decimal
    tds_rate: Decimal
    tds_amount: Decimal
    cess: Decimal
    total_tds: Decimal
    form: Literal["26Q"] = "26Q"


@dataclass(frozen=True)
class PFECRRow(_Row):
    uan: str
    employee_code: str
    employee_name: str
    pay_period: str
    gross_wages: Decimal
    epf_wages: Decimal
    eps_wages: Decimal
    edli_wages: Decimal
    epf_employee: Decimal
    eps_employer: Decimal
    epf_employer: Decimal
    edli_contribution: Decimal
    ncp_days: int
    refund_of_advances: Decimal = ZERO
    form: Literal["PF-ECR"] = "PF-ECR"


@dataclass(frozen=True)
class ESIRow(_Row):
    ip_number: str
    employee_code: str
    employee_name: str
    pay_period: str
    days_worked: int
    gross_wages: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal
    total_contribution: Decimal
    form: Literal["ESI"] = "ESI"


@dataclass(frozen=True)
class ProfessionalTaxRow(_Row):
    employee_code: str
    employee_name: str
    pay_period: str
    gross_salary: Decimal
    pt_amount: Decimal
    state: str
    form: Literal["PT"] = "PT"


StatutoryRow = Union[
    GSTR1Row, GSTR3BSummary, TDS24QRow, TDS26QRow, PFECRRow, ESIRow, ProfessionalTaxRow
]

FORM_TYPES = ("GSTR-1", "GSTR-3B", "24Q", "26Q", "PF-ECR", "ESI", "PT")


@dataclass(frozen=True)
class StatutoryReturn:
    """The rows of one form over one resolved date range."""

    form: str
    period_label: str
    from_date: date
    to_date: date
    rows: tuple[StatutoryRow, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "form": self.form,
            "period": self.period_label,
            "from_date": self.from_date.isoformat(),
            "to_date": self.to_date.isoformat(),
            "rows": [row.to_dict() for row in self.rows],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    def fingerprint(self) -> str:
        return hashlib.sha256(self.to_json().encode("utf-8")).hexdigest()
