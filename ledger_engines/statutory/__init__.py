"""
Statutory report compilers.

Pure functions from frozen record snapshots and a resolved date range to a
``StatutoryReturn`` of tagged rows.
"""

from ledger_engines.statutory.gst import compile_gstr1, compile_gstr3b
from ledger_engines.statutory.inputs import BillRecord, InvoiceRecord, PayrollInput
from ledger_engines.statutory.payroll_returns import (
    compile_esi,
    compile_pf_ecr,
    compile_professional_tax,
)
from ledger_engines.statutory.rows import (
    FORM_TYPES,
    ESIRow,
    GSTR1Row,
    GSTR3BSummary,
    PFECRRow,
    ProfessionalTaxRow,
    StatutoryReturn,
    StatutoryRow,
    TDS24QRow,
    TDS26QRow,
)
from ledger_engines.statutory.tds import compile_24q, compile_26q

__all__ = [
    "BillRecord",
    "ESIRow",
    "FORM_TYPES",
    "GSTR1Row",
    "GSTR3BSummary",
    "InvoiceRecord",
    "PFECRRow",
    "PayrollInput",
    "ProfessionalTaxRow",
    "StatutoryReturn",
    "StatutoryRow",
    "TDS24QRow",
    "TDS26QRow",
    "compile_24q",
    "compile_26q",
    "compile_esi",
    "compile_gstr1",
    "compile_gstr3b",
    "compile_pf_ecr",
    "compile_professional_tax",
]
