"""
TDS return compilers: Form 24Q (salary) and Form 26Q (non-salary).

Tax is ``taxable_amount x section_rate / 100`` and cess is a flat
percentage of that base TDS.  Surcharge is not modelled and reported as
zero.
"""

from __future__ import annotations

from collections.abc import Sequence

from ledger_config.schema import TdsRates
from ledger_engines.statutory.contributions import cess_on, compute_salary_taxable
from ledger_engines.statutory.inputs import BillRecord, PayrollInput
from ledger_engines.statutory.rows import StatutoryReturn, TDS24QRow, TDS26QRow
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.fiscal_calendar import DateRange
from ledger_kernel.domain.values import ZERO, percent_of, to_money


@traced_engine("tds_24q", "1.0", fingerprint_fields=("payroll", "period"))
def compile_24q(
    payroll: Sequence[PayrollInput], period: DateRange, rates: TdsRates
) -> StatutoryReturn:
    rows = []
    for record in payroll:
        if not period.contains(record.pay_date):
            continue
        taxable = compute_salary_taxable(record.gross, record.hra, rates)
        tds = to_money(record.tds_amount)
        cess = cess_on(tds, rates.salary_cess_pct)
        rows.append(
            TDS24QRow(
                employee_code=record.employee_code,
                employee_name=record.employee_name or "",
                employee_pan=record.employee_pan or "",
                pay_period=record.pay_period,
                gross_salary=taxable.gross,
                hra_exempt=taxable.hra_exempt,
                standard_deduction=taxable.standard_deduction,
                taxable_income=taxable.taxable_income,
                tds_deducted=tds,
                surcharge=to_money(ZERO),
                cess=cess,
                total_tds=to_money(tds + cess),
            )
        )
    rows.sort(key=lambda r: (r.pay_period, r.employee_code))
    return StatutoryReturn("24Q", period.label, period.start, period.end, tuple(rows))


@traced_engine("tds_26q", "1.0", fingerprint_fields=("bills", "period"))
def compile_26q(
    bills: Sequence[BillRecord], period: DateRange, rates: TdsRates
) -> StatutoryReturn:
    """
    One deductee row per bill that withheld TDS in range.

    A bill without a section is reported under the default section at its
    configured rate.
    """
    rows = []
    for bill in bills:
        if not period.contains(bill.bill_date) or to_money(bill.tds_amount) <= ZERO:
            continue
        section = bill.tds_section or rates.default_section
        rate = bill.tds_rate if bill.tds_rate > ZERO else rates.rate_for(section)
        tds = percent_of(bill.subtotal, rate)
        cess = cess_on(tds, rates.non_salary_cess_pct)
        rows.append(
            TDS26QRow(
                deductee_name=bill.vendor_name or "",
                deductee_pan=bill.vendor_pan or "",
                section_code=section,
                payment_date=bill.bill_date,
                reference=bill.bill_number,
                amount_paid=to_money(bill.subtotal),
                tds_rate=rate,
                tds_amount=tds,
                cess=cess,
                total_tds=to_money(tds + cess),
            )
        )
    rows.sort(key=lambda r: (r.payment_date, r.deductee_name, r.reference))
    return StatutoryReturn("26Q", period.label, period.start, period.end, tuple(rows))
