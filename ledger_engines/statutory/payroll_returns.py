"""
Payroll return compilers: PF ECR, ESI and Professional Tax.

One row per payroll record whose pay date falls in the period, ordered by
``(pay_period, employee_code)``.  Contributions are recomputed from the
record's wages with the configured rates, so the return is reproducible
from inputs alone.
"""

from __future__ import annotations

from collections.abc import Sequence

from ledger_config.schema import EsiRates, PfRates, ProfessionalTaxRates
from ledger_engines.statutory.contributions import (
    compute_esi,
    compute_pf,
    compute_professional_tax,
)
from ledger_engines.statutory.inputs import PayrollInput
from ledger_engines.statutory.rows import ESIRow, PFECRRow, ProfessionalTaxRow, StatutoryReturn
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.fiscal_calendar import DateRange


def _in_period(payroll: Sequence[PayrollInput], period: DateRange) -> list[PayrollInput]:
    selected = [record for record in payroll if period.contains(record.pay_date)]
    selected.sort(key=lambda r: (r.pay_period, r.employee_code))
    return selected


@traced_engine("pf_ecr", "1.0", fingerprint_fields=("payroll", "period"))
def compile_pf_ecr(
    payroll: Sequence[PayrollInput], period: DateRange, rates: PfRates
) -> StatutoryReturn:
    rows = []
    for record in _in_period(payroll, period):
        pf = compute_pf(record.basic_salary, rates)
        rows.append(
            PFECRRow(
                uan=record.uan or "",
                employee_code=record.employee_code,
                employee_name=record.employee_name or "",
                pay_period=record.pay_period,
                gross_wages=record.gross,
                epf_wages=pf.epf_wages,
                eps_wages=pf.eps_wages,
                edli_wages=pf.edli_wages,
                epf_employee=pf.employee,
                eps_employer=pf.eps_employer,
                epf_employer=pf.epf_employer,
                edli_contribution=pf.edli,
                ncp_days=record.ncp_days,
            )
        )
    return StatutoryReturn("PF-ECR", period.label, period.start, period.end, tuple(rows))


@traced_engine("esi", "1.0", fingerprint_fields=("payroll", "period"))
def compile_esi(
    payroll: Sequence[PayrollInput], period: DateRange, rates: EsiRates
) -> StatutoryReturn:
    """Employees whose gross exceeds the wage ceiling are left out entirely."""
    rows = []
    for record in _in_period(payroll, period):
        esi = compute_esi(record.gross, rates)
        if esi is None:
            continue
        rows.append(
            ESIRow(
                ip_number=record.esi_ip_number or "",
                employee_code=record.employee_code,
                employee_name=record.employee_name or "",
                pay_period=record.pay_period,
                days_worked=record.days_worked,
                gross_wages=esi.gross_wages,
                employee_contribution=esi.employee,
                employer_contribution=esi.employer,
                total_contribution=esi.total,
            )
        )
    return StatutoryReturn("ESI", period.label, period.start, period.end, tuple(rows))


@traced_engine("professional_tax", "1.0", fingerprint_fields=("payroll", "period"))
def compile_professional_tax(
    payroll: Sequence[PayrollInput], period: DateRange, rates: ProfessionalTaxRates
) -> StatutoryReturn:
    """Zero-tax rows are kept: the state return lists every employee."""
    rows = [
        ProfessionalTaxRow(
            employee_code=record.employee_code,
            employee_name=record.employee_name or "",
            pay_period=record.pay_period,
            gross_salary=record.gross,
            pt_amount=compute_professional_tax(record.gross, rates),
            state=rates.state,
        )
        for record in _in_period(payroll, period)
    ]
    return StatutoryReturn("PT", period.label, period.start, period.end, tuple(rows))
