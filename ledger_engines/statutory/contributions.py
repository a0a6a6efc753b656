"""
Payroll statutory contribution arithmetic.

Shared by the payroll module (deductions at processing time) and the
return compilers (PF ECR, ESI, Professional Tax, 24Q), so a return always
agrees with what was deducted.

PF and ESI amounts are whole rupees (ROUND_HALF_UP); the salary TDS
components are at money precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_config.schema import EsiRates, PfRates, ProfessionalTaxRates, TdsRates
from ledger_kernel.domain.values import ZERO, as_decimal, money_sum, percent_of, to_money, to_whole


@dataclass(frozen=True)
class PfContribution:
    epf_wages: Decimal
    eps_wages: Decimal
    edli_wages: Decimal
    employee: Decimal
    eps_employer: Decimal
    epf_employer: Decimal
    edli: Decimal

    @property
    def employer_total(self) -> Decimal:
        return money_sum((self.eps_employer, self.epf_employer, self.edli))


@dataclass(frozen=True)
class EsiContribution:
    gross_wages: Decimal
    employee: Decimal
    employer: Decimal

    @property
    def total(self) -> Decimal:
        return money_sum((self.employee, self.employer))


@dataclass(frozen=True)
class SalaryTaxable:
    gross: Decimal
    hra_exempt: Decimal
    standard_deduction: Decimal
    taxable_income: Decimal


def compute_pf(basic_salary: Decimal, rates: PfRates) -> PfContribution:
    """PF on basic salary capped at the wage ceiling."""
    epf_wages = to_money(min(as_decimal(basic_salary), rates.wage_ceiling))
    eps_wages = to_money(min(epf_wages, rates.wage_ceiling))
    return PfContribution(
        epf_wages=epf_wages,
        eps_wages=eps_wages,
        edli_wages=eps_wages,
        employee=to_whole(epf_wages * rates.employee_pct / 100),
        eps_employer=to_whole(eps_wages * rates.eps_pct / 100),
        epf_employer=to_whole(epf_wages * rates.employer_epf_pct / 100),
        edli=to_whole(eps_wages * rates.edli_pct / 100),
    )


def compute_esi(gross_wages: Decimal, rates: EsiRates) -> EsiContribution | None:
    """
    ESI on gross wages.

    Returns None above the wage ceiling: the employee is outside ESI for
    that month, which is different from a zero contribution.
    """
    gross = to_money(gross_wages)
    if gross > rates.wage_ceiling:
        return None
    return EsiContribution(
        gross_wages=gross,
        employee=to_whole(gross * rates.employee_pct / 100),
        employer=to_whole(gross * rates.employer_pct / 100),
    )


def compute_professional_tax(gross_wages: Decimal, rates: ProfessionalTaxRates) -> Decimal:
    return to_money(rates.amount_for(to_money(gross_wages)))


def compute_salary_taxable(gross: Decimal, hra: Decimal, rates: TdsRates) -> SalaryTaxable:
    """Monthly taxable salary after the HRA exemption and standard deduction."""
    gross = to_money(gross)
    hra_exempt = percent_of(hra, rates.hra_exemption_pct)
    standard_deduction = to_money(rates.monthly_standard_deduction)
    return SalaryTaxable(
        gross=gross,
        hra_exempt=hra_exempt,
        standard_deduction=standard_deduction,
        taxable_income=max(ZERO, to_money(gross - hra_exempt - standard_deduction)),
    )


def cess_on(tds_amount: Decimal, cess_pct: Decimal) -> Decimal:
    """Cess as a flat percentage of base TDS, never compounded on itself."""
    return percent_of(tds_amount, cess_pct)
