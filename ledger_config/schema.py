"""
LedgerConfig schema.

Frozen dataclasses for the human-authored YAML configuration.  The loader
parses ``defaults/ledger.yaml`` (or a caller-supplied file) into these
types; every rate, ceiling, slab, weight and threshold used by the
statutory compilers and the compliance engine is read from here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountRoleDef:
    """A semantic account role bound to a concrete account code."""

    role: str
    code: str
    name: str
    account_type: str
    control_module: str | None = None


@dataclass(frozen=True)
class AccountRoleConfig:
    """Role -> account binding used by every posting module."""

    roles: tuple[AccountRoleDef, ...]

    def code_for(self, role: str) -> str:
        for binding in self.roles:
            if binding.role == role:
                return binding.code
        raise KeyError(f"No account bound to role '{role}'")

    def definition(self, role: str) -> AccountRoleDef:
        for binding in self.roles:
            if binding.role == role:
                return binding
        raise KeyError(f"No account bound to role '{role}'")

    @property
    def role_names(self) -> frozenset[str]:
        return frozenset(b.role for b in self.roles)


# ---------------------------------------------------------------------------
# Statutory rates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GstRates:
    # Allowed difference between tax_amount and the head split
    consistency_tolerance: Decimal = Decimal("1")
    # Share of bill ITC attributed to CGST (rest to SGST)
    itc_cgst_share: Decimal = Decimal("50")
    default_place_of_supply: str = ""


@dataclass(frozen=True)
class TdsRates:
    section_rates: dict[str, Decimal] = field(default_factory=dict)
    default_section: str = "194J"
    non_salary_cess_pct: Decimal = Decimal("0")
    salary_cess_pct: Decimal = Decimal("4")
    hra_exemption_pct: Decimal = Decimal("40")
    monthly_standard_deduction: Decimal = Decimal("6250")
    expense_threshold: Decimal = Decimal("30000")

    def rate_for(self, section: str | None) -> Decimal:
        return self.section_rates.get(section or self.default_section, Decimal("0"))


@dataclass(frozen=True)
class PfRates:
    wage_ceiling: Decimal = Decimal("15000")
    employee_pct: Decimal = Decimal("12")
    eps_pct: Decimal = Decimal("8.33")
    employer_epf_pct: Decimal = Decimal("3.67")
    edli_pct: Decimal = Decimal("0.5")


@dataclass(frozen=True)
class EsiRates:
    wage_ceiling: Decimal = Decimal("21000")
    employee_pct: Decimal = Decimal("0.75")
    employer_pct: Decimal = Decimal("3.25")


@dataclass(frozen=True)
class PtSlab:
    """Flat monthly tax when gross exceeds ``above``."""

    above: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ProfessionalTaxRates:
    state: str = "Karnataka"
    # Highest threshold first
    slabs: tuple[PtSlab, ...] = ()

    def amount_for(self, gross: Decimal) -> Decimal:
        for slab in self.slabs:
            if gross > slab.above:
                return slab.amount
        return Decimal("0")


@dataclass(frozen=True)
class StatutoryRates:
    gst: GstRates
    tds: TdsRates
    pf: PfRates
    esi: EsiRates
    professional_tax: ProfessionalTaxRates


# ---------------------------------------------------------------------------
# Compliance audit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoringWeights:
    categories: dict[str, int]
    themes: dict[str, int]


@dataclass(frozen=True)
class AuditThresholds:
    cash_payment_limit: Decimal = Decimal("10000")
    round_figure_floor: Decimal = Decimal("10000")
    round_figure_unit: Decimal = Decimal("1000")
    round_figure_warning_count: int = 20
    manual_ratio_fail_pct: Decimal = Decimal("30")
    manual_ratio_warning_pct: Decimal = Decimal("15")
    march_concentration_pct: Decimal = Decimal("25")
    admin_override_limit: int = 5
    backdated_days: int = 30
    vendor_concentration_pct: Decimal = Decimal("40")


@dataclass(frozen=True)
class AnomalyConfig:
    strategy: str = "percentage"
    threshold_pct: Decimal = Decimal("50")
    z_threshold: Decimal = Decimal("2.0")
    min_history: int = 2
    lookback_months: int = 3


@dataclass(frozen=True)
class SamplingConfig:
    high_risk_size: int = 10
    value_bands: int = 10
    per_band: int = 1
    random_size: int = 10
    seed: int = 42


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationConfig:
    # module -> account role of its control account
    module_roles: dict[str, str]
    default_tolerance: Decimal = Decimal("0")
    high_variance: Decimal = Decimal("100")
    critical_variance: Decimal = Decimal("1000")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """The complete, validated configuration."""

    config_id: str
    version: int
    jurisdiction: str
    currency: str
    accounts: AccountRoleConfig
    statutory: StatutoryRates
    scoring: ScoringWeights
    thresholds: AuditThresholds
    anomaly: AnomalyConfig
    sampling: SamplingConfig
    reconciliation: ReconciliationConfig
    checksum: str = ""
    source: str | None = None

    def account_code(self, role: str) -> str:
        return self.accounts.code_for(role)

    def summary(self) -> dict[str, Any]:
        return {
            "config_id": self.config_id,
            "version": self.version,
            "checksum": self.checksum,
            "jurisdiction": self.jurisdiction,
            "role_count": len(self.accounts.roles),
        }
