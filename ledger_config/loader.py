"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``ledger_config.schema``, then validates cross-field rules.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, bad numbers or broken cross-field rules  ->
  ``ConfigurationError`` naming the offending key.

Audit relevance
---------------
``compute_checksum`` yields a deterministic SHA-256 over the raw document so
every compliance run and statutory return can be tied to the configuration
that produced it.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    AccountRoleConfig,
    AccountRoleDef,
    AnomalyConfig,
    AuditThresholds,
    EsiRates,
    GstRates,
    LedgerConfig,
    PfRates,
    ProfessionalTaxRates,
    PtSlab,
    ReconciliationConfig,
    SamplingConfig,
    ScoringWeights,
    StatutoryRates,
    TdsRates,
)
from ledger_kernel.exceptions import ConfigurationError

CATEGORY_KEYS = ("gst", "tds", "income_tax", "internal_controls", "data_integrity")
THEME_KEYS = (
    "revenue_pattern",
    "cash_manipulation",
    "gst",
    "tds",
    "journal",
    "control_override",
    "vendor_concentration",
)
ANOMALY_STRATEGIES = ("percentage", "zscore")
ACCOUNT_TYPES = ("asset", "liability", "equity", "revenue", "expense")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of a parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _decimal(value: Any, key: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"'{key}' is not a number: {value!r}") from exc
    if result < 0:
        raise ConfigurationError(f"'{key}' must not be negative")
    return result


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ConfigurationError(f"missing section '{key}'")
    return value


def _decimals(data: dict[str, Any], prefix: str, keys: tuple[str, ...]) -> dict[str, Decimal]:
    return {
        key: _decimal(data[key], f"{prefix}.{key}") for key in keys if key in data
    }


def parse_accounts(data: dict[str, Any]) -> AccountRoleConfig:
    roles = []
    for role, raw in sorted(data.items()):
        if not isinstance(raw, dict) or "code" not in raw:
            raise ConfigurationError(f"account role '{role}' needs a code")
        account_type = raw.get("type")
        if account_type not in ACCOUNT_TYPES:
            raise ConfigurationError(
                f"account role '{role}' has unknown type {account_type!r}"
            )
        roles.append(
            AccountRoleDef(
                role=role,
                code=str(raw["code"]),
                name=raw.get("name", role.replace("_", " ").title()),
                account_type=account_type,
                control_module=raw.get("control_module"),
            )
        )
    codes = [r.code for r in roles]
    if len(codes) != len(set(codes)):
        raise ConfigurationError("account codes must be unique across roles")
    return AccountRoleConfig(roles=tuple(roles))


def parse_statutory(data: dict[str, Any]) -> StatutoryRates:
    gst = data.get("gst", {})
    tds = data.get("tds", {})
    pf = data.get("pf", {})
    esi = data.get("esi", {})
    pt = data.get("professional_tax", {})

    sections = {
        str(code): _decimal(rate, f"statutory.tds.sections.{code}")
        for code, rate in (tds.get("sections") or {}).items()
    }
    tds_rates = TdsRates(
        section_rates=sections,
        default_section=str(tds.get("default_section", "194J")),
        **_decimals(
            tds,
            "statutory.tds",
            (
                "non_salary_cess_pct",
                "salary_cess_pct",
                "hra_exemption_pct",
                "monthly_standard_deduction",
                "expense_threshold",
            ),
        ),
    )
    if tds_rates.default_section not in sections:
        raise ConfigurationError(
            f"default TDS section {tds_rates.default_section} has no rate"
        )

    slabs = tuple(
        sorted(
            (
                PtSlab(
                    above=_decimal(s["above"], "statutory.professional_tax.slabs.above"),
                    amount=_decimal(s["amount"], "statutory.professional_tax.slabs.amount"),
                )
                for s in pt.get("slabs", [])
            ),
            key=lambda s: s.above,
            reverse=True,
        )
    )

    return StatutoryRates(
        gst=GstRates(
            default_place_of_supply=str(gst.get("default_place_of_supply", "")),
            **_decimals(gst, "statutory.gst", ("consistency_tolerance", "itc_cgst_share")),
        ),
        tds=tds_rates,
        pf=PfRates(
            **_decimals(
                pf,
                "statutory.pf",
                ("wage_ceiling", "employee_pct", "eps_pct", "employer_epf_pct", "edli_pct"),
            )
        ),
        esi=EsiRates(
            **_decimals(esi, "statutory.esi", ("wage_ceiling", "employee_pct", "employer_pct"))
        ),
        professional_tax=ProfessionalTaxRates(
            state=str(pt.get("state", "Karnataka")), slabs=slabs
        ),
    )


def parse_scoring(data: dict[str, Any]) -> ScoringWeights:
    categories = {k: int(v) for k, v in (data.get("categories") or {}).items()}
    themes = {k: int(v) for k, v in (data.get("themes") or {}).items()}

    if set(categories) != set(CATEGORY_KEYS):
        raise ConfigurationError(
            f"scoring.categories must define exactly {', '.join(CATEGORY_KEYS)}"
        )
    if set(themes) != set(THEME_KEYS):
        raise ConfigurationError(
            f"scoring.themes must define exactly {', '.join(THEME_KEYS)}"
        )
    for name, weights in (("categories", categories), ("themes", themes)):
        if any(w < 0 for w in weights.values()):
            raise ConfigurationError(f"scoring.{name} weights must not be negative")
        if sum(weights.values()) != 100:
            raise ConfigurationError(
                f"scoring.{name} weights sum to {sum(weights.values())}, expected 100"
            )
    return ScoringWeights(categories=categories, themes=themes)


def parse_thresholds(data: dict[str, Any]) -> AuditThresholds:
    ints = {
        key: int(data[key])
        for key in ("round_figure_warning_count", "admin_override_limit", "backdated_days")
        if key in data
    }
    return AuditThresholds(
        **ints,
        **_decimals(
            data,
            "audit.thresholds",
            (
                "cash_payment_limit",
                "round_figure_floor",
                "round_figure_unit",
                "manual_ratio_fail_pct",
                "manual_ratio_warning_pct",
                "march_concentration_pct",
                "vendor_concentration_pct",
            ),
        ),
    )


def parse_anomaly(data: dict[str, Any]) -> AnomalyConfig:
    strategy = data.get("strategy", "percentage")
    if strategy not in ANOMALY_STRATEGIES:
        raise ConfigurationError(
            f"anomaly.strategy must be one of {', '.join(ANOMALY_STRATEGIES)}"
        )
    config = AnomalyConfig(
        strategy=strategy,
        min_history=int(data.get("min_history", 2)),
        lookback_months=int(data.get("lookback_months", 3)),
        **_decimals(data, "audit.anomaly", ("threshold_pct", "z_threshold")),
    )
    if config.min_history < 1 or config.lookback_months < config.min_history:
        raise ConfigurationError("anomaly.lookback_months must be >= min_history >= 1")
    return config


def parse_sampling(data: dict[str, Any]) -> SamplingConfig:
    config = SamplingConfig(
        **{
            key: int(data[key])
            for key in ("high_risk_size", "value_bands", "per_band", "random_size", "seed")
            if key in data
        }
    )
    if min(config.high_risk_size, config.per_band, config.random_size) < 0:
        raise ConfigurationError("sampling sizes must not be negative")
    if config.value_bands < 1:
        raise ConfigurationError("sampling.value_bands must be at least 1")
    return config


def parse_reconciliation(
    data: dict[str, Any], accounts: AccountRoleConfig
) -> ReconciliationConfig:
    module_roles = {str(k): str(v) for k, v in (data.get("modules") or {}).items()}
    for module, role in module_roles.items():
        if role not in accounts.role_names:
            raise ConfigurationError(
                f"reconciliation module '{module}' maps to unknown role '{role}'"
            )
        if accounts.definition(role).control_module != module:
            raise ConfigurationError(
                f"role '{role}' is not declared as the control account for '{module}'"
            )
    config = ReconciliationConfig(
        module_roles=module_roles,
        **_decimals(
            data,
            "reconciliation",
            ("default_tolerance", "high_variance", "critical_variance"),
        ),
    )
    if config.high_variance > config.critical_variance:
        raise ConfigurationError("reconciliation.high_variance exceeds critical_variance")
    return config


def parse_config(data: dict[str, Any], source: str | None = None) -> LedgerConfig:
    """
    Parse and validate a loaded document.

    Raises:
        ConfigurationError: on any missing section or broken rule.
    """
    try:
        accounts = parse_accounts(_section(data, "accounts"))
        audit = _section(data, "audit")
        return LedgerConfig(
            config_id=str(data.get("config_id", "default")),
            version=int(data.get("version", 1)),
            jurisdiction=str(data.get("jurisdiction", "IN")),
            currency=str(data.get("currency", "INR")),
            accounts=accounts,
            statutory=parse_statutory(_section(data, "statutory")),
            scoring=parse_scoring(_section(data, "scoring")),
            thresholds=parse_thresholds(audit.get("thresholds") or {}),
            anomaly=parse_anomaly(audit.get("anomaly") or {}),
            sampling=parse_sampling(audit.get("sampling") or {}),
            reconciliation=parse_reconciliation(
                _section(data, "reconciliation"), accounts
            ),
            checksum=compute_checksum(data),
            source=source,
        )
    except ConfigurationError as exc:
        if exc.source is None and source is not None:
            raise ConfigurationError(exc.reason, source) from exc
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"malformed configuration: {exc}", source) from exc


def load_config(path: Path | str) -> LedgerConfig:
    """Load and validate a configuration file."""
    path = Path(path)
    return parse_config(load_yaml_file(path), source=str(path))
