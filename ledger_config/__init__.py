"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` returns the validated ``LedgerConfig`` that
    governs account roles, statutory rate tables, scoring weights and the
    anomaly/sampling settings.  Services receive a ``LedgerConfig``
    explicitly; nothing reads YAML or environment variables on its own.

Architecture position:
    Configuration.  Sits beside ``ledger_kernel``; the kernel never imports
    from this package.

Audit relevance:
    Every load emits a ``ledger_config_trace`` log entry carrying the
    config_id, version and checksum, tying compliance runs and statutory
    returns to the exact configuration that produced them.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    AccountRoleConfig,
    AnomalyConfig,
    AuditThresholds,
    LedgerConfig,
    ReconciliationConfig,
    SamplingConfig,
    ScoringWeights,
    StatutoryRates,
)
from ledger_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"

_active: LedgerConfig | None = None


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """
    Return the active configuration.

    With no path, the packaged default is loaded once and cached.  An
    explicit path always loads (and validates) that file.

    Raises:
        ConfigurationError: if the file fails validation.
    """
    global _active
    if path is None and _active is not None:
        return _active

    config = load_config(path or DEFAULT_CONFIG_PATH)
    _logger.info("ledger_config_trace", extra=config.summary())
    if path is None:
        _active = config
    return config


def clear_config_cache() -> None:
    """Forget the cached default.  For tests."""
    global _active
    _active = None


__all__ = [
    "AccountRoleConfig",
    "AnomalyConfig",
    "AuditThresholds",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "ReconciliationConfig",
    "SamplingConfig",
    "ScoringWeights",
    "StatutoryRates",
    "clear_config_cache",
    "get_active_config",
    "load_config",
]
