"""
Audit domain enums shared by the compliance engines (pure) and the
compliance ORM models (persistence).
"""

from enum import Enum


class RunType(str, Enum):
    FULL = "full"
    SIMULATION = "simulation"


class IfcRating(str, Enum):
    """Internal financial controls rating."""

    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARNING = "warning"
    NA = "na"  # nothing to test in the period


class CheckSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SampleStrategy(str, Enum):
    HIGH_RISK = "high_risk"
    STRATIFIED = "stratified"
    RANDOM = "random"
