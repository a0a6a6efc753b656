"""
Fiscal calendar -- Indian financial year (April 1 to March 31) resolution.

Turns a financial-year label such as ``"2024-2025"`` plus an optional month
index (April=1 ... March=12) or quarter index (Q1 = April-June) into
concrete inclusive date bounds.  Pure functions, no I/O.

Usage:
    fy = parse_financial_year("2024-2025")
    resolve_month(fy, 1)    # DateRange(2024-04-01, 2024-04-30)
    resolve_quarter(fy, 4)  # DateRange(2025-01-01, 2025-03-31)
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date

from ledger_kernel.exceptions import InvalidFinancialYearError, InvalidPeriodIndexError

_FY_LABEL = re.compile(r"^(\d{4})-(\d{4})$")

FY_START_MONTH = 4


@dataclass(frozen=True)
class DateRange:
    """Inclusive date bounds with a display label."""

    start: date
    end: date
    label: str

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class FinancialYear:
    start_year: int

    @property
    def label(self) -> str:
        return f"{self.start_year}-{self.start_year + 1}"

    @property
    def start(self) -> date:
        return date(self.start_year, FY_START_MONTH, 1)

    @property
    def end(self) -> date:
        return date(self.start_year + 1, FY_START_MONTH - 1, 31)

    @property
    def range(self) -> DateRange:
        return DateRange(self.start, self.end, self.label)

    def previous(self) -> "FinancialYear":
        return FinancialYear(self.start_year - 1)


def parse_financial_year(label: str | FinancialYear) -> FinancialYear:
    """Parse ``YYYY-YYYY+1``; anything else raises InvalidFinancialYearError."""
    if isinstance(label, FinancialYear):
        return label
    match = _FY_LABEL.match(label or "")
    if not match:
        raise InvalidFinancialYearError(label)
    first, second = int(match.group(1)), int(match.group(2))
    if second != first + 1:
        raise InvalidFinancialYearError(label)
    return FinancialYear(first)


def financial_year_for(value: date) -> FinancialYear:
    start_year = value.year if value.month >= FY_START_MONTH else value.year - 1
    return FinancialYear(start_year)


def calendar_month(month_index: int) -> int:
    """Map a fiscal month index (April=1) to a calendar month (April=4)."""
    if not 1 <= month_index <= 12:
        raise InvalidPeriodIndexError("month", month_index)
    return (month_index + FY_START_MONTH - 2) % 12 + 1


def _month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        date(year, month, 1),
        date(year, month, last_day),
        f"{year:04d}-{month:02d}",
    )


def resolve_month(fy: str | FinancialYear, month_index: int) -> DateRange:
    fy = parse_financial_year(fy)
    month = calendar_month(month_index)
    year = fy.start_year if month >= FY_START_MONTH else fy.start_year + 1
    return _month_range(year, month)


def resolve_quarter(fy: str | FinancialYear, quarter_index: int) -> DateRange:
    fy = parse_financial_year(fy)
    if not 1 <= quarter_index <= 4:
        raise InvalidPeriodIndexError("quarter", quarter_index)
    first = resolve_month(fy, quarter_index * 3 - 2)
    last = resolve_month(fy, quarter_index * 3)
    return DateRange(first.start, last.end, f"{fy.label}-Q{quarter_index}")


def resolve_period(
    fy: str | FinancialYear,
    month: int | None = None,
    quarter: int | None = None,
) -> DateRange:
    """
    Resolve a month, a quarter, or (neither given) the whole year.

    Giving both a month and a quarter is ambiguous and rejected.
    """
    if month is not None and quarter is not None:
        raise InvalidPeriodIndexError("month+quarter", month)
    if month is not None:
        return resolve_month(fy, month)
    if quarter is not None:
        return resolve_quarter(fy, quarter)
    return parse_financial_year(fy).range


def months_of(fy: str | FinancialYear) -> list[DateRange]:
    """The twelve months of a financial year, April first."""
    fy = parse_financial_year(fy)
    return [resolve_month(fy, index) for index in range(1, 13)]
