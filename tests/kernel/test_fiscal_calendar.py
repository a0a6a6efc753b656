"""Indian financial year resolution (April 1 to March 31)."""

from datetime import date

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledger_kernel.domain.fiscal_calendar import (
    calendar_month,
    financial_year_for,
    months_of,
    parse_financial_year,
    resolve_month,
    resolve_period,
    resolve_quarter,
)
from ledger_kernel.exceptions import InvalidFinancialYearError, InvalidPeriodIndexError


class TestParseFinancialYear:

    def test_valid_label(self):
        fy = parse_financial_year("2024-2025")
        assert fy.start == date(2024, 4, 1)
        assert fy.end == date(2025, 3, 31)
        assert fy.label == "2024-2025"

    @pytest.mark.parametrize("label", ["2024-2026", "2024", "24-25", "2024/2025", "", None])
    def test_malformed_label_is_rejected(self, label):
        with pytest.raises(InvalidFinancialYearError):
            parse_financial_year(label)

    def test_previous_year(self):
        assert parse_financial_year("2024-2025").previous().label == "2023-2024"


class TestMonthResolution:

    def test_month_one_is_april(self):
        april = resolve_month("2024-2025", 1)
        assert (april.start, april.end, april.label) == (date(2024, 4, 1), date(2024, 4, 30), "2024-04")

    def test_month_twelve_is_march_of_next_year(self):
        march = resolve_month("2024-2025", 12)
        assert march.start == date(2025, 3, 1)
        assert march.end == date(2025, 3, 31)

    def test_february_respects_leap_year(self):
        assert resolve_month("2023-2024", 11).end == date(2024, 2, 29)
        assert resolve_month("2024-2025", 11).end == date(2025, 2, 28)

    @pytest.mark.parametrize("index", [0, 13, -1])
    def test_out_of_range_month_is_rejected(self, index):
        with pytest.raises(InvalidPeriodIndexError):
            resolve_month("2024-2025", index)

    def test_calendar_month_mapping(self):
        assert [calendar_month(i) for i in range(1, 13)] == [4, 5, 6, 7, 8, 9, 10, 11, 12, 1, 2, 3]


class TestQuarterResolution:

    def test_q1_is_april_to_june(self):
        q1 = resolve_quarter("2024-2025", 1)
        assert (q1.start, q1.end) == (date(2024, 4, 1), date(2024, 6, 30))
        assert q1.label == "2024-2025-Q1"

    def test_q4_is_january_to_march(self):
        q4 = resolve_quarter("2024-2025", 4)
        assert (q4.start, q4.end) == (date(2025, 1, 1), date(2025, 3, 31))
        assert q4.label == "2024-2025-Q4"

    def test_out_of_range_quarter_is_rejected(self):
        with pytest.raises(InvalidPeriodIndexError):
            resolve_quarter("2024-2025", 5)


class TestResolvePeriod:

    def test_neither_month_nor_quarter_is_whole_year(self):
        whole = resolve_period("2024-2025")
        assert (whole.start, whole.end, whole.label) == (
            date(2024, 4, 1),
            date(2025, 3, 31),
            "2024-2025",
        )

    def test_both_month_and_quarter_is_ambiguous(self):
        with pytest.raises(InvalidPeriodIndexError):
            resolve_period("2024-2025", month=1, quarter=1)

    def test_months_cover_year_without_gaps(self):
        months = months_of("2024-2025")
        assert len(months) == 12
        assert months[0].start == date(2024, 4, 1)
        assert months[-1].end == date(2025, 3, 31)
        for earlier, later in zip(months, months[1:]):
            assert (later.start - earlier.end).days == 1


class TestFinancialYearFor:

    def test_march_belongs_to_previous_start_year(self):
        assert financial_year_for(date(2025, 3, 31)).label == "2024-2025"

    def test_april_starts_a_new_year(self):
        assert financial_year_for(date(2025, 4, 1)).label == "2025-2026"

    @given(st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31)))
    def test_every_date_falls_inside_its_year(self, value):
        assert financial_year_for(value).range.contains(value)
