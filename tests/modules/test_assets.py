"""
Fixed asset register and the monthly depreciation batch.

The batch is idempotent per (asset, date): re-running it for a date that
already carries tagged entries posts nothing.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import DuplicateDocumentError, InvalidDocumentStateError, InvalidLineError
from ledger_modules.assets.orm import AssetStatus
from ledger_modules.assets.service import DEPRECIATION_BATCH, monthly_straight_line


class TestStraightLine:

    @pytest.mark.parametrize(
        "cost, salvage, months, expected",
        [
            ("120000", "0", 12, "10000.00"),
            ("100000", "10000", 36, "2500.00"),
            ("1000", "0", 3, "333.33"),
            ("1000", "0", 0, "0"),
        ],
    )
    def test_monthly_charge(self, cost, salvage, months, expected):
        assert monthly_straight_line(Decimal(cost), Decimal(salvage), months) == Decimal(expected)


class TestRegistration:

    def test_register_posts_acquisition_and_bank_movement(
        self, assets, cash, ledger_selector, capital, code_for, test_actor_id
    ):
        asset = assets.register_asset(
            "FA-001", "Laptop", date(2024, 4, 5), Decimal("120000"), 12, test_actor_id
        )

        assert asset.status == AssetStatus.ACTIVE.value
        assert asset.depreciation_start_date == date(2024, 4, 5)
        assert ledger_selector.account_balance(code_for("fixed_assets"), date(2024, 4, 30)) == Decimal("120000.00")
        assert cash.balance(date(2024, 4, 30)) == Decimal("880000.00")

    def test_register_against_capital_skips_bank(
        self, assets, cash, ledger_ready, test_actor_id
    ):
        assets.register_asset(
            "FA-002", "Furniture", date(2024, 4, 5), Decimal("5000"), 60, test_actor_id,
            counter_role="capital",
        )
        assert cash.transactions_between(date(2024, 4, 1), date(2024, 4, 30)) == []

    def test_duplicate_tag(self, assets, ledger_ready, test_actor_id):
        assets.register_asset("FA-001", "Laptop", date(2024, 4, 5), Decimal("1000"), 12, test_actor_id)
        with pytest.raises(DuplicateDocumentError):
            assets.register_asset("FA-001", "Desk", date(2024, 4, 6), Decimal("1000"), 12, test_actor_id)

    @pytest.mark.parametrize(
        "price, salvage, months",
        [("0", "0", 12), ("1000", "2000", 12), ("1000", "0", 0)],
    )
    def test_invalid_parameters(self, assets, ledger_ready, test_actor_id, price, salvage, months):
        with pytest.raises(InvalidLineError):
            assets.register_asset(
                "FA-X", "Bad", date(2024, 4, 5), Decimal(price), months, test_actor_id,
                salvage_value=Decimal(salvage),
            )

    def test_dispose_twice_is_rejected(self, assets, ledger_ready, test_actor_id):
        asset = assets.register_asset("FA-001", "Laptop", date(2024, 4, 5), Decimal("1000"), 12, test_actor_id)
        assets.dispose_asset(asset.id, date(2024, 6, 1), test_actor_id, Decimal("400"))

        assert asset.status == AssetStatus.DISPOSED.value
        assert asset.disposal_price == Decimal("400.00")
        with pytest.raises(InvalidDocumentStateError):
            assets.dispose_asset(asset.id, date(2024, 6, 2), test_actor_id)


class TestDepreciationBatch:

    @pytest.fixture
    def laptop(self, assets, capital, test_actor_id):
        return assets.register_asset(
            "FA-001", "Laptop", date(2024, 4, 5), Decimal("120000"), 12, test_actor_id
        )

    def test_batch_posts_one_tagged_entry_per_asset(
        self, assets, journal_selector, ledger_selector, laptop, code_for, test_actor_id
    ):
        result = assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)

        assert result.posted == ("FA-001",)
        assert result.total_amount == Decimal("10000.00")
        assert laptop.accumulated_depreciation == Decimal("10000.00")
        tagged = journal_selector.batch_entries(DEPRECIATION_BATCH, date(2024, 4, 30))
        assert [e.batch_ref for e in tagged] == ["FA-001"]
        assert ledger_selector.account_balance(code_for("depreciation_expense"), date(2024, 4, 30)) == Decimal("10000.00")

    def test_rerun_for_same_date_is_noop(self, assets, journal_selector, laptop, test_actor_id):
        assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)
        rerun = assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)

        assert rerun.is_noop
        assert rerun.skipped_existing == ("FA-001",)
        assert rerun.total_amount == Decimal("0")
        assert len(journal_selector.batch_entries(DEPRECIATION_BATCH, date(2024, 4, 30))) == 1
        assert laptop.accumulated_depreciation == Decimal("10000.00")

    def test_second_date_in_same_month_is_skipped(self, assets, laptop, test_actor_id):
        assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)
        again = assets.run_depreciation_batch(date(2024, 4, 29), test_actor_id)

        assert again.is_noop
        assert again.skipped_existing == ("FA-001",)

    def test_consecutive_months_accumulate(self, assets, laptop, test_actor_id):
        assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)
        assets.run_depreciation_batch(date(2024, 5, 31), test_actor_id)

        assert laptop.accumulated_depreciation == Decimal("20000.00")
        assert laptop.net_book_value == Decimal("100000.00")
        assert len(laptop.depreciation_lines) == 2

    def test_asset_stops_at_depreciable_amount(self, assets, ledger_ready, test_actor_id):
        asset = assets.register_asset(
            "FA-009", "Phone", date(2024, 4, 5), Decimal("1000"), 1, test_actor_id,
            counter_role="capital",
        )
        first = assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id)
        second = assets.run_depreciation_batch(date(2024, 5, 31), test_actor_id)

        assert first.total_amount == Decimal("1000.00")
        assert asset.status == AssetStatus.FULLY_DEPRECIATED.value
        assert second.skipped_fully_depreciated == ("FA-009",)
        assert second.is_noop

    def test_disposed_and_future_assets_are_excluded(self, assets, ledger_ready, test_actor_id):
        sold = assets.register_asset(
            "FA-010", "Old van", date(2024, 4, 5), Decimal("50000"), 24, test_actor_id,
            counter_role="capital",
        )
        assets.dispose_asset(sold.id, date(2024, 4, 20), test_actor_id)
        assets.register_asset(
            "FA-011", "Server", date(2024, 4, 5), Decimal("24000"), 24, test_actor_id,
            counter_role="capital", depreciation_start_date=date(2024, 6, 1),
        )

        assert assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id).is_noop
        assert assets.run_depreciation_batch(date(2024, 6, 30), test_actor_id).posted == ("FA-011",)

    def test_batch_into_closed_period_fails(
        self, assets, period_service, laptop, test_actor_id
    ):
        from ledger_kernel.exceptions import ClosedPeriodError

        april = period_service.get_period_by_name("2024-04")
        period_service.mark_closed(april.id, test_actor_id)

        with pytest.raises(ClosedPeriodError):
            assets.run_depreciation_batch(date(2024, 4, 30), test_actor_id, is_close_posting=True)
