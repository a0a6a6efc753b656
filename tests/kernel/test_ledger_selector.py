"""
Trial balance and ledger aggregation tests.

The trial balance is derived from journal lines at query time and must
always balance; a crooked ledger raises instead of reporting.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import LedgerIntegrityError
from ledger_kernel.models.journal import JournalEntry, JournalLine, LineSide
from ledger_kernel.services.account_service import AccountService


class TestTrialBalance:

    def test_empty_ledger_balances_at_zero(self, ledger_selector, ledger_ready):
        trial = ledger_selector.trial_balance(date(2025, 3, 31))

        assert trial.rows == ()
        assert trial.total_debits == Decimal("0")
        assert trial.total_credits == Decimal("0")

    def test_totals_match_posted_entries(
        self, ledger_selector, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 1), "bank", "capital", "100000.00")
        post_manual(date(2024, 4, 15), "general_expense", "bank", "2500.50")

        trial = ledger_selector.trial_balance(date(2024, 4, 30))

        assert trial.total_debits == Decimal("102500.50")
        assert trial.total_credits == trial.total_debits
        bank = trial.row_for(code_for("bank"))
        assert bank.debit_total == Decimal("100000.00")
        assert bank.credit_total == Decimal("2500.50")
        assert bank.net == Decimal("97499.50")

    def test_rows_are_ordered_by_account_code(
        self, ledger_selector, post_manual, ledger_ready
    ):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")
        post_manual(date(2024, 4, 2), "general_expense", "cash_in_hand", "10.00")
        post_manual(date(2024, 4, 2), "cash_in_hand", "bank", "50.00")

        codes = [row.account_code for row in ledger_selector.trial_balance(date(2024, 4, 30)).rows]
        assert codes == sorted(codes)

    def test_as_of_date_excludes_later_entries(
        self, ledger_selector, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")
        post_manual(date(2024, 5, 1), "bank", "capital", "500.00")

        april = ledger_selector.trial_balance(date(2024, 4, 30))
        assert april.row_for(code_for("capital")).credit_total == Decimal("1000.00")

        may = ledger_selector.trial_balance(date(2024, 5, 31))
        assert may.row_for(code_for("capital")).credit_total == Decimal("1500.00")

    def test_corrupted_ledger_raises_integrity_error(
        self, session, org_id, ledger_selector, ledger_ready, code_for, test_actor_id,
        captured_logs,
    ):
        """A one-sided entry written around the writer must not be reported."""
        bank = AccountService(session, org_id).get_by_code(code_for("bank"))
        entry = JournalEntry(
            organization_id=org_id,
            entry_date=date(2024, 4, 5),
            source_type="manual",
            description="one-sided",
            created_by_id=test_actor_id,
        )
        entry.lines.append(
            JournalLine(
                account=bank,
                side=LineSide.DEBIT.value,
                amount=Decimal("10.00"),
                line_seq=1,
                created_by_id=test_actor_id,
            )
        )
        session.add(entry)
        session.flush()

        with pytest.raises(LedgerIntegrityError) as exc_info:
            ledger_selector.trial_balance(date(2024, 4, 30))

        assert exc_info.value.debit_total == "10.00"
        assert exc_info.value.credit_total == "0.00"
        violations = [r for r in captured_logs() if r["message"] == "ledger_integrity_violation"]
        assert violations and violations[0]["level"] == "CRITICAL"

    def test_unbalanced_entries_are_listed(
        self, session, org_id, journal_selector, post_manual, ledger_ready, code_for,
        test_actor_id,
    ):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")
        capital = AccountService(session, org_id).get_by_code(code_for("capital"))
        crooked = JournalEntry(
            organization_id=org_id,
            entry_date=date(2024, 4, 2),
            source_type="manual",
            created_by_id=test_actor_id,
        )
        crooked.lines.append(
            JournalLine(
                account=capital,
                side=LineSide.CREDIT.value,
                amount=Decimal("5.00"),
                line_seq=1,
                created_by_id=test_actor_id,
            )
        )
        session.add(crooked)
        session.flush()

        assert journal_selector.unbalanced_entry_ids(date(2024, 4, 1), date(2024, 4, 30)) == [
            crooked.id
        ]


class TestAccountBalances:

    def test_balance_is_signed_by_normal_side(
        self, ledger_selector, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")

        assert ledger_selector.account_balance(code_for("bank"), date(2024, 4, 30)) == Decimal("1000.00")
        assert ledger_selector.account_balance(code_for("capital"), date(2024, 4, 30)) == Decimal("1000.00")

    def test_unknown_account_has_zero_balance(self, ledger_selector, ledger_ready):
        assert ledger_selector.account_balance("9999", date(2024, 4, 30)) == Decimal("0")

    def test_account_totals_respect_date_window(
        self, ledger_selector, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        post_manual(date(2024, 5, 10), "general_expense", "bank", "200.00")

        debit, credit = ledger_selector.account_totals(
            code_for("general_expense"), as_of_date=date(2024, 5, 31), from_date=date(2024, 5, 1)
        )
        assert debit == Decimal("200.00")
        assert credit == Decimal("0")

    def test_monthly_movements_bucket_by_calendar_month(
        self, ledger_selector, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        post_manual(date(2024, 4, 20), "general_expense", "bank", "50.00")
        post_manual(date(2024, 6, 1), "general_expense", "bank", "75.00")

        movements = ledger_selector.monthly_movements(
            code_for("general_expense"), date(2024, 4, 1), date(2024, 6, 30)
        )
        assert [(m.month, m.debit_total) for m in movements] == [
            ("2024-04", Decimal("150.00")),
            ("2024-06", Decimal("75.00")),
        ]


class TestCanonicalHash:

    def test_hash_is_stable_for_same_ledger(self, ledger_selector, post_manual, ledger_ready):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")

        first = ledger_selector.canonical_hash(date(2024, 4, 30))
        second = ledger_selector.canonical_hash(date(2024, 4, 30))
        assert first == second
        assert len(first) == 64

    def test_hash_changes_with_new_posting(self, ledger_selector, post_manual, ledger_ready):
        post_manual(date(2024, 4, 1), "bank", "capital", "1000.00")
        before = ledger_selector.canonical_hash(date(2024, 4, 30))

        post_manual(date(2024, 4, 2), "general_expense", "bank", "1.00")
        assert ledger_selector.canonical_hash(date(2024, 4, 30)) != before
