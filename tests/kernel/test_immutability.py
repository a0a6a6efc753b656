"""
ORM immutability tests.

Posted entries and lines are append-only, accounts freeze their
structural fields once referenced, and closed periods keep their dates.
Each violation is raised at flush, so every test stops at the raise.
"""

from datetime import date

import pytest

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.services.account_service import AccountService


class TestJournalImmutability:

    def test_entry_fields_cannot_change(self, session, post_manual, ledger_ready):
        posted = post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        entry = session.get(JournalEntry, posted.id)

        entry.description = "rewritten history"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "JournalEntry"

    def test_line_amount_cannot_change(self, session, post_manual, ledger_ready):
        posted = post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        entry = session.get(JournalEntry, posted.id)

        entry.lines[0].amount = 1
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "JournalLine"

    def test_entry_cannot_be_deleted(self, session, post_manual, ledger_ready):
        posted = post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        session.delete(session.get(JournalEntry, posted.id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAccountImmutability:

    def test_structural_field_frozen_once_referenced(
        self, session, org_id, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        account = AccountService(session, org_id).get_by_code(code_for("general_expense"))

        account.account_type = "asset"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "account_type" in exc_info.value.reason

    def test_unreferenced_account_can_be_restructured(
        self, session, org_id, ledger_ready, code_for
    ):
        account = AccountService(session, org_id).get_by_code(code_for("general_expense"))
        account.code = "5301"
        session.flush()

        assert session.get(Account, account.id).code == "5301"

    def test_name_change_is_allowed_after_posting(
        self, session, org_id, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        account = AccountService(session, org_id).get_by_code(code_for("general_expense"))

        account.name = "Office Expenses"
        session.flush()
        assert account.name == "Office Expenses"

    def test_referenced_account_cannot_be_deleted(
        self, session, org_id, post_manual, ledger_ready, code_for
    ):
        post_manual(date(2024, 4, 10), "general_expense", "bank", "100.00")
        session.delete(AccountService(session, org_id).get_by_code(code_for("general_expense")))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestFiscalPeriodImmutability:

    def test_closed_period_dates_are_frozen(
        self, session, period_service, ledger_ready, test_actor_id
    ):
        april = period_service.get_period_by_name("2024-04")
        period_service.mark_closed(april.id, test_actor_id)

        period = session.get(FiscalPeriod, april.id)
        period.end_date = date(2024, 5, 5)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_periods_are_never_deleted(self, session, period_service, ledger_ready):
        april = period_service.get_period_by_name("2024-04")
        session.delete(session.get(FiscalPeriod, april.id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
