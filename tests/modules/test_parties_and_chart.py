"""Parties registry and chart-of-accounts bootstrap."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import DocumentNotFoundError, DuplicateAccountError, DuplicateDocumentError
from ledger_kernel.models.account import NormalBalance
from ledger_kernel.services.account_service import AccountService
from ledger_modules.gl.service import ChartOfAccountsService


class TestParties:

    def test_customer_state_defaults_from_gstin(self, party_service, test_actor_id):
        customer = party_service.create_customer("Bengaluru Foods", test_actor_id, gstin=" 29abcde1234f1z5 ")

        assert customer.gstin == "29ABCDE1234F1Z5"
        assert customer.state_code == "29"
        assert customer.is_registered

    def test_unregistered_customer(self, party_service, test_actor_id):
        customer = party_service.create_customer("Walk-in", test_actor_id)
        assert customer.gstin is None
        assert customer.state_code is None
        assert not customer.is_registered

    def test_malformed_gstin_is_accepted(self, party_service, test_actor_id):
        # Format validity is an audit finding, not an input rule
        customer = party_service.create_customer("Typo Traders", test_actor_id, gstin="29ABC")
        assert customer.gstin == "29ABC"

    def test_vendor_pan_is_normalized(self, party_service, test_actor_id):
        vendor = party_service.create_vendor("Acme Supplies", test_actor_id, pan="abcde1234f")
        assert vendor.pan == "ABCDE1234F"

    def test_duplicate_employee_code(self, party_service, employee, test_actor_id):
        with pytest.raises(DuplicateDocumentError):
            party_service.create_employee("E001", "Someone Else", test_actor_id)

    def test_lookup_of_unknown_party(self, party_service):
        with pytest.raises(DocumentNotFoundError):
            party_service.get_vendor(uuid4())

    def test_lists_are_ordered(self, party_service, test_actor_id):
        party_service.create_vendor("Zeta", test_actor_id)
        party_service.create_vendor("Alpha", test_actor_id)
        assert [v.name for v in party_service.list_vendors()] == ["Alpha", "Zeta"]


class TestChartBootstrap:

    def test_one_account_per_role(self, chart, config):
        assert len(chart) == len(config.accounts.roles)
        assert sorted(a.code for a in chart) == sorted(r.code for r in config.accounts.roles)

    def test_control_accounts_are_marked(self, session, org_id, chart):
        accounts = AccountService(session, org_id)
        assert accounts.control_account_for("receivables").code == "1100"
        assert accounts.control_account_for("payables").code == "2000"
        assert accounts.control_account_for("payroll").code == "2400"
        assert accounts.control_account_for("bank").code == "1000"

    def test_normal_balance_follows_type(self, session, org_id, chart):
        accounts = AccountService(session, org_id)
        assert accounts.get_by_code("1000").normal_balance == NormalBalance.DEBIT.value
        assert accounts.get_by_code("2000").normal_balance == NormalBalance.CREDIT.value
        assert accounts.get_by_code("4000").normal_balance == NormalBalance.CREDIT.value

    def test_rerun_creates_nothing(self, session, org_id, config, chart, deterministic_clock, test_actor_id):
        again = ChartOfAccountsService(session, org_id, config, deterministic_clock).bootstrap(test_actor_id)
        assert again == []

    def test_duplicate_code_is_rejected(self, session, org_id, chart, test_actor_id):
        with pytest.raises(DuplicateAccountError):
            AccountService(session, org_id).create_account("1000", "Second bank", "asset", test_actor_id)

    def test_new_account_starts_at_zero(self, session, org_id, chart, ledger_selector, test_actor_id):
        from datetime import date

        AccountService(session, org_id).create_account("5400", "Travel", "expense", test_actor_id)
        assert ledger_selector.account_balance("5400", date(2024, 4, 30)) == Decimal("0")
