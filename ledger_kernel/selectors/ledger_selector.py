"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger aggregation: trial balance, account and
    control-account balances, monthly movements and a canonical ledger hash.
    Every figure is derived from journal lines at query time.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Trial balance post-condition: sum(debit totals) == sum(credit totals).
      A mismatch raises LedgerIntegrityError rather than returning a
      crooked report.
    - Output ordering is deterministic (account code).
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select

from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import LedgerIntegrityError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, NormalBalance
from ledger_kernel.models.journal import JournalEntry, JournalLine, LineSide
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


@dataclass(frozen=True)
class TrialBalanceRow:
    account_code: str
    account_name: str
    account_type: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net(self) -> Decimal:
        """Debit-positive net balance."""
        return self.debit_total - self.credit_total

    def to_dict(self) -> dict[str, str]:
        return {
            "account_code": self.account_code,
            "account_name": self.account_name,
            "debit_total": str(self.debit_total),
            "credit_total": str(self.credit_total),
        }


@dataclass(frozen=True)
class TrialBalance:
    as_of_date: date
    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal

    def row_for(self, account_code: str) -> TrialBalanceRow | None:
        for row in self.rows:
            if row.account_code == account_code:
                return row
        return None


@dataclass(frozen=True)
class MonthlyMovement:
    month: str
    debit_total: Decimal
    credit_total: Decimal


def _debit_sum():
    return func.sum(
        case((JournalLine.side == LineSide.DEBIT.value, JournalLine.amount), else_=0)
    )


def _credit_sum():
    return func.sum(
        case((JournalLine.side == LineSide.CREDIT.value, JournalLine.amount), else_=0)
    )


class LedgerSelector(BaseSelector[JournalLine]):
    """Aggregations over one organization's journal lines."""

    def _base(self, *columns):
        return (
            select(*columns)
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(JournalEntry.organization_id == self.organization_id)
        )

    def trial_balance(self, as_of_date: date) -> TrialBalance:
        """
        Per-account debit and credit totals for entries dated on or before
        as_of_date.

        Raises:
            LedgerIntegrityError: If the column totals differ.
        """
        query = (
            self._base(
                Account.code,
                Account.name,
                Account.account_type,
                _debit_sum().label("debit_total"),
                _credit_sum().label("credit_total"),
            )
            .where(JournalEntry.entry_date <= as_of_date)
            .group_by(Account.code, Account.name, Account.account_type)
            .order_by(Account.code)
        )

        rows = tuple(
            TrialBalanceRow(
                account_code=r.code,
                account_name=r.name,
                account_type=r.account_type,
                debit_total=to_money(r.debit_total),
                credit_total=to_money(r.credit_total),
            )
            for r in self.session.execute(query).all()
        )
        total_debits = to_money(sum((r.debit_total for r in rows), ZERO))
        total_credits = to_money(sum((r.credit_total for r in rows), ZERO))

        if total_debits != total_credits:
            logger.critical(
                "ledger_integrity_violation",
                extra={
                    "as_of_date": str(as_of_date),
                    "debit_total": str(total_debits),
                    "credit_total": str(total_credits),
                },
            )
            raise LedgerIntegrityError(
                str(as_of_date), str(total_debits), str(total_credits)
            )

        return TrialBalance(as_of_date, rows, total_debits, total_credits)

    def account_totals(
        self,
        account_code: str,
        as_of_date: date | None = None,
        from_date: date | None = None,
    ) -> tuple[Decimal, Decimal]:
        """(debit_total, credit_total) for one account over an optional range."""
        query = self._base(_debit_sum(), _credit_sum()).where(Account.code == account_code)
        if as_of_date is not None:
            query = query.where(JournalEntry.entry_date <= as_of_date)
        if from_date is not None:
            query = query.where(JournalEntry.entry_date >= from_date)
        debit, credit = self.session.execute(query).one()
        return to_money(debit), to_money(credit)

    def account_balance(self, account_code: str, as_of_date: date | None = None) -> Decimal:
        """Balance signed by the account's normal side (positive = normal)."""
        account = self.session.execute(
            select(Account).where(
                Account.organization_id == self.organization_id,
                Account.code == account_code,
            )
        ).scalar_one_or_none()
        if account is None:
            return ZERO
        debit, credit = self.account_totals(account_code, as_of_date)
        if account.normal_balance == NormalBalance.DEBIT:
            return debit - credit
        return credit - debit

    def monthly_movements(
        self, account_code: str, from_date: date, to_date: date
    ) -> list[MonthlyMovement]:
        """Per-calendar-month debit/credit totals for an account."""
        query = (
            self._base(JournalEntry.entry_date, JournalLine.side, JournalLine.amount)
            .where(
                Account.code == account_code,
                JournalEntry.entry_date >= from_date,
                JournalEntry.entry_date <= to_date,
            )
        )
        buckets: dict[str, list[Decimal]] = {}
        for entry_date, side, amount in self.session.execute(query).all():
            bucket = buckets.setdefault(entry_date.strftime("%Y-%m"), [ZERO, ZERO])
            bucket[0 if side == LineSide.DEBIT else 1] += Decimal(amount)
        return [
            MonthlyMovement(month, to_money(d), to_money(c))
            for month, (d, c) in sorted(buckets.items())
        ]

    def canonical_hash(self, as_of_date: date) -> str:
        """SHA-256 over the sorted trial balance; equal ledgers hash equally."""
        trial = self.trial_balance(as_of_date)
        payload = json.dumps(
            [row.to_dict() for row in trial.rows],
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
