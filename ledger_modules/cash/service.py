"""
Cash service (``ledger_modules.cash.service``).

Records bank transactions.  Standalone movements (capital introduced, bank
charges, sundry receipts) post their own journal entry against a counter
role; movements raised by another module (invoice receipts, bill and
payroll payments) are recorded with the journal entry that module already
posted.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import InvalidLineError
from ledger_kernel.logging_config import get_logger
from ledger_modules._posting import ModuleService
from ledger_modules.cash.orm import BankTransactionModel, BankTransactionType

logger = get_logger("modules.cash.service")


class CashService(ModuleService):
    source_module = "bank"

    def record_transaction(
        self,
        transaction_date: date,
        transaction_type: BankTransactionType | str,
        amount: Decimal,
        description: str,
        actor_id: UUID,
        *,
        counter_role: str | None = None,
        category: str | None = None,
        reference: str | None = None,
        source_module: str | None = None,
        journal_entry_id: UUID | None = None,
    ) -> BankTransactionModel:
        """
        Record one bank movement.

        With ``counter_role`` a journal entry is posted: a credit (money in)
        debits bank and credits the counter role, a debit does the reverse.
        Without it the caller has already posted and passes
        ``journal_entry_id``.
        """
        transaction_type = BankTransactionType(transaction_type)
        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidLineError(0, "bank transaction amount must be positive")

        if counter_role is not None:
            if transaction_type is BankTransactionType.CREDIT:
                debits, credits = [("bank", amount)], [(counter_role, amount)]
            else:
                debits, credits = [(counter_role, amount)], [("bank", amount)]
            entry = self._post(
                transaction_date,
                debits,
                credits,
                actor_id,
                description=description,
                reference=reference,
            )
            journal_entry_id = entry.id

        txn = BankTransactionModel(
            organization_id=self.organization_id,
            transaction_date=transaction_date,
            transaction_type=transaction_type.value,
            amount=amount,
            description=description or "",
            category=category,
            reference=reference,
            source_module=source_module or self.source_module,
            journal_entry_id=journal_entry_id,
            created_by_id=actor_id,
        )
        self.session.add(txn)
        self.session.flush()
        logger.info(
            "bank_transaction_recorded",
            extra={
                "transaction_id": str(txn.id),
                "transaction_type": transaction_type.value,
                "amount": str(amount),
                "source_module": txn.source_module,
            },
        )
        return txn

    def balance(self, as_of_date: date) -> Decimal:
        """Signed sum of bank transactions on or before as_of_date."""
        signed = case(
            (
                BankTransactionModel.transaction_type == BankTransactionType.CREDIT.value,
                BankTransactionModel.amount,
            ),
            else_=-BankTransactionModel.amount,
        )
        total = self.session.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                BankTransactionModel.organization_id == self.organization_id,
                BankTransactionModel.transaction_date <= as_of_date,
            )
        ).scalar_one()
        return to_money(total)

    def transactions_between(self, from_date: date, to_date: date) -> list[BankTransactionModel]:
        return list(
            self.session.execute(
                select(BankTransactionModel)
                .where(
                    BankTransactionModel.organization_id == self.organization_id,
                    BankTransactionModel.transaction_date >= from_date,
                    BankTransactionModel.transaction_date <= to_date,
                )
                .order_by(BankTransactionModel.transaction_date, BankTransactionModel.id)
            ).scalars()
        )
