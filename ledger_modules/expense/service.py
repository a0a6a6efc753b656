"""
Expense service (``ledger_modules.expense.service``).

Postings:
    cash:             Dr <expense_role> / Cr cash_in_hand
    bank, card, upi:  Dr <expense_role> / Cr bank, plus a bank transaction
    with TDS:         the withheld part is credited to tds_payable_non_salary
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import InvalidLineError
from ledger_kernel.logging_config import get_logger
from ledger_modules._posting import ModuleService
from ledger_modules.cash.orm import BankTransactionType
from ledger_modules.cash.service import CashService
from ledger_modules.expense.orm import ExpenseRecordModel, PaymentMode
from ledger_modules.parties.service import PartyService

logger = get_logger("modules.expense.service")


class ExpenseService(ModuleService):
    source_module = "expense"

    def record_expense(
        self,
        expense_date: date,
        category: str,
        amount: Decimal,
        payment_mode: PaymentMode | str,
        actor_id: UUID,
        *,
        description: str = "",
        tds_amount: Decimal = ZERO,
        vendor_id: UUID | None = None,
        reference: str | None = None,
        expense_role: str = "general_expense",
    ) -> ExpenseRecordModel:
        payment_mode = PaymentMode(payment_mode)
        amount = to_money(amount)
        tds_amount = to_money(tds_amount)
        if amount <= ZERO:
            raise InvalidLineError(0, "expense amount must be positive")
        if tds_amount < ZERO or tds_amount >= amount:
            raise InvalidLineError(0, "tds_amount must be below the expense amount")
        if vendor_id is not None:
            PartyService(self.session, self.organization_id).get_vendor(vendor_id)

        paid = to_money(amount - tds_amount)
        paying_role = "cash_in_hand" if payment_mode is PaymentMode.CASH else "bank"
        text = description or category
        entry = self._post(
            expense_date,
            [(expense_role, amount)],
            [(paying_role, paid), ("tds_payable_non_salary", tds_amount)],
            actor_id,
            description=text,
            reference=reference,
        )
        if paying_role == "bank":
            CashService(
                self.session, self.organization_id, self.config, self.clock
            ).record_transaction(
                expense_date,
                BankTransactionType.DEBIT,
                paid,
                text,
                actor_id,
                category=category,
                reference=reference,
                source_module=self.source_module,
                journal_entry_id=entry.id,
            )

        record = ExpenseRecordModel(
            organization_id=self.organization_id,
            expense_date=expense_date,
            category=category,
            description=description,
            amount=amount,
            payment_mode=payment_mode.value,
            tds_amount=tds_amount,
            vendor_id=vendor_id,
            reference=reference,
            journal_entry_id=entry.id,
            created_by_id=actor_id,
        )
        self.session.add(record)
        self.session.flush()
        logger.info(
            "expense_recorded",
            extra={
                "category": category,
                "amount": str(amount),
                "payment_mode": payment_mode.value,
            },
        )
        return record

    def expenses_between(self, from_date: date, to_date: date) -> list[ExpenseRecordModel]:
        return list(
            self.session.execute(
                select(ExpenseRecordModel)
                .where(
                    ExpenseRecordModel.organization_id == self.organization_id,
                    ExpenseRecordModel.expense_date >= from_date,
                    ExpenseRecordModel.expense_date <= to_date,
                )
                .order_by(ExpenseRecordModel.expense_date, ExpenseRecordModel.id)
            ).scalars()
        )
