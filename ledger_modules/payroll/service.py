"""
Payroll service (``ledger_modules.payroll.service``).

Record lifecycle::

    draft --process--> processed --pay--> paid

Postings:
    process:  Dr salary_expense gross
              Cr pf_payable, esi_payable, professional_tax_payable,
                 tds_payable_salary (employee deductions)
              Cr salary_payable net pay
              Dr employer_contribution_expense / Cr pf_payable, esi_payable
    pay:      Dr salary_payable / Cr bank, plus a bank transaction

Deductions come from ``ledger_engines.statutory.contributions`` with the
configured rate tables.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select

from ledger_engines.statutory.contributions import (
    compute_esi,
    compute_pf,
    compute_professional_tax,
)
from ledger_kernel.domain.values import ZERO, money_sum, to_money
from ledger_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    InvalidDocumentStateError,
    InvalidLineError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules._posting import ModuleService
from ledger_modules.cash.orm import BankTransactionType
from ledger_modules.cash.service import CashService
from ledger_modules.parties.service import PartyService
from ledger_modules.payroll.orm import (
    REPORTABLE_PAYROLL_STATUSES,
    PayrollRecordModel,
    PayrollStatus,
)

logger = get_logger("modules.payroll.service")

_PAY_PERIOD = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class PayrollService(ModuleService):
    source_module = "payroll"

    def create_record(
        self,
        employee_id: UUID,
        pay_period: str,
        pay_date: date,
        basic_salary: Decimal,
        actor_id: UUID,
        *,
        hra: Decimal = ZERO,
        transport_allowance: Decimal = ZERO,
        other_allowances: Decimal = ZERO,
        tds_amount: Decimal = ZERO,
        days_worked: int = 30,
        ncp_days: int = 0,
    ) -> PayrollRecordModel:
        if not _PAY_PERIOD.match(pay_period or ""):
            raise InvalidLineError(0, f"pay_period must be YYYY-MM, got {pay_period!r}")
        employee = PartyService(self.session, self.organization_id).get_employee(employee_id)
        if self._find(employee.id, pay_period) is not None:
            raise DuplicateDocumentError("payroll_record", f"{employee.employee_code}/{pay_period}")

        rates = self.config.statutory
        basic = to_money(basic_salary)
        gross = money_sum((basic, hra, transport_allowance, other_allowances))
        pf = compute_pf(basic, rates.pf)
        esi = compute_esi(gross, rates.esi)
        pt = compute_professional_tax(gross, rates.professional_tax)
        tds = to_money(tds_amount)
        esi_employee = esi.employee if esi else ZERO
        esi_employer = esi.employer if esi else ZERO
        net_pay = to_money(gross - pf.employee - esi_employee - pt - tds)
        if net_pay <= ZERO:
            raise InvalidLineError(0, "deductions leave no net pay")

        record = PayrollRecordModel(
            organization_id=self.organization_id,
            employee_id=employee.id,
            pay_period=pay_period,
            pay_date=pay_date,
            basic_salary=basic,
            hra=to_money(hra),
            transport_allowance=to_money(transport_allowance),
            other_allowances=to_money(other_allowances),
            gross_salary=gross,
            pf_employee=pf.employee,
            pf_employer=pf.employer_total,
            esi_applicable=esi is not None,
            esi_employee=esi_employee,
            esi_employer=esi_employer,
            professional_tax=pt,
            tds_amount=tds,
            net_pay=net_pay,
            days_worked=days_worked,
            ncp_days=ncp_days,
            status=PayrollStatus.DRAFT.value,
            created_by_id=actor_id,
        )
        self.session.add(record)
        self.session.flush()
        logger.info(
            "payroll_record_created",
            extra={
                "employee_code": employee.employee_code,
                "pay_period": pay_period,
                "gross": str(gross),
                "net_pay": str(net_pay),
                "esi_applicable": esi is not None,
            },
        )
        return record

    def process(self, record_id: UUID, actor_id: UUID) -> PayrollRecordModel:
        record = self.get_record(record_id)
        if record.status != PayrollStatus.DRAFT.value:
            raise InvalidDocumentStateError(
                "payroll_record", str(record_id), record.status, "process"
            )
        code = record.employee.employee_code
        entry = self._post(
            record.pay_date,
            [
                ("salary_expense", record.gross_salary),
                ("employer_contribution_expense", record.pf_employer + record.esi_employer),
            ],
            [
                ("pf_payable", record.pf_employee + record.pf_employer),
                ("esi_payable", record.esi_employee + record.esi_employer),
                ("professional_tax_payable", record.professional_tax),
                ("tds_payable_salary", record.tds_amount),
                ("salary_payable", record.net_pay),
            ],
            actor_id,
            description=f"Payroll {record.pay_period} for {code}",
            reference=f"PAY-{record.pay_period}-{code}",
            idempotency_key=f"payroll:{record.id}:process",
        )
        record.journal_entry_id = entry.id
        record.status = PayrollStatus.PROCESSED.value
        record.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "payroll_processed",
            extra={"pay_period": record.pay_period, "employee_code": code},
        )
        return record

    def pay(
        self, record_id: UUID, payment_date: date, actor_id: UUID
    ) -> PayrollRecordModel:
        record = self.get_record(record_id)
        if record.status != PayrollStatus.PROCESSED.value:
            raise InvalidDocumentStateError("payroll_record", str(record_id), record.status, "pay")

        code = record.employee.employee_code
        reference = f"PAY-{record.pay_period}-{code}"
        description = f"Salary {record.pay_period} paid to {code}"
        entry = self._post(
            payment_date,
            [("salary_payable", record.net_pay)],
            [("bank", record.net_pay)],
            actor_id,
            description=description,
            reference=reference,
            idempotency_key=f"payroll:{record.id}:pay",
        )
        CashService(
            self.session, self.organization_id, self.config, self.clock
        ).record_transaction(
            payment_date,
            BankTransactionType.DEBIT,
            record.net_pay,
            description,
            actor_id,
            category="salary",
            reference=reference,
            source_module=self.source_module,
            journal_entry_id=entry.id,
        )
        record.payment_entry_id = entry.id
        record.paid_date = payment_date
        record.status = PayrollStatus.PAID.value
        record.updated_by_id = actor_id
        self.session.flush()
        return record

    def get_record(self, record_id: UUID) -> PayrollRecordModel:
        record = self.session.get(PayrollRecordModel, record_id)
        if record is None or record.organization_id != self.organization_id:
            raise DocumentNotFoundError("payroll_record", str(record_id))
        return record

    def _find(self, employee_id: UUID, pay_period: str) -> PayrollRecordModel | None:
        return self.session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.organization_id == self.organization_id,
                PayrollRecordModel.employee_id == employee_id,
                PayrollRecordModel.pay_period == pay_period,
            )
        ).scalar_one_or_none()

    def records_between(
        self, from_date: date, to_date: date, statuses: tuple[str, ...] | None = None
    ) -> list[PayrollRecordModel]:
        query = select(PayrollRecordModel).where(
            PayrollRecordModel.organization_id == self.organization_id,
            PayrollRecordModel.pay_date >= from_date,
            PayrollRecordModel.pay_date <= to_date,
        )
        if statuses:
            query = query.where(PayrollRecordModel.status.in_(statuses))
        return list(
            self.session.execute(
                query.order_by(PayrollRecordModel.pay_period, PayrollRecordModel.id)
            ).scalars()
        )

    def outstanding_balance(self, as_of_date: date) -> Decimal:
        """Net pay processed on or before as_of_date and unpaid as of that date."""
        records = self.session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.organization_id == self.organization_id,
                PayrollRecordModel.status.in_(REPORTABLE_PAYROLL_STATUSES),
                PayrollRecordModel.pay_date <= as_of_date,
                or_(
                    PayrollRecordModel.paid_date.is_(None),
                    PayrollRecordModel.paid_date > as_of_date,
                ),
            )
        ).scalars()
        return money_sum(record.net_pay for record in records)
