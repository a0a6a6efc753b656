"""
Payroll ORM Models (``ledger_modules.payroll.orm``).

Responsibility
--------------
One payroll record per employee per pay period.  Statutory deductions are
computed when the record is created and stored, so the PF ECR, ESI, PT
and 24Q returns report exactly what was deducted.  Processed-but-unpaid
net pay is the payroll sub-ledger balance.

Invariants enforced
-------------------
* ``(organization_id, employee_id, pay_period)`` is unique.
* ``net_pay == gross - pf_employee - esi_employee - professional_tax - tds``.
* ``esi_applicable`` is False when gross exceeds the ESI wage ceiling; the
  ESI amounts are then zero and the record is left out of the ESI return.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_modules.parties.orm import EmployeeModel


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    PROCESSED = "processed"
    PAID = "paid"


REPORTABLE_PAYROLL_STATUSES = (PayrollStatus.PROCESSED.value, PayrollStatus.PAID.value)


class PayrollRecordModel(TrackedBase, OrganizationScoped):
    __tablename__ = "payroll_records"

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("parties_employees.id"), nullable=False
    )
    # "YYYY-MM"
    pay_period: Mapped[str] = mapped_column(String(7), nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)

    basic_salary: Mapped[Decimal] = mapped_column(nullable=False)
    hra: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    transport_allowance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_allowances: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)

    pf_employee: Mapped[Decimal] = mapped_column(nullable=False)
    pf_employer: Mapped[Decimal] = mapped_column(nullable=False)
    esi_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    esi_employee: Mapped[Decimal] = mapped_column(nullable=False)
    esi_employer: Mapped[Decimal] = mapped_column(nullable=False)
    professional_tax: Mapped[Decimal] = mapped_column(nullable=False)
    tds_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)

    days_worked: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    ncp_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[PayrollStatus] = mapped_column(String(20), nullable=False)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )
    payment_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    employee: Mapped[EmployeeModel] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "employee_id", "pay_period", name="uq_payroll_employee_period"
        ),
        Index("idx_payroll_org_pay_date", "organization_id", "pay_date"),
    )

    @property
    def total_deductions(self) -> Decimal:
        return self.pf_employee + self.esi_employee + self.professional_tax + self.tds_amount

    def __repr__(self) -> str:
        return f"<PayrollRecordModel {self.pay_period} {self.status} net={self.net_pay}>"
