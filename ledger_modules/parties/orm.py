"""
Party ORM Models (``ledger_modules.parties.orm``).

Responsibility
--------------
Customers (GSTR-1 counterparties), vendors (ITC and TDS deductees) and
employees (payroll returns).  Registration identifiers are optional: a
customer without a GSTIN is a B2C counterparty, a vendor without a PAN is
a 206AA risk, an employee without an ESI number is outside ESI.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import OrganizationScoped, TrackedBase


class CustomerModel(TrackedBase, OrganizationScoped):
    __tablename__ = "parties_customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    gstin: Mapped[str | None] = mapped_column(String(15), nullable=True)
    # Two-digit GST state code, e.g. "29" for Karnataka
    state_code: Mapped[str | None] = mapped_column(String(2), nullable=True)

    __table_args__ = (
        Index("idx_parties_customers_org_name", "organization_id", "name"),
    )

    @property
    def is_registered(self) -> bool:
        return bool(self.gstin)

    def __repr__(self) -> str:
        return f"<CustomerModel {self.name!r} gstin={self.gstin!r}>"


class VendorModel(TrackedBase, OrganizationScoped):
    __tablename__ = "parties_vendors"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    gstin: Mapped[str | None] = mapped_column(String(15), nullable=True)
    pan: Mapped[str | None] = mapped_column(String(10), nullable=True)
    default_tds_section: Mapped[str | None] = mapped_column(String(10), nullable=True)

    __table_args__ = (
        Index("idx_parties_vendors_org_name", "organization_id", "name"),
    )

    def __repr__(self) -> str:
        return f"<VendorModel {self.name!r} pan={self.pan!r}>"


class EmployeeModel(TrackedBase, OrganizationScoped):
    __tablename__ = "parties_employees"

    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    pan: Mapped[str | None] = mapped_column(String(10), nullable=True)
    uan: Mapped[str | None] = mapped_column(String(12), nullable=True)
    esi_ip_number: Mapped[str | None] = mapped_column(String(17), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "employee_code", name="uq_parties_employee_code"
        ),
    )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.employee_code}: {self.name!r}>"
