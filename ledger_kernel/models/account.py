"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts.
Architecture position: Kernel > Models.  Imports from db/base.py only.

Invariants enforced:
    - code is unique within an organization (uq_account_org_code).
    - normal_balance is derived from account_type at creation.
    - A control account names exactly one sub-ledger module.
    - Once referenced by a posted journal line, code, account_type,
      normal_balance and the control link are frozen (db/immutability.py).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString


class AccountType(str, Enum):
    """Financial statement classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance naturally increases."""

    DEBIT = "debit"
    CREDIT = "credit"


NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


class ControlModule(str, Enum):
    """Sub-ledgers that roll up into a GL control account."""

    BANK = "bank"
    RECEIVABLES = "receivables"
    PAYABLES = "payables"
    PAYROLL = "payroll"


# Fields that become immutable once an account carries posted lines
STRUCTURAL_FIELDS = frozenset(
    {"code", "account_type", "normal_balance", "is_control_account", "control_module"}
)


class Account(TrackedBase, OrganizationScoped):
    """A single node in an organization's chart of accounts."""

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_account_org_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_control_module", "organization_id", "control_module"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_control_account: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    control_module: Mapped[str | None] = mapped_column(String(30), nullable=True)

    parent_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT
