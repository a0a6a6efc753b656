"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.

Invariants enforced:
    - Every entry balances: sum(debits) == sum(credits).  Checked by
      JournalWriter before insert; the trial balance re-checks it as a
      post-condition.
    - Each line records one side and a strictly positive amount, so a line
      can never carry both a debit and a credit.
    - Entries and lines are append-only; corrections are reversing entries
      (reversal_of_id, unique so an entry is reversed at most once).
    - A system batch posts at most one entry per
      (organization, batch_type, batch_date, batch_ref).  This is what makes
      the depreciation batch idempotent under concurrent retry.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_kernel.domain.dtos import JournalEntryInfo, JournalLineInfo
from ledger_kernel.domain.values import to_money

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class SourceType(str, Enum):
    """Who originated the entry."""

    MANUAL = "manual"
    SYSTEM = "system"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class JournalEntry(TrackedBase, OrganizationScoped):
    """Header of a posted double-entry transaction."""

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "idempotency_key", name="uq_journal_idempotency_key"
        ),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        UniqueConstraint(
            "organization_id",
            "batch_type",
            "batch_date",
            "batch_ref",
            name="uq_journal_system_batch",
        ),
        Index("idx_journal_org_date", "organization_id", "entry_date"),
        Index("idx_journal_source_module", "organization_id", "source_module"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    source_type: Mapped[SourceType] = mapped_column(String(20), nullable=False)

    # Originating sub-ledger ("receivables", "payroll", "assets", ...) or None
    source_module: Mapped[str | None] = mapped_column(String(30), nullable=True)

    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    batch_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    batch_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    batch_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    is_admin_override: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    entry_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        order_by="JournalLine.line_seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.entry_date} {self.source_type}>"

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    def to_dto(self) -> JournalEntryInfo:
        return JournalEntryInfo(
            id=self.id,
            organization_id=self.organization_id,
            entry_date=self.entry_date,
            source_type=SourceType(self.source_type).value,
            created_at=self.created_at,
            description=self.description or "",
            lines=tuple(
                JournalLineInfo(
                    account_code=line.account.code,
                    debit_amount=to_money(line.debit_amount),
                    credit_amount=to_money(line.credit_amount),
                    line_seq=line.line_seq,
                    memo=line.memo,
                )
                for line in self.lines
            ),
            source_module=self.source_module,
            reference=self.reference,
            batch_type=self.batch_type,
            batch_date=self.batch_date,
            batch_ref=self.batch_ref,
            reversal_of_id=self.reversal_of_id,
            approved_by_id=self.approved_by_id,
            is_admin_override=self.is_admin_override,
        )


class JournalLine(TrackedBase):
    """One side of a journal entry against a single account."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_line_positive"),
        UniqueConstraint("journal_entry_id", "line_seq", name="uq_journal_line_seq"),
        Index("idx_journal_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<JournalLine {self.side} {self.amount}>"

    @property
    def account_code(self) -> str:
        return self.account.code

    @property
    def is_debit(self) -> bool:
        return self.side == LineSide.DEBIT

    @property
    def debit_amount(self) -> Decimal:
        return self.amount if self.is_debit else Decimal("0")

    @property
    def credit_amount(self) -> Decimal:
        return Decimal("0") if self.is_debit else self.amount
