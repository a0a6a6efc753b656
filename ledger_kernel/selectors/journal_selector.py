"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only journal entry queries used by the period close,
    the reconciler and the compliance audit.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import JournalEntryInfo
from ledger_kernel.models.journal import JournalEntry, JournalLine, SourceType
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.ledger_selector import _credit_sum, _debit_sum


class JournalSelector(BaseSelector[JournalEntry]):

    def _scoped(self):
        return select(JournalEntry).where(
            JournalEntry.organization_id == self.organization_id
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo | None:
        entry = self.session.execute(
            self._scoped().where(JournalEntry.id == entry_id)
        ).scalar_one_or_none()
        return entry.to_dto() if entry else None

    def entries_between(
        self,
        from_date: date,
        to_date: date,
        source_type: SourceType | str | None = None,
    ) -> list[JournalEntryInfo]:
        """Entries dated within [from_date, to_date], oldest first."""
        query = self._scoped().where(
            JournalEntry.entry_date >= from_date,
            JournalEntry.entry_date <= to_date,
        )
        if source_type is not None:
            query = query.where(JournalEntry.source_type == SourceType(source_type).value)
        query = query.order_by(JournalEntry.entry_date, JournalEntry.created_at, JournalEntry.id)
        return [e.to_dto() for e in self.session.execute(query).scalars()]

    def batch_entries(self, batch_type: str, batch_date: date) -> list[JournalEntryInfo]:
        """System entries carrying a batch tag for the given date."""
        query = (
            self._scoped()
            .where(
                JournalEntry.source_type == SourceType.SYSTEM.value,
                JournalEntry.batch_type == batch_type,
                JournalEntry.batch_date == batch_date,
            )
            .order_by(JournalEntry.batch_ref)
        )
        return [e.to_dto() for e in self.session.execute(query).scalars()]

    def batch_refs(self, batch_type: str, batch_date: date) -> set[str]:
        rows = self.session.execute(
            select(JournalEntry.batch_ref).where(
                JournalEntry.organization_id == self.organization_id,
                JournalEntry.batch_type == batch_type,
                JournalEntry.batch_date == batch_date,
            )
        ).scalars()
        return {ref for ref in rows if ref is not None}

    def unbalanced_entry_ids(self, from_date: date, to_date: date) -> list[UUID]:
        """Entries whose stored lines do not balance (should always be empty)."""
        query = (
            select(JournalLine.journal_entry_id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalEntry.organization_id == self.organization_id,
                JournalEntry.entry_date >= from_date,
                JournalEntry.entry_date <= to_date,
            )
            .group_by(JournalLine.journal_entry_id)
            .having(func.round(_debit_sum() - _credit_sum(), 2) != 0)
        )
        return list(self.session.execute(query).scalars())
