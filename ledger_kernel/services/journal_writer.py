"""
JournalWriter -- atomic journal posting service.

Responsibility:
    Validates and persists a journal entry and its lines in one flush.
    Handles line-shape validation, balance validation at currency
    precision, period gating, account resolution, idempotent replay and
    system-batch uniqueness.

Invariants enforced:
    - Each line carries exactly one strictly positive side.
    - sum(debits) == sum(credits) at two decimal places.
    - entry_date must fall in an OPEN period (or a CLOSING period for the
      close's own system batch).  The covering period row is read under a
      shared lock so posting serializes against close.
    - Entries are append-only; corrections go through reverse_entry().
    - An idempotency_key maps to at most one entry; replays return it.
    - A (batch_type, batch_date, batch_ref) tag maps to at most one entry.

Failure modes:
    - InvalidLineError, UnbalancedEntryError: fatal, never retried.
    - ClosedPeriodError, PeriodClosingError, PeriodNotFoundError.
    - AccountNotFoundError, AccountInactiveError.
    - DuplicateBatchEntryError: a concurrent batch run won the race.
    - EntryNotFoundError, EntryAlreadyReversedError (reverse_entry).
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.dtos import JournalEntryInfo, LineSpec
from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import (
    DuplicateBatchEntryError,
    EntryAlreadyReversedError,
    EntryNotFoundError,
    InvalidLineError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine, LineSide, SourceType
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService

logger = get_logger("services.journal_writer")


def validate_lines(lines: Sequence[LineSpec]) -> tuple[Decimal, Decimal]:
    """
    Check line shapes and the balance identity.

    Returns (total_debits, total_credits) at money precision.

    Raises:
        InvalidLineError: A line has no side, both sides, a negative
            amount, or more than two decimal places; or there are no lines.
        UnbalancedEntryError: Debits and credits differ.
    """
    for index, line in enumerate(lines):
        debit, credit = line.debit_amount, line.credit_amount
        if debit < ZERO or credit < ZERO:
            raise InvalidLineError(index, "amounts must not be negative")
        if debit != ZERO and credit != ZERO:
            raise InvalidLineError(index, "line has both a debit and a credit")
        if debit == ZERO and credit == ZERO:
            raise InvalidLineError(index, "line has neither a debit nor a credit")
        if to_money(debit) != debit or to_money(credit) != credit:
            raise InvalidLineError(index, "amount exceeds currency precision")

    if not lines:
        raise InvalidLineError(0, "entry has no lines")

    total_debits = to_money(sum((line.debit_amount for line in lines), ZERO))
    total_credits = to_money(sum((line.credit_amount for line in lines), ZERO))
    if total_debits != total_credits:
        raise UnbalancedEntryError(str(total_debits), str(total_credits))
    return total_debits, total_credits


class JournalWriter(BaseService[JournalEntry]):
    """
    Posts balanced journal entries.

    Non-goals:
        - Does NOT commit; the caller owns the transaction, so a failed
          post leaves nothing behind once the caller rolls back.
    """

    def __init__(self, session, organization_id, clock=None):
        super().__init__(session, organization_id, clock)
        self._periods = PeriodService(session, organization_id, self.clock)
        self._accounts = AccountService(session, organization_id, self.clock)

    def post_entry(
        self,
        entry_date: date,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        *,
        source_type: SourceType | str = SourceType.MANUAL,
        description: str | None = None,
        reference: str | None = None,
        source_module: str | None = None,
        idempotency_key: str | None = None,
        batch_type: str | None = None,
        batch_date: date | None = None,
        batch_ref: str | None = None,
        approved_by_id: UUID | None = None,
        reversal_of_id: UUID | None = None,
        is_admin_override: bool = False,
        is_close_posting: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> JournalEntryInfo:
        """
        Post a journal entry.

        Args:
            entry_date: Accounting date; selects the fiscal period.
            lines: Ordered LineSpecs, each with exactly one non-zero side.
            actor_id: Who is posting.
            source_type: "manual" or "system".
            idempotency_key: Replays with the same key return the
                original entry instead of posting twice.
            batch_type / batch_date / batch_ref: System batch tag; at most
                one entry per tag.
            is_close_posting: Allow posting into a CLOSING period.  Only the
                period-close orchestrator sets this.

        Returns:
            JournalEntryInfo of the posted (or replayed) entry.
        """
        source_type = SourceType(source_type)

        if idempotency_key is not None:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing is not None:
                logger.info(
                    "journal_entry_replayed",
                    extra={"entry_id": str(existing.id), "idempotency_key": idempotency_key},
                )
                return existing.to_dto()

        total_debits, _ = validate_lines(lines)
        self._periods.validate_effective_date(entry_date, is_close_posting=is_close_posting)
        accounts = [self._accounts.get_postable(line.account_code) for line in lines]

        entry = JournalEntry(
            organization_id=self.organization_id,
            entry_date=entry_date,
            source_type=source_type.value,
            source_module=source_module,
            description=description or "",
            reference=reference,
            idempotency_key=idempotency_key,
            batch_type=batch_type,
            batch_date=batch_date,
            batch_ref=batch_ref,
            approved_by_id=approved_by_id,
            reversal_of_id=reversal_of_id,
            is_admin_override=is_admin_override,
            entry_metadata=metadata,
            created_at=self.clock.now(),
            created_by_id=actor_id,
        )
        for seq, (line, account) in enumerate(zip(lines, accounts), start=1):
            is_debit = line.debit_amount != ZERO
            entry.lines.append(
                JournalLine(
                    account=account,
                    side=(LineSide.DEBIT if is_debit else LineSide.CREDIT).value,
                    amount=line.debit_amount if is_debit else line.credit_amount,
                    line_seq=seq,
                    memo=line.memo,
                    created_by_id=actor_id,
                )
            )

        try:
            with self.session.begin_nested():
                self.session.add(entry)
        except IntegrityError:
            if idempotency_key is not None:
                existing = self._find_by_idempotency_key(idempotency_key)
                if existing is not None:
                    logger.warning(
                        "concurrent_insert_conflict",
                        extra={"idempotency_key": idempotency_key},
                    )
                    return existing.to_dto()
            if batch_type is not None:
                logger.warning(
                    "batch_entry_conflict",
                    extra={
                        "batch_type": batch_type,
                        "batch_date": str(batch_date),
                        "batch_ref": batch_ref,
                    },
                )
                raise DuplicateBatchEntryError(batch_type, str(batch_date), batch_ref)
            if reversal_of_id is not None:
                raise EntryAlreadyReversedError(str(reversal_of_id))
            raise

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "entry_date": str(entry_date),
                "source_type": source_type.value,
                "source_module": source_module,
                "line_count": len(lines),
                "total": str(total_debits),
            },
        )
        return entry.to_dto()

    def reverse_entry(
        self,
        entry_id: UUID,
        reversal_date: date,
        actor_id: UUID,
        description: str | None = None,
    ) -> JournalEntryInfo:
        """
        Post the mirror image of an entry on reversal_date.

        The original stays untouched; the reversal links back through
        reversal_of_id, which is unique, so an entry reverses at most once.
        """
        original = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.organization_id == self.organization_id,
                JournalEntry.id == entry_id,
            )
        ).scalar_one_or_none()
        if original is None:
            raise EntryNotFoundError(str(entry_id))
        if self._find_reversal(entry_id) is not None:
            raise EntryAlreadyReversedError(str(entry_id))

        mirrored = [
            LineSpec(
                account_code=line.account.code,
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                memo=line.memo,
            )
            for line in original.lines
        ]
        reversal = self.post_entry(
            reversal_date,
            mirrored,
            actor_id,
            source_type=original.source_type,
            description=description or f"Reversal of {original.description}".strip(),
            reference=original.reference,
            source_module=original.source_module,
            approved_by_id=original.approved_by_id,
            reversal_of_id=entry_id,
        )
        logger.info(
            "journal_entry_reversed",
            extra={"entry_id": str(entry_id), "reversal_id": str(reversal.id)},
        )
        return reversal

    def _find_reversal(self, entry_id: UUID) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(
                JournalEntry.organization_id == self.organization_id,
                JournalEntry.reversal_of_id == entry_id,
            )
        ).scalar_one_or_none()

    def _find_by_idempotency_key(self, key: str) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(
                JournalEntry.organization_id == self.organization_id,
                JournalEntry.idempotency_key == key,
            )
        ).scalar_one_or_none()
