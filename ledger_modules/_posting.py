"""
Shared helpers for module posting flows.

Modules describe journal entries in account ROLES ("bank",
"accounts_receivable", ...).  ``ModuleService`` resolves roles through the
active ``LedgerConfig`` and posts through the kernel ``JournalWriter``, so
the double-entry and period rules are enforced in one place.

Architecture: Modules layer.  Imports from ledger_kernel and ledger_config.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import JournalEntryInfo, LineSpec
from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.models.journal import SourceType
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.journal_writer import JournalWriter

RoleAmount = tuple[str, Decimal]


def build_lines(
    config: LedgerConfig,
    debits: Iterable[RoleAmount],
    credits: Iterable[RoleAmount],
) -> list[LineSpec]:
    """Resolve (role, amount) pairs to LineSpecs, dropping zero amounts."""
    lines = [
        LineSpec.debit(config.account_code(role), to_money(amount))
        for role, amount in debits
        if to_money(amount) != ZERO
    ]
    lines.extend(
        LineSpec.credit(config.account_code(role), to_money(amount))
        for role, amount in credits
        if to_money(amount) != ZERO
    )
    return lines


class ModuleService(BaseService):
    """
    Base for sub-ledger services.

    Contract:
        Flush only; the caller commits.  Every journal entry a module posts
        is a system entry tagged with the module name and an idempotency
        key derived from the document, so retrying an operation never
        double-posts.
    """

    source_module: str = ""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, organization_id, clock)
        self.config = config or get_active_config()
        self._writer = JournalWriter(session, organization_id, self.clock)

    def _post(
        self,
        entry_date: date,
        debits: Iterable[RoleAmount],
        credits: Iterable[RoleAmount],
        actor_id: UUID,
        *,
        description: str,
        reference: str | None = None,
        idempotency_key: str | None = None,
        **kwargs: Any,
    ) -> JournalEntryInfo:
        return self._writer.post_entry(
            entry_date,
            build_lines(self.config, debits, credits),
            actor_id,
            source_type=SourceType.SYSTEM,
            source_module=self.source_module,
            description=description,
            reference=reference,
            idempotency_key=idempotency_key,
            approved_by_id=kwargs.pop("approved_by_id", actor_id),
            **kwargs,
        )
