"""
ORM-level immutability enforcement.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners registered here intercept those events and raise
ImmutabilityViolationError, aborting the flush before anything is written.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When immutable                      | Rule
------------------------|-------------------------------------|---------------------------
JournalEntry            | Always (entries are posted on write) | Correct via reversal
JournalLine             | Always                              | Part of the entry
Account                 | Structural fields once referenced   | Reports stay consistent
FiscalPeriod            | Dates once closed; never deleted    | Closed ranges are final
ReconciliationRecord    | Always                              | Append-only history
ComplianceRun + children| Always                              | Scored runs are evidence

updated_at / updated_by_id are audit metadata and may always change.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must provoke a violation on purpose can call
unregister_immutability_listeners() and re-register afterwards.
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    state = inspect(target)
    return [
        attr.key
        for attr in state.mapper.column_attrs
        if attr.key not in _AUDIT_FIELDS
        and state.attrs[attr.key].history.has_changes()
    ]


def _check_append_only_update(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        entity_type = type(target).__name__
        _blocked(
            entity_type,
            target.id,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on {entity_type}",
            field=changed[0],
        )


def _check_append_only_delete(mapper, connection, target):
    entity_type = type(target).__name__
    _blocked(entity_type, target.id, "DELETE", f"{entity_type} rows cannot be deleted")


def _account_has_lines(connection, account_id) -> bool:
    from ledger_kernel.models.journal import JournalLine

    row = connection.execute(
        select(JournalLine.id).where(JournalLine.account_id == account_id).limit(1)
    ).first()
    return row is not None


def _check_account_structural_immutability(mapper, connection, target):
    """Structural fields freeze once the account is referenced by a posted line."""
    from ledger_kernel.models.account import STRUCTURAL_FIELDS

    changed = [
        field for field in STRUCTURAL_FIELDS
        if get_history(target, field).has_changes()
    ]
    if changed and _account_has_lines(connection, target.id):
        _blocked(
            "Account",
            target.id,
            "UPDATE",
            f"Cannot modify '{sorted(changed)[0]}' on an account with posted lines",
            field=sorted(changed)[0],
        )


def _check_account_delete(mapper, connection, target):
    if _account_has_lines(connection, target.id):
        _blocked("Account", target.id, "DELETE", "Account has posted lines")


def _check_fiscal_period_immutability(mapper, connection, target):
    from ledger_kernel.models.fiscal_period import PeriodStatus

    status_history = get_history(target, "status")
    previous = status_history.deleted[0] if status_history.deleted else target.status
    if previous not in (PeriodStatus.CLOSED, PeriodStatus.LOCKED):
        return
    for field in ("start_date", "end_date", "period_name", "organization_id"):
        if get_history(target, field).has_changes():
            _blocked(
                "FiscalPeriod",
                target.id,
                "UPDATE",
                f"Cannot modify '{field}' on a closed period",
                field=field,
            )


def _check_fiscal_period_delete(mapper, connection, target):
    _blocked("FiscalPeriod", target.id, "DELETE", "Fiscal periods cannot be deleted")


def _append_only_models():
    from ledger_kernel.models.compliance import (
        AuditSample,
        ComplianceAnomaly,
        ComplianceCheck,
        ComplianceRun,
        RiskTheme,
    )
    from ledger_kernel.models.journal import JournalEntry, JournalLine
    from ledger_kernel.models.reconciliation import ReconciliationRecord

    return (
        JournalEntry,
        JournalLine,
        ReconciliationRecord,
        ComplianceRun,
        ComplianceCheck,
        RiskTheme,
        ComplianceAnomaly,
        AuditSample,
    )


def _listeners():
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.fiscal_period import FiscalPeriod

    pairs = []
    for model in _append_only_models():
        pairs.append((model, "before_update", _check_append_only_update))
        pairs.append((model, "before_delete", _check_append_only_delete))
    pairs.append((Account, "before_update", _check_account_structural_immutability))
    pairs.append((Account, "before_delete", _check_account_delete))
    pairs.append((FiscalPeriod, "before_update", _check_fiscal_period_immutability))
    pairs.append((FiscalPeriod, "before_delete", _check_fiscal_period_delete))
    return pairs


def register_immutability_listeners():
    """Register all immutability listeners. Safe to call more than once."""
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability listeners.

    WARNING: Only use this in tests that intentionally violate the
    append-only rules to verify detection.
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
