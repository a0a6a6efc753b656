"""
Typed exception hierarchy for the ledger kernel.

Every error raised by the kernel, the sub-ledger modules, the statutory
compilers and the audit engine is a subclass of LedgerKernelError.  Each
class carries a machine-readable ``code`` class attribute and stores its
context as instance attributes, so callers catch by type and read fields
instead of parsing messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InvalidLineError
    |
    +-- IntegrityError
    |   +-- LedgerIntegrityError
    |
    +-- PeriodError
    |   +-- ClosedPeriodError
    |   +-- PeriodClosingError
    |   +-- PeriodNotFoundError
    |   +-- PeriodAlreadyClosedError
    |   +-- PeriodOverlapError
    |   +-- PeriodGapError
    |   +-- InvalidPeriodTransitionError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |   +-- DuplicateAccountError
    |
    +-- ReversalError
    |   +-- EntryNotFoundError
    |   +-- EntryAlreadyReversedError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- BatchError
    |   +-- DuplicateBatchEntryError
    |
    +-- CalendarError
    |   +-- InvalidFinancialYearError
    |   +-- InvalidPeriodIndexError
    |
    +-- StatutoryError
    |   +-- UnknownStatutoryFormError
    |
    +-- DocumentError
    |   +-- DocumentNotFoundError
    |   +-- DuplicateDocumentError
    |   +-- InvalidDocumentStateError
    |   +-- OverpaymentError
    |
    +-- ReconciliationError
    |   +-- UnknownReconciliationModuleError
    |
    +-- AuditRunError
    |   +-- ComplianceRunNotFoundError
    |
    +-- ConfigurationError

===============================================================================
SEVERITY
===============================================================================

UnbalancedEntryError, InvalidLineError, LedgerIntegrityError and
ImmutabilityViolationError mean the accounting identity or the append-only
contract would be broken.  They must propagate; never catch and continue.

ClosedPeriodError and PeriodClosingError are operator-facing: reject the
post and surface the period.  They are not retried automatically.

Reconciliation variances and empty statutory ranges are data conditions,
not exceptions.
"""


class LedgerKernelError(Exception):
    """Base exception for all ledger kernel errors."""

    code: str = "LEDGER_KERNEL_ERROR"


# Posting


class PostingError(LedgerKernelError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


class InvalidLineError(PostingError):
    """A journal line is malformed (both sides, no side, or negative)."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid journal line {line_index}: {reason}")


# Integrity


class IntegrityError(LedgerKernelError):
    """Base exception for ledger integrity failures."""

    code: str = "INTEGRITY_ERROR"


class LedgerIntegrityError(IntegrityError):
    """
    Trial balance totals disagree.

    Raised as a post-condition of trial balance aggregation.  This is a bug
    or out-of-band data tampering, never a user error.
    """

    code: str = "LEDGER_INTEGRITY_VIOLATION"

    def __init__(self, as_of_date: str, debit_total: str, credit_total: str):
        self.as_of_date = as_of_date
        self.debit_total = debit_total
        self.credit_total = credit_total
        super().__init__(
            f"Ledger out of balance as of {as_of_date}: "
            f"debits={debit_total}, credits={credit_total}"
        )


# Periods


class PeriodError(LedgerKernelError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class ClosedPeriodError(PeriodError):
    """Attempted to post to a closed period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_name: str, entry_date: str):
        self.period_name = period_name
        self.entry_date = entry_date
        super().__init__(
            f"Cannot post to closed period {period_name} (entry_date: {entry_date})"
        )


class PeriodClosingError(PeriodError):
    """Period is mid-close; only the close's own system batch may post."""

    code: str = "PERIOD_CLOSING"

    def __init__(self, period_name: str, entry_date: str):
        self.period_name = period_name
        self.entry_date = entry_date
        super().__init__(
            f"Period {period_name} is closing; posting for {entry_date} rejected"
        )


class PeriodNotFoundError(PeriodError):
    """No period found for the given date or id."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No fiscal period found for: {reference}")


class PeriodAlreadyClosedError(PeriodError):
    """Period is already closed."""

    code: str = "PERIOD_ALREADY_CLOSED"

    def __init__(self, period_name: str):
        self.period_name = period_name
        super().__init__(f"Period {period_name} is already closed")


class PeriodOverlapError(PeriodError):
    """New period date range overlaps with an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(self, new_period_name: str, existing_period_name: str):
        self.new_period_name = new_period_name
        self.existing_period_name = existing_period_name
        super().__init__(
            f"Period {new_period_name} overlaps with {existing_period_name}"
        )


class PeriodGapError(PeriodError):
    """New period would leave uncovered days next to an existing period."""

    code: str = "PERIOD_GAP"

    def __init__(self, new_period_name: str, gap_start: str, gap_end: str):
        self.new_period_name = new_period_name
        self.gap_start = gap_start
        self.gap_end = gap_end
        super().__init__(
            f"Period {new_period_name} leaves a gap from {gap_start} to {gap_end}"
        )


class InvalidPeriodTransitionError(PeriodError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_PERIOD_TRANSITION"

    def __init__(self, period_name: str, from_status: str, to_status: str):
        self.period_name = period_name
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Period {period_name} cannot move from {from_status} to {to_status}"
        )


# Accounts


class AccountError(LedgerKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account not found: {account_code}")


class AccountInactiveError(AccountError):
    """Account is not active for posting."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account is inactive: {account_code}")


class DuplicateAccountError(AccountError):
    """Account code already exists in the organization."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


# Reversals


class ReversalError(LedgerKernelError):
    """Base exception for reversal-related errors."""

    code: str = "REVERSAL_ERROR"


class EntryNotFoundError(ReversalError):
    """Journal entry was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Journal entry not found: {journal_entry_id}")


class EntryAlreadyReversedError(ReversalError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Entry {journal_entry_id} has already been reversed")


# Immutability


class ImmutabilityError(LedgerKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Journal entries and lines, reconciliation records and compliance runs
    are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Batches


class BatchError(LedgerKernelError):
    """Base exception for system batch errors."""

    code: str = "BATCH_ERROR"


class DuplicateBatchEntryError(BatchError):
    """A system batch entry with the same tag was already posted."""

    code: str = "DUPLICATE_BATCH_ENTRY"

    def __init__(self, batch_type: str, batch_date: str, batch_ref: str | None):
        self.batch_type = batch_type
        self.batch_date = batch_date
        self.batch_ref = batch_ref
        super().__init__(
            f"{batch_type} batch entry for {batch_ref or '-'} on {batch_date} already posted"
        )


# Calendar


class CalendarError(LedgerKernelError):
    """Base exception for fiscal calendar errors."""

    code: str = "CALENDAR_ERROR"


class InvalidFinancialYearError(CalendarError):
    """Financial year label is not of the form YYYY-YYYY+1."""

    code: str = "INVALID_FINANCIAL_YEAR"

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Invalid financial year label: {label!r}")


class InvalidPeriodIndexError(CalendarError):
    """Month or quarter index out of range."""

    code: str = "INVALID_PERIOD_INDEX"

    def __init__(self, kind: str, index: int):
        self.kind = kind
        self.index = index
        super().__init__(f"Invalid {kind} index: {index}")


# Statutory returns


class StatutoryError(LedgerKernelError):
    """Base exception for statutory return errors."""

    code: str = "STATUTORY_ERROR"


class UnknownStatutoryFormError(StatutoryError):
    """Form type is not one of the supported returns."""

    code: str = "UNKNOWN_STATUTORY_FORM"

    def __init__(self, form: str):
        self.form = form
        super().__init__(f"Unknown statutory form: {form!r}")


# Sub-ledger documents


class DocumentError(LedgerKernelError):
    """Base exception for sub-ledger document errors."""

    code: str = "DOCUMENT_ERROR"


class DocumentNotFoundError(DocumentError):
    """Invoice, bill, payroll record or asset was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class DuplicateDocumentError(DocumentError):
    """A document with the same number already exists."""

    code: str = "DUPLICATE_DOCUMENT"

    def __init__(self, entity_type: str, reference: str):
        self.entity_type = entity_type
        self.reference = reference
        super().__init__(f"{entity_type} {reference} already exists")


class InvalidDocumentStateError(DocumentError):
    """The document's status does not allow the requested action."""

    code: str = "INVALID_DOCUMENT_STATE"

    def __init__(self, entity_type: str, entity_id: str, status: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} {entity_type} {entity_id} in status '{status}'")


class OverpaymentError(DocumentError):
    """A payment exceeds the document's outstanding amount."""

    code: str = "OVERPAYMENT"

    def __init__(self, entity_type: str, entity_id: str, amount: str, outstanding: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment {amount} exceeds outstanding {outstanding} on {entity_type} {entity_id}"
        )


# Reconciliation


class ReconciliationError(LedgerKernelError):
    """Base exception for reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class UnknownReconciliationModuleError(ReconciliationError):
    """No control account or sub-ledger source is configured for the module."""

    code: str = "UNKNOWN_RECONCILIATION_MODULE"

    def __init__(self, module: str):
        self.module = module
        super().__init__(f"Unknown reconciliation module: {module}")


# Audit runs


class AuditRunError(LedgerKernelError):
    """Base exception for compliance audit errors."""

    code: str = "AUDIT_RUN_ERROR"


class ComplianceRunNotFoundError(AuditRunError):
    """Compliance run was not found."""

    code: str = "COMPLIANCE_RUN_NOT_FOUND"

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Compliance run not found: {run_id}")


# Configuration


class ConfigurationError(LedgerKernelError):
    """Configuration file is missing, malformed or inconsistent."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid configuration{where}: {reason}")
