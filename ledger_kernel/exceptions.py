"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (collaborator modules, HTTP adapters, batch jobs) must
react to failures precisely.  Parsing error messages is fragile, so:
  1. Every failure has its own exception class (catch by type).
  2. Every class has a `code` attribute (machine-readable, API-safe).
  3. Exceptions carry structured data (ids, amounts, field names).

Example:
    try:
        posting.submit(entry_date=d, narration="Sale", lines=lines)
    except UnbalancedEntryError as e:
        api_response(code=e.code, debits=e.debits, credits=e.credits)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError                 input rejected before any write
    |   +-- UnbalancedEntryError
    |   +-- InvalidAccountError
    |   +-- InvalidPartyError
    |   +-- InvalidLineError
    |   +-- MissingFieldError
    |   +-- InvalidHierarchyError
    |   +-- DateOutsidePeriodError
    |
    +-- ConflictError                   state does not allow the operation
    |   +-- DuplicateCodeError
    |   +-- ImmutableSystemAccountError
    |   +-- SystemAccountError
    |   +-- HasChildrenError
    |   +-- AccountReferencedError
    |   +-- EntryNotDraftError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |   +-- EntrySettledError
    |   +-- LockedPeriodError
    |   +-- PeriodOverlapError
    |
    +-- NotFoundError                   always tenant scoped
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |   +-- PartyNotFoundError
    |   +-- PeriodNotFoundError
    |
    +-- ImmutabilityViolationError      ORM guard on posted rows

    IntegrityWarning (UserWarning)      out-of-balance report; never raised

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|--------------------------------------
Validation   | UNBALANCED_ENTRY          | |debits - credits| >= 0.01
             | INVALID_ACCOUNT           | Missing, inactive or group account
             | INVALID_PARTY             | Unknown or inactive party on a line
             | INVALID_LINE              | Negative amount or 0/0 line
             | MISSING_FIELD             | Required field empty
             | INVALID_HIERARCHY         | Bad parent, cycle, category mismatch
             | DATE_OUTSIDE_PERIOD       | Entry date not inside the period
-------------|---------------------------|--------------------------------------
Conflict     | DUPLICATE_CODE            | Code already used in the tenant
             | IMMUTABLE_SYSTEM_ACCOUNT  | Structural change to system account
             | SYSTEM_ACCOUNT            | Deleting a system account
             | HAS_CHILDREN              | Account is a parent
             | ACCOUNT_REFERENCED        | Account has journal lines
             | ENTRY_NOT_DRAFT           | Editing/posting a non-draft
             | ENTRY_NOT_POSTED          | Reversing a non-posted entry
             | ENTRY_ALREADY_REVERSED    | Reversing twice
             | ENTRY_SETTLED             | Settlement recorded against entry
             | PERIOD_LOCKED             | Writing into a locked period
             | PERIOD_OVERLAP            | Period ranges intersect
-------------|---------------------------|--------------------------------------
Not found    | ACCOUNT_NOT_FOUND, ENTRY_NOT_FOUND, PARTY_NOT_FOUND,
             | PERIOD_NOT_FOUND
-------------|---------------------------|--------------------------------------
Immutability | IMMUTABILITY_VIOLATION    | Posted entry/line modified

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError/KeyError: domain failures are
   caught as a group and never confused with programming errors.
2. `code` is a class attribute so it is available without instantiation.
3. The three category bases map one-to-one onto API outcomes
   (422 / 409 / 404); adapters translate by category, not by message.
4. IntegrityWarning is a warning, not an error: an out-of-balance trial
   balance is reported with is_balanced=False and the data is still
   returned.
===============================================================================
"""


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses carry a `code` class attribute.
    """

    code: str = "LEDGER_ERROR"


# Validation


class ValidationError(LedgerError):
    """Input rejected before anything was written."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits within tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, difference: str):
        self.debits = debits
        self.credits = credits
        self.difference = difference
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits}, "
            f"difference={difference}"
        )


class InvalidAccountError(ValidationError):
    """Account cannot be posted to."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Invalid account {account_id}: {reason}")


class InvalidPartyError(ValidationError):
    """Party referenced by a line is unknown or inactive."""

    code: str = "INVALID_PARTY"

    def __init__(self, party_id: str, reason: str):
        self.party_id = party_id
        self.reason = reason
        super().__init__(f"Invalid party {party_id}: {reason}")


class InvalidLineError(ValidationError):
    """A journal line carries an invalid amount pair."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid line {line_index}: {reason}")


class MissingFieldError(ValidationError):
    """A required field was empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class InvalidHierarchyError(ValidationError):
    """Parent assignment would break the account forest."""

    code: str = "INVALID_HIERARCHY"

    def __init__(self, account_code: str, parent_id: str | None, reason: str):
        self.account_code = account_code
        self.parent_id = parent_id
        self.reason = reason
        super().__init__(
            f"Invalid parent {parent_id} for account {account_code}: {reason}"
        )


class DateOutsidePeriodError(ValidationError):
    """Entry date is not inside the target period."""

    code: str = "DATE_OUTSIDE_PERIOD"

    def __init__(self, entry_date: str, period_code: str):
        self.entry_date = entry_date
        self.period_code = period_code
        super().__init__(
            f"Date {entry_date} is outside period {period_code}"
        )


# Conflict


class ConflictError(LedgerError):
    """Current state does not allow the requested operation."""

    code: str = "CONFLICT"


class DuplicateCodeError(ConflictError):
    """Code already exists within the tenant."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity_type: str, entity_code: str):
        self.entity_type = entity_type
        self.entity_code = entity_code
        super().__init__(f"{entity_type} code already exists: {entity_code}")


class ImmutableSystemAccountError(ConflictError):
    """Structural field of a system account cannot change."""

    code: str = "IMMUTABLE_SYSTEM_ACCOUNT"

    def __init__(self, account_code: str, field_name: str):
        self.account_code = account_code
        self.field_name = field_name
        super().__init__(
            f"System account {account_code}: field '{field_name}' is immutable"
        )


class SystemAccountError(ConflictError):
    """System accounts cannot be deleted."""

    code: str = "SYSTEM_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"System account {account_code} cannot be deleted")


class HasChildrenError(ConflictError):
    """Account is the parent of other accounts."""

    code: str = "HAS_CHILDREN"

    def __init__(self, account_code: str, child_count: int):
        self.account_code = account_code
        self.child_count = child_count
        super().__init__(
            f"Account {account_code} has {child_count} child account(s)"
        )


class AccountReferencedError(ConflictError):
    """Account has journal lines and cannot be deleted or regrouped."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_code: str, line_count: int):
        self.account_code = account_code
        self.line_count = line_count
        super().__init__(
            f"Account {account_code} is referenced by {line_count} journal line(s); "
            f"deactivate it instead"
        )


class EntryNotDraftError(ConflictError):
    """Only draft entries can be edited or posted."""

    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Journal entry {entry_id} is {status}, not draft")


class EntryNotPostedError(ConflictError):
    """Only posted entries can be reversed."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Journal entry {entry_id} is {status}, only posted entries can be reversed"
        )


class EntryAlreadyReversedError(ConflictError):
    """Entry was already reversed or cancelled."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversed_by_id: str | None = None):
        self.entry_id = entry_id
        self.reversed_by_id = reversed_by_id
        super().__init__(f"Journal entry {entry_id} is already reversed")


class EntrySettledError(ConflictError):
    """Settlements recorded against the entry block reversal/cancellation."""

    code: str = "ENTRY_SETTLED"

    def __init__(self, entry_id: str, settled_amount: str):
        self.entry_id = entry_id
        self.settled_amount = settled_amount
        super().__init__(
            f"Journal entry {entry_id} has settled amount {settled_amount}"
        )


class LockedPeriodError(ConflictError):
    """Writes into a locked period are rejected."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_code: str, entry_date: str | None = None):
        self.period_code = period_code
        self.entry_date = entry_date
        super().__init__(f"Period {period_code} is locked")


class PeriodOverlapError(ConflictError):
    """Period date range intersects an existing period of the tenant."""

    code: str = "PERIOD_OVERLAP"

    def __init__(self, new_period: str, existing_period: str):
        self.new_period = new_period
        self.existing_period = existing_period
        super().__init__(
            f"Period {new_period} overlaps existing period {existing_period}"
        )


# Not found


class NotFoundError(LedgerError):
    """Entity does not exist in the caller's tenant."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class EntryNotFoundError(NotFoundError):
    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class PartyNotFoundError(NotFoundError):
    code: str = "PARTY_NOT_FOUND"

    def __init__(self, party_id: str):
        self.party_id = party_id
        super().__init__(f"Party not found: {party_id}")


class PeriodNotFoundError(NotFoundError):
    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No accounting period for {reference}")


# Immutability


class ImmutabilityViolationError(LedgerError):
    """Attempt to modify a posted journal entry or line."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Warnings


class IntegrityWarning(UserWarning):
    """A report that should balance does not (difference beyond tolerance)."""

    code: str = "INTEGRITY_WARNING"

    def __init__(self, report: str, difference: str):
        self.report = report
        self.difference = difference
        super().__init__(f"{report} is out of balance by {difference}")
