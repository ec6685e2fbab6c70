"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The close workflow surfaces every precondition failure directly to the
person who can fix it (a supervisor who forgot a reconciliation, an admin
who tried to close too early).  Callers therefore need to branch on the
KIND of failure and read its DATA, never parse a message:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (offending locations, current status)

Example:
    try:
        gateway.request(ApprovalEntityType.PERIOD_CLOSE, period_id, actor_id)
    except LocationsNotReadyError as e:
        return {"code": e.code, "locations": e.locations}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationFailedError
    |
    +-- PeriodError
    |   +-- PeriodNotFoundError
    |   +-- InvalidPeriodStatusError
    |   +-- PeriodNotOpenError
    |   +-- SourceNotClosedError
    |   +-- PeriodAlreadyOpenError
    |   +-- PeriodClosedError
    |   +-- PeriodNotEditableError
    |   +-- InvalidDateRangeError
    |   +-- OverlappingPeriodError
    |   +-- NoLocationsError
    |
    +-- PeriodLocationError
    |   +-- LocationNotFoundError
    |   +-- PeriodLocationNotFoundError
    |   +-- AlreadyClosedError
    |   +-- NotReadyError
    |   +-- LocationsNotReadyError
    |
    +-- ReconciliationError
    |   +-- ReconciliationMissingError
    |   +-- InvalidReconciliationError
    |
    +-- ApprovalError
    |   +-- ApprovalNotFoundError
    |   +-- DuplicateApprovalRequestError
    |   +-- AlreadyProcessedError
    |   +-- UnsupportedEntityTypeError
    |   +-- UnknownEntityTypeError
    |
    +-- PriceError
    |   +-- PricesLockedError
    |   +-- InvalidItemsError
    |   +-- NoPreviousPeriodError
    |   +-- NoPricesFoundError
    |   +-- NoActivePricesError
    |
    +-- SnapshotError
    |   +-- UnsupportedSnapshotVersionError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- TransactionError
        +-- TransactionFailedError

===============================================================================
ERROR CODES
===============================================================================

    Category        | Code                         | Meaning
    ----------------+------------------------------+---------------------------
    Validation      | VALIDATION_ERROR             | Malformed input field
    Period          | PERIOD_NOT_FOUND             | No period with that id
                    | INVALID_PERIOD_STATUS        | Wrong status for action
                    | PERIOD_NOT_OPEN              | Readiness change outside OPEN
                    | PERIOD_NOT_CLOSED            | Roll-forward source not CLOSED
                    | PERIOD_ALREADY_OPEN          | Another period is OPEN
                    | PERIOD_CLOSED                | Write into a CLOSED period
                    | PERIOD_NOT_EDITABLE          | Update outside DRAFT
                    | INVALID_DATE_RANGE           | end_date not after start_date
                    | OVERLAPPING_PERIOD           | Date ranges intersect
                    | NO_LOCATIONS                 | Period has no locations
    Location        | LOCATION_NOT_FOUND           | No location with that id
                    | PERIOD_LOCATION_NOT_FOUND    | Location not in period
                    | LOCATION_ALREADY_CLOSED      | PeriodLocation is CLOSED
                    | LOCATION_NOT_READY           | Unmark on non-READY row
                    | LOCATIONS_NOT_READY          | Close blocked by OPEN rows
    Reconciliation  | RECONCILIATION_NOT_COMPLETED | Ready without reconciliation
                    | INVALID_RECONCILIATION       | Negative stock figure
    Approval        | APPROVAL_NOT_FOUND           | No approval with that id
                    | APPROVAL_ALREADY_EXISTS      | Pending request exists
                    | APPROVAL_ALREADY_PROCESSED   | Approval is terminal
                    | NOT_IMPLEMENTED              | No handler for entity type
                    | UNKNOWN_ENTITY_TYPE          | Entity type not recognised
    Price           | PERIOD_LOCKED                | Prices frozen outside DRAFT
                    | INVALID_ITEMS                | Unknown or inactive items
                    | NO_PREVIOUS_PERIOD           | No closed source period
                    | NO_PRICES_FOUND              | Source has no prices
                    | NO_ACTIVE_PRICES             | Source prices all inactive
    Snapshot        | UNSUPPORTED_SNAPSHOT_VERSION | Unknown snapshot schema
    Immutability    | IMMUTABILITY_VIOLATION       | Write to frozen record
    Transaction     | TRANSACTION_FAILED           | Storage failure, rolled back

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Codes are CLASS attributes so the HTTP layer can map them to status
   codes without instantiating anything.

2. Every piece of context is stored as an attribute.  The structured log
   formatter copies public attributes into ``exc_*`` fields and the HTTP
   layer returns them as ``details``.

3. TransactionFailedError is the only retryable error.  Everything else is
   a deterministic precondition failure that retrying will not fix.

===============================================================================
"""

from typing import Any


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"

    def details(self) -> dict[str, Any]:
        """Public structured attributes, for API error bodies."""
        return {
            k: v for k, v in vars(self).items()
            if not k.startswith("_") and k != "args"
        }


class ValidationFailedError(StockKernelError):
    """An input field failed validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Period-related exceptions


class PeriodError(StockKernelError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class PeriodNotFoundError(PeriodError):
    """No period with the given id."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Period not found: {period_id}")


class InvalidPeriodStatusError(PeriodError):
    """Period is not in a status that permits the requested action."""

    code: str = "INVALID_PERIOD_STATUS"

    def __init__(
        self,
        period_id: str,
        current_status: str,
        expected_status: str,
        action: str,
    ):
        self.period_id = period_id
        self.current_status = current_status
        self.expected_status = expected_status
        self.action = action
        super().__init__(
            f"Cannot {action} period {period_id}: status is {current_status}, "
            f"expected {expected_status}"
        )


class PeriodNotOpenError(PeriodError):
    """Readiness can only change while the period is OPEN."""

    code: str = "PERIOD_NOT_OPEN"

    def __init__(self, period_id: str, current_status: str):
        self.period_id = period_id
        self.current_status = current_status
        super().__init__(
            f"Period {period_id} is {current_status}; readiness can only "
            "be changed while the period is OPEN"
        )


class SourceNotClosedError(PeriodError):
    """Roll-forward requires a CLOSED source period."""

    code: str = "PERIOD_NOT_CLOSED"

    def __init__(self, period_id: str, current_status: str):
        self.period_id = period_id
        self.current_status = current_status
        super().__init__(
            f"Period {period_id} must be CLOSED to roll forward "
            f"(current: {current_status})"
        )


class PeriodAlreadyOpenError(PeriodError):
    """Only one period may be OPEN at a time."""

    code: str = "PERIOD_ALREADY_OPEN"

    def __init__(self, open_period_id: str, open_period_name: str):
        self.open_period_id = open_period_id
        self.open_period_name = open_period_name
        super().__init__(
            f"Period '{open_period_name}' ({open_period_id}) is already open"
        )


class PeriodClosedError(PeriodError):
    """Attempted to write period data into a CLOSED period."""

    code: str = "PERIOD_CLOSED"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Period {period_id} is closed")


class PeriodNotEditableError(PeriodError):
    """Period attributes can only be edited in DRAFT."""

    code: str = "PERIOD_NOT_EDITABLE"

    def __init__(self, period_id: str, current_status: str):
        self.period_id = period_id
        self.current_status = current_status
        super().__init__(
            f"Period {period_id} is {current_status}; only DRAFT periods "
            "can be edited"
        )


class InvalidDateRangeError(PeriodError):
    """end_date must fall after start_date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"End date ({end_date}) must be after start date ({start_date})"
        )


class OverlappingPeriodError(PeriodError):
    """New period date range intersects an existing period."""

    code: str = "OVERLAPPING_PERIOD"

    def __init__(
        self,
        start_date: str,
        end_date: str,
        existing_period_id: str,
        existing_period_name: str,
        existing_start_date: str,
        existing_end_date: str,
    ):
        self.start_date = start_date
        self.end_date = end_date
        self.existing_period_id = existing_period_id
        self.existing_period_name = existing_period_name
        self.existing_start_date = existing_start_date
        self.existing_end_date = existing_end_date
        super().__init__(
            f"Range {start_date} to {end_date} overlaps period "
            f"'{existing_period_name}' ({existing_start_date} to "
            f"{existing_end_date})"
        )


class NoLocationsError(PeriodError):
    """Period has no PeriodLocation rows."""

    code: str = "NO_LOCATIONS"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Period {period_id} has no locations")


# Period-location exceptions


class PeriodLocationError(StockKernelError):
    """Base exception for per-location period state errors."""

    code: str = "PERIOD_LOCATION_ERROR"


class LocationNotFoundError(PeriodLocationError):
    """No location with the given id."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"Location not found: {location_id}")


class PeriodLocationNotFoundError(PeriodLocationError):
    """Location is not part of the period."""

    code: str = "PERIOD_LOCATION_NOT_FOUND"

    def __init__(self, period_id: str, location_id: str):
        self.period_id = period_id
        self.location_id = location_id
        super().__init__(
            f"Location {location_id} is not part of period {period_id}"
        )


class AlreadyClosedError(PeriodLocationError):
    """PeriodLocation is CLOSED and can no longer change."""

    code: str = "LOCATION_ALREADY_CLOSED"

    def __init__(self, period_id: str, location_id: str):
        self.period_id = period_id
        self.location_id = location_id
        super().__init__(
            f"Location {location_id} is already closed for period {period_id}"
        )


class NotReadyError(PeriodLocationError):
    """unmark_ready on a location that is not READY."""

    code: str = "LOCATION_NOT_READY"

    def __init__(self, period_id: str, location_id: str, current_status: str):
        self.period_id = period_id
        self.location_id = location_id
        self.current_status = current_status
        super().__init__(
            f"Location {location_id} is {current_status}, not READY, "
            f"in period {period_id}"
        )


class LocationsNotReadyError(PeriodLocationError):
    """
    Close is blocked by locations that have not been marked READY.

    ``locations`` lists every offending location as a dict with
    location_id, location_code, location_name and status.
    """

    code: str = "LOCATIONS_NOT_READY"

    def __init__(self, period_id: str, locations: list[dict[str, str]]):
        self.period_id = period_id
        self.locations = locations
        names = ", ".join(loc["location_name"] for loc in locations)
        super().__init__(
            f"{len(locations)} location(s) not ready in period "
            f"{period_id}: {names}"
        )


# Reconciliation-related exceptions


class ReconciliationError(StockKernelError):
    """Base exception for reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class ReconciliationMissingError(ReconciliationError):
    """A location cannot be marked READY without a saved reconciliation."""

    code: str = "RECONCILIATION_NOT_COMPLETED"

    def __init__(self, period_id: str, location_id: str):
        self.period_id = period_id
        self.location_id = location_id
        super().__init__(
            f"Reconciliation must be completed for location {location_id} "
            f"in period {period_id} before marking it ready"
        )


class InvalidReconciliationError(ReconciliationError):
    """A reconciliation figure is out of range."""

    code: str = "INVALID_RECONCILIATION"

    def __init__(self, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid reconciliation {field}={value}: {reason}")


# Approval-related exceptions


class ApprovalError(StockKernelError):
    """Base exception for approval errors."""

    code: str = "APPROVAL_ERROR"


class ApprovalNotFoundError(ApprovalError):
    """No approval with the given id."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, approval_id: str):
        self.approval_id = approval_id
        super().__init__(f"Approval not found: {approval_id}")


class DuplicateApprovalRequestError(ApprovalError):
    """A PENDING approval already exists for the entity."""

    code: str = "APPROVAL_ALREADY_EXISTS"

    def __init__(self, entity_type: str, entity_id: str, approval_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.approval_id = approval_id
        super().__init__(
            f"A pending {entity_type} approval ({approval_id}) already "
            f"exists for {entity_id}"
        )


class AlreadyProcessedError(ApprovalError):
    """
    Approval is no longer PENDING.

    Also raised to the loser of a concurrent approve/reject race.  Not
    retryable: the decision has already been made.
    """

    code: str = "APPROVAL_ALREADY_PROCESSED"

    def __init__(self, approval_id: str, current_status: str):
        self.approval_id = approval_id
        self.current_status = current_status
        super().__init__(
            f"Approval {approval_id} has already been processed "
            f"(status: {current_status})"
        )


class UnsupportedEntityTypeError(ApprovalError):
    """Entity type is known but has no registered handler."""

    code: str = "NOT_IMPLEMENTED"

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"{entity_type} approvals are not supported")


class UnknownEntityTypeError(ApprovalError):
    """Entity type tag is not recognised."""

    code: str = "UNKNOWN_ENTITY_TYPE"

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Unknown approval entity type: {entity_type}")


# Price-related exceptions


class PriceError(StockKernelError):
    """Base exception for period price errors."""

    code: str = "PRICE_ERROR"


class PricesLockedError(PriceError):
    """Period prices are frozen once the period leaves DRAFT."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_id: str, current_status: str):
        self.period_id = period_id
        self.current_status = current_status
        super().__init__(
            f"Prices for period {period_id} are locked "
            f"(status: {current_status})"
        )


class InvalidItemsError(PriceError):
    """Price submitted for unknown or inactive items."""

    code: str = "INVALID_ITEMS"

    def __init__(self, item_ids: list[str]):
        self.item_ids = item_ids
        super().__init__(
            f"Unknown or inactive items: {', '.join(item_ids)}"
        )


class NoPreviousPeriodError(PriceError):
    """No CLOSED period precedes the target period."""

    code: str = "NO_PREVIOUS_PERIOD"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(
            f"No closed period found before period {period_id}"
        )


class NoPricesFoundError(PriceError):
    """Source period has no prices to copy."""

    code: str = "NO_PRICES_FOUND"

    def __init__(self, source_period_id: str):
        self.source_period_id = source_period_id
        super().__init__(f"Period {source_period_id} has no prices")


class NoActivePricesError(PriceError):
    """Every source price belongs to an inactive item."""

    code: str = "NO_ACTIVE_PRICES"

    def __init__(self, source_period_id: str):
        self.source_period_id = source_period_id
        super().__init__(
            f"Period {source_period_id} has no prices for active items"
        )


# Snapshot-related exceptions


class SnapshotError(StockKernelError):
    """Base exception for snapshot errors."""

    code: str = "SNAPSHOT_ERROR"


class UnsupportedSnapshotVersionError(SnapshotError):
    """Stored snapshot payload has an unknown schema version."""

    code: str = "UNSUPPORTED_SNAPSHOT_VERSION"

    def __init__(self, version: Any, supported: tuple[int, ...]):
        self.version = version
        self.supported = list(supported)
        super().__init__(
            f"Snapshot schema version {version} is not supported "
            f"(supported: {', '.join(str(v) for v in supported)})"
        )


# Immutability-related exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify a frozen record.

    CLOSED PeriodLocations (and their snapshots) and terminal approvals
    are immutable.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Transaction-related exceptions


class TransactionError(StockKernelError):
    """Base exception for storage transaction errors."""

    code: str = "TRANSACTION_ERROR"


class TransactionFailedError(TransactionError):
    """
    Storage failure inside an atomic operation.

    The transaction has been (or must be) rolled back in full; nothing
    partial is visible.  Safe to retry.
    """

    code: str = "TRANSACTION_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        self.retryable = True
        super().__init__(f"{operation} failed and was rolled back: {reason}")
