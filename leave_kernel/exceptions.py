"""
Typed Exception Hierarchy for the Leave Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (an HTTP layer, an RPC handler, a batch job) must be
able to tell three situations apart without parsing message strings:

  - "your input was wrong"         -> category ``invalid_input`` / ``conflict``
  - "you are not allowed"          -> category ``denied``
  - "try again later"              -> category ``unavailable`` (retryable)

Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. A CATEGORY class attribute (transport mapping)
  4. Structured DATA attributes (not just a message string)

Example:
    try:
        orchestrator.approve(admin, request_id)
    except InsufficientBalanceError as e:
        api_response(code=e.code, remaining=e.remaining_days)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LeaveKernelError (base)
    |
    +-- AccessDeniedError
    |
    +-- ValidationError
    |   +-- InvalidRangeError
    |   +-- InvalidReasonError
    |   +-- InvalidLeaveTypeError
    |   +-- MissingReasonError
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- BalanceNotFoundError
    |   +-- EmployeeNotFoundError
    |
    +-- LifecycleError
    |   +-- AlreadyDecidedError
    |   +-- RequestImmutableError
    |
    +-- LedgerError
    |   +-- NoAllocationError
    |   +-- InsufficientBalanceError
    |   +-- DuplicateAllocationError
    |
    +-- StoreUnavailableError
    |
    +-- StoreIntegrityError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                   | When Raised
--------------|------------------------|-----------------------------------------
denied        | DENIED                 | Inactive caller, wrong role, not owner
invalid_input | INVALID_RANGE          | end_date before start_date
              | INVALID_REASON         | Blank reason on submission
              | INVALID_LEAVE_TYPE     | Unknown leave type string
              | MISSING_REASON         | Reject without a rejection reason
not_found     | REQUEST_NOT_FOUND      | Unknown leave request id
              | BALANCE_NOT_FOUND      | No ledger row for employee/type/year
              | EMPLOYEE_NOT_FOUND     | No profile row for the principal
conflict      | ALREADY_DECIDED        | Request is no longer pending
              | REQUEST_IMMUTABLE      | Delete or field edit on a request
              | NO_ALLOCATION          | Debit against a missing ledger row
              | INSUFFICIENT_BALANCE   | Debit larger than remaining days
              | DUPLICATE_ALLOCATION   | Provisioning an existing ledger row
              | STORE_CONSTRAINT       | Write rejected by a store constraint
unavailable   | STORE_UNAVAILABLE      | Store timeout / connection failure

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Only StoreUnavailableError is retryable.  ``decide`` is idempotent by
   request id: a retry on an already-decided request returns
   AlreadyDecidedError and never double-applies a debit.

2. StoreUnavailableError and StoreIntegrityError never carry the driver's
   message.  The original exception is chained with ``raise ... from``
   and logged.

===============================================================================
"""


class LeaveKernelError(Exception):
    """
    Base exception for all leave kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEAVE_KERNEL_ERROR"
    category: str = "internal"
    retryable: bool = False


# Authorization


class AccessDeniedError(LeaveKernelError):
    """Caller is not allowed to perform the action."""

    code: str = "DENIED"
    category: str = "denied"

    INACTIVE = "inactive"
    INSUFFICIENT_ROLE = "insufficient_role"
    NOT_OWNER = "not_owner"

    def __init__(self, actor_id: str, action: str, reason: str):
        self.actor_id = actor_id
        self.action = action
        self.reason = reason
        super().__init__(f"Access denied for {actor_id} on '{action}': {reason}")


# Input validation


class ValidationError(LeaveKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"
    category: str = "invalid_input"


class InvalidRangeError(ValidationError):
    """Leave end date precedes its start date."""

    code: str = "INVALID_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"End date {end_date} is before start date {start_date}"
        )


class InvalidReasonError(ValidationError):
    """Leave reason is empty after trimming."""

    code: str = "INVALID_REASON"

    def __init__(self):
        super().__init__("Leave reason must not be empty")


class InvalidLeaveTypeError(ValidationError):
    """Leave type is not one of the supported kinds."""

    code: str = "INVALID_LEAVE_TYPE"

    def __init__(self, leave_type: str):
        self.leave_type = leave_type
        super().__init__(f"Unknown leave type: {leave_type!r}")


class MissingReasonError(ValidationError):
    """A rejection was attempted without a rejection reason."""

    code: str = "MISSING_REASON"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(
            f"Rejecting leave request {request_id} requires a reason"
        )


# Lookup failures


class NotFoundError(LeaveKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    category: str = "not_found"


class RequestNotFoundError(NotFoundError):
    """Leave request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Leave request not found: {request_id}")


class BalanceNotFoundError(NotFoundError):
    """No ledger row exists for employee/type/year."""

    code: str = "BALANCE_NOT_FOUND"

    def __init__(self, employee_id: str, leave_type: str, year: int):
        self.employee_id = employee_id
        self.leave_type = leave_type
        self.year = year
        super().__init__(
            f"No {leave_type} balance for employee {employee_id} in {year}"
        )


class EmployeeNotFoundError(NotFoundError):
    """
    No profile row exists for the principal.

    Reported explicitly; the kernel never synthesizes a stand-in profile.
    """

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


# Request lifecycle


class LifecycleError(LeaveKernelError):
    """Base exception for illegal request state changes."""

    code: str = "LIFECYCLE_ERROR"
    category: str = "conflict"


class AlreadyDecidedError(LifecycleError):
    """The request has left the pending state."""

    code: str = "ALREADY_DECIDED"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Leave request {request_id} is already {status}"
        )


class RequestImmutableError(LifecycleError):
    """Leave requests are never deleted and their terms never change."""

    code: str = "REQUEST_IMMUTABLE"

    def __init__(self, request_id: str, reason: str):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Leave request {request_id} is immutable: {reason}")


# Balance ledger


class LedgerError(LeaveKernelError):
    """Base exception for balance ledger failures."""

    code: str = "LEDGER_ERROR"
    category: str = "conflict"


class NoAllocationError(LedgerError):
    """Debit against a ledger row that was never provisioned."""

    code: str = "NO_ALLOCATION"

    def __init__(self, employee_id: str, leave_type: str, year: int):
        self.employee_id = employee_id
        self.leave_type = leave_type
        self.year = year
        super().__init__(
            f"No {leave_type} allocation for employee {employee_id} in {year}"
        )


class InsufficientBalanceError(LedgerError):
    """Debit exceeds the remaining days on the ledger row."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        employee_id: str,
        leave_type: str,
        year: int,
        requested_days: int,
        remaining_days: int,
    ):
        self.employee_id = employee_id
        self.leave_type = leave_type
        self.year = year
        self.requested_days = requested_days
        self.remaining_days = remaining_days
        super().__init__(
            f"Insufficient {leave_type} balance for employee {employee_id} "
            f"in {year}: requested {requested_days}, remaining {remaining_days}"
        )


class DuplicateAllocationError(LedgerError):
    """A ledger row already exists for employee/type/year."""

    code: str = "DUPLICATE_ALLOCATION"

    def __init__(self, employee_id: str, leave_type: str, year: int):
        self.employee_id = employee_id
        self.leave_type = leave_type
        self.year = year
        super().__init__(
            f"{leave_type} allocation for employee {employee_id} in {year} "
            f"already exists"
        )


# Infrastructure


class StoreUnavailableError(LeaveKernelError):
    """
    Transient store failure (timeout, lost connection, lock wait).

    The caller may retry the whole operation.
    """

    code: str = "STORE_UNAVAILABLE"
    category: str = "unavailable"
    retryable: bool = True

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Leave store unavailable during '{operation}', retry later"
        )


class StoreIntegrityError(LeaveKernelError):
    """
    A write was refused by a store constraint (foreign key, unique, check).

    Not retryable: the same write fails the same way.
    """

    code: str = "STORE_CONSTRAINT"
    category: str = "conflict"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Leave store rejected the write during '{operation}'"
        )
