"""
Leave domain types (``leave_kernel.domain.leave``).

Responsibility
--------------
Pure value objects for the leave lifecycle: leave kinds, the request
status state machine, request and balance snapshots, and the day-count /
ledger-year rules.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Lifecycle state machine -- ``LEAVE_TRANSITIONS`` defines the only valid
  status transitions.  Approved and rejected have no outgoing edges.
* Day count -- ``total_days = (end - start).days + 1``, computed once at
  creation.
* Ledger year -- a request is charged to the calendar year of its start
  date, even when it runs into the next year.
* Remaining days -- ``LeaveBalance.remaining_days`` is derived, never
  stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from leave_kernel.exceptions import InvalidLeaveTypeError, InvalidRangeError


class LeaveType(str, Enum):
    """Kinds of leave an employee can request."""

    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    EMERGENCY = "emergency"
    MATERNITY = "maternity"
    PATERNITY = "paternity"

    @classmethod
    def parse(cls, value: LeaveType | str) -> LeaveType:
        """Coerce a string to a LeaveType, raising InvalidLeaveTypeError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidLeaveTypeError(str(value)) from None


# =========================================================================
# Request Status Lifecycle
# =========================================================================


class LeaveStatus(str, Enum):
    """Leave request lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


LEAVE_TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.PENDING: frozenset({
        LeaveStatus.APPROVED,
        LeaveStatus.REJECTED,
    }),
    LeaveStatus.APPROVED: frozenset(),
    LeaveStatus.REJECTED: frozenset(),
}

TERMINAL_LEAVE_STATUSES: frozenset[LeaveStatus] = frozenset({
    LeaveStatus.APPROVED,
    LeaveStatus.REJECTED,
})


def can_transition(current: LeaveStatus, target: LeaveStatus) -> bool:
    """Return True if ``current -> target`` is a legal edge."""
    return target in LEAVE_TRANSITIONS.get(current, frozenset())


class LeaveDecision(str, Enum):
    """Decisions an administrator can make on a pending request."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> LeaveStatus:
        if self is LeaveDecision.APPROVE:
            return LeaveStatus.APPROVED
        return LeaveStatus.REJECTED


# =========================================================================
# Day counting and ledger year
# =========================================================================


def compute_total_days(start_date: date, end_date: date) -> int:
    """Inclusive calendar-day count of a leave range.

    Raises:
        InvalidRangeError: if ``end_date`` precedes ``start_date``.
    """
    if end_date < start_date:
        raise InvalidRangeError(start_date.isoformat(), end_date.isoformat())
    return (end_date - start_date).days + 1


def ledger_year(start_date: date) -> int:
    """Ledger year a request is charged to: the year of its start date."""
    return start_date.year


# =========================================================================
# Snapshots
# =========================================================================


@dataclass(frozen=True)
class LeaveRequest:
    """Immutable snapshot of a leave request.

    ``rejection_reason`` is set iff status is rejected, ``approved_by`` iff
    status is approved, ``decided_at`` iff status is not pending.
    """

    request_id: UUID
    employee_id: UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    rejection_reason: str | None = None
    approved_by: UUID | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None

    @property
    def ledger_year(self) -> int:
        return ledger_year(self.start_date)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_LEAVE_STATUSES


@dataclass(frozen=True)
class LeaveBalance:
    """Immutable snapshot of one ledger row (employee, type, year)."""

    employee_id: UUID
    leave_type: LeaveType
    year: int
    total_days: int
    used_days: int

    @property
    def remaining_days(self) -> int:
        return self.total_days - self.used_days

    def can_cover(self, days: int) -> bool:
        """Advisory check; the ledger re-checks atomically on debit."""
        return self.remaining_days >= days
