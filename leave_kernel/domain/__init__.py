"""
Pure domain layer.

This module contains immutable value objects and domain rules with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (SystemClock excepted)
"""

from leave_kernel.domain.access import (
    ADMIN_ACTIONS,
    OWNER_ACTIONS,
    Action,
    Capability,
    EmployeeProfile,
    Principal,
    Role,
)
from leave_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from leave_kernel.domain.leave import (
    LEAVE_TRANSITIONS,
    TERMINAL_LEAVE_STATUSES,
    LeaveBalance,
    LeaveDecision,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    can_transition,
    compute_total_days,
    ledger_year,
)
from leave_kernel.domain.notifications import (
    InboxNotification,
    NotificationEvent,
    NotificationKind,
    NotificationSink,
)

__all__ = [
    "ADMIN_ACTIONS",
    "OWNER_ACTIONS",
    "Action",
    "Capability",
    "EmployeeProfile",
    "Principal",
    "Role",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "LEAVE_TRANSITIONS",
    "TERMINAL_LEAVE_STATUSES",
    "LeaveBalance",
    "LeaveDecision",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "can_transition",
    "compute_total_days",
    "ledger_year",
    "InboxNotification",
    "NotificationEvent",
    "NotificationKind",
    "NotificationSink",
]
