"""Services for the leave kernel (write side and entry points)."""

from leave_kernel.services.approval_workflow import ApprovalWorkflow
from leave_kernel.services.authorization_guard import AuthorizationGuard
from leave_kernel.services.balance_ledger import BalanceLedger
from leave_kernel.services.employee_directory import EmployeeDirectory
from leave_kernel.services.leave_orchestrator import LeaveOrchestrator
from leave_kernel.services.notification_dispatcher import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
    NotificationDispatcher,
)
from leave_kernel.services.notification_inbox import (
    DatabaseNotificationSink,
    NotificationInbox,
)
from leave_kernel.services.request_registry import RequestRegistry

__all__ = [
    "ApprovalWorkflow",
    "AuthorizationGuard",
    "BalanceLedger",
    "DatabaseNotificationSink",
    "EmployeeDirectory",
    "InMemoryNotificationSink",
    "LeaveOrchestrator",
    "LoggingNotificationSink",
    "NotificationDispatcher",
    "NotificationInbox",
    "RequestRegistry",
]
