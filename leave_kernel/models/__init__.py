"""ORM models for the leave kernel."""

from leave_kernel.models.employee import EmployeeModel
from leave_kernel.models.leave_balance import LeaveBalanceModel
from leave_kernel.models.leave_request import LeaveRequestModel
from leave_kernel.models.notification import NotificationModel

__all__ = [
    "EmployeeModel",
    "LeaveBalanceModel",
    "LeaveRequestModel",
    "NotificationModel",
]
