"""
Module: leave_kernel.selectors.dashboard_selector
Responsibility: Headline counts for the administrator dashboard: employees
    (total / active) and leave requests per status.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select

from leave_kernel.domain.leave import LeaveStatus
from leave_kernel.models.employee import EmployeeModel
from leave_kernel.models.leave_request import LeaveRequestModel
from leave_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class DashboardStats:
    """Snapshot of the dashboard counters."""

    total_employees: int
    active_employees: int
    pending_requests: int
    approved_requests: int
    rejected_requests: int

    @property
    def total_requests(self) -> int:
        return self.pending_requests + self.approved_requests + self.rejected_requests


class DashboardSelector(BaseSelector):
    """Aggregate counts, one query per table."""

    def stats(self) -> DashboardStats:
        total_employees, active_employees = self.session.execute(
            select(
                func.count(EmployeeModel.id),
                func.count(EmployeeModel.id).filter(EmployeeModel.is_active.is_(True)),
            )
        ).one()

        by_status = dict(
            self.session.execute(
                select(LeaveRequestModel.status, func.count(LeaveRequestModel.id))
                .group_by(LeaveRequestModel.status)
            ).all()
        )

        return DashboardStats(
            total_employees=total_employees,
            active_employees=active_employees,
            pending_requests=by_status.get(LeaveStatus.PENDING.value, 0),
            approved_requests=by_status.get(LeaveStatus.APPROVED.value, 0),
            rejected_requests=by_status.get(LeaveStatus.REJECTED.value, 0),
        )
