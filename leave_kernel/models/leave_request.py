"""
Module: leave_kernel.models.leave_request
Responsibility: ORM persistence for leave requests.

Architecture position: Kernel > Models.  May import from db/base.py,
    domain/ value objects and exceptions.

Invariants enforced:
    - Valid status and leave_type values (check constraints).
    - start_date <= end_date and total_days >= 1 (check constraints).
    - decided_at is set iff status is not pending; approved_by iff
      approved; rejection_reason iff rejected (check constraints).
    - Requests are never deleted and their terms (employee, type, dates,
      total_days, reason, created_at) never change (ORM listeners).
    - Status changes go through RequestRegistry.transition, a conditional
      UPDATE on status = 'pending'.

Failure modes:
    - IntegrityError if a write violates a check constraint.
    - RequestImmutableError on ORM delete or term mutation.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    event,
    func,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column

from leave_kernel.db.base import Base, UTCDateTime, UUIDString
from leave_kernel.domain.leave import LeaveRequest, LeaveStatus, LeaveType
from leave_kernel.exceptions import RequestImmutableError

# Columns fixed at creation.
IMMUTABLE_REQUEST_FIELDS: tuple[str, ...] = (
    "employee_id",
    "leave_type",
    "start_date",
    "end_date",
    "total_days",
    "reason",
    "created_at",
)


class LeaveRequestModel(Base):
    """Persistent leave request.

    Contract:
        Only status, rejection_reason, approved_by and decided_at change
        after creation, and only once (pending -> approved | rejected).
    """

    __tablename__ = "leave_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_leave_requests_valid_status",
        ),
        CheckConstraint(
            "leave_type IN ('vacation', 'sick', 'personal', 'emergency', "
            "'maternity', 'paternity')",
            name="ck_leave_requests_valid_type",
        ),
        CheckConstraint(
            "end_date >= start_date",
            name="ck_leave_requests_date_range",
        ),
        CheckConstraint(
            "total_days >= 1",
            name="ck_leave_requests_total_days",
        ),
        CheckConstraint(
            "(status = 'pending') = (decided_at IS NULL)",
            name="ck_leave_requests_decided_at",
        ),
        CheckConstraint(
            "(status = 'approved') = (approved_by IS NOT NULL)",
            name="ck_leave_requests_approved_by",
        ),
        CheckConstraint(
            "(status = 'rejected') = (rejection_reason IS NOT NULL)",
            name="ck_leave_requests_rejection_reason",
        ),
        # list_by_employee(): newest first
        Index("ix_leave_requests_employee_created", "employee_id", "created_at"),
        # list_all(status): newest first
        Index("ix_leave_requests_status_created", "status", "created_at"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[int] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeaveStatus.PENDING.value,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<LeaveRequest {self.id} employee={self.employee_id} "
            f"{self.leave_type} {self.start_date}..{self.end_date} "
            f"status={self.status}>"
        )

    def to_dto(self) -> LeaveRequest:
        """Convert ORM model to frozen domain DTO."""
        return LeaveRequest(
            request_id=self.id,
            employee_id=self.employee_id,
            leave_type=LeaveType(self.leave_type),
            start_date=self.start_date,
            end_date=self.end_date,
            total_days=self.total_days,
            reason=self.reason,
            status=LeaveStatus(self.status),
            rejection_reason=self.rejection_reason,
            approved_by=self.approved_by,
            created_at=self.created_at,
            decided_at=self.decided_at,
        )


# =============================================================================
# ORM-Level Immutability
# =============================================================================


@event.listens_for(LeaveRequestModel, "before_update")
def prevent_term_update(mapper, connection, target):
    """Refuse ORM updates that touch the request's fixed terms."""
    state = inspect(target)
    changed = [
        name for name in IMMUTABLE_REQUEST_FIELDS
        if state.attrs[name].history.has_changes()
    ]
    if changed:
        raise RequestImmutableError(
            str(target.id), f"cannot modify {', '.join(changed)}",
        )


@event.listens_for(LeaveRequestModel, "before_delete")
def prevent_request_delete(mapper, connection, target):
    """Leave requests are never deleted."""
    raise RequestImmutableError(str(target.id), "leave requests cannot be deleted")
