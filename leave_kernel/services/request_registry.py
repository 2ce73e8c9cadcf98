"""
leave_kernel.services.request_registry -- Leave request records and status machine.

Responsibility:
    Creates leave requests, reads them back, and owns the only mutation
    path for a request's status.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - total_days = (end - start).days + 1, computed once at creation.
    - Status moves only pending -> approved | rejected (LEAVE_TRANSITIONS).
      ``transition`` is a single conditional UPDATE guarded by
      ``status = 'pending'``, so of two concurrent transitions exactly one
      matches a row and the other observes AlreadyDecidedError.
    - rejection_reason is present iff rejected; approved_by iff approved;
      decided_at iff decided.

Failure modes:
    - InvalidRangeError if end_date < start_date.
    - InvalidReasonError if the reason is blank after trimming.
    - InvalidLeaveTypeError for an unknown leave type.
    - RequestNotFoundError for an unknown id.
    - AlreadyDecidedError if the request is no longer pending.
    - MissingReasonError when rejecting without a reason.

Balance sufficiency is NOT checked here.  It is advisory at submission and
enforced by BalanceLedger.debit at approval time.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select, update

from leave_kernel.domain.leave import (
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    can_transition,
    compute_total_days,
)
from leave_kernel.exceptions import (
    AlreadyDecidedError,
    InvalidReasonError,
    MissingReasonError,
    RequestNotFoundError,
)
from leave_kernel.logging_config import get_logger
from leave_kernel.models.leave_request import LeaveRequestModel
from leave_kernel.services.base import BaseService

logger = get_logger("services.request_registry")


class RequestRegistry(BaseService):
    """Owns leave request rows and their status transitions."""

    def create(
        self,
        employee_id: UUID,
        leave_type: LeaveType | str,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> LeaveRequest:
        """Persist a new pending request and return its snapshot."""
        kind = LeaveType.parse(leave_type)
        total_days = compute_total_days(start_date, end_date)
        cleaned_reason = (reason or "").strip()
        if not cleaned_reason:
            raise InvalidReasonError()

        model = LeaveRequestModel(
            id=uuid4(),
            employee_id=employee_id,
            leave_type=kind.value,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            reason=cleaned_reason,
            status=LeaveStatus.PENDING.value,
            created_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "leave_request_created",
            extra={
                "request_id": str(model.id),
                "employee_id": str(employee_id),
                "leave_type": kind.value,
                "total_days": total_days,
            },
        )
        return model.to_dto()

    def get(self, request_id: UUID) -> LeaveRequest:
        """Return the request snapshot or raise RequestNotFoundError."""
        return self._load(request_id).to_dto()

    def get_for_update(self, request_id: UUID) -> LeaveRequest:
        """Return the request snapshot while holding its row lock.

        PostgreSQL takes ``SELECT ... FOR UPDATE``; a concurrent decider on
        the same request waits here and then sees the committed status.
        """
        return self._load(request_id, for_update=True).to_dto()

    def list_by_employee(self, employee_id: UUID) -> list[LeaveRequest]:
        """All requests of one employee, newest first."""
        models = self.session.execute(
            select(LeaveRequestModel)
            .where(LeaveRequestModel.employee_id == employee_id)
            .order_by(
                LeaveRequestModel.created_at.desc(),
                LeaveRequestModel.id.desc(),
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def list_all(self, status: LeaveStatus | str | None = None) -> list[LeaveRequest]:
        """All requests, optionally filtered by status, newest first."""
        stmt = select(LeaveRequestModel)
        if status is not None:
            stmt = stmt.where(LeaveRequestModel.status == LeaveStatus(status).value)
        models = self.session.execute(
            stmt.order_by(
                LeaveRequestModel.created_at.desc(),
                LeaveRequestModel.id.desc(),
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def transition(
        self,
        request_id: UUID,
        new_status: LeaveStatus | str,
        decided_by: UUID,
        rejection_reason: str | None = None,
    ) -> LeaveRequest:
        """Move a pending request to approved or rejected.

        The status check and the write are one conditional UPDATE.
        """
        target = LeaveStatus(new_status)
        if not can_transition(LeaveStatus.PENDING, target):
            raise ValueError(f"Not a decision status: {target.value}")

        values: dict = {
            "status": target.value,
            "decided_at": self.clock.now(),
        }
        if target is LeaveStatus.APPROVED:
            values["approved_by"] = decided_by
        else:
            cleaned = (rejection_reason or "").strip()
            if not cleaned:
                raise MissingReasonError(str(request_id))
            values["rejection_reason"] = cleaned

        result = self.session.execute(
            update(LeaveRequestModel)
            .where(
                LeaveRequestModel.id == request_id,
                LeaveRequestModel.status == LeaveStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            current = self._load(request_id, refresh=True)
            raise AlreadyDecidedError(str(request_id), current.status)

        model = self._load(request_id, refresh=True)
        logger.info(
            "leave_request_transitioned",
            extra={
                "request_id": str(request_id),
                "new_status": target.value,
                "decided_by": str(decided_by),
            },
        )
        return model.to_dto()

    def _load(
        self,
        request_id: UUID,
        *,
        for_update: bool = False,
        refresh: bool = False,
    ) -> LeaveRequestModel:
        """Load request model by id, raise if not found."""
        stmt = select(LeaveRequestModel).where(LeaveRequestModel.id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        if for_update or refresh:
            stmt = stmt.execution_options(populate_existing=True)
        model = self.session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model
