"""
leave_kernel.services.balance_ledger -- Per-employee, per-type, per-year ledger.

Responsibility:
    Reads ledger rows and applies debits (approved leave) and credits
    (reversals).  Invoked for writes exclusively by ApprovalWorkflow;
    ``provision`` exists for seeding.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - remaining_days = total_days - used_days >= 0 after every write.
    - ``debit`` is one conditional UPDATE
      (``used_days = used_days + :d WHERE total_days - used_days >= :d``),
      so the sufficiency check and the increment are atomic per row:
      two concurrent approvals can never both pass the check and overdraw.
    - ``credit`` floors used_days at zero.
    - A missing row is reported (NoAllocationError / BalanceNotFoundError),
      never replaced by a fabricated zero row.

Failure modes:
    - BalanceNotFoundError from get_balance on a missing row.
    - NoAllocationError from debit/credit on a missing row.
    - InsufficientBalanceError when remaining_days < days.
    - DuplicateAllocationError from provision on an existing row.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import case, select, update

from leave_kernel.domain.leave import LeaveBalance, LeaveType
from leave_kernel.exceptions import (
    BalanceNotFoundError,
    DuplicateAllocationError,
    InsufficientBalanceError,
    NoAllocationError,
)
from leave_kernel.logging_config import get_logger
from leave_kernel.models.leave_balance import LeaveBalanceModel
from leave_kernel.services.base import BaseService

logger = get_logger("services.balance_ledger")


class BalanceLedger(BaseService):
    """Owns leave ledger rows."""

    def get_balance(
        self,
        employee_id: UUID,
        leave_type: LeaveType | str,
        year: int,
    ) -> LeaveBalance:
        """Return the ledger row snapshot or raise BalanceNotFoundError."""
        kind = LeaveType.parse(leave_type)
        model = self._find(employee_id, kind, year)
        if model is None:
            raise BalanceNotFoundError(str(employee_id), kind.value, year)
        return model.to_dto()

    def list_balances(self, employee_id: UUID, year: int) -> list[LeaveBalance]:
        """All ledger rows of one employee for ``year``, ordered by leave type."""
        models = self.session.execute(
            select(LeaveBalanceModel)
            .where(
                LeaveBalanceModel.employee_id == employee_id,
                LeaveBalanceModel.year == year,
            )
            .order_by(LeaveBalanceModel.leave_type)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def debit(
        self,
        employee_id: UUID,
        leave_type: LeaveType | str,
        year: int,
        days: int,
    ) -> LeaveBalance:
        """Consume ``days`` from the row, atomically with the sufficiency check."""
        kind = LeaveType.parse(leave_type)
        if days < 1:
            raise ValueError(f"Debit must be at least one day, got {days}")

        result = self.session.execute(
            update(LeaveBalanceModel)
            .where(
                LeaveBalanceModel.employee_id == employee_id,
                LeaveBalanceModel.leave_type == kind.value,
                LeaveBalanceModel.year == year,
                LeaveBalanceModel.total_days - LeaveBalanceModel.used_days >= days,
            )
            .values(used_days=LeaveBalanceModel.used_days + days)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            current = self._find(employee_id, kind, year, refresh=True)
            if current is None:
                raise NoAllocationError(str(employee_id), kind.value, year)
            logger.info(
                "balance_debit_refused",
                extra={
                    "employee_id": str(employee_id),
                    "leave_type": kind.value,
                    "year": year,
                    "requested_days": days,
                    "remaining_days": current.remaining_days,
                },
            )
            raise InsufficientBalanceError(
                str(employee_id), kind.value, year, days, current.remaining_days,
            )

        balance = self._find(employee_id, kind, year, refresh=True).to_dto()
        logger.info(
            "balance_debited",
            extra={
                "employee_id": str(employee_id),
                "leave_type": kind.value,
                "year": year,
                "days": days,
                "used_days": balance.used_days,
                "remaining_days": balance.remaining_days,
            },
        )
        return balance

    def credit(
        self,
        employee_id: UUID,
        leave_type: LeaveType | str,
        year: int,
        days: int,
    ) -> LeaveBalance:
        """Return ``days`` to the row; used_days never drops below zero."""
        kind = LeaveType.parse(leave_type)
        if days < 1:
            raise ValueError(f"Credit must be at least one day, got {days}")

        result = self.session.execute(
            update(LeaveBalanceModel)
            .where(
                LeaveBalanceModel.employee_id == employee_id,
                LeaveBalanceModel.leave_type == kind.value,
                LeaveBalanceModel.year == year,
            )
            .values(
                used_days=case(
                    (LeaveBalanceModel.used_days > days, LeaveBalanceModel.used_days - days),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NoAllocationError(str(employee_id), kind.value, year)

        balance = self._find(employee_id, kind, year, refresh=True).to_dto()
        logger.info(
            "balance_credited",
            extra={
                "employee_id": str(employee_id),
                "leave_type": kind.value,
                "year": year,
                "days": days,
                "used_days": balance.used_days,
                "remaining_days": balance.remaining_days,
            },
        )
        return balance

    def provision(
        self,
        employee_id: UUID,
        leave_type: LeaveType | str,
        year: int,
        total_days: int,
        used_days: int = 0,
    ) -> LeaveBalance:
        """Create a ledger row.  Seeding and tests only."""
        kind = LeaveType.parse(leave_type)
        if total_days < 0 or not 0 <= used_days <= total_days:
            raise ValueError(
                f"Invalid allocation: total={total_days}, used={used_days}"
            )
        if self._find(employee_id, kind, year) is not None:
            raise DuplicateAllocationError(str(employee_id), kind.value, year)

        model = LeaveBalanceModel(
            employee_id=employee_id,
            leave_type=kind.value,
            year=year,
            total_days=total_days,
            used_days=used_days,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "balance_provisioned",
            extra={
                "employee_id": str(employee_id),
                "leave_type": kind.value,
                "year": year,
                "total_days": total_days,
                "used_days": used_days,
            },
        )
        return model.to_dto()

    def _find(
        self,
        employee_id: UUID,
        kind: LeaveType,
        year: int,
        *,
        refresh: bool = False,
    ) -> LeaveBalanceModel | None:
        stmt = select(LeaveBalanceModel).where(
            LeaveBalanceModel.employee_id == employee_id,
            LeaveBalanceModel.leave_type == kind.value,
            LeaveBalanceModel.year == year,
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()
