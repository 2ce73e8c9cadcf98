"""
Module: leave_kernel.models.leave_balance
Responsibility: ORM persistence for leave ledger rows.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value objects.

Invariants enforced:
    - One row per (employee_id, leave_type, year) (unique constraint).
      A missing row means "no allocation configured", which is distinct
      from a zero allocation.
    - 0 <= used_days <= total_days (check constraints), so remaining_days
      is never persisted negative.
    - remaining_days is derived (total_days - used_days), never stored.

Failure modes:
    - IntegrityError on a duplicate row or a write that would overdraw it.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from leave_kernel.db.base import TrackedBase, UUIDString
from leave_kernel.domain.leave import LeaveBalance, LeaveType


class LeaveBalanceModel(TrackedBase):
    """Persistent ledger row."""

    __tablename__ = "leave_balances"

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "leave_type", "year",
            name="uq_leave_balances_employee_type_year",
        ),
        CheckConstraint(
            "leave_type IN ('vacation', 'sick', 'personal', 'emergency', "
            "'maternity', 'paternity')",
            name="ck_leave_balances_valid_type",
        ),
        CheckConstraint("total_days >= 0", name="ck_leave_balances_total_days"),
        CheckConstraint("used_days >= 0", name="ck_leave_balances_used_days"),
        CheckConstraint(
            "used_days <= total_days",
            name="ck_leave_balances_not_overdrawn",
        ),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False)
    year: Mapped[int] = mapped_column(nullable=False)
    total_days: Mapped[int] = mapped_column(nullable=False)
    used_days: Mapped[int] = mapped_column(nullable=False, default=0)

    @property
    def remaining_days(self) -> int:
        return self.total_days - self.used_days

    def __repr__(self) -> str:
        return (
            f"<LeaveBalance employee={self.employee_id} {self.leave_type} "
            f"{self.year} used={self.used_days}/{self.total_days}>"
        )

    def to_dto(self) -> LeaveBalance:
        """Convert ORM model to frozen domain DTO."""
        return LeaveBalance(
            employee_id=self.employee_id,
            leave_type=LeaveType(self.leave_type),
            year=self.year,
            total_days=self.total_days,
            used_days=self.used_days,
        )
