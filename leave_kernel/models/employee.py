"""
Module: leave_kernel.models.employee
Responsibility: ORM persistence for employee profiles.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain value objects only.

The kernel reads id, role and is_active; the remaining profile fields are
owned by the profile subsystem and carried here so the store has a single
employees table.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from leave_kernel.db.base import TrackedBase
from leave_kernel.domain.access import EmployeeProfile, Principal, Role


class EmployeeModel(TrackedBase):
    """Persistent employee profile."""

    __tablename__ = "employees"

    __table_args__ = (
        CheckConstraint(
            "role IN ('employee', 'admin')",
            name="ck_employees_valid_role",
        ),
        Index("ix_employees_full_name", "full_name"),
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Role.EMPLOYEE.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Employee {self.id} {self.email} role={self.role} active={self.is_active}>"

    def to_principal(self) -> Principal:
        """Project the profile onto the fields the kernel trusts."""
        return Principal(
            principal_id=self.id,
            role=Role(self.role),
            active=self.is_active,
        )

    def to_dto(self) -> EmployeeProfile:
        """Convert ORM model to frozen domain DTO."""
        return EmployeeProfile(
            employee_id=self.id,
            full_name=self.full_name,
            email=self.email,
            role=Role(self.role),
            active=self.is_active,
            department=self.department,
            position=self.position,
        )
