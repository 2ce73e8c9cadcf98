"""
leave_kernel.services.employee_directory -- Profiles the kernel reads.

Responsibility:
    Resolves a principal id (from the identity provider) to the
    ``Principal`` the guard evaluates, lists employees, and toggles the
    activation flag on behalf of administrators.

Invariants:
    - A principal without a profile row is an error (EmployeeNotFoundError).
      No stand-in profile is synthesized from the identity claim.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select

from leave_kernel.domain.access import EmployeeProfile, Principal, Role
from leave_kernel.exceptions import EmployeeNotFoundError
from leave_kernel.logging_config import get_logger
from leave_kernel.models.employee import EmployeeModel
from leave_kernel.services.base import BaseService

logger = get_logger("services.employee_directory")


class EmployeeDirectory(BaseService):
    """Employee profile reads and activation changes."""

    def register(
        self,
        full_name: str,
        email: str,
        role: Role | str = Role.EMPLOYEE,
        department: str | None = None,
        position: str | None = None,
        is_active: bool = True,
        employee_id: UUID | None = None,
    ) -> EmployeeProfile:
        """Create a profile row.  Provisioning and tests only."""
        model = EmployeeModel(
            id=employee_id or uuid4(),
            full_name=full_name.strip(),
            email=email.strip().lower(),
            role=Role(role).value,
            department=department,
            position=position,
            is_active=is_active,
        )
        self.session.add(model)
        self.session.flush()
        logger.info(
            "employee_registered",
            extra={"employee_id": str(model.id), "role": model.role},
        )
        return model.to_dto()

    def get(self, employee_id: UUID) -> EmployeeProfile:
        return self._load(employee_id).to_dto()

    def resolve_principal(self, employee_id: UUID) -> Principal:
        """Principal for an authenticated id; raises if no profile exists."""
        return self._load(employee_id).to_principal()

    def list_employees(self, active_only: bool = False) -> list[EmployeeProfile]:
        """Profiles ordered by name."""
        stmt = select(EmployeeModel)
        if active_only:
            stmt = stmt.where(EmployeeModel.is_active.is_(True))
        stmt = stmt.order_by(EmployeeModel.full_name, EmployeeModel.id)
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def active_admin_ids(self) -> list[UUID]:
        """Reviewers who should hear about new requests."""
        return list(
            self.session.execute(
                select(EmployeeModel.id).where(
                    EmployeeModel.role == Role.ADMIN.value,
                    EmployeeModel.is_active.is_(True),
                ).order_by(EmployeeModel.id)
            ).scalars().all()
        )

    def set_active(self, employee_id: UUID, active: bool) -> EmployeeProfile:
        model = self._load(employee_id)
        if model.is_active != active:
            model.is_active = active
            self.session.flush()
            logger.info(
                "employee_activation_changed",
                extra={"employee_id": str(employee_id), "is_active": active},
            )
        return model.to_dto()

    def toggle_active(self, employee_id: UUID) -> EmployeeProfile:
        model = self._load(employee_id)
        return self.set_active(employee_id, not model.is_active)

    def _load(self, employee_id: UUID) -> EmployeeModel:
        model = self.session.get(EmployeeModel, employee_id)
        if model is None:
            raise EmployeeNotFoundError(str(employee_id))
        return model
