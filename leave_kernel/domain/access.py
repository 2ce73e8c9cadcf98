"""
Access control types (``leave_kernel.domain.access``).

Responsibility
--------------
Value objects exchanged between the identity boundary and the kernel:
the resolved ``Principal``, the ``Action`` vocabulary, and the
``Capability`` that AuthorizationGuard hands to the services.

A capability replaces any ambient "current user" holder: it is passed
explicitly into every call and scopes which employees the call may touch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Role claim carried by a principal."""

    EMPLOYEE = "employee"
    ADMIN = "admin"


class Action(str, Enum):
    """Operations gated by AuthorizationGuard."""

    SUBMIT = "submit"
    LIST_OWN = "list_own"
    VIEW_BALANCE = "view_balance"
    LIST_ALL = "list_all"
    DECIDE = "decide"
    TOGGLE_ACTIVATION = "toggle_activation"


# Actions a caller may perform on their own records only.
OWNER_ACTIONS: frozenset[Action] = frozenset({
    Action.SUBMIT,
    Action.LIST_OWN,
    Action.VIEW_BALANCE,
})

# Actions reserved for administrators.
ADMIN_ACTIONS: frozenset[Action] = frozenset({
    Action.LIST_ALL,
    Action.DECIDE,
    Action.TOGGLE_ACTIVATION,
})


@dataclass(frozen=True)
class Principal:
    """Caller identity as resolved by the identity provider and profile store."""

    principal_id: UUID
    role: Role
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class Capability:
    """Authorization result for one action.

    ``employee_scope`` is the set of employees the action may touch;
    ``None`` means every employee (admin actions).
    """

    principal_id: UUID
    role: Role
    action: Action
    employee_scope: frozenset[UUID] | None = None

    def permits(self, action: Action, employee_id: UUID | None = None) -> bool:
        """Return True if this capability covers ``action`` on ``employee_id``."""
        if action is not self.action:
            return False
        if employee_id is None or self.employee_scope is None:
            return True
        return employee_id in self.employee_scope


@dataclass(frozen=True)
class EmployeeProfile:
    """Read-only view of an employee profile row."""

    employee_id: UUID
    full_name: str
    email: str
    role: Role
    active: bool
    department: str | None = None
    position: str | None = None

    def to_principal(self) -> Principal:
        return Principal(principal_id=self.employee_id, role=self.role, active=self.active)
