"""
leave_kernel.services.authorization_guard -- Role gate for every entry point.

Responsibility:
    Turn a resolved ``Principal`` plus an ``Action`` into a ``Capability``,
    or refuse with ``AccessDeniedError``.

Rules:
    - An inactive caller is denied every action (reason ``inactive``).
    - Owner actions (submit, list_own, view_balance) require the target
      to be the caller; an omitted target defaults to the caller
      (reason ``not_owner``).
    - Admin actions (list_all, decide, toggle_activation) require the
      admin role (reason ``insufficient_role``).

Invariants:
    - No side effects and no I/O.  The caller supplies an already-resolved
      principal; credential verification belongs to the identity provider.
"""

from __future__ import annotations

from uuid import UUID

from leave_kernel.domain.access import (
    ADMIN_ACTIONS,
    OWNER_ACTIONS,
    Action,
    Capability,
    Principal,
    Role,
)
from leave_kernel.exceptions import AccessDeniedError
from leave_kernel.logging_config import get_logger

logger = get_logger("services.authorization_guard")


class AuthorizationGuard:
    """Stateless authorization check."""

    def authorize(
        self,
        caller: Principal,
        action: Action | str,
        target: UUID | None = None,
    ) -> Capability:
        """Return a capability for ``action`` on ``target`` or raise.

        Raises:
            AccessDeniedError: with reason ``inactive``, ``insufficient_role``
                or ``not_owner``.
        """
        action = Action(action)

        if not caller.active:
            self._deny(caller, action, AccessDeniedError.INACTIVE)

        if action in ADMIN_ACTIONS:
            if caller.role is not Role.ADMIN:
                self._deny(caller, action, AccessDeniedError.INSUFFICIENT_ROLE)
            capability = Capability(
                principal_id=caller.principal_id,
                role=caller.role,
                action=action,
                employee_scope=None,
            )
        elif action in OWNER_ACTIONS:
            owner = caller.principal_id if target is None else target
            if owner != caller.principal_id:
                self._deny(caller, action, AccessDeniedError.NOT_OWNER)
            capability = Capability(
                principal_id=caller.principal_id,
                role=caller.role,
                action=action,
                employee_scope=frozenset({owner}),
            )
        else:  # pragma: no cover - Action() already rejected unknown values
            raise ValueError(f"Unhandled action: {action}")

        logger.debug(
            "access_granted",
            extra={"actor_id": str(caller.principal_id), "action": action.value},
        )
        return capability

    def _deny(self, caller: Principal, action: Action, reason: str) -> None:
        logger.info(
            "access_denied",
            extra={
                "actor_id": str(caller.principal_id),
                "action": action.value,
                "reason": reason,
            },
        )
        raise AccessDeniedError(str(caller.principal_id), action.value, reason)
