"""
leave_kernel.services.approval_workflow -- Administrator decisions.

Responsibility:
    Applies an approve / reject decision to a pending leave request:
    settles the ledger, transitions the request, and emits the outcome
    notification.

Architecture position:
    Kernel > Services.  Depends on RequestRegistry and BalanceLedger (both
    sharing this workflow's session) and, optionally, NotificationDispatcher.

Algorithm:
    1. Load the request under its row lock (RequestNotFoundError);
       a non-pending request fails with AlreadyDecidedError.
    2. The capability must cover ``decide`` (AccessDeniedError otherwise;
       the orchestrator already ran AuthorizationGuard).
    3. Approve: debit (employee, type, year(start_date), total_days).
       NoAllocationError / InsufficientBalanceError abort the decision and
       the request stays pending.
    4. RequestRegistry.transition(...).
    5. Emit the outcome event.

Invariants enforced:
    - A request is never approved without a successful debit: the debit
      runs first, in the same transaction as the transition, and the
      caller's rollback undoes both on any failure.
    - A reject never touches the ledger.
    - Retrying ``decide`` on a decided request is safe: it fails with
      AlreadyDecidedError before any ledger write.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from leave_kernel.domain.access import Action, Capability
from leave_kernel.domain.clock import Clock
from leave_kernel.domain.leave import LeaveDecision, LeaveRequest
from leave_kernel.exceptions import (
    AccessDeniedError,
    AlreadyDecidedError,
    MissingReasonError,
)
from leave_kernel.logging_config import LogContext, get_logger
from leave_kernel.services.balance_ledger import BalanceLedger
from leave_kernel.services.base import BaseService
from leave_kernel.services.notification_dispatcher import NotificationDispatcher
from leave_kernel.services.request_registry import RequestRegistry

logger = get_logger("services.approval_workflow")


class ApprovalWorkflow(BaseService):
    """Orchestrates approve / reject decisions inside one transaction."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        dispatcher: NotificationDispatcher | None = None,
        registry: RequestRegistry | None = None,
        ledger: BalanceLedger | None = None,
    ):
        super().__init__(session, clock)
        self._registry = registry or RequestRegistry(session, self.clock)
        self._ledger = ledger or BalanceLedger(session, self.clock)
        self._dispatcher = dispatcher

    def decide(
        self,
        capability: Capability,
        request_id: UUID,
        decision: LeaveDecision | str,
        rejection_reason: str | None = None,
    ) -> LeaveRequest:
        """Approve or reject a pending request; see module docstring."""
        decision = LeaveDecision(decision)

        with LogContext.bind(
            actor_id=str(capability.principal_id), request_id=str(request_id),
        ):
            request = self._registry.get_for_update(request_id)

            if not capability.permits(Action.DECIDE, request.employee_id):
                raise AccessDeniedError(
                    str(capability.principal_id),
                    Action.DECIDE.value,
                    AccessDeniedError.INSUFFICIENT_ROLE,
                )

            if request.is_terminal:
                raise AlreadyDecidedError(str(request_id), request.status.value)

            if decision is LeaveDecision.REJECT and not (rejection_reason or "").strip():
                raise MissingReasonError(str(request_id))

            if decision is LeaveDecision.APPROVE:
                self._ledger.debit(
                    request.employee_id,
                    request.leave_type,
                    request.ledger_year,
                    request.total_days,
                )

            decided = self._registry.transition(
                request_id,
                decision.target_status,
                decided_by=capability.principal_id,
                rejection_reason=rejection_reason,
            )

            logger.info(
                "leave_request_decided",
                extra={
                    "decision": decision.value,
                    "employee_id": str(decided.employee_id),
                    "total_days": decided.total_days,
                    "ledger_year": decided.ledger_year,
                },
            )

            if self._dispatcher is not None:
                self._dispatcher.emit(self._dispatcher.request_decided(decided))

            return decided
