"""
leave_kernel.services.leave_orchestrator -- Public entry points of the kernel.

Responsibility:
    One method per caller-facing operation.  Each method
      1. runs AuthorizationGuard on the caller's principal,
      2. opens one transaction (``session_scope``) and drives the services,
      3. dispatches notifications only after that transaction committed.

Architecture position:
    Kernel > Services -- the imperative shell.  A transport layer (HTTP,
    RPC) calls this class and maps ``LeaveKernelError.category`` to its own
    status codes.

Invariants enforced:
    - Every operation is gated by AuthorizationGuard.
    - Transaction boundary: the orchestrator is the only component that
      commits.  A decision's ledger debit and status transition commit
      together or not at all.
    - Notifications never gate an outcome: they are emitted after commit
      and delivery failures are swallowed by the dispatcher.
    - Transient store failures surface as StoreUnavailableError.
    - A caller without a profile row gets EmployeeNotFoundError before
      anything is written.

Thread safety:
    One orchestrator may be shared by concurrent callers; each call uses
    its own session from the session factory.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from leave_kernel.db.engine import get_session_factory, session_scope
from leave_kernel.domain.access import Action, EmployeeProfile, Principal
from leave_kernel.domain.clock import Clock, SystemClock
from leave_kernel.domain.notifications import InboxNotification
from leave_kernel.domain.leave import (
    LeaveBalance,
    LeaveDecision,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from leave_kernel.exceptions import BalanceNotFoundError, RequestNotFoundError
from leave_kernel.logging_config import LogContext, get_logger
from leave_kernel.selectors.dashboard_selector import DashboardSelector, DashboardStats
from leave_kernel.services.approval_workflow import ApprovalWorkflow
from leave_kernel.services.authorization_guard import AuthorizationGuard
from leave_kernel.services.balance_ledger import BalanceLedger
from leave_kernel.services.employee_directory import EmployeeDirectory
from leave_kernel.services.notification_dispatcher import (
    LoggingNotificationSink,
    NotificationDispatcher,
)
from leave_kernel.services.notification_inbox import NotificationInbox
from leave_kernel.services.request_registry import RequestRegistry

logger = get_logger("services.leave_orchestrator")


class LeaveOrchestrator:
    """Authorization-gated, transactional facade over the leave services."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        dispatcher: NotificationDispatcher | None = None,
        guard: AuthorizationGuard | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher or NotificationDispatcher(
            LoggingNotificationSink(), clock=self._clock,
        )
        self._guard = guard or AuthorizationGuard()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def resolve_principal(self, employee_id: UUID) -> Principal:
        """Principal for an id vouched for by the identity provider."""
        with session_scope("resolve_principal", self._session_factory) as session:
            return EmployeeDirectory(session, self._clock).resolve_principal(employee_id)

    # ------------------------------------------------------------------
    # Employee operations
    # ------------------------------------------------------------------

    def submit(
        self,
        caller: Principal,
        leave_type: LeaveType | str,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> LeaveRequest:
        """Create a pending request for the caller."""
        with LogContext.bind(actor_id=str(caller.principal_id)):
            self._guard.authorize(caller, Action.SUBMIT)
            with self._dispatcher.deferred():
                with session_scope("submit", self._session_factory) as session:
                    self._require_profile(session, caller)
                    request = RequestRegistry(session, self._clock).create(
                        caller.principal_id, leave_type, start_date, end_date, reason,
                    )
                    self._log_advisory_balance(session, request)
                    reviewers = EmployeeDirectory(session, self._clock).active_admin_ids()
                    self._dispatcher.emit(
                        *self._dispatcher.request_created(request, reviewers)
                    )
            return request

    def list_own(
        self,
        caller: Principal,
        employee_id: UUID | None = None,
    ) -> list[LeaveRequest]:
        """The caller's requests, newest first."""
        capability = self._guard.authorize(caller, Action.LIST_OWN, employee_id)
        (owner,) = capability.employee_scope
        with session_scope("list_own", self._session_factory) as session:
            return RequestRegistry(session, self._clock).list_by_employee(owner)

    def get_request(self, caller: Principal, request_id: UUID) -> LeaveRequest:
        """
        One request; employees may only read their own.

        Another employee's request is reported as RequestNotFoundError, the
        same as an unknown id, so a caller cannot learn which ids exist.
        """
        action = Action.LIST_ALL if caller.is_admin else Action.LIST_OWN
        capability = self._guard.authorize(caller, action)
        with session_scope("get_request", self._session_factory) as session:
            request = RequestRegistry(session, self._clock).get(request_id)
        if not capability.permits(action, request.employee_id):
            logger.warning(
                "leave_request_read_refused",
                extra={
                    "actor_id": str(caller.principal_id),
                    "request_id": str(request_id),
                },
            )
            raise RequestNotFoundError(str(request_id))
        return request

    def get_balance(
        self,
        caller: Principal,
        leave_type: LeaveType | str,
        year: int,
        employee_id: UUID | None = None,
    ) -> LeaveBalance:
        """One ledger row; raises BalanceNotFoundError if not provisioned."""
        owner = self._authorize_balance_read(caller, employee_id)
        with session_scope("get_balance", self._session_factory) as session:
            return BalanceLedger(session, self._clock).get_balance(owner, leave_type, year)

    def list_balances(
        self,
        caller: Principal,
        year: int,
        employee_id: UUID | None = None,
    ) -> list[LeaveBalance]:
        """All ledger rows of one employee for ``year``."""
        owner = self._authorize_balance_read(caller, employee_id)
        with session_scope("list_balances", self._session_factory) as session:
            return BalanceLedger(session, self._clock).list_balances(owner, year)

    # ------------------------------------------------------------------
    # Inbox (the caller's own notifications only)
    # ------------------------------------------------------------------

    def list_notifications(
        self,
        caller: Principal,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[InboxNotification]:
        """Stored notifications addressed to the caller, newest first."""
        capability = self._guard.authorize(caller, Action.LIST_OWN)
        (recipient,) = capability.employee_scope
        with session_scope("list_notifications", self._session_factory) as session:
            return NotificationInbox(session).list_for(recipient, unread_only, limit)

    def unread_notification_count(self, caller: Principal) -> int:
        capability = self._guard.authorize(caller, Action.LIST_OWN)
        (recipient,) = capability.employee_scope
        with session_scope("notification_count", self._session_factory) as session:
            return NotificationInbox(session).unread_count(recipient)

    def mark_notifications_read(
        self,
        caller: Principal,
        notification_id: UUID | None = None,
    ) -> int:
        """
        Mark one of the caller's notifications read, or all of them.

        Returns the number of rows changed.  Another recipient's
        notification id changes nothing.
        """
        capability = self._guard.authorize(caller, Action.LIST_OWN)
        (recipient,) = capability.employee_scope
        with session_scope("mark_read", self._session_factory) as session:
            inbox = NotificationInbox(session)
            if notification_id is None:
                return inbox.mark_all_read(recipient)
            return int(inbox.mark_read(recipient, notification_id))

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def list_all(
        self,
        caller: Principal,
        status: LeaveStatus | str | None = None,
    ) -> list[LeaveRequest]:
        """Every request, optionally filtered by status, newest first."""
        self._guard.authorize(caller, Action.LIST_ALL)
        with session_scope("list_all", self._session_factory) as session:
            return RequestRegistry(session, self._clock).list_all(status)

    def decide(
        self,
        caller: Principal,
        request_id: UUID,
        decision: LeaveDecision | str,
        rejection_reason: str | None = None,
    ) -> LeaveRequest:
        """Approve or reject a pending request in one transaction."""
        capability = self._guard.authorize(caller, Action.DECIDE)
        with self._dispatcher.deferred():
            with session_scope("decide", self._session_factory) as session:
                self._require_profile(session, caller)
                workflow = ApprovalWorkflow(
                    session, self._clock, dispatcher=self._dispatcher,
                )
                return workflow.decide(
                    capability, request_id, decision, rejection_reason,
                )

    def approve(self, caller: Principal, request_id: UUID) -> LeaveRequest:
        return self.decide(caller, request_id, LeaveDecision.APPROVE)

    def reject(
        self,
        caller: Principal,
        request_id: UUID,
        rejection_reason: str | None,
    ) -> LeaveRequest:
        return self.decide(caller, request_id, LeaveDecision.REJECT, rejection_reason)

    def list_employees(self, caller: Principal) -> list[EmployeeProfile]:
        self._guard.authorize(caller, Action.LIST_ALL)
        with session_scope("list_employees", self._session_factory) as session:
            return EmployeeDirectory(session, self._clock).list_employees()

    def toggle_activation(self, caller: Principal, employee_id: UUID) -> EmployeeProfile:
        """Flip an employee's active flag."""
        self._guard.authorize(caller, Action.TOGGLE_ACTIVATION)
        with session_scope("toggle_activation", self._session_factory) as session:
            return EmployeeDirectory(session, self._clock).toggle_active(employee_id)

    def set_activation(
        self,
        caller: Principal,
        employee_id: UUID,
        active: bool,
    ) -> EmployeeProfile:
        self._guard.authorize(caller, Action.TOGGLE_ACTIVATION)
        with session_scope("set_activation", self._session_factory) as session:
            return EmployeeDirectory(session, self._clock).set_active(employee_id, active)

    def dashboard_stats(self, caller: Principal) -> DashboardStats:
        self._guard.authorize(caller, Action.LIST_ALL)
        with session_scope("dashboard_stats", self._session_factory) as session:
            return DashboardSelector(session).stats()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _authorize_balance_read(
        self,
        caller: Principal,
        employee_id: UUID | None,
    ) -> UUID:
        """Owners read their own rows; administrators read anyone's."""
        if caller.is_admin and employee_id not in (None, caller.principal_id):
            self._guard.authorize(caller, Action.LIST_ALL)
            return employee_id
        capability = self._guard.authorize(caller, Action.VIEW_BALANCE, employee_id)
        (owner,) = capability.employee_scope
        return owner

    def _require_profile(self, session: Session, caller: Principal) -> None:
        """Writes reference the caller's profile row; a missing one is reported."""
        EmployeeDirectory(session, self._clock).get(caller.principal_id)

    def _log_advisory_balance(self, session: Session, request: LeaveRequest) -> None:
        """Warn when a new request already exceeds the balance.  Never blocks."""
        try:
            balance = BalanceLedger(session, self._clock).get_balance(
                request.employee_id, request.leave_type, request.ledger_year,
            )
        except BalanceNotFoundError:
            logger.warning(
                "leave_request_without_allocation",
                extra={
                    "request_id": str(request.request_id),
                    "leave_type": request.leave_type.value,
                    "ledger_year": request.ledger_year,
                },
            )
            return
        if not balance.can_cover(request.total_days):
            logger.warning(
                "leave_request_exceeds_balance",
                extra={
                    "request_id": str(request.request_id),
                    "total_days": request.total_days,
                    "remaining_days": balance.remaining_days,
                },
            )
