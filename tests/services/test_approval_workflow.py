"""
Tests for ApprovalWorkflow -- administrator decisions.

Covers:
- approve: ledger debited by total_days in the start date's year
- reject: reason recorded, ledger untouched
- refusals leave the request pending and the ledger unchanged
  (insufficient balance, no allocation, missing reason)
- decided requests refuse a second decision before any ledger write
- the capability must cover ``decide``
- the outcome notification is emitted to the owner
"""

from datetime import date
from uuid import uuid4

import pytest

from leave_kernel.domain.access import Action, Capability
from leave_kernel.domain.leave import LeaveDecision, LeaveStatus, LeaveType
from leave_kernel.domain.notifications import NotificationKind
from leave_kernel.exceptions import (
    AccessDeniedError,
    AlreadyDecidedError,
    InsufficientBalanceError,
    MissingReasonError,
    NoAllocationError,
    RequestNotFoundError,
)
from leave_kernel.services.approval_workflow import ApprovalWorkflow
from leave_kernel.services.authorization_guard import AuthorizationGuard
from leave_kernel.services.balance_ledger import BalanceLedger
from leave_kernel.services.request_registry import RequestRegistry


@pytest.fixture
def registry(session, deterministic_clock):
    return RequestRegistry(session, deterministic_clock)


@pytest.fixture
def ledger(session, deterministic_clock):
    return BalanceLedger(session, deterministic_clock)


@pytest.fixture
def workflow(session, deterministic_clock, dispatcher):
    return ApprovalWorkflow(session, deterministic_clock, dispatcher=dispatcher)


@pytest.fixture
def decide_cap(admin):
    return AuthorizationGuard().authorize(admin, Action.DECIDE)


def _pending(registry, employee_id, start=date(2024, 7, 1), end=date(2024, 7, 5)):
    return registry.create(employee_id, LeaveType.VACATION, start, end, "Holiday")


class TestApprove:

    def test_approve_debits_ledger(self, workflow, registry, ledger, employee, admin, decide_cap):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10, 2)
        request = _pending(registry, employee.principal_id)

        decided = workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        assert decided.status is LeaveStatus.APPROVED
        assert decided.approved_by == admin.principal_id
        balance = ledger.get_balance(employee.principal_id, LeaveType.VACATION, 2024)
        assert balance.used_days == 7
        assert balance.remaining_days == 3

    def test_year_spanning_request_debits_start_year(
        self, workflow, registry, ledger, employee, decide_cap,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10)
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2025, 10)
        request = _pending(
            registry, employee.principal_id,
            start=date(2024, 12, 30), end=date(2025, 1, 2),
        )

        workflow.decide(decide_cap, request.request_id, "approve")

        assert ledger.get_balance(employee.principal_id, "vacation", 2024).used_days == 4
        assert ledger.get_balance(employee.principal_id, "vacation", 2025).used_days == 0

    def test_insufficient_balance_leaves_request_pending(
        self, workflow, registry, ledger, employee, decide_cap,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10, 7)
        request = _pending(
            registry, employee.principal_id,
            start=date(2024, 8, 1), end=date(2024, 8, 8),
        )

        with pytest.raises(InsufficientBalanceError) as exc_info:
            workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        assert exc_info.value.requested_days == 8
        assert exc_info.value.remaining_days == 3
        assert registry.get(request.request_id).status is LeaveStatus.PENDING
        assert ledger.get_balance(employee.principal_id, "vacation", 2024).used_days == 7

    def test_no_allocation_leaves_request_pending(
        self, workflow, registry, employee, decide_cap,
    ):
        request = _pending(registry, employee.principal_id)

        with pytest.raises(NoAllocationError):
            workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        assert registry.get(request.request_id).status is LeaveStatus.PENDING


class TestReject:

    def test_reject_records_reason_without_ledger_write(
        self, workflow, registry, ledger, employee, decide_cap,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10, 2)
        request = _pending(registry, employee.principal_id)

        decided = workflow.decide(
            decide_cap, request.request_id, LeaveDecision.REJECT, "Release week",
        )

        assert decided.status is LeaveStatus.REJECTED
        assert decided.rejection_reason == "Release week"
        assert ledger.get_balance(employee.principal_id, "vacation", 2024).used_days == 2

    def test_reject_without_allocation_is_fine(self, workflow, registry, employee, decide_cap):
        request = _pending(registry, employee.principal_id)
        decided = workflow.decide(decide_cap, request.request_id, "reject", "No cover")
        assert decided.status is LeaveStatus.REJECTED

    @pytest.mark.parametrize("reason", [None, "", "  "])
    def test_reject_requires_reason(self, workflow, registry, employee, decide_cap, reason):
        request = _pending(registry, employee.principal_id)
        with pytest.raises(MissingReasonError):
            workflow.decide(decide_cap, request.request_id, LeaveDecision.REJECT, reason)
        assert registry.get(request.request_id).status is LeaveStatus.PENDING


class TestDecidedRequests:

    def test_second_approve_does_not_debit_twice(
        self, workflow, registry, ledger, employee, decide_cap,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 20)
        request = _pending(registry, employee.principal_id)
        workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        with pytest.raises(AlreadyDecidedError):
            workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        assert ledger.get_balance(employee.principal_id, "vacation", 2024).used_days == 5

    def test_rejected_request_cannot_be_approved(
        self, workflow, registry, ledger, employee, decide_cap,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 20)
        request = _pending(registry, employee.principal_id)
        workflow.decide(decide_cap, request.request_id, LeaveDecision.REJECT, "No")

        with pytest.raises(AlreadyDecidedError) as exc_info:
            workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        assert exc_info.value.status == "rejected"
        assert ledger.get_balance(employee.principal_id, "vacation", 2024).used_days == 0

    def test_already_decided_wins_over_missing_reason(
        self, workflow, registry, employee, decide_cap,
    ):
        request = _pending(registry, employee.principal_id)
        workflow.decide(decide_cap, request.request_id, LeaveDecision.REJECT, "No")

        with pytest.raises(AlreadyDecidedError):
            workflow.decide(decide_cap, request.request_id, LeaveDecision.REJECT, None)

    def test_unknown_request(self, workflow, decide_cap):
        with pytest.raises(RequestNotFoundError):
            workflow.decide(decide_cap, uuid4(), LeaveDecision.APPROVE)


class TestCapability:

    def test_capability_for_other_action_refused(
        self, workflow, registry, employee, admin,
    ):
        request = _pending(registry, employee.principal_id)
        listing_cap = AuthorizationGuard().authorize(admin, Action.LIST_ALL)

        with pytest.raises(AccessDeniedError):
            workflow.decide(listing_cap, request.request_id, LeaveDecision.APPROVE)

        assert registry.get(request.request_id).status is LeaveStatus.PENDING

    def test_scoped_capability_for_other_employee_refused(
        self, workflow, registry, employee, admin,
    ):
        request = _pending(registry, employee.principal_id)
        forged = Capability(
            admin.principal_id, admin.role, Action.DECIDE, frozenset({admin.principal_id}),
        )

        with pytest.raises(AccessDeniedError):
            workflow.decide(forged, request.request_id, LeaveDecision.APPROVE)


class TestNotification:

    def test_outcome_sent_to_owner(
        self, workflow, registry, ledger, employee, decide_cap, notification_sink,
    ):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10)
        request = _pending(registry, employee.principal_id)

        workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)

        (event,) = notification_sink.events
        assert event.kind is NotificationKind.APPROVED
        assert event.recipient_id == employee.principal_id
        assert event.request_id == request.request_id

    def test_refused_decision_sends_nothing(
        self, workflow, registry, employee, decide_cap, notification_sink,
    ):
        request = _pending(registry, employee.principal_id)
        with pytest.raises(NoAllocationError):
            workflow.decide(decide_cap, request.request_id, LeaveDecision.APPROVE)
        assert notification_sink.events == []

    def test_workflow_without_dispatcher(self, session, registry, ledger, employee, decide_cap):
        ledger.provision(employee.principal_id, LeaveType.VACATION, 2024, 10)
        request = _pending(registry, employee.principal_id)
        decided = ApprovalWorkflow(session).decide(
            decide_cap, request.request_id, LeaveDecision.APPROVE,
        )
        assert decided.status is LeaveStatus.APPROVED
