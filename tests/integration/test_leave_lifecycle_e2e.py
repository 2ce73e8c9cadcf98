"""
End-to-end leave lifecycle through LeaveOrchestrator.

Scenario:
    Employee E holds a 2024 vacation row {total: 10, used: 2}.
    1. E submits 2024-06-10 -> 2024-06-14 (5 days, pending).
    2. Admin approves: balance {used: 7, remaining: 3}, request approved.
    3. A second approve returns AlreadyDecided; balance unchanged.
    4. E submits 8 days; approval returns InsufficientBalance; the request
       stays pending and the balance is unchanged.
    5. Admin rejects it with a reason; E sees the outcome.
"""

from datetime import date

import pytest

from leave_kernel.domain.leave import LeaveStatus
from leave_kernel.domain.notifications import NotificationKind
from leave_kernel.exceptions import AlreadyDecidedError, InsufficientBalanceError
from leave_kernel.services.leave_orchestrator import LeaveOrchestrator
from leave_kernel.services.notification_dispatcher import NotificationDispatcher
from leave_kernel.services.notification_inbox import (
    DatabaseNotificationSink,
    NotificationInbox,
)


def _balance(orchestrator, caller):
    b = orchestrator.get_balance(caller, "vacation", 2024)
    return {"total": b.total_days, "used": b.used_days, "remaining": b.remaining_days}


def test_full_lifecycle(
    orchestrator, employee, admin, provision, notification_sink, deterministic_clock,
):
    provision(employee.principal_id, 10, 2)
    assert _balance(orchestrator, employee) == {"total": 10, "used": 2, "remaining": 8}

    first = orchestrator.submit(
        employee, "vacation", date(2024, 6, 10), date(2024, 6, 14), "Beach week",
    )
    assert first.total_days == 5
    assert first.status is LeaveStatus.PENDING

    approved = orchestrator.approve(admin, first.request_id)
    assert approved.status is LeaveStatus.APPROVED
    assert _balance(orchestrator, employee) == {"total": 10, "used": 7, "remaining": 3}

    with pytest.raises(AlreadyDecidedError):
        orchestrator.approve(admin, first.request_id)
    assert _balance(orchestrator, employee) == {"total": 10, "used": 7, "remaining": 3}

    deterministic_clock.advance(3600)
    second = orchestrator.submit(
        employee, "vacation", date(2024, 8, 1), date(2024, 8, 8), "Long trip",
    )
    assert second.total_days == 8

    with pytest.raises(InsufficientBalanceError):
        orchestrator.approve(admin, second.request_id)
    assert orchestrator.get_request(employee, second.request_id).status is LeaveStatus.PENDING
    assert _balance(orchestrator, employee) == {"total": 10, "used": 7, "remaining": 3}

    rejected = orchestrator.reject(admin, second.request_id, "Not enough days left")
    assert rejected.status is LeaveStatus.REJECTED
    assert _balance(orchestrator, employee) == {"total": 10, "used": 7, "remaining": 3}

    own = orchestrator.list_own(employee)
    assert [r.request_id for r in own] == [second.request_id, first.request_id]

    kinds = [e.kind for e in notification_sink.for_recipient(employee.principal_id)]
    assert kinds == [
        NotificationKind.CREATED,
        NotificationKind.APPROVED,
        NotificationKind.CREATED,
        NotificationKind.REJECTED,
    ]


def test_notifications_land_in_inbox(
    session_factory, deterministic_clock, employee, admin, provision,
):
    orchestrator = LeaveOrchestrator(
        session_factory,
        deterministic_clock,
        NotificationDispatcher(DatabaseNotificationSink(session_factory), deterministic_clock),
    )
    provision(employee.principal_id, 10)

    request = orchestrator.submit(
        employee, "vacation", date(2024, 6, 10), date(2024, 6, 11), "Long weekend",
    )
    deterministic_clock.advance(60)
    orchestrator.approve(admin, request.request_id)

    sess = session_factory()
    try:
        inbox = NotificationInbox(sess)
        titles = [n.title for n in inbox.list_for(employee.principal_id)]
        assert titles == ["Leave request approved", "Leave request submitted"]
        assert [n.title for n in inbox.list_for(admin.principal_id)] == ["New leave request"]
        assert inbox.unread_count(employee.principal_id) == 2
    finally:
        sess.close()
