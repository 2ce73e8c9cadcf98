"""
Tests for RequestRegistry -- leave request records and status machine.

Covers:
- create(): day count, reason trimming, validation failures, no balance check
- get() / list_by_employee() / list_all(): ordering and filtering
- transition(): approve / reject stamps, terminal guard, missing reason
"""

from datetime import date
from uuid import uuid4

import pytest

from leave_kernel.domain.leave import LeaveStatus, LeaveType
from leave_kernel.exceptions import (
    AlreadyDecidedError,
    InvalidLeaveTypeError,
    InvalidRangeError,
    InvalidReasonError,
    MissingReasonError,
    RequestNotFoundError,
)
from leave_kernel.services.request_registry import RequestRegistry


@pytest.fixture
def registry(session, deterministic_clock):
    return RequestRegistry(session, deterministic_clock)


def _submit(registry, employee_id, start=date(2024, 7, 1), end=date(2024, 7, 5), **kw):
    return registry.create(
        employee_id,
        kw.get("leave_type", LeaveType.VACATION),
        start,
        end,
        kw.get("reason", "Summer trip"),
    )


class TestCreate:

    def test_creates_pending_request(self, registry, employee, deterministic_clock):
        request = _submit(registry, employee.principal_id)

        assert request.status is LeaveStatus.PENDING
        assert request.total_days == 5
        assert request.employee_id == employee.principal_id
        assert request.created_at == deterministic_clock.now()
        assert request.decided_at is None

    def test_reason_is_trimmed(self, registry, employee):
        request = _submit(registry, employee.principal_id, reason="  Dentist \n")
        assert request.reason == "Dentist"

    @pytest.mark.parametrize("reason", ["", "   ", "\t\n", None])
    def test_blank_reason_rejected(self, registry, employee, reason):
        with pytest.raises(InvalidReasonError):
            _submit(registry, employee.principal_id, reason=reason)

    def test_end_before_start_rejected(self, registry, employee):
        with pytest.raises(InvalidRangeError):
            _submit(
                registry, employee.principal_id,
                start=date(2024, 7, 5), end=date(2024, 7, 1),
            )

    def test_unknown_leave_type_rejected(self, registry, employee):
        with pytest.raises(InvalidLeaveTypeError):
            _submit(registry, employee.principal_id, leave_type="sabbatical")

    def test_leave_type_accepted_as_string(self, registry, employee):
        request = _submit(registry, employee.principal_id, leave_type="sick")
        assert request.leave_type is LeaveType.SICK

    def test_no_balance_is_required(self, registry, employee):
        """Sufficiency is advisory at submission; no ledger row exists here."""
        request = _submit(
            registry, employee.principal_id,
            start=date(2024, 1, 1), end=date(2024, 12, 31),
        )
        assert request.total_days == 366


class TestReads:

    def test_get_unknown_raises(self, registry):
        with pytest.raises(RequestNotFoundError):
            registry.get(uuid4())

    def test_list_by_employee_newest_first(
        self, registry, employee, admin, deterministic_clock,
    ):
        first = _submit(registry, employee.principal_id)
        deterministic_clock.advance(60)
        second = _submit(registry, employee.principal_id, reason="Second")
        deterministic_clock.advance(60)
        _submit(registry, admin.principal_id, reason="Not mine")

        listed = registry.list_by_employee(employee.principal_id)
        assert [r.request_id for r in listed] == [second.request_id, first.request_id]

    def test_list_all_filters_by_status(self, registry, employee, admin):
        pending = _submit(registry, employee.principal_id)
        decided = _submit(registry, employee.principal_id, reason="Decide me")
        registry.transition(decided.request_id, LeaveStatus.REJECTED, admin.principal_id, "No")

        assert {r.request_id for r in registry.list_all()} == {
            pending.request_id, decided.request_id,
        }
        assert [r.request_id for r in registry.list_all("pending")] == [pending.request_id]
        assert [r.request_id for r in registry.list_all(LeaveStatus.REJECTED)] == [
            decided.request_id
        ]


class TestTransition:

    def test_approve_stamps_approver(self, registry, employee, admin, deterministic_clock):
        request = _submit(registry, employee.principal_id)
        deterministic_clock.advance(3600)

        approved = registry.transition(
            request.request_id, LeaveStatus.APPROVED, admin.principal_id,
        )
        assert approved.status is LeaveStatus.APPROVED
        assert approved.approved_by == admin.principal_id
        assert approved.rejection_reason is None
        assert approved.decided_at == deterministic_clock.now()

    def test_reject_stores_trimmed_reason(self, registry, employee, admin):
        request = _submit(registry, employee.principal_id)
        rejected = registry.transition(
            request.request_id, "rejected", admin.principal_id, "  Team offsite  ",
        )
        assert rejected.status is LeaveStatus.REJECTED
        assert rejected.rejection_reason == "Team offsite"
        assert rejected.approved_by is None

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reject_without_reason_refused(self, registry, employee, admin, reason):
        request = _submit(registry, employee.principal_id)
        with pytest.raises(MissingReasonError):
            registry.transition(
                request.request_id, LeaveStatus.REJECTED, admin.principal_id, reason,
            )
        assert registry.get(request.request_id).status is LeaveStatus.PENDING

    def test_second_transition_refused(self, registry, employee, admin):
        request = _submit(registry, employee.principal_id)
        registry.transition(request.request_id, LeaveStatus.APPROVED, admin.principal_id)

        with pytest.raises(AlreadyDecidedError) as exc_info:
            registry.transition(
                request.request_id, LeaveStatus.REJECTED, admin.principal_id, "Late",
            )
        assert exc_info.value.status == "approved"
        assert registry.get(request.request_id).status is LeaveStatus.APPROVED

    def test_transition_to_pending_is_not_allowed(self, registry, employee, admin):
        request = _submit(registry, employee.principal_id)
        with pytest.raises(ValueError):
            registry.transition(request.request_id, LeaveStatus.PENDING, admin.principal_id)

    def test_transition_unknown_request(self, registry, admin):
        with pytest.raises(RequestNotFoundError):
            registry.transition(uuid4(), LeaveStatus.APPROVED, admin.principal_id)
