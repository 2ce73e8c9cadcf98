"""Tests for principals and capabilities (``leave_kernel.domain.access``)."""

from uuid import uuid4

from leave_kernel.domain.access import (
    ADMIN_ACTIONS,
    OWNER_ACTIONS,
    Action,
    Capability,
    EmployeeProfile,
    Principal,
    Role,
)


class TestActionVocabulary:

    def test_owner_and_admin_actions_partition_all_actions(self):
        assert OWNER_ACTIONS | ADMIN_ACTIONS == frozenset(Action)
        assert not OWNER_ACTIONS & ADMIN_ACTIONS

    def test_decide_is_admin_only(self):
        assert Action.DECIDE in ADMIN_ACTIONS


class TestCapability:

    def test_scoped_capability_permits_owner_only(self):
        owner = uuid4()
        cap = Capability(owner, Role.EMPLOYEE, Action.VIEW_BALANCE, frozenset({owner}))
        assert cap.permits(Action.VIEW_BALANCE, owner)
        assert not cap.permits(Action.VIEW_BALANCE, uuid4())

    def test_unscoped_capability_permits_any_employee(self):
        cap = Capability(uuid4(), Role.ADMIN, Action.DECIDE)
        assert cap.permits(Action.DECIDE, uuid4())

    def test_capability_is_bound_to_one_action(self):
        cap = Capability(uuid4(), Role.ADMIN, Action.LIST_ALL)
        assert not cap.permits(Action.DECIDE)


class TestPrincipal:

    def test_is_admin(self):
        assert Principal(uuid4(), Role.ADMIN).is_admin
        assert not Principal(uuid4(), Role.EMPLOYEE).is_admin

    def test_profile_projects_to_principal(self):
        profile = EmployeeProfile(
            employee_id=uuid4(),
            full_name="Ivy Inactive",
            email="ivy@example.com",
            role=Role.EMPLOYEE,
            active=False,
        )
        principal = profile.to_principal()
        assert principal.principal_id == profile.employee_id
        assert principal.role is Role.EMPLOYEE
        assert principal.active is False
