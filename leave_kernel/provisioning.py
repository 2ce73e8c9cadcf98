"""
Roster provisioning (``leave_kernel.provisioning``).

Responsibility
--------------
Loads an employee roster with per-type allocations from YAML and creates
the matching profile and ledger rows.  This stands in for the external
provisioning process that must run before an employee can be debited;
the kernel itself never creates ledger rows on demand.

Roster format::

    year: 2024
    employees:
      - full_name: Ada Admin
        email: ada@example.com
        role: admin
        allocations:
          vacation: 20
          sick: 10

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown leave type  -> ``InvalidLeaveTypeError``.
* Existing ledger row  -> ``DuplicateAllocationError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.orm import Session

from leave_kernel.domain.access import EmployeeProfile, Role
from leave_kernel.domain.clock import Clock
from leave_kernel.domain.leave import LeaveType
from leave_kernel.logging_config import get_logger
from leave_kernel.services.balance_ledger import BalanceLedger
from leave_kernel.services.employee_directory import EmployeeDirectory

logger = get_logger("provisioning")


@dataclass(frozen=True)
class RosterEntry:
    full_name: str
    email: str
    role: Role = Role.EMPLOYEE
    department: str | None = None
    position: str | None = None
    allocations: dict[LeaveType, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Roster:
    year: int
    employees: tuple[RosterEntry, ...]


def parse_roster(data: dict[str, Any]) -> Roster:
    """Build a ``Roster`` from the parsed YAML mapping."""
    entries = []
    for raw in data.get("employees") or ():
        entries.append(
            RosterEntry(
                full_name=raw["full_name"],
                email=raw["email"],
                role=Role(raw.get("role", Role.EMPLOYEE.value)),
                department=raw.get("department"),
                position=raw.get("position"),
                allocations={
                    LeaveType.parse(kind): int(days)
                    for kind, days in (raw.get("allocations") or {}).items()
                },
            )
        )
    return Roster(year=int(data["year"]), employees=tuple(entries))


def load_roster(path: str | Path) -> Roster:
    with open(path) as f:
        return parse_roster(yaml.safe_load(f) or {})


def seed_roster(
    session: Session,
    roster: Roster,
    clock: Clock | None = None,
) -> list[EmployeeProfile]:
    """Create profiles and ledger rows.  Flushes; the caller commits."""
    directory = EmployeeDirectory(session, clock)
    ledger = BalanceLedger(session, clock)

    profiles = []
    for entry in roster.employees:
        profile = directory.register(
            entry.full_name,
            entry.email,
            role=entry.role,
            department=entry.department,
            position=entry.position,
        )
        for kind, days in entry.allocations.items():
            ledger.provision(profile.employee_id, kind, roster.year, days)
        profiles.append(profile)

    logger.info(
        "roster_seeded",
        extra={"year": roster.year, "employees": len(profiles)},
    )
    return profiles
