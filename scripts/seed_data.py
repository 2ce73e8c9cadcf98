#!/usr/bin/env python3
"""
Seed the leave store from a YAML roster.

Creates the tables (optionally dropping them first), registers every
employee in the roster and provisions their ledger rows for the roster
year, then commits.

Usage:
    python3 scripts/seed_data.py scripts/roster.example.yaml
    python3 scripts/seed_data.py roster.yaml --reset --config settings.yaml
"""

import argparse
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    from leave_kernel.config import load_settings
    from leave_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_settings,
        session_scope,
    )
    from leave_kernel.provisioning import load_roster, seed_roster

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("roster", type=Path, help="YAML roster file")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    init_engine_from_settings(settings)
    if args.reset:
        drop_tables()
    create_tables()

    roster = load_roster(args.roster)
    with session_scope("seed_roster") as session:
        profiles = seed_roster(session, roster)

    for profile in profiles:
        print(f"{profile.employee_id}  {profile.role.value:<8}  {profile.full_name}")
    print(f"Seeded {len(profiles)} employee(s) for {roster.year}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
