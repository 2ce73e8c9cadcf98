"""
Leave Kernel

A transactional core for employee leave management:
- Request lifecycle (pending -> approved | rejected)
- Per-employee, per-type, per-year balance ledger
- Role-gated entry points (employee / admin)
- Best-effort lifecycle notifications
"""

__version__ = "0.1.0"
