"""Database layer - engine, base classes, types."""

from leave_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from leave_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
    store_errors,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "store_errors",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
