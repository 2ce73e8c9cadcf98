"""
BaseService -- abstract base for kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for the
    services in the kernel layer.  Services receive a SQLAlchemy ``Session``
    and use ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  LeaveOrchestrator (or a test)
    owns commit/rollback, which is what makes the ledger debit and the
    status transition of a decision atomic.
"""

from abc import ABC

from sqlalchemy.orm import Session

from leave_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        The service never calls ``session.commit()`` or
        ``session.rollback()``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source; defaults to SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()
