"""
leave_kernel.services.notification_dispatcher -- Best-effort lifecycle events.

Responsibility:
    Formats ``NotificationEvent``s for request creation and decisions and
    forwards them to a ``NotificationSink``.

Invariants:
    - Fire-and-forget: a sink failure is logged and swallowed; it never
      changes the outcome of ``submit`` or ``decide``.
    - At-most-once: no retry inside the kernel.
    - Deferred delivery: inside ``deferred()`` events are buffered per
      context and delivered only when the block exits cleanly, i.e. after
      the surrounding transaction committed.  On error they are dropped.
    - Each buffered event remembers the dispatcher that emitted it and is
      delivered to that dispatcher's sink, whichever block flushes it.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Iterable
from uuid import UUID

from leave_kernel.domain.clock import Clock, SystemClock
from leave_kernel.domain.leave import LeaveRequest, LeaveStatus
from leave_kernel.domain.notifications import (
    NotificationEvent,
    NotificationKind,
    NotificationSink,
)
from leave_kernel.logging_config import get_logger

logger = get_logger("services.notification_dispatcher")

# (emitting dispatcher, event) pairs held by the outermost deferred() block.
_Pending = list[tuple["NotificationDispatcher", NotificationEvent]]
_buffer: ContextVar[_Pending | None] = ContextVar("notification_buffer", default=None)


def _label(request: LeaveRequest) -> str:
    days = "day" if request.total_days == 1 else "days"
    return (
        f"{request.leave_type.value} leave from {request.start_date.isoformat()} "
        f"to {request.end_date.isoformat()} ({request.total_days} {days})"
    )


class NotificationDispatcher:
    """Builds lifecycle events and hands them to a sink."""

    def __init__(
        self,
        sink: NotificationSink,
        clock: Clock | None = None,
        executor: Executor | None = None,
    ):
        self._sink = sink
        self._clock = clock or SystemClock()
        self._executor = executor

    # ------------------------------------------------------------------
    # Event construction
    # ------------------------------------------------------------------

    def request_created(
        self,
        request: LeaveRequest,
        reviewer_ids: Iterable[UUID] = (),
    ) -> list[NotificationEvent]:
        """Confirmation to the employee plus a review prompt to each reviewer."""
        now = self._clock.now()
        events = [
            NotificationEvent(
                kind=NotificationKind.CREATED,
                recipient_id=request.employee_id,
                request_id=request.request_id,
                at=now,
                title="Leave request submitted",
                message=f"Your {_label(request)} is pending review.",
            )
        ]
        for reviewer_id in reviewer_ids:
            if reviewer_id == request.employee_id:
                continue
            events.append(
                NotificationEvent(
                    kind=NotificationKind.CREATED,
                    recipient_id=reviewer_id,
                    request_id=request.request_id,
                    at=now,
                    title="New leave request",
                    message=f"A new {_label(request)} is awaiting your decision.",
                )
            )
        return events

    def request_decided(self, request: LeaveRequest) -> NotificationEvent:
        """Outcome notice to the employee who owns the request."""
        if request.status is LeaveStatus.APPROVED:
            kind = NotificationKind.APPROVED
            title = "Leave request approved"
            message = f"Your {_label(request)} has been approved."
        elif request.status is LeaveStatus.REJECTED:
            kind = NotificationKind.REJECTED
            title = "Leave request rejected"
            message = (
                f"Your {_label(request)} has been rejected. "
                f"Reason: {request.rejection_reason}"
            )
        else:
            raise ValueError(f"Request {request.request_id} is still pending")

        return NotificationEvent(
            kind=kind,
            recipient_id=request.employee_id,
            request_id=request.request_id,
            at=self._clock.now(),
            title=title,
            message=message,
        )

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def emit(self, *events: NotificationEvent) -> None:
        """Deliver now, or buffer when inside ``deferred()``."""
        buffered = _buffer.get()
        if buffered is not None:
            buffered.extend((self, event) for event in events)
            return
        for event in events:
            self._dispatch(event)

    @contextmanager
    def deferred(self) -> Generator[None, None, None]:
        """Hold emitted events until the block exits without error."""
        if _buffer.get() is not None:
            # Already deferring; the outermost block delivers.
            yield
            return
        token = _buffer.set([])
        try:
            yield
            pending = _buffer.get() or []
        except BaseException:
            dropped = len(_buffer.get() or [])
            if dropped:
                logger.debug("notifications_dropped", extra={"count": dropped})
            raise
        finally:
            _buffer.reset(token)
        for owner, event in pending:
            owner._dispatch(event)

    def _dispatch(self, event: NotificationEvent) -> None:
        if self._executor is not None:
            self._executor.submit(self._deliver_safely, event)
        else:
            self._deliver_safely(event)

    def _deliver_safely(self, event: NotificationEvent) -> None:
        try:
            self._sink.deliver(event)
        except Exception:
            logger.warning(
                "notification_delivery_failed",
                extra={
                    "kind": event.kind.value,
                    "recipient_id": str(event.recipient_id),
                    "request_id": str(event.request_id),
                },
                exc_info=True,
            )
            return
        logger.debug(
            "notification_delivered",
            extra={
                "kind": event.kind.value,
                "recipient_id": str(event.recipient_id),
                "request_id": str(event.request_id),
            },
        )


# ----------------------------------------------------------------------
# Sinks
# ----------------------------------------------------------------------


class LoggingNotificationSink:
    """Writes each event to the kernel log.  Default when no channel is wired."""

    def __init__(self) -> None:
        self._logger = get_logger("notifications")

    def deliver(self, event: NotificationEvent) -> None:
        self._logger.info("notification", extra={"notification": event.to_payload()})


class InMemoryNotificationSink:
    """Collects events in a list.  Thread-safe; used by tests and demos."""

    def __init__(self) -> None:
        self._events: list[NotificationEvent] = []
        self._lock = threading.Lock()

    def deliver(self, event: NotificationEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[NotificationEvent]:
        with self._lock:
            return list(self._events)

    def for_recipient(self, recipient_id: UUID) -> list[NotificationEvent]:
        return [e for e in self.events if e.recipient_id == recipient_id]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
