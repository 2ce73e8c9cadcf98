"""
Notification value objects (``leave_kernel.domain.notifications``).

Lifecycle events are emitted after the authoritative state change is
committed.  They are ephemeral: the kernel does not persist them and does
not retry delivery.  Sinks implement the ``NotificationSink`` protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID


class NotificationKind(str, Enum):
    """Lifecycle transitions that produce a notification."""

    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class NotificationEvent:
    """Describes a single lifecycle transition for one recipient."""

    kind: NotificationKind
    recipient_id: UUID
    request_id: UUID
    at: datetime
    title: str = ""
    message: str = ""

    def to_payload(self) -> dict[str, str]:
        """Wire form handed to external sinks."""
        return {
            "kind": self.kind.value,
            "recipient_id": str(self.recipient_id),
            "request_id": str(self.request_id),
            "at": self.at.isoformat(),
            "title": self.title,
            "message": self.message,
        }


@dataclass(frozen=True)
class InboxNotification:
    """A stored notification as the recipient's inbox shows it."""

    notification_id: UUID
    recipient_id: UUID
    request_id: UUID
    kind: NotificationKind
    title: str
    message: str
    is_read: bool
    created_at: datetime


class NotificationSink(Protocol):
    """Pluggable outbound channel for lifecycle events."""

    def deliver(self, event: NotificationEvent) -> None:
        """Hand the event to the channel.  May raise; callers swallow."""
        ...
