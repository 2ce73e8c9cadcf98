"""
Module: leave_kernel.models.notification
Responsibility: Inbox rows written by DatabaseNotificationSink.

This table is the sink's storage, not part of the kernel's consistency
boundary: rows are written in their own transaction after the lifecycle
change has committed, and a failed write never undoes that change.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from leave_kernel.db.base import Base, UTCDateTime, UUIDString
from leave_kernel.domain.notifications import InboxNotification, NotificationKind


class NotificationModel(Base):
    """One delivered notification in a recipient's inbox."""

    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            "kind IN ('created', 'approved', 'rejected')",
            name="ck_notifications_valid_kind",
        ),
        Index("ix_notifications_recipient_unread", "recipient_id", "is_read", "created_at"),
    )

    recipient_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    request_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def to_dto(self) -> InboxNotification:
        return InboxNotification(
            notification_id=self.id,
            recipient_id=self.recipient_id,
            request_id=self.request_id,
            kind=NotificationKind(self.kind),
            title=self.title,
            message=self.message,
            is_read=self.is_read,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<Notification {self.id} {self.kind} to={self.recipient_id} "
            f"read={self.is_read}>"
        )
