"""
leave_kernel.services.notification_inbox -- Stored notifications.

Responsibility:
    ``DatabaseNotificationSink`` writes delivered events to the
    ``notifications`` table in a transaction of its own.
    ``NotificationInbox`` reads a recipient's notifications and marks them
    read, which is what a notification bell polls.

The inbox is outside the leave consistency boundary: it never reads or
writes leave requests or balances.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from leave_kernel.db.engine import session_scope
from leave_kernel.domain.notifications import InboxNotification, NotificationEvent
from leave_kernel.models.notification import NotificationModel


class DatabaseNotificationSink:
    """Persists each event as an unread inbox row."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def deliver(self, event: NotificationEvent) -> None:
        with session_scope("notification_deliver", self._session_factory) as session:
            session.add(
                NotificationModel(
                    recipient_id=event.recipient_id,
                    request_id=event.request_id,
                    kind=event.kind.value,
                    title=event.title,
                    message=event.message,
                    is_read=False,
                    created_at=event.at,
                )
            )


class NotificationInbox:
    """Read side of stored notifications for one session."""

    def __init__(self, session: Session):
        self.session = session

    def list_for(
        self,
        recipient_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[InboxNotification]:
        """Newest first."""
        stmt = select(NotificationModel).where(
            NotificationModel.recipient_id == recipient_id,
        )
        if unread_only:
            stmt = stmt.where(NotificationModel.is_read.is_(False))
        stmt = stmt.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc(),
        ).limit(limit)
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def unread_count(self, recipient_id: UUID) -> int:
        return self.session.execute(
            select(func.count()).select_from(NotificationModel).where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
        ).scalar_one()

    def mark_read(self, recipient_id: UUID, notification_id: UUID) -> bool:
        """Mark one notification read.  Returns False if it is not the recipient's."""
        result = self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.recipient_id == recipient_id,
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_all_read(self, recipient_id: UUID) -> int:
        result = self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
