"""Notification service for reading and acknowledging in-app notifications."""

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.notification import Notification


class NotificationService:
    """Recipient-side access to notifications written by the rule engine."""

    async def get_notifications(
        self,
        db: AsyncSession,
        recipient_id: uuid.UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Notification], int]:
        """Get notifications for a user."""
        query = select(Notification).where(Notification.recipient_id == recipient_id)

        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        # Apply pagination and ordering
        query = query.order_by(Notification.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await db.execute(query)
        notifications = list(result.scalars().all())

        return notifications, total

    async def get_unread_count(
        self,
        db: AsyncSession,
        recipient_id: uuid.UUID,
    ) -> int:
        """Get the count of unread notifications for a user."""
        query = select(func.count(Notification.id)).where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )

        result = await db.execute(query)
        return result.scalar() or 0

    async def mark_as_read(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> bool:
        """Mark a notification as read."""
        stmt = (
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
            )
            .values(is_read=True, read_at=utcnow())
        )

        result = await db.execute(stmt)
        await db.commit()

        return result.rowcount > 0

    async def mark_all_as_read(
        self,
        db: AsyncSession,
        recipient_id: uuid.UUID,
    ) -> int:
        """Mark all notifications as read for a user."""
        stmt = (
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )

        result = await db.execute(stmt)
        await db.commit()

        return result.rowcount


# Singleton instance
_notification_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Get the notification service singleton."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
