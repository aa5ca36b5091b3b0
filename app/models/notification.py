"""Notification model for in-app notifications."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class NotificationType(str, Enum):
    """Types of notifications."""

    # Inquiries
    STALE_INQUIRY = "STALE_INQUIRY"
    RESPONSE_SLA_BREACH = "RESPONSE_SLA_BREACH"

    # Commissions
    COMMISSION_EARNED = "COMMISSION_EARNED"
    RECRUITER_BONUS = "RECRUITER_BONUS"


class Notification(Base):
    """In-app notification for a user.

    Only is_read/read_at change after creation.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "idx_notifications_recipient_unread",
            "recipient_id",
            "is_read",
            postgresql_where=text("is_read = false"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=utcnow,
        nullable=False,
    )