"""Inquiry model tracking buyer contact and the agent's first response."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class SlaState(str, Enum):
    """Service-level classification of an inquiry."""

    ON_TIME = "ON_TIME"
    BREACHED = "BREACHED"
    PENDING_WITHIN_SLA = "PENDING_WITHIN_SLA"
    PENDING_BREACHED = "PENDING_BREACHED"
    STALE = "STALE"


class Inquiry(BaseModel):
    """A buyer's inquiry on a listing.

    first_agent_response_at is written once and never cleared.
    last_notified_state records the most severe SLA state a notification
    has already been emitted for.
    """

    __tablename__ = "inquiries"
    __table_args__ = (
        Index(
            "idx_inquiries_open",
            "created_at",
            postgresql_where=text("first_agent_response_at IS NULL AND archived_at IS NULL"),
        ),
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    client_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    first_agent_response_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_notified_state: Mapped[str | None] = mapped_column(String(30), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_open(self) -> bool:
        """Check if the inquiry still awaits a first agent response."""
        return self.first_agent_response_at is None and self.archived_at is None
