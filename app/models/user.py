"""User model with marketplace roles and referral links."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class Role(str, Enum):
    """Marketplace user roles."""

    ADMIN = "ADMIN"  # Platform admin, receives stale-inquiry escalations
    AGENT = "AGENT"  # Owns listings and answers inquiries
    PROMOTER = "PROMOTER"  # Promotes listings for a commission share


class User(BaseModel):
    """Marketplace account.

    Only the fields the rule engine needs to resolve notification recipients
    and referral relationships are kept here.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    referrer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
