"""Listing model with its commission split."""

import uuid
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class ListingType(str, Enum):
    """Whether the property is offered for rent or for sale."""

    RENTAL = "RENTAL"
    SALE = "SALE"


class ListingStatus(str, Enum):
    """Listing lifecycle status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SOLD = "SOLD"
    RENTED = "RENTED"


class Listing(BaseModel):
    """A property listing.

    listing_number is the human-facing identifier, issued by
    SequenceAllocator and never reused.
    """

    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("agent_commission_pct >= 0", name="ck_listings_agent_pct_non_negative"),
        CheckConstraint("promoter_commission_pct >= 0", name="ck_listings_promoter_pct_non_negative"),
        CheckConstraint("company_commission_pct >= 0", name="ck_listings_company_pct_non_negative"),
    )

    listing_number: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    listing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ListingStatus.ACTIVE.value,
        index=True,
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Commission split
    has_promoter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promoter_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    agent_commission_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    promoter_commission_pct: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
    )
    company_commission_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Set once when the recruiter bonus for this listing has been issued
    recruiter_bonus_issued: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    @property
    def is_closed(self) -> bool:
        """Check if the listing reached a terminal status."""
        return self.status in (ListingStatus.SOLD.value, ListingStatus.RENTED.value)
