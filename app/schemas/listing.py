"""Listing-related Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.listing import ListingStatus, ListingType


class ListingCreate(BaseModel):
    """Schema for creating a listing.

    Commission percentages are range- and sum-checked by CommissionCalculator,
    not here, so the caller gets the domain error for a bad split.
    """

    title: str = Field(..., min_length=1, max_length=255)
    listing_type: ListingType
    property_type: str = Field(..., min_length=1, max_length=50)
    location: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., gt=0)
    agent_commission_pct: Decimal = Decimal("0")
    promoter_commission_pct: Decimal = Decimal("0")
    company_commission_pct: Decimal = Decimal("0")
    has_promoter: bool = False
    promoter_id: uuid.UUID | None = None


class ListingStatusUpdate(BaseModel):
    """Schema for changing a listing's status."""

    status: ListingStatus


class ListingPromoterUpdate(BaseModel):
    """Schema for attaching a promoter to a listing."""

    promoter_id: uuid.UUID


class SlugPreviewResponse(BaseModel):
    """Slug and listing number a new listing would receive."""

    slug: str
    listing_number: int


class CommissionPayoutsResponse(BaseModel):
    """Commission amounts at the listing price."""

    agent: Decimal
    promoter: Decimal
    company: Decimal


class ListingResponse(BaseModel):
    """Schema for listing response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_number: int
    slug: str
    title: str
    listing_type: str
    property_type: str
    location: str
    price: Decimal
    status: str
    created_by_id: uuid.UUID
    has_promoter: bool
    promoter_id: uuid.UUID | None
    agent_commission_pct: Decimal
    promoter_commission_pct: Decimal
    company_commission_pct: Decimal
    recruiter_bonus_issued: bool
    created_at: datetime
    payouts: CommissionPayoutsResponse | None = None
