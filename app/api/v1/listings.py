"""Listing API routes."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.listing import Listing, ListingType
from app.schemas.common import APIResponse
from app.schemas.listing import (
    CommissionPayoutsResponse,
    ListingCreate,
    ListingPromoterUpdate,
    ListingResponse,
    ListingStatusUpdate,
    SlugPreviewResponse,
)
from app.services.engine import RuleEngine, get_engine
from app.utils.permissions import require_agent, require_authenticated
from app.utils.request_context import get_current_user_id

router = APIRouter()


def _to_response(engine: RuleEngine, listing: Listing) -> ListingResponse:
    payouts = engine.calculator.split_of(listing).payouts(listing.price)
    response = ListingResponse.model_validate(listing)
    response.payouts = CommissionPayoutsResponse(
        agent=payouts.agent,
        promoter=payouts.promoter,
        company=payouts.company,
    )
    return response


@router.post("", status_code=201)
@require_agent()
async def create_listing(
    request: ListingCreate,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Create a listing with a validated commission split."""
    listing = await engine.listings.create_listing(db, request, get_current_user_id())

    return APIResponse(
        status="success",
        data=_to_response(engine, listing),
        message="Listing created successfully",
    )


@router.get("/slug-preview")
@require_agent()
async def preview_slug(
    property_type: str = Query(..., min_length=1),
    listing_type: ListingType = Query(...),
    location: str = Query(..., min_length=1),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Preview the slug and listing number of the next listing."""
    slug, listing_number = await engine.listings.preview_slug(property_type, listing_type, location)

    return APIResponse(
        status="success",
        data=SlugPreviewResponse(slug=slug, listing_number=listing_number),
    )


@router.get("/{listing_id}")
@require_authenticated()
async def get_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Get a listing by ID."""
    listing = await engine.listings.get_listing(db, listing_id)

    return APIResponse(status="success", data=_to_response(engine, listing))


@router.patch("/{listing_id}/status")
@require_agent()
async def update_listing_status(
    listing_id: uuid.UUID,
    request: ListingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Change a listing's status (owner or admin)."""
    listing = await engine.listings.update_status(db, listing_id, request.status)

    return APIResponse(
        status="success",
        data=_to_response(engine, listing),
        message="Listing status updated",
    )


@router.put("/{listing_id}/promoter")
@require_agent()
async def attach_promoter(
    listing_id: uuid.UUID,
    request: ListingPromoterUpdate,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Attach the promoter of a listing (owner or admin)."""
    listing = await engine.listings.attach_promoter(db, listing_id, request.promoter_id)

    return APIResponse(
        status="success",
        data=_to_response(engine, listing),
        message="Promoter attached",
    )
