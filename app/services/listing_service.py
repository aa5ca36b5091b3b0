"""Listing service: creation, status transitions and promoter attachment."""

import logging
import re
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.models.listing import Listing, ListingStatus, ListingType
from app.models.user import Role, User
from app.schemas.listing import ListingCreate
from app.services.commission_calculator import CommissionCalculator, CommissionInput
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.sequence_allocator import SequenceAllocator
from app.utils.request_context import get_current_user_id, is_admin

logger = logging.getLogger(__name__)


def generate_slug(
    property_type: str,
    listing_type: str,
    location: str,
    listing_number: int,
) -> str:
    """Build a URL-safe slug from structured listing fields.

    Format: {property-type}-for-{rent|sale}-in-{location}-{listing-number},
    e.g. apartment-for-rent-in-westlands-240226
    """
    action = "rent" if listing_type == ListingType.RENTAL.value else "sale"
    kind = re.sub(r"\s+", "-", property_type.strip().lower())
    place = re.sub(r"[^a-z0-9\s-]", "", location.lower()).strip()
    place = re.sub(r"\s+", "-", place)
    return f"{kind}-for-{action}-in-{place}-{listing_number}"


class ListingService:
    """Service for managing listings through the rule engine."""

    def __init__(
        self,
        allocator: SequenceAllocator,
        calculator: CommissionCalculator,
        dispatcher: NotificationDispatcher,
    ):
        self._allocator = allocator
        self._calculator = calculator
        self._dispatcher = dispatcher

    async def create_listing(
        self,
        db: AsyncSession,
        data: ListingCreate,
        created_by_id: uuid.UUID,
    ) -> Listing:
        """Validate the commission split, assign a listing number and persist.

        The split is validated before a number is allocated, so a rejected
        request neither creates a listing nor consumes a number.
        """
        split = self._calculator.compute_split(
            CommissionInput(
                agent_pct=data.agent_commission_pct,
                promoter_pct=data.promoter_commission_pct,
                company_pct=data.company_commission_pct,
                has_promoter=data.has_promoter,
            )
        )

        if data.promoter_id is not None and not data.has_promoter:
            raise ValidationException(
                [{"field": "promoter_id", "message": "Listing has no promoter share"}]
            )

        await self._get_user(db, created_by_id, "Listing owner")
        if data.promoter_id is not None:
            await self._get_promoter(db, data.promoter_id)

        listing_number = await self._allocator.next()
        listing = Listing(
            listing_number=listing_number,
            slug=generate_slug(
                data.property_type,
                data.listing_type.value,
                data.location,
                listing_number,
            ),
            title=data.title,
            listing_type=data.listing_type.value,
            property_type=data.property_type,
            location=data.location,
            price=data.price,
            status=ListingStatus.ACTIVE.value,
            created_by_id=created_by_id,
            has_promoter=split.has_promoter,
            promoter_id=data.promoter_id,
            agent_commission_pct=split.agent_pct,
            promoter_commission_pct=split.promoter_pct,
            company_commission_pct=split.company_pct,
        )

        db.add(listing)
        await db.flush()
        await db.refresh(listing)

        logger.info(f"Created listing #{listing.listing_number} ({listing.slug})")
        return listing

    async def preview_slug(
        self,
        property_type: str,
        listing_type: ListingType,
        location: str,
    ) -> tuple[str, int]:
        """Slug and number a listing created now would receive (not reserved)."""
        listing_number = await self._allocator.peek()
        slug = generate_slug(property_type, listing_type.value, location, listing_number)
        return slug, listing_number

    async def get_listing(self, db: AsyncSession, listing_id: uuid.UUID) -> Listing:
        """Get a listing by ID."""
        listing = await db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundException("Listing")
        return listing

    async def get_listing_by_number(self, db: AsyncSession, listing_number: int) -> Listing:
        """Get a listing by its public listing number."""
        result = await db.execute(select(Listing).where(Listing.listing_number == listing_number))
        listing = result.scalar_one_or_none()
        if listing is None:
            raise NotFoundException("Listing")
        return listing

    async def attach_promoter(
        self,
        db: AsyncSession,
        listing_id: uuid.UUID,
        promoter_id: uuid.UUID,
    ) -> Listing:
        """Attach the promoter who earns the listing's promoter share."""
        listing = await self.get_listing(db, listing_id)
        self._check_owner(listing)

        if listing.is_closed:
            raise ConflictException("Promoter cannot change after the listing has closed")
        if not listing.has_promoter:
            raise ValidationException(
                [{"field": "promoter_id", "message": "Listing has no promoter share"}]
            )

        await self._get_promoter(db, promoter_id)
        listing.promoter_id = promoter_id
        await db.flush()

        logger.info(f"Attached promoter {promoter_id} to listing #{listing.listing_number}")
        return listing

    async def update_status(
        self,
        db: AsyncSession,
        listing_id: uuid.UUID,
        status: ListingStatus,
    ) -> Listing:
        """Change a listing's status and apply the commission rules.

        The status change, commission rows and any bonus record are committed
        together before notifications are dispatched; dispatch failures do
        not undo the transition.

        Raises:
            ConflictException: If another request closed the listing first
        """
        listing = await self.get_listing(db, listing_id)
        self._check_owner(listing)

        previous_status = listing.status
        if previous_status == status.value:
            return listing

        listing.status = status.value
        try:
            events = await self._calculator.register_status_transition(
                db, listing, previous_status, status.value
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictException("Listing status was changed by another request") from None

        logger.info(f"Listing #{listing.listing_number}: {previous_status} -> {status.value}")

        await self._dispatcher.dispatch_all(events)

        return listing

    def _check_owner(self, listing: Listing) -> None:
        """Only the creating agent or an admin may change a listing."""
        if is_admin():
            return
        if listing.created_by_id != get_current_user_id():
            raise ForbiddenException("Only the listing owner can change this listing")

    async def _get_user(self, db: AsyncSession, user_id: uuid.UUID, label: str = "User") -> User:
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise NotFoundException(label)
        return user

    async def _get_promoter(self, db: AsyncSession, promoter_id: uuid.UUID) -> User:
        promoter = await self._get_user(db, promoter_id, "Promoter")
        if promoter.role != Role.PROMOTER.value:
            raise ValidationException(
                [{"field": "promoter_id", "message": "User is not a promoter"}]
            )
        return promoter
