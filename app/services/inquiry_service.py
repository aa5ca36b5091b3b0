"""Inquiry service: buyer contact, first agent response and SLA views."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.models.base import ensure_utc, utcnow
from app.models.inquiry import Inquiry, SlaState
from app.models.listing import Listing, ListingStatus
from app.schemas.inquiry import InquiryCreate
from app.services.sla_evaluator import SlaEvaluator
from app.utils.request_context import get_current_user_id, is_admin

logger = logging.getLogger(__name__)


class InquiryService:
    """Service for managing inquiries and their SLA timestamps."""

    def __init__(self, evaluator: SlaEvaluator):
        self._evaluator = evaluator

    async def create_inquiry(self, db: AsyncSession, data: InquiryCreate) -> Inquiry:
        """Record a buyer inquiry, assigned to the listing's agent."""
        listing = await db.get(Listing, data.listing_id)
        if listing is None or listing.status != ListingStatus.ACTIVE.value:
            raise NotFoundException("Listing")

        inquiry = Inquiry(
            listing_id=listing.id,
            assigned_agent_id=listing.created_by_id,
            client_name=data.client_name,
            client_email=data.client_email,
            client_phone=data.client_phone,
            message=data.message,
        )

        db.add(inquiry)
        await db.flush()
        await db.refresh(inquiry)

        logger.info(f"Inquiry {inquiry.id} received for listing #{listing.listing_number}")
        return inquiry

    async def get_inquiry(self, db: AsyncSession, inquiry_id: uuid.UUID) -> Inquiry:
        """Get an inquiry visible to the current user."""
        inquiry = await db.get(Inquiry, inquiry_id)
        if inquiry is None:
            raise NotFoundException("Inquiry")

        if not is_admin() and inquiry.assigned_agent_id != get_current_user_id():
            raise ForbiddenException()

        return inquiry

    async def record_first_response(
        self,
        db: AsyncSession,
        inquiry_id: uuid.UUID,
        responded_at: datetime | None = None,
    ) -> Inquiry:
        """Stamp the agent's first response.

        The timestamp is written once; later calls leave it untouched.
        """
        inquiry = await self.get_inquiry(db, inquiry_id)

        if inquiry.first_agent_response_at is not None:
            logger.debug(f"Inquiry {inquiry.id} already has a first response")
            return inquiry

        responded_at = ensure_utc(responded_at) if responded_at else utcnow()
        if responded_at < ensure_utc(inquiry.created_at):
            raise ValidationException(
                [{"field": "responded_at", "message": "Response cannot precede the inquiry"}]
            )

        inquiry.first_agent_response_at = responded_at
        await db.flush()

        logger.info(f"Inquiry {inquiry.id} answered at {responded_at.isoformat()}")
        return inquiry

    async def archive_inquiry(self, db: AsyncSession, inquiry_id: uuid.UUID) -> Inquiry:
        """Archive an inquiry; inquiries are never deleted."""
        inquiry = await self.get_inquiry(db, inquiry_id)
        if inquiry.archived_at is None:
            inquiry.archived_at = utcnow()
            await db.flush()
        return inquiry

    async def list_inquiries(
        self,
        db: AsyncSession,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[tuple[Inquiry, SlaState]], int]:
        """List inquiries with their SLA state.

        Admins see every inquiry, agents only their own.
        """
        query = select(Inquiry)

        if not is_admin():
            query = query.where(Inquiry.assigned_agent_id == get_current_user_id())
        if not include_archived:
            query = query.where(Inquiry.archived_at.is_(None))

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        # Apply pagination and ordering
        query = query.order_by(Inquiry.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await db.execute(query)
        inquiries = list(result.scalars().all())

        thresholds = await self._evaluator.thresholds()
        now = self._evaluator.now()
        return [
            (inquiry, self._evaluator.classify_inquiry(inquiry, thresholds, now))
            for inquiry in inquiries
        ], total
