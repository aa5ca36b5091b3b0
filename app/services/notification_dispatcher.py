"""Turns rule engine events into Notification records."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import asdict

from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.exceptions import DispatchFailure
from app.models.commission import CommissionRole
from app.models.notification import Notification, NotificationType
from app.models.user import Role, User
from app.services.events import (
    CommissionEarned,
    EngineEvent,
    EventType,
    InquiryStale,
    RecruiterBonusQualified,
    SlaBreach,
)

logger = logging.getLogger(__name__)

# Errors worth retrying: lost connections, lock timeouts, busy databases
TRANSIENT_ERRORS = (OperationalError, InterfaceError)


class NotificationDispatcher:
    """Maps each event kind to notifications for the right recipients.

    Delivery is at-least-once from the engine's point of view: emitters are
    responsible for not emitting twice. Failures never propagate to the
    caller, so a failed write cannot undo the state change that produced the
    event.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        config = get_settings()
        self._session_factory = session_factory
        self._max_attempts = max(1, max_attempts or config.notification_max_attempts)
        self._backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else config.notification_retry_backoff_seconds
        )
        self._sleep = sleep
        self._builders = {
            EventType.COMMISSION_EARNED: self._build_commission_earned,
            EventType.RECRUITER_BONUS_QUALIFIED: self._build_recruiter_bonus,
            EventType.SLA_BREACH: self._build_sla_breach,
            EventType.INQUIRY_STALE: self._build_inquiry_stale,
        }

    async def dispatch(self, event: EngineEvent) -> list[Notification]:
        """Write the notifications for an event.

        Returns:
            The notifications created, empty if dispatch failed
        """
        builder = self._builders[event.event_type]

        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._session_factory() as db:
                    notifications = await builder(db, event)
                    db.add_all(notifications)
                    await db.commit()

                logger.info(f"Dispatched {event.event_type.value} to {len(notifications)} recipient(s)")
                return notifications

            except DispatchFailure as e:
                logger.error(f"{e.message}; event={asdict(event)}")
                return []

            except TRANSIENT_ERRORS as e:
                if attempt == self._max_attempts:
                    logger.error(
                        f"Giving up on {event.event_type.value} after {attempt} attempts: {e}; "
                        f"event={asdict(event)}"
                    )
                    return []
                delay = self._backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"Transient error dispatching {event.event_type.value} "
                    f"(attempt {attempt}/{self._max_attempts}), retrying in {delay:.2f}s: {e}"
                )
                await self._sleep(delay)

            except SQLAlchemyError as e:
                logger.error(f"Failed to dispatch {event.event_type.value}: {e}; event={asdict(event)}")
                return []

        return []

    async def dispatch_all(self, events: list[EngineEvent]) -> None:
        """Dispatch events in order."""
        for event in events:
            await self.dispatch(event)

    # ============== Recipients ==============

    async def _active_user(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        event_type: EventType,
    ) -> User:
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise DispatchFailure(event_type.value, f"recipient {user_id} not found")
        return user

    async def _active_admins(self, db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User).where(
                User.role == Role.ADMIN.value,
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    # ============== Builders ==============

    async def _build_commission_earned(
        self,
        db: AsyncSession,
        event: CommissionEarned,
    ) -> list[Notification]:
        earner = await self._active_user(db, event.earner_id, event.event_type)

        # Promoter notifications never carry client details
        if event.role == CommissionRole.PROMOTER.value:
            message = (
                f"You've earned a promoter commission of KES {event.amount:,} "
                f"on listing #{event.listing_number}."
            )
        else:
            message = (
                f"Commission of KES {event.amount:,} has been recorded "
                f"on listing #{event.listing_number}."
            )

        return [
            Notification(
                recipient_id=earner.id,
                type=NotificationType.COMMISSION_EARNED.value,
                title="Commission Earned",
                message=message,
                link=f"/commissions/{event.commission_id}",
            )
        ]

    async def _build_recruiter_bonus(
        self,
        db: AsyncSession,
        event: RecruiterBonusQualified,
    ) -> list[Notification]:
        referrer = await self._active_user(db, event.referrer_id, event.event_type)

        # Recruiter notifications never carry client details
        return [
            Notification(
                recipient_id=referrer.id,
                type=NotificationType.RECRUITER_BONUS.value,
                title="Recruiter Bonus Earned",
                message=(
                    f"You've earned a recruiter bonus of KES {event.amount:,} "
                    f"on listing #{event.listing_number}."
                ),
                link=f"/commissions/bonuses/{event.bonus_record_id}",
            )
        ]

    async def _build_sla_breach(
        self,
        db: AsyncSession,
        event: SlaBreach,
    ) -> list[Notification]:
        agent = await self._active_user(db, event.agent_id, event.event_type)

        return [
            Notification(
                recipient_id=agent.id,
                type=NotificationType.RESPONSE_SLA_BREACH.value,
                title="Response SLA Breached",
                message=(
                    f"An inquiry on listing #{event.listing_number} has waited more than "
                    f"{event.sla_hours} hour(s) for your first response."
                ),
                link=f"/dashboard/agent/inquiries/{event.inquiry_id}",
            )
        ]

    async def _build_inquiry_stale(
        self,
        db: AsyncSession,
        event: InquiryStale,
    ) -> list[Notification]:
        admins = await self._active_admins(db)
        if not admins:
            raise DispatchFailure(event.event_type.value, "no active admin to notify")

        return [
            Notification(
                recipient_id=admin.id,
                type=NotificationType.STALE_INQUIRY.value,
                title="Stale Inquiry",
                message=(
                    f"An inquiry on listing #{event.listing_number} has had no agent response "
                    f"for more than {event.threshold_days} day(s)."
                ),
                link=f"/dashboard/admin/inquiries/{event.inquiry_id}",
            )
            for admin in admins
        ]
