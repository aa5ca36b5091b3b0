"""Agent response SLA and stale inquiry evaluation.

An inquiry's SLA state is derived from two timestamps and the current
settings; nothing but the last notified state is stored. Sweeps emit one
event per threshold crossing:

    PENDING_WITHIN_SLA --(sla hours)--> PENDING_BREACHED --(stale days)--> STALE
           SlaBreach to the assigned agent      InquiryStale to admins
"""

import asyncio
import logging
import uuid
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.models.base import ensure_utc, utcnow
from app.models.inquiry import Inquiry, SlaState
from app.models.listing import Listing
from app.services.events import EngineEvent, InquiryStale, SlaBreach
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.settings_store import (
    AGENT_RESPONSE_SLA_HOURS,
    STALE_INQUIRY_THRESHOLD_DAYS,
    SettingsStore,
)

logger = logging.getLogger(__name__)

# Notification thresholds in crossing order
_SEVERITY = {
    SlaState.PENDING_BREACHED.value: 1,
    SlaState.STALE.value: 2,
}
NON_COMPLIANT_STATES = frozenset({SlaState.BREACHED, SlaState.PENDING_BREACHED, SlaState.STALE})


def classify(
    created_at: datetime,
    first_response_at: datetime | None,
    now: datetime,
    sla_hours: int,
    stale_days: int,
) -> SlaState:
    """Classify an inquiry from its timestamps.

    Stale wins over PENDING_BREACHED for unanswered inquiries.
    """
    created_at = ensure_utc(created_at)
    sla_window = timedelta(hours=sla_hours)

    if first_response_at is not None:
        gap = ensure_utc(first_response_at) - created_at
        return SlaState.ON_TIME if gap <= sla_window else SlaState.BREACHED

    waited = ensure_utc(now) - created_at
    if waited > timedelta(days=stale_days):
        return SlaState.STALE
    if waited > sla_window:
        return SlaState.PENDING_BREACHED
    return SlaState.PENDING_WITHIN_SLA


@dataclass(frozen=True)
class SlaThresholds:
    """Settings snapshot used for one evaluation pass."""

    sla_hours: int
    stale_days: int


@dataclass
class SweepResult:
    """Outcome of one sweep over open inquiries."""

    evaluated: int = 0
    skipped: int = 0
    failed: int = 0
    events: list[EngineEvent] = field(default_factory=list)


@dataclass
class AgentSlaReport:
    """Per-agent SLA standing."""

    agent_id: uuid.UUID
    counts: dict[SlaState, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def breaching(self) -> int:
        return sum(self.counts[state] for state in NON_COMPLIANT_STATES)

    @property
    def compliant(self) -> bool:
        return self.breaching == 0


class SlaEvaluator:
    """Classifies inquiries and emits breach/stale events once per crossing."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings_store: SettingsStore,
        dispatcher: NotificationDispatcher,
        concurrency: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._settings_store = settings_store
        self._dispatcher = dispatcher
        self._concurrency = max(1, concurrency or get_settings().sla_sweep_concurrency)
        self._clock = clock
        self._inquiry_locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def now(self) -> datetime:
        return self._clock()

    async def thresholds(self) -> SlaThresholds:
        """Read the current SLA settings."""
        return SlaThresholds(
            sla_hours=await self._settings_store.get(AGENT_RESPONSE_SLA_HOURS),
            stale_days=await self._settings_store.get(STALE_INQUIRY_THRESHOLD_DAYS),
        )

    def classify_inquiry(
        self,
        inquiry: Inquiry,
        thresholds: SlaThresholds,
        now: datetime | None = None,
    ) -> SlaState:
        return classify(
            inquiry.created_at,
            inquiry.first_agent_response_at,
            now or self.now(),
            thresholds.sla_hours,
            thresholds.stale_days,
        )

    async def evaluate(
        self,
        db: AsyncSession,
        inquiry: Inquiry,
        now: datetime | None = None,
        thresholds: SlaThresholds | None = None,
    ) -> list[EngineEvent]:
        """Classify an inquiry and record any threshold newly crossed.

        The caller commits the session, then dispatches the returned events.
        Re-evaluating an inquiry whose state has not advanced returns nothing.
        """
        if not inquiry.is_open:
            return []

        thresholds = thresholds or await self.thresholds()
        now = now or self.now()
        state = self.classify_inquiry(inquiry, thresholds, now)

        severity = _SEVERITY.get(state.value, 0)
        notified = _SEVERITY.get(inquiry.last_notified_state, 0)
        if severity <= notified:
            return []

        listing = await db.get(Listing, inquiry.listing_id)
        listing_number = listing.listing_number if listing else 0
        waiting_since = ensure_utc(inquiry.created_at)
        # A stale threshold shorter than the SLA can make an inquiry stale first
        sla_elapsed = ensure_utc(now) - waiting_since > timedelta(hours=thresholds.sla_hours)

        events: list[EngineEvent] = []
        if notified < _SEVERITY[SlaState.PENDING_BREACHED.value] <= severity and sla_elapsed:
            events.append(
                SlaBreach(
                    inquiry_id=inquiry.id,
                    listing_id=inquiry.listing_id,
                    listing_number=listing_number,
                    agent_id=inquiry.assigned_agent_id,
                    sla_hours=thresholds.sla_hours,
                    waiting_since=waiting_since,
                )
            )
        if notified < _SEVERITY[SlaState.STALE.value] <= severity:
            events.append(
                InquiryStale(
                    inquiry_id=inquiry.id,
                    listing_id=inquiry.listing_id,
                    listing_number=listing_number,
                    agent_id=inquiry.assigned_agent_id,
                    threshold_days=thresholds.stale_days,
                    waiting_since=waiting_since,
                )
            )

        inquiry.last_notified_state = state.value
        logger.info(f"Inquiry {inquiry.id} crossed into {state.value}")
        return events

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Evaluate every open inquiry and dispatch the resulting events."""
        now = now or self.now()
        thresholds = await self.thresholds()
        result = SweepResult()

        async with self._session_factory() as db:
            rows = await db.execute(
                select(Inquiry.id)
                .where(
                    Inquiry.first_agent_response_at.is_(None),
                    Inquiry.archived_at.is_(None),
                )
                .order_by(Inquiry.created_at)
            )
            inquiry_ids = list(rows.scalars().all())

        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(inquiry_id: uuid.UUID) -> None:
            async with semaphore:
                await self._sweep_one(inquiry_id, now, thresholds, result)

        await asyncio.gather(*(run(inquiry_id) for inquiry_id in inquiry_ids))

        logger.info(
            f"SLA sweep: {result.evaluated} evaluated, {result.skipped} skipped, "
            f"{result.failed} failed, {len(result.events)} event(s)"
        )
        return result

    def _lock_for(self, inquiry_id: uuid.UUID) -> asyncio.Lock:
        lock = self._inquiry_locks.get(inquiry_id)
        if lock is None:
            lock = asyncio.Lock()
            self._inquiry_locks[inquiry_id] = lock
        return lock

    async def _sweep_one(
        self,
        inquiry_id: uuid.UUID,
        now: datetime,
        thresholds: SlaThresholds,
        result: SweepResult,
    ) -> None:
        lock = self._lock_for(inquiry_id)
        if lock.locked():
            # Another sweep in this process owns it
            result.skipped += 1
            return

        async with lock:
            try:
                async with self._session_factory() as db:
                    # SKIP LOCKED leaves rows held by sweepers in other processes alone
                    row = await db.execute(
                        select(Inquiry)
                        .where(
                            Inquiry.id == inquiry_id,
                            Inquiry.first_agent_response_at.is_(None),
                            Inquiry.archived_at.is_(None),
                        )
                        .with_for_update(skip_locked=True)
                    )
                    inquiry = row.scalar_one_or_none()
                    if inquiry is None:
                        result.skipped += 1
                        return

                    events = await self.evaluate(db, inquiry, now, thresholds)
                    await db.commit()
            except SQLAlchemyError as e:
                result.failed += 1
                logger.error(f"SLA evaluation failed for inquiry {inquiry_id}: {e}")
                return

        result.evaluated += 1
        result.events.extend(events)
        await self._dispatcher.dispatch_all(events)

    async def agent_report(
        self,
        db: AsyncSession,
        agent_id: uuid.UUID,
        now: datetime | None = None,
    ) -> AgentSlaReport:
        """Summarise an agent's SLA standing over their unarchived inquiries."""
        thresholds = await self.thresholds()
        now = now or self.now()

        rows = await db.execute(
            select(Inquiry).where(
                Inquiry.assigned_agent_id == agent_id,
                Inquiry.archived_at.is_(None),
            )
        )
        counts = {state: 0 for state in SlaState}
        for inquiry in rows.scalars().all():
            counts[self.classify_inquiry(inquiry, thresholds, now)] += 1

        return AgentSlaReport(agent_id=agent_id, counts=counts)

    async def run_periodic_sweeps(self, interval_seconds: float, stop: asyncio.Event) -> None:
        """Sweep every interval until stop is set."""
        logger.info(f"SLA sweeps every {interval_seconds:.0f}s")
        while not stop.is_set():
            try:
                await self.sweep()
            except Exception:
                logger.exception("SLA sweep failed")

            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("SLA sweeps stopped")
