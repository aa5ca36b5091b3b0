"""Listing number allocation without a database auto-increment column."""

import asyncio
import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.exceptions import AllocatorExhausted
from app.models.listing import Listing
from app.models.sequence import ListingSequence

logger = logging.getLogger(__name__)

# Upper bound of the BIGINT column holding issued numbers
MAX_SEQUENCE_VALUE = 2**63 - 1


class SequenceAllocator:
    """Issues unique, strictly increasing listing numbers.

    The counter lives in a single listing_sequences row and is advanced with
    one UPDATE ... RETURNING statement, so the database row lock serialises
    callers across processes. Within a process an asyncio.Lock keeps callers
    from queueing on the same row. Each number is committed in its own
    transaction; a number whose listing is never written is skipped, not
    reissued.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        floor: int | None = None,
        name: str | None = None,
        max_value: int = MAX_SEQUENCE_VALUE,
    ):
        config = get_settings()
        self._session_factory = session_factory
        self._floor = floor if floor is not None else config.listing_number_floor
        self._name = name or config.listing_sequence_name
        self._max_value = max_value
        self._lock = asyncio.Lock()

    async def next(self) -> int:
        """Issue the next listing number.

        Raises:
            AllocatorExhausted: If the counter has reached the integer range limit
        """
        async with self._lock:
            async with self._session_factory() as db:
                value = await self._increment(db)
                if value is None:
                    await db.rollback()
                    await self._ensure_row()
                    value = await self._increment(db)

                if value is None:
                    last_value = await self._last_value(db)
                    await db.rollback()
                    logger.error(f"Sequence {self._name} exhausted at {last_value}")
                    raise AllocatorExhausted(self._name, last_value)

                await db.commit()

        logger.info(f"Allocated listing number {value}")
        return value

    async def peek(self) -> int:
        """Return the number the next call to next() would issue, without consuming it."""
        async with self._session_factory() as db:
            last_value = await self._last_value(db)
            if last_value is None:
                last_value = await self._initial_last_value(db)
        return max(self._floor, last_value + 1)

    async def _increment(self, db: AsyncSession) -> int | None:
        """Advance the counter row; None when the row is missing or exhausted."""
        stmt = (
            update(ListingSequence)
            .where(
                ListingSequence.name == self._name,
                ListingSequence.last_value < self._max_value,
            )
            .values(
                last_value=case(
                    (ListingSequence.last_value < self._floor - 1, self._floor),
                    else_=ListingSequence.last_value + 1,
                )
            )
            .returning(ListingSequence.last_value)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _last_value(self, db: AsyncSession) -> int | None:
        result = await db.execute(
            select(ListingSequence.last_value).where(ListingSequence.name == self._name)
        )
        return result.scalar_one_or_none()

    async def _initial_last_value(self, db: AsyncSession) -> int:
        """Starting point for a new counter row.

        Listings numbered before the counter row existed are respected so the
        first issued number is above all of them.
        """
        result = await db.execute(select(func.max(Listing.listing_number)))
        highest = result.scalar()
        if highest is None:
            return self._floor - 1
        return max(self._floor - 1, highest)

    async def _ensure_row(self) -> None:
        """Create the counter row if it does not exist yet."""
        async with self._session_factory() as db:
            db.add(
                ListingSequence(
                    name=self._name,
                    last_value=await self._initial_last_value(db),
                )
            )
            try:
                await db.commit()
                logger.info(f"Initialised sequence {self._name} at floor {self._floor}")
            except IntegrityError:
                # Created concurrently by another process
                await db.rollback()
                logger.debug(f"Sequence {self._name} already initialised")
