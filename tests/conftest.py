"""Shared fixtures: a throwaway SQLite database per test and engine builders."""

import asyncio
import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.database import create_engine, create_session_factory, init_db
from app.models import Inquiry, Listing, ListingStatus, ListingType, Role, User, utcnow
from app.services.engine import build_engine
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.settings_store import SettingsStore
from app.services.sla_evaluator import SlaEvaluator


async def no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}"


@pytest.fixture
def session_factory(database_url):
    bind = create_engine(database_url)
    asyncio.run(init_db(bind))
    yield create_session_factory(bind)
    asyncio.run(bind.dispose())


@pytest.fixture
def make_engine(session_factory):
    """Build a rule engine with no caching, no retry delay and sequential sweeps.

    Call it inside the test's event loop; the components hold asyncio locks.
    """

    def _make_engine(clock=None, **overrides):
        store = overrides.pop("settings_store", None) or SettingsStore(session_factory, cache_ttl_seconds=0)
        dispatcher = overrides.pop("dispatcher", None) or NotificationDispatcher(
            session_factory, max_attempts=3, backoff_seconds=0, sleep=no_sleep
        )
        evaluator = SlaEvaluator(
            session_factory,
            store,
            dispatcher,
            concurrency=1,
            clock=clock or utcnow,
        )
        return build_engine(
            session_factory,
            settings_store=store,
            dispatcher=dispatcher,
            sla_evaluator=evaluator,
            **overrides,
        )

    return _make_engine


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        role: Role = Role.AGENT,
        referrer_id: uuid.UUID | None = None,
        is_active: bool = True,
        name: str = "Test User",
    ) -> User:
        async with session_factory() as db:
            user = User(
                email=f"{uuid.uuid4().hex[:12]}@example.com",
                name=name,
                role=role.value,
                referrer_id=referrer_id,
                is_active=is_active,
            )
            db.add(user)
            await db.commit()
        return user

    return _make_user


@pytest.fixture
def make_listing(session_factory):
    """Insert a listing row directly, bypassing allocation and validation."""
    counter = iter(range(900000, 999999))

    async def _make_listing(
        owner: User,
        promoter: User | None = None,
        status: ListingStatus = ListingStatus.ACTIVE,
    ) -> Listing:
        number = next(counter)
        async with session_factory() as db:
            listing = Listing(
                listing_number=number,
                slug=f"house-for-sale-in-karen-{number}",
                title="Family house",
                listing_type=ListingType.SALE.value,
                property_type="House",
                location="Karen",
                price=Decimal("25000000"),
                status=status.value,
                created_by_id=owner.id,
                has_promoter=promoter is not None,
                promoter_id=promoter.id if promoter else None,
                agent_commission_pct=Decimal("60") if promoter else Decimal("80"),
                promoter_commission_pct=Decimal("20") if promoter else Decimal("0"),
                company_commission_pct=Decimal("20"),
            )
            db.add(listing)
            await db.commit()
        return listing

    return _make_listing


@pytest.fixture
def make_inquiry(session_factory):
    async def _make_inquiry(
        listing: Listing,
        created_at: datetime,
        first_agent_response_at: datetime | None = None,
    ) -> Inquiry:
        async with session_factory() as db:
            inquiry = Inquiry(
                listing_id=listing.id,
                assigned_agent_id=listing.created_by_id,
                client_name="Jane Buyer",
                client_email="jane@example.com",
                client_phone="+254700000000",
                message="Is this still available?",
                created_at=created_at,
                first_agent_response_at=first_agent_response_at,
            )
            db.add(inquiry)
            await db.commit()
        return inquiry

    return _make_inquiry


@pytest.fixture
def count_rows(session_factory):
    async def _count_rows(model, *criteria) -> int:
        async with session_factory() as db:
            query = select(func.count()).select_from(model)
            if criteria:
                query = query.where(*criteria)
            return (await db.execute(query)).scalar_one()

    return _count_rows
