"""Tests for inquiries and the agent's first response."""

import asyncio
from datetime import timedelta

import pytest

from app.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.models import Inquiry, ListingStatus, Role, SlaState, ensure_utc, utcnow
from app.schemas.inquiry import InquiryCreate
from app.utils.request_context import set_current_user


def _inquiry_data(listing_id) -> InquiryCreate:
    return InquiryCreate(
        listing_id=listing_id,
        client_name="Jane Buyer",
        client_email="jane@example.com",
        client_phone="+254700000000",
        message="Can I view it on Saturday?",
    )


def test_inquiry_is_assigned_to_listing_agent(session_factory, make_engine, make_user, make_listing):
    async def scenario():
        engine = make_engine()
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        async with session_factory() as db:
            inquiry = await engine.inquiries.create_inquiry(db, _inquiry_data(listing.id))
            await db.commit()
        return agent, inquiry

    agent, inquiry = asyncio.run(scenario())

    assert inquiry.assigned_agent_id == agent.id
    assert inquiry.first_agent_response_at is None
    assert inquiry.last_notified_state is None


def test_inquiry_requires_active_listing(session_factory, make_engine, make_user, make_listing):
    async def scenario():
        engine = make_engine()
        agent = await make_user(Role.AGENT)
        sold = await make_listing(agent, status=ListingStatus.SOLD)
        async with session_factory() as db:
            with pytest.raises(NotFoundException):
                await engine.inquiries.create_inquiry(db, _inquiry_data(sold.id))

    asyncio.run(scenario())


def test_first_response_is_written_once(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = make_engine()
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        created = utcnow() - timedelta(hours=1)
        inquiry = await make_inquiry(listing, created_at=created)
        set_current_user(agent.id, Role.AGENT.value)

        first_at = created + timedelta(minutes=20)
        async with session_factory() as db:
            await engine.inquiries.record_first_response(db, inquiry.id, first_at)
            await db.commit()
        async with session_factory() as db:
            await engine.inquiries.record_first_response(db, inquiry.id, created + timedelta(minutes=50))
            await db.commit()
        async with session_factory() as db:
            stored = await db.get(Inquiry, inquiry.id)
        return first_at, stored

    first_at, stored = asyncio.run(scenario())

    assert ensure_utc(stored.first_agent_response_at) == first_at


def test_response_cannot_precede_inquiry(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = make_engine()
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        created = utcnow() - timedelta(hours=1)
        inquiry = await make_inquiry(listing, created_at=created)
        set_current_user(agent.id, Role.AGENT.value)

        async with session_factory() as db:
            with pytest.raises(ValidationException):
                await engine.inquiries.record_first_response(db, inquiry.id, created - timedelta(minutes=5))

    asyncio.run(scenario())


def test_only_assigned_agent_or_admin_sees_inquiry(
    session_factory, make_engine, make_user, make_listing, make_inquiry
):
    async def scenario():
        engine = make_engine()
        agent = await make_user(Role.AGENT)
        other = await make_user(Role.AGENT)
        admin = await make_user(Role.ADMIN)
        listing = await make_listing(agent)
        inquiry = await make_inquiry(listing, created_at=utcnow())

        set_current_user(other.id, Role.AGENT.value)
        async with session_factory() as db:
            with pytest.raises(ForbiddenException):
                await engine.inquiries.record_first_response(db, inquiry.id)

        set_current_user(admin.id, Role.ADMIN.value)
        async with session_factory() as db:
            return await engine.inquiries.get_inquiry(db, inquiry.id)

    assert asyncio.run(scenario()) is not None


def test_list_inquiries_with_sla_state(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        agent = await make_user(Role.AGENT)
        other = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        other_listing = await make_listing(other)
        now = utcnow()
        await make_inquiry(listing, created_at=now - timedelta(hours=3))
        await make_inquiry(listing, created_at=now - timedelta(minutes=10))
        archived = await make_inquiry(listing, created_at=now - timedelta(days=1))
        await make_inquiry(other_listing, created_at=now)

        set_current_user(agent.id, Role.AGENT.value)
        async with session_factory() as db:
            await engine.inquiries.archive_inquiry(db, archived.id)
            await db.commit()
            open_rows, open_total = await engine.inquiries.list_inquiries(db)
            all_rows, all_total = await engine.inquiries.list_inquiries(db, include_archived=True)
        return open_rows, open_total, all_total

    open_rows, open_total, all_total = asyncio.run(scenario())

    assert open_total == 2
    assert all_total == 3
    # Newest first
    assert [state for _, state in open_rows] == [SlaState.PENDING_WITHIN_SLA, SlaState.PENDING_BREACHED]
