"""Tests for the recruiter bonus trigger on listing status transitions."""

import asyncio
from decimal import Decimal

from sqlalchemy import update

from app.models import (
    Listing,
    ListingStatus,
    Notification,
    NotificationType,
    RecruiterBonusRecord,
    Role,
)
from app.services.events import RecruiterBonusQualified
from app.services.settings_store import RECRUITER_BONUS_AMOUNT, RECRUITER_BONUS_ENABLED
from app.utils.request_context import set_current_user


async def _referral_setup(make_user, make_listing):
    agent = await make_user(Role.AGENT, name="Agent")
    recruiter = await make_user(Role.PROMOTER, name="Recruiter")
    promoter = await make_user(Role.PROMOTER, referrer_id=recruiter.id, name="Promoter")
    listing = await make_listing(agent, promoter=promoter)
    return agent, recruiter, promoter, listing


def test_bonus_issued_once_across_repeated_transitions(
    session_factory, make_engine, make_user, make_listing, count_rows
):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        agent, recruiter, promoter, listing = await _referral_setup(make_user, make_listing)
        set_current_user(agent.id, Role.AGENT.value)

        for status in (ListingStatus.SOLD, ListingStatus.ACTIVE, ListingStatus.SOLD, ListingStatus.RENTED):
            async with session_factory() as db:
                await engine.listings.update_status(db, listing.id, status)

        records = await count_rows(RecruiterBonusRecord, RecruiterBonusRecord.listing_id == listing.id)
        notifications = await count_rows(
            Notification,
            Notification.recipient_id == recruiter.id,
            Notification.type == NotificationType.RECRUITER_BONUS.value,
        )
        async with session_factory() as db:
            stored = await db.get(Listing, listing.id)
        return records, notifications, stored

    records, notifications, stored = asyncio.run(scenario())

    assert records == 1
    assert notifications == 1
    assert stored.recruiter_bonus_issued is True
    assert stored.status == ListingStatus.RENTED.value


def test_bonus_record_and_event_contents(session_factory, make_engine, make_user, make_listing):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        await engine.settings_store.set(RECRUITER_BONUS_AMOUNT, "750")
        agent, recruiter, promoter, listing = await _referral_setup(make_user, make_listing)

        async with session_factory() as db:
            loaded = await db.get(Listing, listing.id)
            loaded.status = ListingStatus.SOLD.value
            events = await engine.calculator.register_status_transition(
                db, loaded, ListingStatus.ACTIVE.value, ListingStatus.SOLD.value
            )
            await db.commit()
            event = next(e for e in events if isinstance(e, RecruiterBonusQualified))
            record = await db.get(RecruiterBonusRecord, event.bonus_record_id)

        return recruiter, promoter, listing, event, record

    recruiter, promoter, listing, event, record = asyncio.run(scenario())

    assert event.referrer_id == recruiter.id
    assert event.referred_user_id == promoter.id
    assert event.listing_number == listing.listing_number
    assert event.amount == Decimal("750")
    assert record.referrer_id == recruiter.id
    assert record.amount == Decimal("750")
    assert record.qualifying_status == ListingStatus.SOLD.value


def test_no_bonus_when_disabled(session_factory, make_engine, make_user, make_listing, count_rows):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.set(RECRUITER_BONUS_ENABLED, False)
        agent, recruiter, promoter, listing = await _referral_setup(make_user, make_listing)
        set_current_user(agent.id, Role.AGENT.value)

        async with session_factory() as db:
            await engine.listings.update_status(db, listing.id, ListingStatus.SOLD)
        return await count_rows(RecruiterBonusRecord)

    assert asyncio.run(scenario()) == 0


def test_no_bonus_without_referrer_or_promoter(session_factory, make_engine, make_user, make_listing, count_rows):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        agent = await make_user(Role.AGENT)
        unreferred = await make_user(Role.PROMOTER)
        promoted = await make_listing(agent, promoter=unreferred)
        unpromoted = await make_listing(agent)
        set_current_user(agent.id, Role.AGENT.value)

        for listing in (promoted, unpromoted):
            async with session_factory() as db:
                await engine.listings.update_status(db, listing.id, ListingStatus.SOLD)
        return await count_rows(RecruiterBonusRecord)

    assert asyncio.run(scenario()) == 0


def test_non_qualifying_transition_issues_nothing(session_factory, make_engine, make_user, make_listing):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        agent, recruiter, promoter, listing = await _referral_setup(make_user, make_listing)

        async with session_factory() as db:
            loaded = await db.get(Listing, listing.id)
            inactive = await engine.calculator.register_status_transition(
                db, loaded, ListingStatus.ACTIVE.value, ListingStatus.INACTIVE.value
            )
            # Moving between two closed statuses is not a new closing
            between_closed = await engine.calculator.register_status_transition(
                db, loaded, ListingStatus.SOLD.value, ListingStatus.RENTED.value
            )
        return inactive, between_closed

    assert asyncio.run(scenario()) == ([], [])


def test_claim_already_taken_elsewhere(session_factory, make_engine, make_user, make_listing, count_rows):
    async def scenario():
        engine = make_engine()
        await engine.settings_store.seed_defaults()
        agent, recruiter, promoter, listing = await _referral_setup(make_user, make_listing)

        async with session_factory() as db:
            stale_copy = await db.get(Listing, listing.id)

            # Another worker issues the bonus after this copy was loaded
            async with session_factory() as other:
                await other.execute(
                    update(Listing)
                    .where(Listing.id == listing.id)
                    .values(recruiter_bonus_issued=True)
                )
                await other.commit()

            events = await engine.calculator.register_status_transition(
                db, stale_copy, ListingStatus.ACTIVE.value, ListingStatus.SOLD.value
            )
            await db.commit()
        return events, await count_rows(RecruiterBonusRecord)

    events, records = asyncio.run(scenario())

    assert not any(isinstance(e, RecruiterBonusQualified) for e in events)
    assert records == 0
