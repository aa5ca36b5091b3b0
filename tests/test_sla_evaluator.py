"""Tests for SLA classification, sweeps and emit-once notifications."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from app.models import Inquiry, Notification, NotificationType, Role, SlaState
from app.services.events import InquiryStale, SlaBreach
from app.services.settings_store import AGENT_RESPONSE_SLA_HOURS, STALE_INQUIRY_THRESHOLD_DAYS
from app.services.sla_evaluator import SlaEvaluator, SweepResult, classify

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "response_after, waited, expected",
    [
        (timedelta(minutes=90), None, SlaState.ON_TIME),
        (timedelta(hours=2), None, SlaState.ON_TIME),
        (timedelta(minutes=150), None, SlaState.BREACHED),
        (timedelta(days=10), None, SlaState.BREACHED),
        (None, timedelta(minutes=60), SlaState.PENDING_WITHIN_SLA),
        (None, timedelta(minutes=180), SlaState.PENDING_BREACHED),
        (None, timedelta(days=3), SlaState.PENDING_BREACHED),
        (None, timedelta(days=4), SlaState.STALE),
    ],
)
def test_classify(response_after, waited, expected):
    created_at = NOW - (waited or timedelta(0))
    first_response = created_at + response_after if response_after else None

    assert classify(created_at, first_response, NOW, sla_hours=2, stale_days=3) == expected


def test_classify_accepts_naive_utc_timestamps():
    created_at = (NOW - timedelta(hours=3)).replace(tzinfo=None)

    assert classify(created_at, None, NOW, sla_hours=2, stale_days=3) == SlaState.PENDING_BREACHED


async def _seeded_engine(make_engine, clock=lambda: NOW):
    engine = make_engine(clock=clock)
    await engine.settings_store.seed_defaults()
    return engine


def test_breach_then_stale_each_notified_once(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        admin = await make_user(Role.ADMIN)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        inquiry = await make_inquiry(listing, created_at=NOW - timedelta(hours=3))

        first = await engine.sla_evaluator.sweep(NOW)
        second = await engine.sla_evaluator.sweep(NOW + timedelta(hours=1))
        third = await engine.sla_evaluator.sweep(NOW + timedelta(days=4))
        fourth = await engine.sla_evaluator.sweep(NOW + timedelta(days=5))

        breach_count = await count_rows(
            Notification,
            Notification.recipient_id == agent.id,
            Notification.type == NotificationType.RESPONSE_SLA_BREACH.value,
        )
        stale_count = await count_rows(
            Notification,
            Notification.recipient_id == admin.id,
            Notification.type == NotificationType.STALE_INQUIRY.value,
        )
        async with session_factory() as db:
            stored = await db.get(Inquiry, inquiry.id)
        return first, second, third, fourth, breach_count, stale_count, stored

    first, second, third, fourth, breach_count, stale_count, stored = asyncio.run(scenario())

    assert [type(e) for e in first.events] == [SlaBreach]
    assert second.events == []
    assert [type(e) for e in third.events] == [InquiryStale]
    assert fourth.events == []
    assert breach_count == 1
    assert stale_count == 1
    assert stored.last_notified_state == SlaState.STALE.value


def test_inquiry_found_already_stale_gets_both_notifications_once(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        admin = await make_user(Role.ADMIN)
        second_admin = await make_user(Role.ADMIN)
        await make_user(Role.ADMIN, is_active=False)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        await make_inquiry(listing, created_at=NOW - timedelta(days=4))

        results = [await engine.sla_evaluator.sweep(NOW) for _ in range(3)]

        stale_count = await count_rows(Notification, Notification.type == NotificationType.STALE_INQUIRY.value)
        breach_count = await count_rows(
            Notification, Notification.type == NotificationType.RESPONSE_SLA_BREACH.value
        )
        return results, stale_count, breach_count

    results, stale_count, breach_count = asyncio.run(scenario())

    assert [type(e) for e in results[0].events] == [SlaBreach, InquiryStale]
    assert results[1].events == [] and results[2].events == []
    # One per active admin
    assert stale_count == 2
    assert breach_count == 1


def test_answered_and_archived_inquiries_are_not_swept(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        await make_user(Role.ADMIN)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        created = NOW - timedelta(days=5)
        await make_inquiry(listing, created_at=created, first_agent_response_at=created + timedelta(days=1))
        archived = await make_inquiry(listing, created_at=created)
        async with session_factory() as db:
            row = await db.get(Inquiry, archived.id)
            row.archived_at = NOW
            await db.commit()

        result = await engine.sla_evaluator.sweep(NOW)
        return result, await count_rows(Notification)

    result, notifications = asyncio.run(scenario())

    assert result.evaluated == 0
    assert result.events == []
    assert notifications == 0


def test_within_sla_emits_nothing(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        await make_inquiry(listing, created_at=NOW - timedelta(minutes=30))
        return await engine.sla_evaluator.sweep(NOW)

    result = asyncio.run(scenario())

    assert result.evaluated == 1
    assert result.events == []


def test_settings_change_applies_to_next_sweep(
    session_factory, make_engine, make_user, make_listing, make_inquiry
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        await make_inquiry(listing, created_at=NOW - timedelta(hours=3))

        await engine.settings_store.set_many({AGENT_RESPONSE_SLA_HOURS: 4, STALE_INQUIRY_THRESHOLD_DAYS: 7})
        relaxed = await engine.sla_evaluator.sweep(NOW)
        await engine.settings_store.set(AGENT_RESPONSE_SLA_HOURS, 2)
        tightened = await engine.sla_evaluator.sweep(NOW)
        return relaxed, tightened

    relaxed, tightened = asyncio.run(scenario())

    assert relaxed.events == []
    assert [type(e) for e in tightened.events] == [SlaBreach]
    assert tightened.events[0].sla_hours == 2


def test_sweep_uses_injected_clock(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = await _seeded_engine(make_engine, clock=lambda: NOW + timedelta(hours=5))
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        await make_inquiry(listing, created_at=NOW)
        return await engine.sla_evaluator.sweep()

    result = asyncio.run(scenario())

    assert [type(e) for e in result.events] == [SlaBreach]


def test_agent_report(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        other_agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        other_listing = await make_listing(other_agent)

        await make_inquiry(listing, created_at=NOW - timedelta(hours=5), first_agent_response_at=NOW - timedelta(hours=4))
        await make_inquiry(listing, created_at=NOW - timedelta(hours=5), first_agent_response_at=NOW)
        await make_inquiry(listing, created_at=NOW - timedelta(minutes=10))
        await make_inquiry(other_listing, created_at=NOW - timedelta(days=6))

        async with session_factory() as db:
            mine = await engine.sla_evaluator.agent_report(db, agent.id)
            theirs = await engine.sla_evaluator.agent_report(db, other_agent.id)
        return mine, theirs

    mine, theirs = asyncio.run(scenario())

    assert mine.counts[SlaState.ON_TIME] == 1
    assert mine.counts[SlaState.BREACHED] == 1
    assert mine.counts[SlaState.PENDING_WITHIN_SLA] == 1
    assert mine.total == 3
    assert mine.breaching == 1
    assert mine.compliant is False
    assert theirs.counts[SlaState.STALE] == 1
    assert theirs.compliant is False


def test_periodic_sweeps_stop_on_event(session_factory, make_engine):
    async def scenario():
        engine = make_engine()
        stop = asyncio.Event()
        calls = []

        async def fake_sweep(now=None):
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("database unavailable")
            stop.set()
            return SweepResult()

        engine.sla_evaluator.sweep = fake_sweep
        await asyncio.wait_for(engine.sla_evaluator.run_periodic_sweeps(0.01, stop), timeout=5)
        return calls

    # A failing sweep is logged and the loop keeps going
    assert len(asyncio.run(scenario())) == 2


def test_evaluate_ignores_closed_inquiries(session_factory, make_engine, make_user, make_listing, make_inquiry):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        inquiry = await make_inquiry(listing, created_at=NOW - timedelta(days=5))

        async with session_factory() as db:
            row = await db.get(Inquiry, inquiry.id)
            row.archived_at = NOW
            return await engine.sla_evaluator.evaluate(db, row, NOW), row.last_notified_state

    assert asyncio.run(scenario()) == ([], None)


class PausingSessionFactory:
    """Holds the first session opened while `lock` is held until `resume` is set."""

    def __init__(self, factory, resume: asyncio.Event):
        self.factory = factory
        self.lock: asyncio.Lock | None = None
        self.resume = resume
        self.paused = False

    def __call__(self):
        return self._open()

    @asynccontextmanager
    async def _open(self):
        if self.lock is not None and self.lock.locked() and not self.paused:
            self.paused = True
            await asyncio.wait_for(self.resume.wait(), timeout=5)
        async with self.factory() as session:
            yield session


def test_overlapping_sweeps_evaluate_an_inquiry_once(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        inquiry = await make_inquiry(listing, created_at=NOW - timedelta(hours=3))

        resume = asyncio.Event()
        pausing = PausingSessionFactory(session_factory, resume)
        evaluator = SlaEvaluator(pausing, engine.settings_store, engine.dispatcher, clock=lambda: NOW)
        # Holding a reference keeps the weakly held per-inquiry lock alive
        pausing.lock = evaluator._lock_for(inquiry.id)

        async def sweep():
            try:
                return await evaluator.sweep(NOW)
            finally:
                resume.set()

        results = await asyncio.gather(sweep(), sweep())
        breaches = await count_rows(
            Notification,
            Notification.recipient_id == agent.id,
            Notification.type == NotificationType.RESPONSE_SLA_BREACH.value,
        )
        return results, breaches

    results, breaches = asyncio.run(scenario())

    assert sum(r.evaluated for r in results) == 1
    assert sum(r.skipped for r in results) >= 1
    assert sum(len(r.events) for r in results) == 1
    assert breaches == 1


def test_inquiry_held_by_another_sweep_is_skipped(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        inquiry = await make_inquiry(listing, created_at=NOW - timedelta(hours=3))

        lock = engine.sla_evaluator._lock_for(inquiry.id)
        async with lock:
            held = await engine.sla_evaluator.sweep(NOW)
        released = await engine.sla_evaluator.sweep(NOW)
        return held, released, await count_rows(Notification)

    held, released, notifications = asyncio.run(scenario())

    assert (held.evaluated, held.skipped, held.events) == (0, 1, [])
    assert [type(e) for e in released.events] == [SlaBreach]
    assert notifications == 1


def test_stale_before_sla_elapses_skips_the_breach(
    session_factory, make_engine, make_user, make_listing, make_inquiry, count_rows
):
    async def scenario():
        engine = await _seeded_engine(make_engine)
        await make_user(Role.ADMIN)
        agent = await make_user(Role.AGENT)
        listing = await make_listing(agent)
        await make_inquiry(listing, created_at=NOW - timedelta(hours=30))
        await engine.settings_store.set_many({AGENT_RESPONSE_SLA_HOURS: 48, STALE_INQUIRY_THRESHOLD_DAYS: 1})

        result = await engine.sla_evaluator.sweep(NOW)
        breaches = await count_rows(
            Notification, Notification.type == NotificationType.RESPONSE_SLA_BREACH.value
        )
        return result, breaches

    result, breaches = asyncio.run(scenario())

    assert [type(e) for e in result.events] == [InquiryStale]
    assert breaches == 0
