"""Events emitted by the rule engine and consumed by NotificationDispatcher."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.models.base import utcnow


class EventType(str, Enum):
    """Kinds of engine events."""

    COMMISSION_EARNED = "CommissionEarned"
    RECRUITER_BONUS_QUALIFIED = "RecruiterBonusQualified"
    SLA_BREACH = "SlaBreach"
    INQUIRY_STALE = "InquiryStale"


@dataclass(frozen=True)
class CommissionEarned:
    """A listing closed and one share of its split was recorded as a commission."""

    commission_id: uuid.UUID
    listing_id: uuid.UUID
    listing_number: int
    earner_id: uuid.UUID
    role: str
    amount: Decimal
    occurred_at: datetime = field(default_factory=utcnow)
    event_type: EventType = EventType.COMMISSION_EARNED


@dataclass(frozen=True)
class RecruiterBonusQualified:
    """A promoted listing closed and the promoter's referrer earned a bonus."""

    listing_id: uuid.UUID
    listing_number: int
    referrer_id: uuid.UUID
    referred_user_id: uuid.UUID
    amount: Decimal
    bonus_record_id: uuid.UUID
    occurred_at: datetime = field(default_factory=utcnow)
    event_type: EventType = EventType.RECRUITER_BONUS_QUALIFIED


@dataclass(frozen=True)
class SlaBreach:
    """An inquiry went unanswered past the agent response SLA."""

    inquiry_id: uuid.UUID
    listing_id: uuid.UUID
    listing_number: int
    agent_id: uuid.UUID
    sla_hours: int
    waiting_since: datetime
    occurred_at: datetime = field(default_factory=utcnow)
    event_type: EventType = EventType.SLA_BREACH


@dataclass(frozen=True)
class InquiryStale:
    """An inquiry went unanswered past the stale threshold."""

    inquiry_id: uuid.UUID
    listing_id: uuid.UUID
    listing_number: int
    agent_id: uuid.UUID
    threshold_days: int
    waiting_since: datetime
    occurred_at: datetime = field(default_factory=utcnow)
    event_type: EventType = EventType.INQUIRY_STALE


EngineEvent = CommissionEarned | RecruiterBonusQualified | SlaBreach | InquiryStale
