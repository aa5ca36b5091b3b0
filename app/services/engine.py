"""Wiring of the rule engine components.

Components are built once per application (or per test) from a session
factory and handed to each other explicitly; none of them is a module-level
singleton.
"""

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.commission_calculator import CommissionCalculator
from app.services.inquiry_service import InquiryService
from app.services.listing_service import ListingService
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.sequence_allocator import SequenceAllocator
from app.services.settings_store import SettingsStore
from app.services.sla_evaluator import SlaEvaluator


@dataclass
class RuleEngine:
    """All engine components sharing one settings store and dispatcher."""

    settings_store: SettingsStore
    allocator: SequenceAllocator
    calculator: CommissionCalculator
    dispatcher: NotificationDispatcher
    sla_evaluator: SlaEvaluator
    listings: ListingService
    inquiries: InquiryService


def build_engine(
    session_factory: async_sessionmaker[AsyncSession],
    **overrides,
) -> RuleEngine:
    """Build the rule engine.

    Args:
        session_factory: Factory for the sessions engine components open themselves
        **overrides: Pre-built components to use instead of the defaults
            (settings_store, allocator, calculator, dispatcher, sla_evaluator)
    """
    settings_store = overrides.get("settings_store") or SettingsStore(session_factory)
    allocator = overrides.get("allocator") or SequenceAllocator(session_factory)
    calculator = overrides.get("calculator") or CommissionCalculator(settings_store)
    dispatcher = overrides.get("dispatcher") or NotificationDispatcher(session_factory)
    sla_evaluator = overrides.get("sla_evaluator") or SlaEvaluator(
        session_factory, settings_store, dispatcher
    )

    return RuleEngine(
        settings_store=settings_store,
        allocator=allocator,
        calculator=calculator,
        dispatcher=dispatcher,
        sla_evaluator=sla_evaluator,
        listings=ListingService(allocator, calculator, dispatcher),
        inquiries=InquiryService(sla_evaluator),
    )


def get_engine(request: Request) -> RuleEngine:
    """Dependency returning the engine built at application startup."""
    return request.app.state.engine
