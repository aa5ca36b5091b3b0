"""Service layer for the listing and commission rule engine."""

from app.services.commission_calculator import (
    CommissionCalculator,
    CommissionInput,
    CommissionPayouts,
    ValidatedSplit,
)
from app.services.commission_service import CommissionService, get_commission_service
from app.services.engine import RuleEngine, build_engine, get_engine
from app.services.inquiry_service import InquiryService
from app.services.listing_service import ListingService, generate_slug
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_service import NotificationService, get_notification_service
from app.services.sequence_allocator import SequenceAllocator
from app.services.settings_store import SettingsStore
from app.services.sla_evaluator import AgentSlaReport, SlaEvaluator, SweepResult, classify

__all__ = [
    "CommissionCalculator",
    "CommissionInput",
    "CommissionPayouts",
    "ValidatedSplit",
    "CommissionService",
    "get_commission_service",
    "RuleEngine",
    "build_engine",
    "get_engine",
    "InquiryService",
    "ListingService",
    "generate_slug",
    "NotificationDispatcher",
    "NotificationService",
    "get_notification_service",
    "SequenceAllocator",
    "SettingsStore",
    "AgentSlaReport",
    "SlaEvaluator",
    "SweepResult",
    "classify",
]
