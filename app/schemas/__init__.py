"""Pydantic schemas for request/response validation."""

from app.schemas.commission import CommissionResponse
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.inquiry import (
    AgentSlaReportResponse,
    InquiryCreate,
    InquiryResponse,
    InquiryResponseCreate,
    SweepResultResponse,
)
from app.schemas.listing import (
    CommissionPayoutsResponse,
    ListingCreate,
    ListingPromoterUpdate,
    ListingResponse,
    ListingStatusUpdate,
    SlugPreviewResponse,
)
from app.schemas.notification import NotificationResponse, UnreadCountResponse
from app.schemas.settings import SystemSettingsResponse, SystemSettingsUpdate

__all__ = [
    # Common
    "APIResponse",
    "PaginationMeta",
    # Commission
    "CommissionResponse",
    # Listing
    "ListingCreate",
    "ListingStatusUpdate",
    "ListingPromoterUpdate",
    "ListingResponse",
    "CommissionPayoutsResponse",
    "SlugPreviewResponse",
    # Inquiry
    "InquiryCreate",
    "InquiryResponseCreate",
    "InquiryResponse",
    "AgentSlaReportResponse",
    "SweepResultResponse",
    # Notification
    "NotificationResponse",
    "UnreadCountResponse",
    # Settings
    "SystemSettingsResponse",
    "SystemSettingsUpdate",
]
