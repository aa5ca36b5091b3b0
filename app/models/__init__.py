"""SQLAlchemy models for the marketplace rule engine."""

from app.models.base import Base, BaseModel, TimestampMixin, ensure_utc, utcnow
from app.models.user import User, Role
from app.models.system_settings import SystemSetting
from app.models.sequence import ListingSequence
from app.models.listing import Listing, ListingStatus, ListingType
from app.models.inquiry import Inquiry, SlaState
from app.models.notification import Notification, NotificationType
from app.models.recruiter_bonus import RecruiterBonusRecord
from app.models.commission import Commission, CommissionRole

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    "ensure_utc",
    "utcnow",
    # User
    "User",
    "Role",
    # Settings
    "SystemSetting",
    # Sequences
    "ListingSequence",
    # Listing
    "Listing",
    "ListingStatus",
    "ListingType",
    # Inquiry
    "Inquiry",
    "SlaState",
    # Notification
    "Notification",
    "NotificationType",
    # Recruiter bonus
    "RecruiterBonusRecord",
    # Commissions
    "Commission",
    "CommissionRole",
]
