"""Commission schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class CommissionResponse(BaseModel):
    """A commission recorded when a listing closed."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_id: uuid.UUID
    earner_id: uuid.UUID | None
    role: str
    percentage: Decimal
    amount: Decimal
    qualifying_status: str
    created_at: datetime
