"""Inquiry-related Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.inquiry import SlaState


class InquiryCreate(BaseModel):
    """Schema for a buyer contacting the listing agent."""

    listing_id: uuid.UUID
    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: str | None = Field(None, max_length=255)
    client_phone: str = Field(..., min_length=1, max_length=50)
    message: str | None = None


class InquiryResponseCreate(BaseModel):
    """Schema for recording the agent's first response."""

    responded_at: datetime | None = None


class InquiryResponse(BaseModel):
    """Schema for inquiry response, including its current SLA state."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_id: uuid.UUID
    assigned_agent_id: uuid.UUID
    client_name: str
    client_email: str | None
    client_phone: str
    message: str | None
    created_at: datetime
    first_agent_response_at: datetime | None
    archived_at: datetime | None
    sla_state: SlaState | None = None


class AgentSlaReportResponse(BaseModel):
    """Per-agent SLA standing."""

    agent_id: uuid.UUID
    total: int
    breaching: int
    compliant: bool
    counts: dict[SlaState, int]


class SweepResultResponse(BaseModel):
    """Outcome of an on-demand SLA sweep."""

    evaluated: int
    skipped: int
    failed: int
    events: int
