"""System settings schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class SystemSettingsResponse(BaseModel):
    """Typed values of every tunable business rule."""

    recruiter_bonus_enabled: bool
    recruiter_bonus_amount: Decimal
    agent_response_sla_hours: int
    stale_inquiry_threshold_days: int


class SystemSettingsUpdate(BaseModel):
    """Partial settings update.

    Values are passed through as given and validated against each key's
    declared type by SettingsStore, so "2" and 2 are both accepted.
    """

    model_config = ConfigDict(extra="forbid")

    recruiter_bonus_enabled: bool | str | None = None
    recruiter_bonus_amount: Decimal | int | str | None = None
    agent_response_sla_hours: int | str | None = None
    stale_inquiry_threshold_days: int | str | None = None
