"""SystemSetting model for platform-wide tunable business rules."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class SystemSetting(BaseModel):
    """Key-value store for platform-wide settings.

    Values are stored as strings and typed on read by SettingsStore
    according to the schema declared for each key.
    """

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
