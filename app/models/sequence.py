"""Persisted counters backing application-managed sequences."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class ListingSequence(Base, TimestampMixin):
    """Single-row counter per named sequence.

    last_value holds the most recently issued number. The row is only ever
    changed by an atomic increment-and-read UPDATE.
    """

    __tablename__ = "listing_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False)
