"""Typed, cached access to the system_settings table.

Each known key declares a type and a default. Values are stored as strings
and parsed on read; writes are validated before they are persisted. Reads are
served from an in-process cache that is dropped on every successful write and
refreshed after ``cache_ttl_seconds`` so changes made by other processes are
picked up within one refresh cycle.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.exceptions import InvalidSettingValue
from app.models.system_settings import SystemSetting

logger = logging.getLogger(__name__)

RECRUITER_BONUS_ENABLED = "recruiter_bonus_enabled"
RECRUITER_BONUS_AMOUNT = "recruiter_bonus_amount"
AGENT_RESPONSE_SLA_HOURS = "agent_response_sla_hours"
STALE_INQUIRY_THRESHOLD_DAYS = "stale_inquiry_threshold_days"

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


class SettingType(str, Enum):
    """Value types a setting may declare."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    DECIMAL = "decimal"


@dataclass(frozen=True)
class SettingDefinition:
    """Schema entry for one setting key."""

    key: str
    type: SettingType
    default: Any
    seed_value: str
    minimum: int | Decimal | None = None


SETTING_DEFINITIONS: dict[str, SettingDefinition] = {
    definition.key: definition
    for definition in (
        SettingDefinition(RECRUITER_BONUS_ENABLED, SettingType.BOOLEAN, False, "true"),
        SettingDefinition(
            RECRUITER_BONUS_AMOUNT, SettingType.DECIMAL, Decimal("500"), "500", Decimal("0")
        ),
        SettingDefinition(AGENT_RESPONSE_SLA_HOURS, SettingType.INTEGER, 24, "2", 1),
        SettingDefinition(STALE_INQUIRY_THRESHOLD_DAYS, SettingType.INTEGER, 7, "3", 1),
    )
}


def get_definition(key: str) -> SettingDefinition:
    """Look up the schema for a key, rejecting unknown keys."""
    definition = SETTING_DEFINITIONS.get(key)
    if definition is None:
        raise InvalidSettingValue(key, None, "Unknown setting")
    return definition


def parse_setting_value(definition: SettingDefinition, value: Any) -> bool | int | Decimal:
    """Convert a raw or native value to the key's declared type.

    Raises:
        InvalidSettingValue: If the value cannot be represented as that type
    """
    key = definition.key

    if definition.type is SettingType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise InvalidSettingValue(key, value, "Expected a boolean")

    if isinstance(value, bool):
        raise InvalidSettingValue(key, value, f"Expected a {definition.type.value}")

    if definition.type is SettingType.INTEGER:
        if isinstance(value, int):
            parsed = value
        else:
            try:
                parsed = int(str(value).strip())
            except ValueError:
                raise InvalidSettingValue(key, value, "Expected an integer") from None
    else:
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidSettingValue(key, value, "Expected a decimal number") from None
        if not parsed.is_finite():
            raise InvalidSettingValue(key, value, "Expected a finite decimal number")

    if definition.minimum is not None and parsed < definition.minimum:
        raise InvalidSettingValue(key, value, f"Must be at least {definition.minimum}")

    return parsed


def serialize_setting_value(value: bool | int | Decimal) -> str:
    """Render a typed value in its stored string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


class SettingsStore:
    """DB-backed settings with type checking and a refresh-on-write cache.

    One instance is created per application and injected into every
    consumer; tests build their own instance against a throwaway database.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self._cache_ttl = (
            cache_ttl_seconds
            if cache_ttl_seconds is not None
            else get_settings().settings_cache_ttl_seconds
        )
        self._clock = clock
        self._cache: dict[str, str] | None = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def invalidate(self) -> None:
        """Drop the cached copy so the next read goes to the database."""
        self._cache = None

    async def _raw_values(self) -> dict[str, str]:
        cache = self._cache
        if cache is not None and self._clock() - self._loaded_at < self._cache_ttl:
            return cache

        async with self._lock:
            if self._cache is not None and self._clock() - self._loaded_at < self._cache_ttl:
                return self._cache

            async with self._session_factory() as db:
                result = await db.execute(
                    select(SystemSetting.key, SystemSetting.value).where(
                        SystemSetting.key.in_(SETTING_DEFINITIONS)
                    )
                )
                self._cache = {key: value for key, value in result.all()}
            self._loaded_at = self._clock()
            return self._cache

    async def get(self, key: str) -> bool | int | Decimal:
        """Resolve a setting, falling back to its default when absent.

        A stored value that no longer parses is ignored in favour of the
        default and logged, so callers never see a type-incompatible value.
        """
        definition = get_definition(key)
        raw = (await self._raw_values()).get(key)
        if raw is None:
            return definition.default

        try:
            return parse_setting_value(definition, raw)
        except InvalidSettingValue as e:
            logger.warning(f"Ignoring stored setting {key}={raw!r}: {e.message}; using default {definition.default!r}")
            return definition.default

    async def get_all(self) -> dict[str, bool | int | Decimal]:
        """Resolve every known setting."""
        return {key: await self.get(key) for key in SETTING_DEFINITIONS}

    async def set(self, key: str, value: Any) -> bool | int | Decimal:
        """Validate and persist a single setting."""
        updated = await self.set_many({key: value})
        return updated[key]

    async def set_many(self, updates: Mapping[str, Any]) -> dict[str, bool | int | Decimal]:
        """Validate every pair, then persist them in one transaction.

        Raises:
            InvalidSettingValue: If any key is unknown or any value fails to parse;
                nothing is written in that case
        """
        parsed = {
            key: parse_setting_value(get_definition(key), value)
            for key, value in updates.items()
        }
        if not parsed:
            return {}

        async with self._session_factory() as db:
            try:
                await self._upsert(db, parsed)
                await db.commit()
            except IntegrityError:
                # Another writer inserted one of the keys first; rows exist now
                await db.rollback()
                await self._upsert(db, parsed)
                await db.commit()

        self.invalidate()
        logger.info(f"Updated settings: {', '.join(f'{k}={serialize_setting_value(v)}' for k, v in parsed.items())}")
        return parsed

    async def _upsert(self, db: AsyncSession, parsed: dict[str, bool | int | Decimal]) -> None:
        result = await db.execute(
            select(SystemSetting).where(SystemSetting.key.in_(parsed))
        )
        existing = {row.key: row for row in result.scalars().all()}

        for key, value in parsed.items():
            stored = serialize_setting_value(value)
            row = existing.get(key)
            if row is None:
                db.add(SystemSetting(key=key, value=stored))
            else:
                row.value = stored
        await db.flush()

    async def seed_defaults(self) -> list[str]:
        """Insert the seeded value of every key that has no row yet.

        Returns:
            Keys that were inserted
        """
        async with self._session_factory() as db:
            result = await db.execute(select(SystemSetting.key))
            present = set(result.scalars().all())

            inserted = []
            for key, definition in SETTING_DEFINITIONS.items():
                if key not in present:
                    db.add(SystemSetting(key=key, value=definition.seed_value))
                    inserted.append(key)
            await db.commit()

        self.invalidate()
        if inserted:
            logger.info(f"Seeded system settings: {', '.join(inserted)}")
        return inserted
