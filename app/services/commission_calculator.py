"""Commission split validation, commission recording and the recruiter bonus."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.config import get_settings
from app.exceptions import InvalidCommissionRange, InvalidCommissionSplit
from app.models.commission import Commission, CommissionRole
from app.models.listing import Listing
from app.models.recruiter_bonus import RecruiterBonusRecord
from app.models.user import User
from app.services.events import CommissionEarned, EngineEvent, RecruiterBonusQualified
from app.services.settings_store import (
    RECRUITER_BONUS_AMOUNT,
    RECRUITER_BONUS_ENABLED,
    SettingsStore,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def _to_decimal(field: str, value: Decimal | int | float | str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidCommissionRange(field, value) from None
    if not result.is_finite():
        raise InvalidCommissionRange(field, result)
    return result


@dataclass(frozen=True)
class CommissionInput:
    """Requested commission percentages for a listing."""

    agent_pct: Decimal | int | float | str
    promoter_pct: Decimal | int | float | str
    company_pct: Decimal | int | float | str
    has_promoter: bool


@dataclass(frozen=True)
class CommissionPayouts:
    """Commission amounts for a given price."""

    agent: Decimal
    promoter: Decimal
    company: Decimal

    @property
    def total(self) -> Decimal:
        return self.agent + self.promoter + self.company


@dataclass(frozen=True)
class ValidatedSplit:
    """A commission split that passed validation, rounded to cents."""

    agent_pct: Decimal
    promoter_pct: Decimal
    company_pct: Decimal
    has_promoter: bool

    @property
    def total(self) -> Decimal:
        return self.agent_pct + self.promoter_pct + self.company_pct

    def payouts(self, price: Decimal | int | str) -> CommissionPayouts:
        """Compute each party's commission on the given price."""
        price = Decimal(str(price))

        def share(pct: Decimal) -> Decimal:
            return (price * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)

        return CommissionPayouts(
            agent=share(self.agent_pct),
            promoter=share(self.promoter_pct),
            company=share(self.company_pct),
        )


class CommissionCalculator:
    """Validates agent/promoter/company splits and applies them when listings close."""

    def __init__(
        self,
        settings_store: SettingsStore,
        qualifying_statuses: list[str] | None = None,
        epsilon: Decimal | None = None,
    ):
        config = get_settings()
        self._settings_store = settings_store
        self._qualifying_statuses = frozenset(
            qualifying_statuses if qualifying_statuses is not None else config.qualifying_statuses_list
        )
        self._epsilon = epsilon if epsilon is not None else config.commission_epsilon

    @property
    def qualifying_statuses(self) -> frozenset[str]:
        return self._qualifying_statuses

    def compute_split(self, data: CommissionInput) -> ValidatedSplit:
        """Validate and normalise a commission split.

        Raises:
            InvalidCommissionRange: If any percentage is outside [0, 100]
            InvalidCommissionSplit: If the percentages do not sum to 100, or a
                promoter share is given without a promoter
        """
        # Checks run on the stored (cent-rounded) values
        agent = _to_decimal("agent_pct", data.agent_pct).quantize(CENT, rounding=ROUND_HALF_UP)
        promoter = _to_decimal("promoter_pct", data.promoter_pct).quantize(CENT, rounding=ROUND_HALF_UP)
        company = _to_decimal("company_pct", data.company_pct).quantize(CENT, rounding=ROUND_HALF_UP)

        for field, value in (("agent_pct", agent), ("promoter_pct", promoter), ("company_pct", company)):
            if value < 0 or value > HUNDRED:
                raise InvalidCommissionRange(field, value)

        total = agent + promoter + company

        if not data.has_promoter and promoter != 0:
            raise InvalidCommissionSplit(
                total,
                f"promoter_pct must be 0 when no promoter is attached (got {promoter})",
            )

        if abs(total - HUNDRED) > self._epsilon:
            raise InvalidCommissionSplit(total)

        return ValidatedSplit(
            agent_pct=agent,
            promoter_pct=promoter,
            company_pct=company,
            has_promoter=data.has_promoter,
        )

    def split_of(self, listing: Listing) -> ValidatedSplit:
        """The stored split of a listing."""
        return ValidatedSplit(
            agent_pct=listing.agent_commission_pct,
            promoter_pct=listing.promoter_commission_pct,
            company_pct=listing.company_commission_pct,
            has_promoter=listing.has_promoter,
        )

    async def register_status_transition(
        self,
        db: AsyncSession,
        listing: Listing,
        previous_status: str,
        new_status: str,
    ) -> list[EngineEvent]:
        """Apply the commission rules for a listing status change.

        Closing a listing (entering a qualifying status from a non-qualifying
        one) records its commissions and issues the recruiter bonus at most
        once. Reopening it deletes the commissions; the bonus stays issued.
        Rows are added to the caller's session; the caller commits them
        together with the status change and dispatches the returned events
        afterwards.

        Returns:
            The events to dispatch, empty if the transition changes nothing
        """
        was_closed = previous_status in self._qualifying_statuses
        is_closed = new_status in self._qualifying_statuses

        if was_closed and not is_closed:
            await self._reverse_commissions(db, listing)
            return []
        if was_closed or not is_closed:
            return []

        events: list[EngineEvent] = await self._record_commissions(db, listing, new_status)
        bonus = await self._issue_recruiter_bonus(db, listing, new_status)
        if bonus is not None:
            events.append(bonus)
        return events

    async def _record_commissions(
        self,
        db: AsyncSession,
        listing: Listing,
        new_status: str,
    ) -> list[CommissionEarned]:
        split = self.split_of(listing)
        payouts = split.payouts(listing.price)

        shares = [
            (CommissionRole.AGENT, listing.created_by_id, split.agent_pct, payouts.agent),
            (CommissionRole.COMPANY, None, split.company_pct, payouts.company),
        ]
        if listing.promoter_id is not None:
            shares.append(
                (CommissionRole.PROMOTER, listing.promoter_id, split.promoter_pct, payouts.promoter)
            )

        commissions = [
            Commission(
                listing_id=listing.id,
                earner_id=earner_id,
                role=role.value,
                percentage=pct,
                amount=amount,
                qualifying_status=new_status,
            )
            for role, earner_id, pct, amount in shares
            if pct > 0
        ]
        db.add_all(commissions)
        await db.flush()

        logger.info(
            f"Recorded {len(commissions)} commission(s) for listing {listing.listing_number} ({new_status})"
        )
        return [
            CommissionEarned(
                commission_id=commission.id,
                listing_id=listing.id,
                listing_number=listing.listing_number,
                earner_id=commission.earner_id,
                role=commission.role,
                amount=commission.amount,
            )
            for commission in commissions
            if commission.earner_id is not None
        ]

    async def _reverse_commissions(self, db: AsyncSession, listing: Listing) -> None:
        result = await db.execute(
            delete(Commission)
            .where(Commission.listing_id == listing.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(
                f"Reversed {result.rowcount} commission(s) for reopened listing {listing.listing_number}"
            )

    async def _issue_recruiter_bonus(
        self,
        db: AsyncSession,
        listing: Listing,
        new_status: str,
    ) -> RecruiterBonusQualified | None:
        if not listing.has_promoter or listing.promoter_id is None:
            return None
        if listing.recruiter_bonus_issued:
            logger.debug(f"Recruiter bonus already issued for listing {listing.listing_number}")
            return None
        if not await self._settings_store.get(RECRUITER_BONUS_ENABLED):
            return None

        promoter = await db.get(User, listing.promoter_id)
        if promoter is None or promoter.referrer_id is None:
            return None

        amount = await self._settings_store.get(RECRUITER_BONUS_AMOUNT)

        # Claim the flag atomically so concurrent transitions issue one bonus
        claim = await db.execute(
            update(Listing)
            .where(Listing.id == listing.id, Listing.recruiter_bonus_issued.is_(False))
            .values(recruiter_bonus_issued=True)
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            logger.debug(f"Recruiter bonus for listing {listing.listing_number} claimed elsewhere")
            return None
        set_committed_value(listing, "recruiter_bonus_issued", True)

        record = RecruiterBonusRecord(
            listing_id=listing.id,
            referrer_id=promoter.referrer_id,
            referred_user_id=promoter.id,
            amount=amount,
            qualifying_status=new_status,
        )
        db.add(record)
        await db.flush()

        logger.info(
            f"Recruiter bonus {amount} issued to {promoter.referrer_id} "
            f"for listing {listing.listing_number} ({new_status})"
        )
        return RecruiterBonusQualified(
            listing_id=listing.id,
            listing_number=listing.listing_number,
            referrer_id=promoter.referrer_id,
            referred_user_id=promoter.id,
            amount=amount,
            bonus_record_id=record.id,
        )
