"""Commission service for reading recorded commissions."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import Commission, CommissionRole
from app.models.user import Role


class CommissionService:
    """Role-scoped access to the commissions recorded for closed listings."""

    async def get_commissions(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        role: str,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Commission], int]:
        """Get the commissions visible to a user.

        Admins see every commission, including the company share. Agents
        and promoters see only the commissions they earned in that role.
        """
        query = select(Commission)

        if role == Role.PROMOTER.value:
            query = query.where(
                Commission.earner_id == user_id,
                Commission.role == CommissionRole.PROMOTER.value,
            )
        elif role != Role.ADMIN.value:
            query = query.where(
                Commission.earner_id == user_id,
                Commission.role == CommissionRole.AGENT.value,
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        query = query.order_by(Commission.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await db.execute(query)
        return list(result.scalars().all()), total


# Singleton instance
_commission_service: CommissionService | None = None


def get_commission_service() -> CommissionService:
    """Get the commission service singleton."""
    global _commission_service
    if _commission_service is None:
        _commission_service = CommissionService()
    return _commission_service
