"""Commission API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.commission import CommissionResponse
from app.schemas.common import APIResponse, PaginationMeta
from app.services.commission_service import get_commission_service
from app.utils.permissions import require_authenticated
from app.utils.request_context import get_current_user_id, get_current_user_role

router = APIRouter()


@router.get("")
@require_authenticated()
async def list_commissions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    """List the commissions visible to the current user, newest first."""
    commission_service = get_commission_service()
    commissions, total = await commission_service.get_commissions(
        db,
        get_current_user_id(),
        get_current_user_role(),
        page=page,
        page_size=page_size,
    )

    return APIResponse(
        status="success",
        data=[CommissionResponse.model_validate(c) for c in commissions],
        pagination=PaginationMeta.build(page, page_size, total),
    )
