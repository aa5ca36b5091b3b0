"""Admin API routes for platform settings."""

from fastapi import APIRouter, Depends

from app.schemas.common import APIResponse
from app.schemas.settings import SystemSettingsResponse, SystemSettingsUpdate
from app.services.engine import RuleEngine, get_engine
from app.utils.permissions import require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/settings")
@require_admin()
async def get_system_settings(
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Get the tunable business rules (Admin only)."""
    values = await engine.settings_store.get_all()

    return APIResponse(
        status="success",
        data=SystemSettingsResponse(**values),
    )


@router.put("/settings")
@require_admin()
async def update_system_settings(
    request: SystemSettingsUpdate,
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Update one or more settings; all values are validated before any is saved (Admin only)."""
    updates = request.model_dump(exclude_none=True)
    await engine.settings_store.set_many(updates)
    values = await engine.settings_store.get_all()

    return APIResponse(
        status="success",
        data=SystemSettingsResponse(**values),
        message="Settings updated successfully",
    )
