"""Inquiry API routes."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import ForbiddenException
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.inquiry import (
    AgentSlaReportResponse,
    InquiryCreate,
    InquiryResponse,
    InquiryResponseCreate,
    SweepResultResponse,
)
from app.services.engine import RuleEngine, get_engine
from app.utils.permissions import require_admin, require_agent
from app.utils.request_context import get_current_user_id, is_admin

router = APIRouter()


@router.post("", status_code=201)
async def create_inquiry(
    request: InquiryCreate,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Submit a buyer inquiry on an active listing (no auth required)."""
    inquiry = await engine.inquiries.create_inquiry(db, request)

    return APIResponse(
        status="success",
        data={"id": str(inquiry.id)},
        message="Inquiry submitted successfully",
    )


@router.get("")
@require_agent()
async def list_inquiries(
    include_archived: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """List inquiries with their current SLA state."""
    rows, total = await engine.inquiries.list_inquiries(
        db,
        include_archived=include_archived,
        page=page,
        page_size=page_size,
    )

    data = []
    for inquiry, state in rows:
        item = InquiryResponse.model_validate(inquiry)
        item.sla_state = state
        data.append(item)

    return APIResponse(
        status="success",
        data=data,
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.post("/{inquiry_id}/respond")
@require_agent()
async def record_first_response(
    inquiry_id: uuid.UUID,
    request: InquiryResponseCreate,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Record the assigned agent's first response."""
    inquiry = await engine.inquiries.record_first_response(db, inquiry_id, request.responded_at)
    thresholds = await engine.sla_evaluator.thresholds()

    item = InquiryResponse.model_validate(inquiry)
    item.sla_state = engine.sla_evaluator.classify_inquiry(inquiry, thresholds)
    return APIResponse(status="success", data=item)


@router.post("/{inquiry_id}/archive")
@require_agent()
async def archive_inquiry(
    inquiry_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Archive an inquiry."""
    inquiry = await engine.inquiries.archive_inquiry(db, inquiry_id)

    return APIResponse(
        status="success",
        data=InquiryResponse.model_validate(inquiry),
        message="Inquiry archived",
    )


@router.post("/sla/sweep")
@require_admin()
async def run_sla_sweep(
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """Run an SLA sweep now instead of waiting for the next scheduled one (Admin only)."""
    result = await engine.sla_evaluator.sweep()

    return APIResponse(
        status="success",
        data=SweepResultResponse(
            evaluated=result.evaluated,
            skipped=result.skipped,
            failed=result.failed,
            events=len(result.events),
        ),
    )


@router.get("/agents/{agent_id}/sla")
@require_agent()
async def get_agent_sla(
    agent_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    engine: RuleEngine = Depends(get_engine),
) -> APIResponse:
    """SLA standing of an agent (the agent themselves or an admin)."""
    if not is_admin() and agent_id != get_current_user_id():
        raise ForbiddenException()

    report = await engine.sla_evaluator.agent_report(db, agent_id)

    return APIResponse(
        status="success",
        data=AgentSlaReportResponse(
            agent_id=report.agent_id,
            total=report.total,
            breaching=report.breaching,
            compliant=report.compliant,
            counts=report.counts,
        ),
    )
