import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import StaffUser, get_current_staff, get_session
from app.api.schemas.closure import (
    BatchClosureResponse,
    ClosureCreatedResponse,
    ClosureWarning,
    ConflictCheckRequest,
)
from app.models.manual_closure import ManualClosureBatchCreate, ManualClosureCreate, ManualClosurePublic
from app.models.schedule import ConflictReport
from app.services.catalog_service import parse_date, resolve_service_id
from app.services.closure_service import (
    apply_closure,
    apply_closures_batch,
    check_conflict,
    closure_to_public,
    conflict_warning,
    list_closures,
    remove_closure,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/manual-closures", tags=["admin"])


@router.post("/check-conflict", response_model=ConflictReport)
async def check_slot_conflict(
    body: ConflictCheckRequest,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ConflictReport:
    service_id = await resolve_service_id(session, body.service_id, body.service_code)
    return await check_conflict(
        session,
        body.closure_date,
        body.period,
        body.time_slot_start,
        time_slot_end=body.time_slot_end,
        service_id=service_id,
    )


@router.post("", response_model=ClosureCreatedResponse, status_code=status.HTTP_201_CREATED)
async def close_slot(
    body: ManualClosureCreate,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ClosureCreatedResponse:
    service_id = await resolve_service_id(session, body.service_id, body.service_code)
    report = await check_conflict(
        session,
        body.closure_date,
        body.period,
        body.time_slot_start,
        time_slot_end=body.time_slot_end,
        service_id=service_id,
    )
    closure = await apply_closure(
        session,
        body.closure_date,
        body.period,
        body.time_slot_start,
        time_slot_end=body.time_slot_end,
        service_id=service_id,
        reason=body.reason,
        created_by=staff.display_name,
    )
    await session.commit()
    warning = conflict_warning(report)
    if warning:
        logger.warning("Closure %s applied over %d reservation(s)", closure.id, report.conflict_count)
    return ClosureCreatedResponse(
        closure=closure_to_public(closure),
        warning=ClosureWarning(**warning.to_dict()) if warning else None,
    )


@router.post("/batch", response_model=BatchClosureResponse, status_code=status.HTTP_201_CREATED)
async def close_slots(
    body: ManualClosureBatchCreate,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> BatchClosureResponse:
    service_id = await resolve_service_id(session, body.service_id, body.service_code)
    closures = await apply_closures_batch(
        session,
        body.closure_date,
        body.period,
        body.time_slots,
        service_id=service_id,
        reason=body.reason,
        created_by=staff.display_name,
    )
    await session.commit()
    return BatchClosureResponse(count=len(closures), closures=[closure_to_public(c) for c in closures])


@router.get("", response_model=list[ManualClosurePublic])
async def list_for_date(
    date_param: str = Query(..., alias="date"),
    service_code: str | None = Query(None, alias="serviceCode"),
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> list[ManualClosurePublic]:
    d = parse_date(date_param)
    service_id = await resolve_service_id(session, None, service_code)
    return [closure_to_public(c) for c in await list_closures(session, d, service_id)]


@router.delete("/{closure_id}", response_model=ManualClosurePublic)
async def unlock_slot(
    closure_id: int,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ManualClosurePublic:
    closure = await remove_closure(session, closure_id)
    await session.commit()
    return closure_to_public(closure)
