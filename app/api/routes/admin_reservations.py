from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import StaffUser, get_current_staff, get_session
from app.api.routes.reservations import to_public
from app.models.enums import ReservationStatus
from app.models.reservation import ReservationPublic, ReservationUpdate
from app.services.catalog_service import parse_date, resolve_service_id
from app.services.reservation_service import get_reservation, list_reservations, update_reservation

router = APIRouter(prefix="/admin/reservations", tags=["admin"])


@router.get("", response_model=list[ReservationPublic])
async def list_for_date(
    date_param: str = Query(..., alias="date"),
    service_code: str | None = Query(None, alias="serviceCode"),
    status_param: ReservationStatus | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> list[ReservationPublic]:
    d = parse_date(date_param)
    service_id = await resolve_service_id(session, None, service_code)
    reservations = await list_reservations(session, d, service_id=service_id, status=status_param)
    return [to_public(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationPublic)
async def get_one(
    reservation_id: int,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ReservationPublic:
    return to_public(await get_reservation(session, reservation_id))


@router.patch("/{reservation_id}", response_model=ReservationPublic)
async def update_status(
    reservation_id: int,
    body: ReservationUpdate,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ReservationPublic:
    reservation = await update_reservation(session, reservation_id, body)
    await session.commit()
    return to_public(reservation)
