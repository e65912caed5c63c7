import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session
from app.core.config import settings
from app.models.reservation import Reservation, ReservationCreate, ReservationPublic
from app.models.schedule import CalendarDay, DailyAvailability, TimeSlotResult
from app.services.capacity_service import check_availability
from app.services.reservation_service import create_reservation
from app.services.slot_service import calculate_month_calendar, calculate_time_slots

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reservations", tags=["reservations"])


def to_public(r: Reservation) -> ReservationPublic:
    return ReservationPublic.model_validate(r, from_attributes=True)


@router.get("/availability", response_model=DailyAvailability)
async def daily_availability(
    date_param: str = Query(..., alias="date"),
    service_code: str = Query(..., alias="serviceCode"),
    session: AsyncSession = Depends(get_session),
) -> DailyAvailability:
    """Advisory daily availability for a service (no locking)."""
    return await check_availability(session, date_param, service_code)


@router.get("/time-slots", response_model=TimeSlotResult)
async def time_slots(
    response: Response,
    date_param: str = Query(..., alias="date"),
    service_code: str = Query(..., alias="serviceCode"),
    session: AsyncSession = Depends(get_session),
) -> TimeSlotResult:
    result = await calculate_time_slots(session, date_param, service_code)
    response.headers["Cache-Control"] = f"public, max-age={settings.time_slots_cache_seconds}"
    return result


@router.get("/calendar", response_model=list[CalendarDay])
async def month_calendar(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    service_code: str = Query(..., alias="serviceCode"),
    session: AsyncSession = Depends(get_session),
) -> list[CalendarDay]:
    return await calculate_month_calendar(session, year, month, service_code)


@router.post("", response_model=ReservationPublic, status_code=status.HTTP_201_CREATED)
async def book_reservation(
    body: ReservationCreate,
    session: AsyncSession = Depends(get_session),
) -> ReservationPublic:
    reservation = await create_reservation(session, body)
    # A 201 means the row is committed and the limit-row lock released
    await session.commit()
    return to_public(reservation)
