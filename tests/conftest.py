"""Shared fixtures: a throwaway SQLite database per test, a seeded clinic and an API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./unused-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("REPAIR_TIME_SLOTS_ON_STARTUP", "false")

from dataclasses import dataclass
from datetime import date, time, timedelta
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import app.models  # noqa: F401 - register tables on SQLModel.metadata
from app.core.db import build_engine, build_session_maker, get_session, init_db
from app.core.security import create_access_token
from app.main import app
from app.models.enums import DayOfWeek, Period, ReservationStatus
from app.models.operating_hours import OperatingSlotRule
from app.models.reservation import Reservation
from app.models.service import Service
from app.models.service_limit import ServiceReservationLimit
from app.services.slot_service import slot_end


def next_weekday(weekday: int) -> date:
    """Next date (strictly after today) falling on `weekday` (0 = Monday)."""
    today = date.today()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days)


@dataclass
class Clinic:
    botox: Service
    lifting: Service
    filler: Service
    wednesday: date
    thursday: date


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def clinic(session_maker) -> Clinic:
    """Three services, Wednesday hours and daily limits.

    BOTOX 20+10 min and LIFTING 40+10 min share the generic Wednesday morning rule
    (08:30-12:00, 30 min steps, 3 concurrent). LIFTING alone has a Wednesday afternoon
    rule. FILLER overrides the morning with its own 09:00-11:00 rule of capacity 1.
    No rule exists for Thursday.
    """
    async with session_maker() as session:
        botox = Service(code="BOTOX", name="Wrinkle botox", duration_minutes=20, buffer_minutes=10, display_order=1)
        lifting = Service(
            code="VOLUME_LIFTING", name="Volume lifting", duration_minutes=40, buffer_minutes=10, display_order=2
        )
        filler = Service(code="FILLER", name="Filler", duration_minutes=20, buffer_minutes=10, display_order=3)
        session.add_all([botox, lifting, filler])
        await session.flush()
        session.add_all(
            [
                OperatingSlotRule(
                    day_of_week=DayOfWeek.WEDNESDAY,
                    period=Period.MORNING,
                    start_time=time(8, 30),
                    end_time=time(12, 0),
                    slot_interval_minutes=30,
                    max_concurrent=3,
                ),
                OperatingSlotRule(
                    day_of_week=DayOfWeek.WEDNESDAY,
                    period=Period.AFTERNOON,
                    start_time=time(14, 0),
                    end_time=time(18, 0),
                    slot_interval_minutes=30,
                    max_concurrent=2,
                    service_id=lifting.id,
                ),
                OperatingSlotRule(
                    day_of_week=DayOfWeek.WEDNESDAY,
                    period=Period.MORNING,
                    start_time=time(9, 0),
                    end_time=time(11, 0),
                    slot_interval_minutes=30,
                    max_concurrent=1,
                    service_id=filler.id,
                ),
                ServiceReservationLimit(service_id=botox.id, daily_limit=20),
                ServiceReservationLimit(service_id=lifting.id, daily_limit=5),
                ServiceReservationLimit(service_id=filler.id, daily_limit=10),
            ]
        )
        await session.commit()
        return Clinic(
            botox=botox,
            lifting=lifting,
            filler=filler,
            wednesday=next_weekday(2),
            thursday=next_weekday(3),
        )


@pytest_asyncio.fixture
async def session(session_maker, clinic) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests. Do not combine with the HTTP client: SQLite
    serializes writers, so an open transaction here would block every request."""
    async with session_maker() as session:
        yield session
        await session.rollback()


async def add_reservation(
    session: AsyncSession,
    service: Service,
    d: date,
    start: time,
    status: ReservationStatus = ReservationStatus.PENDING,
    period: Period = Period.MORNING,
    patient_name: str = "Kim Patient",
) -> Reservation:
    """Insert a reservation directly, bypassing admission (for arranging test state)."""
    reservation = Reservation(
        patient_name=patient_name,
        phone="010-1111-2222",
        service_id=service.id,
        preferred_date=d,
        preferred_time=start,
        period=period,
        time_slot_start=start,
        time_slot_end=slot_end(start, service),
        estimated_duration=service.total_minutes,
        status=status,
    )
    session.add(reservation)
    await session.flush()
    return reservation


@pytest_asyncio.fixture
async def client(session_maker, clinic) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers() -> dict[str, str]:
    token = create_access_token("1", "admin@clinic.test", "ADMIN")
    return {"Authorization": f"Bearer {token}"}
