import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import admin_reservations, manual_closures, reservations, service_limits, services
from app.api.schemas.error import ErrorDetail, ErrorResponse
from app.core.config import settings, _ENV_FILE
from app.core.db import async_session_maker
from app.core.errors import ConcurrencyTimeoutError, ReservationError
from app.services.reservation_service import repair_time_slot_ends

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _run_time_slot_repair() -> None:
    """Bring stored time_slot_end values back in line with duration + buffer."""
    try:
        async with async_session_maker() as session:
            try:
                n = await repair_time_slot_ends(session)
                await session.commit()
                if n:
                    logger.info("Time slot repair: fixed %d reservation(s)", n)
            except Exception:
                await session.rollback()
                raise
    except Exception as e:
        logger.exception("Time slot repair failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info("Admission lock timeout: %d ms", settings.lock_timeout_ms)
    if settings.repair_time_slots_on_startup:
        await _run_time_slot_repair()
    yield


app = FastAPI(
    title="Clinic Reservations API",
    description="Reservation capacity and scheduling: time slots, daily limits, manual closures",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(services.router, prefix="/api/v1")
app.include_router(reservations.router, prefix="/api/v1")
app.include_router(admin_reservations.router, prefix="/api/v1")
app.include_router(manual_closures.router, prefix="/api/v1")
app.include_router(service_limits.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(ReservationError)
async def reservation_exception_handler(request: Request, exc: ReservationError) -> JSONResponse:
    """Structured denial with a stable error code; none of these crash the process."""
    headers = _cors_headers(request.headers.get("origin"))
    if isinstance(exc, ConcurrencyTimeoutError):
        headers["Retry-After"] = "1"
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    body = ErrorResponse(error=ErrorDetail(**exc.to_dict()))
    return JSONResponse(
        status_code=exc.http_status,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
