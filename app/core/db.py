from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from app.core.config import settings

# Postgres SQLSTATE for "lock_timeout" expiry
_LOCK_NOT_AVAILABLE = "55P03"


def to_async_url(url: str) -> str:
    """Map a plain database URL onto its async driver.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so they are
    stripped; SSL is enabled via connect_args instead.
    """
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    parsed = urlparse(url)
    scheme = "postgresql+asyncpg" if parsed.scheme in ("postgresql", "postgres") else parsed.scheme
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.pop("sslmode", None)
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    return urlunparse((scheme, parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment))


def _enable_sqlite_write_lock(engine: AsyncEngine) -> None:
    # SQLite has no SELECT ... FOR UPDATE. Every transaction starts IMMEDIATE so
    # writers queue on the database lock instead, bounded by the busy timeout.
    # Read-only requests take that lock too and admissions for different services
    # serialize with each other; SQLite is the local/test backend only, Postgres
    # locks just the one service's limit row.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    async_url = to_async_url(url)
    if async_url.startswith("sqlite"):
        engine = create_async_engine(
            async_url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"timeout": settings.lock_timeout_ms / 1000},
        )
        _enable_sqlite_write_lock(engine)
        return engine
    return create_async_engine(
        async_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args={"ssl": True} if settings.database_ssl else {},
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url, echo=settings.env == "development")
async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def is_lock_timeout(exc: DBAPIError) -> bool:
    """True when the driver gave up waiting on another transaction's lock."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _LOCK_NOT_AVAILABLE:
        return True
    return "database is locked" in str(orig).lower()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
