from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    # Managed Postgres (Neon etc.) requires SSL; asyncpg takes it via connect_args
    database_ssl: bool = True

    # JWT issued by the external staff login service
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"
    staff_roles: str = "SUPER_ADMIN,ADMIN"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Admission: how long a request may wait on another request's limit-row lock
    lock_timeout_ms: int = 5000

    # Slot generation / labelling
    default_slot_interval_minutes: int = 30
    slot_limited_ratio: float = 0.2
    slot_limited_remaining: int = 1
    # Daily limit warning level, derived from the hard limit
    soft_limit_ratio: float = 0.8
    # Booking state changes quickly; keep browser/CDN caching short
    time_slots_cache_seconds: int = 10

    # Recompute time_slot_end for rows that violate duration + buffer on startup
    repair_time_slots_on_startup: bool = True

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def staff_roles_list(self) -> list[str]:
        return [r.strip().upper() for r in self.staff_roles.split(",") if r.strip()]


settings = Settings()
