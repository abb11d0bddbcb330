"""
Resource Monitor — Configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "resource-monitor"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # ── PostgreSQL ────────────────────────────────────────────
    POSTGRES_HOST: str = "resource-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "resource_db"
    POSTGRES_USER: str = "resource_user"
    POSTGRES_PASSWORD: str = "resource_pass"
    DATABASE_URL: str = ""  # full override, e.g. sqlite+aiosqlite:///./local.db

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis (broadcast + Celery broker) ─────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def celery_broker_url(self) -> str:
        return self.redis_url

    @property
    def celery_result_backend(self) -> str:
        return self.redis_url

    # ── Broadcast / SSE ───────────────────────────────────────
    BROADCAST_CHANNEL: str = "resources:events"
    SSE_KEEPALIVE_INTERVAL_SECONDS: int = 15
    SSE_RETRY_MILLISECONDS: int = 3000

    # ── Scheduling ────────────────────────────────────────────
    SNAPSHOT_INTERVAL_SECONDS: int = 60
    HISTORY_RETENTION_DAYS: int = 30
    HISTORY_SWEEP_HOUR: int = 3           # UTC
    HISTORY_SWEEP_MINUTE: int = 0

    # ── Query defaults ────────────────────────────────────────
    HISTORY_DEFAULT_LIMIT: int = 100
    RECENT_HISTORY_DEFAULT_MINUTES: int = 60
    STATS_WINDOW_HOURS: int = 24
    TREND_THRESHOLD_PERCENT: float = 5.0

    # ── Optimistic Locking Retry ──────────────────────────────
    OPT_LOCK_MAX_RETRIES: int = 5
    OPT_LOCK_BASE_DELAY_MS: int = 50      # base exponential backoff delay in ms
    OPT_LOCK_MAX_DELAY_MS: int = 1000     # max backoff cap in ms
    OPT_LOCK_JITTER_MS: int = 50          # random jitter range in ms

    # ── Provisioning ──────────────────────────────────────────
    SEED_CATALOG: bool = True

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
