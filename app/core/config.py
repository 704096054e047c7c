from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.metrics import DEFAULT_WINDOW_SIZE


class Settings(BaseSettings):
    app_name: str = "fanfinity-events"
    env: str = "development"

    redis_url: str = "redis://redis:6379/0"

    rate_limit_global: str = "1000/minute"
    rate_limit_ingest: str = "600/minute"

    cors_origins: str = "http://localhost:3000"
    cors_allow_methods: str = "GET,POST,OPTIONS"
    cors_allow_headers: str = "Content-Type"
    cors_max_age: int = 600
    max_body_bytes: int = 1_000_000
    log_level: str = "INFO"

    latency_window: int = 10_000
    metrics_exclude_paths: str = "/metrics,/metrics.json,/health"
    event_ttl_minutes: int = 24 * 60
    peak_lookback_minutes: int = 60
    peak_top_n: int = 10

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    @model_validator(mode="after")
    def validate_windows(self) -> "Settings":
        if not 0 < self.latency_window <= DEFAULT_WINDOW_SIZE:
            raise ValueError(
                f"LATENCY_WINDOW must be between 1 and {DEFAULT_WINDOW_SIZE}"
            )
        if self.peak_lookback_minutes <= 0 or self.peak_top_n <= 0:
            raise ValueError("PEAK_LOOKBACK_MINUTES and PEAK_TOP_N must be positive")
        if self.event_ttl_minutes <= 0:
            raise ValueError("EVENT_TTL_MINUTES must be positive")
        return self

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def allowed_methods(self) -> list[str]:
        return [
            m.strip().upper() for m in self.cors_allow_methods.split(",") if m.strip()
        ]

    @property
    def allowed_headers(self) -> list[str]:
        return [h.strip() for h in self.cors_allow_headers.split(",") if h.strip()]

    @property
    def excluded_metric_paths(self) -> frozenset[str]:
        return frozenset(
            p.strip() for p in self.metrics_exclude_paths.split(",") if p.strip()
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
