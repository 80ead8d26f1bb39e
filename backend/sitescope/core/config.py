import os
import sys
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_APP_ENVS = {"development", "test", "production"}
_RATE_LIMIT_BACKENDS = {"memory", "redis"}


def worker_count() -> int:
    for env_name in ("UVICORN_WORKERS", "WEB_CONCURRENCY"):
        raw = os.getenv(env_name, "").strip()
        if raw:
            try:
                return max(1, int(raw))
            except ValueError:
                return 1
    return 1


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "SiteScope API"
    app_version: str = "1.0.0"
    app_env: str = "development"

    log_level: str = "INFO"
    log_dir: str = ""
    slow_request_threshold_ms: int = 5000

    database_url: str = "sqlite:///./sitescope.db"
    redis_url: str = "redis://localhost:6379/0"

    rate_limit_enabled: bool = True
    rate_limit_backend: str = "memory"

    max_request_body_bytes: int = 10 * 1024 * 1024
    cors_origins: list[str] = ["*"]
    metrics_enabled: bool = False
    docs_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def debug_logging(self) -> bool:
        return self.log_level.upper() == "DEBUG"

    @model_validator(mode="after")
    def validate_environment(self) -> "Settings":
        if self.app_env.lower() not in _APP_ENVS:
            raise ValueError(f"APP_ENV must be one of: {', '.join(sorted(_APP_ENVS))}")
        if self.rate_limit_backend.lower() not in _RATE_LIMIT_BACKENDS:
            raise ValueError(f"RATE_LIMIT_BACKEND must be one of: {', '.join(sorted(_RATE_LIMIT_BACKENDS))}")
        if self.slow_request_threshold_ms < 0:
            raise ValueError("SLOW_REQUEST_THRESHOLD_MS must not be negative.")

        if not self.is_production:
            return self

        # In-process counters are per worker, so quotas would multiply.
        if self.rate_limit_enabled and self.rate_limit_backend.lower() == "memory" and worker_count() > 1:
            raise ValueError("Production with multiple workers requires RATE_LIMIT_BACKEND=redis.")
        return self


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "").lower()
    is_pytest_runtime = "pytest" in sys.modules
    if app_env == "test" or (not app_env and is_pytest_runtime):
        return Settings(
            app_env="test",
            database_url=os.getenv("DATABASE_URL", "").strip() or "sqlite://",
            log_dir="",
            metrics_enabled=True,
        )
    return Settings()
