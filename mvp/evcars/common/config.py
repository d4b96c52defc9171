"""Runtime settings read from the environment (optionally from a .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

APP_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CSV_PATH = APP_ROOT / "data" / "electric_cars.csv"

FILTER_POLICIES = ("warn", "reject")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "ev_cars"
    postgres_user: str = "evcars"
    postgres_password: str = "evcars"
    pool_min_size: int = 2
    pool_max_size: int = 10
    pool_timeout: float = 30.0
    statement_timeout_ms: int = 5000
    csv_path: Path = DEFAULT_CSV_PATH
    api_prefix: str = "/api"
    frontend_url: str = "http://localhost:3000"
    rate_limit: str = "100/15minutes"
    rate_limit_enabled: bool = True
    filter_validation_policy: str = "warn"
    slow_request_ms: int = 1000
    log_level: str = "INFO"

    @property
    def conninfo(self) -> str:
        return (
            f"host={self.postgres_host} "
            f"port={self.postgres_port} "
            f"dbname={self.postgres_db} "
            f"user={self.postgres_user} "
            f"password={self.postgres_password}"
        )


def load_settings() -> Settings:
    load_dotenv(APP_ROOT / ".env")

    policy = os.getenv("FILTER_VALIDATION_POLICY", "warn").strip().lower()
    if policy not in FILTER_POLICIES:
        raise ValueError(f"FILTER_VALIDATION_POLICY must be one of {FILTER_POLICIES}, got {policy!r}")

    return Settings(
        postgres_host=os.getenv("POSTGRES_HOST", "localhost"),
        postgres_port=int(os.getenv("POSTGRES_PORT", "5432")),
        postgres_db=os.getenv("POSTGRES_DB", "ev_cars"),
        postgres_user=os.getenv("POSTGRES_USER", "evcars"),
        postgres_password=os.getenv("POSTGRES_PASSWORD", "evcars"),
        pool_min_size=int(os.getenv("POSTGRES_POOL_MIN", "2")),
        pool_max_size=int(os.getenv("POSTGRES_POOL_MAX", "10")),
        pool_timeout=float(os.getenv("POSTGRES_POOL_TIMEOUT", "30")),
        statement_timeout_ms=int(os.getenv("POSTGRES_STATEMENT_TIMEOUT_MS", "5000")),
        # relative paths are taken from the app root, not the cwd
        csv_path=APP_ROOT / Path(os.getenv("CSV_PATH", "") or DEFAULT_CSV_PATH),
        api_prefix=os.getenv("API_PREFIX", "/api").rstrip("/"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
        rate_limit=os.getenv("RATE_LIMIT", "100/15minutes"),
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
        filter_validation_policy=policy,
        slow_request_ms=int(os.getenv("SLOW_REQUEST_MS", "1000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
