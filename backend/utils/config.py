"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable configuration shared by repository, services and controllers."""

    app_name: str = "Dormitory Allocation Service"
    app_version: str = "1.0.0"
    database_path: Path = Path("data/dormitory.db")
    log_level: str = "INFO"

    seed_demo_inventory: bool = True

    booking_number_prefix: str = "BK"
    booking_number_max_attempts: int = 5
    child_max_age: int = 16

    notification_ttl_days: int = 7
    manual_notification_ttl_minutes: int = 1440
    admin_user_ids: tuple[str, ...] = field(default_factory=tuple)

    comment_max_length: int = 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once per process."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("APP_NAME", defaults.app_name),
        app_version=os.getenv("APP_VERSION", defaults.app_version),
        database_path=Path(os.getenv("DATABASE_PATH", str(defaults.database_path))),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        seed_demo_inventory=_env_bool("SEED_DEMO_INVENTORY", defaults.seed_demo_inventory),
        booking_number_prefix=os.getenv("BOOKING_NUMBER_PREFIX", defaults.booking_number_prefix),
        child_max_age=int(os.getenv("CHILD_MAX_AGE", defaults.child_max_age)),
        notification_ttl_days=int(
            os.getenv("NOTIFICATION_TTL_DAYS", defaults.notification_ttl_days)
        ),
        manual_notification_ttl_minutes=int(
            os.getenv(
                "MANUAL_NOTIFICATION_TTL_MINUTES",
                defaults.manual_notification_ttl_minutes,
            )
        ),
        admin_user_ids=_env_list("ADMIN_USER_IDS"),
        comment_max_length=int(os.getenv("COMMENT_MAX_LENGTH", defaults.comment_max_length)),
    )
