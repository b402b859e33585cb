"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "introbot.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment by from_env()."""

    db_path: str | None = None
    special_user_id: int | None = None
    support_cooldown_minutes: int = 15
    max_answer_length: int = 255
    max_support_length: int = 2000
    name_prompt_photo: str | None = None
    schedule_timezone: str = "UTC"
    matching_weekday: int = 0  # Monday
    matching_hour: int = 11
    broadcast_hour: int = 18
    statistics_hour: int = 18
    scheduler_poll_seconds: int = 30
    api_host: str = "localhost"
    api_port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            db_path=os.getenv("DATABASE_URL") or None,
            special_user_id=_env_int("SPECIAL_USER_ID", None),
            support_cooldown_minutes=_env_int(
                "SUPPORT_COOLDOWN_MINUTES", defaults.support_cooldown_minutes
            ),
            max_answer_length=_env_int("MAX_ANSWER_LENGTH", defaults.max_answer_length),
            max_support_length=_env_int(
                "MAX_SUPPORT_LENGTH", defaults.max_support_length
            ),
            name_prompt_photo=os.getenv("NAME_PROMPT_PHOTO") or None,
            schedule_timezone=os.getenv("SCHEDULE_TIMEZONE", defaults.schedule_timezone),
            matching_weekday=_env_int("MATCHING_WEEKDAY", defaults.matching_weekday),
            matching_hour=_env_int("MATCHING_HOUR", defaults.matching_hour),
            broadcast_hour=_env_int("BROADCAST_HOUR", defaults.broadcast_hour),
            statistics_hour=_env_int("STATISTICS_HOUR", defaults.statistics_hour),
            scheduler_poll_seconds=_env_int(
                "SCHEDULER_POLL_SECONDS", defaults.scheduler_poll_seconds
            ),
            api_host=os.getenv("API_HOST", defaults.api_host),
            api_port=_env_int("API_PORT", defaults.api_port),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )
