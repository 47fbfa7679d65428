"""Configuration management for focusdesk.

Settings come from environment variables. A `.env` file in the working
directory (or the path in FOCUSDESK_ENV_FILE) is loaded first if present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DB_PATH = Path.home() / ".focusdesk" / "focusdesk.db"
DEFAULT_PORT = 7788

BACKENDS = ("sqlite", "rest")

WORK_MINUTES_RANGE = (1, 60)
BREAK_MINUTES_RANGE = (1, 30)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


@dataclass
class Settings:
    """Runtime configuration."""

    db_path: Path = DEFAULT_DB_PATH
    backend: str = "sqlite"
    rest_url: Optional[str] = None
    rest_key: Optional[str] = None
    access_token: Optional[str] = None
    owner_id: Optional[str] = None
    work_minutes: int = 25
    break_minutes: int = 5
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    notifications: bool = True
    log_level: str = "INFO"

    def validate(self) -> None:
        """Validate configuration."""
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Invalid backend '{self.backend}'. "
                f"Valid options: {', '.join(BACKENDS)}"
            )
        if self.backend == "rest" and not (self.rest_url and self.rest_key):
            raise ValueError("The rest backend needs FOCUSDESK_REST_URL and FOCUSDESK_REST_KEY")

        low, high = WORK_MINUTES_RANGE
        if not low <= self.work_minutes <= high:
            raise ValueError(f"Work duration must be between {low} and {high} minutes")
        low, high = BREAK_MINUTES_RANGE
        if not low <= self.break_minutes <= high:
            raise ValueError(f"Break duration must be between {low} and {high} minutes")


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build settings from the environment."""
    env_path = env_file or Path(os.environ.get("FOCUSDESK_ENV_FILE", ".env"))
    if env_path.exists():
        load_dotenv(env_path)

    settings = Settings(
        db_path=Path(os.environ.get("FOCUSDESK_DB", str(DEFAULT_DB_PATH))).expanduser(),
        backend=os.environ.get("FOCUSDESK_BACKEND", "sqlite").lower(),
        rest_url=os.environ.get("FOCUSDESK_REST_URL") or None,
        rest_key=os.environ.get("FOCUSDESK_REST_KEY") or None,
        access_token=os.environ.get("FOCUSDESK_ACCESS_TOKEN") or None,
        owner_id=os.environ.get("FOCUSDESK_OWNER_ID") or None,
        work_minutes=_env_int("FOCUSDESK_WORK_MINUTES", 25),
        break_minutes=_env_int("FOCUSDESK_BREAK_MINUTES", 5),
        host=os.environ.get("FOCUSDESK_HOST", "127.0.0.1"),
        port=_env_int("FOCUSDESK_PORT", DEFAULT_PORT),
        notifications=_env_bool(os.environ.get("FOCUSDESK_NOTIFICATIONS", "true")),
        log_level=os.environ.get("FOCUSDESK_LOG_LEVEL", "INFO").upper(),
    )
    settings.validate()
    return settings
