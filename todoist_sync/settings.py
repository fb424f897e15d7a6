"""Runtime settings, read from the environment (and .env via python-dotenv)."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_REFRESH_MINUTES = 15

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Plugin settings. Not persisted; the environment is the source of truth."""

    api_token: str = ""
    default_project_or_filter: str = Field(
        default="",
        description="Used for blocks with an empty body: a numeric project id or a filter",
    )
    refresh_interval_minutes: int = DEFAULT_REFRESH_MINUTES
    show_completed_tasks: bool = False

    @field_validator("api_token", "default_project_or_filter")
    @classmethod
    def strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("refresh_interval_minutes")
    @classmethod
    def at_least_one_minute(cls, v: int) -> int:
        return max(1, v)


def load_settings() -> Settings:
    load_dotenv()
    raw_minutes = os.getenv("TODOIST_REFRESH_MINUTES", "").strip()
    try:
        minutes = int(raw_minutes) if raw_minutes else DEFAULT_REFRESH_MINUTES
    except ValueError:
        raise ValueError(
            f"TODOIST_REFRESH_MINUTES must be a whole number of minutes, got: {raw_minutes!r}"
        ) from None
    return Settings(
        api_token=os.getenv("TODOIST_API_TOKEN", ""),
        default_project_or_filter=os.getenv("TODOIST_DEFAULT_QUERY", ""),
        refresh_interval_minutes=minutes,
        show_completed_tasks=os.getenv("TODOIST_SHOW_COMPLETED", "").strip().lower() in _TRUE_VALUES,
    )
