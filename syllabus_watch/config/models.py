"""Pydantic models describing one watch configuration."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class ListingLayout(str, Enum):
    """Column layouts understood by the portal listing parser."""

    CODED = "coded"
    SIMPLE = "simple"


class ScheduleType(str, Enum):
    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """When the `watch` command triggers a run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=86400,
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class LoginCredentials(BaseModel):
    """Portal login; ``otp`` is only needed when the portal asks for a second factor."""

    username: str = ""
    password: str = ""
    otp: str = ""


class PortalConfig(BaseModel):
    """Where and how records are harvested."""

    base_url: str = ""
    login_url: str | None = None
    search_year: str = ""
    max_pages: int = 20
    requires_login: bool = False
    layout: ListingLayout = ListingLayout.CODED
    credentials: LoginCredentials = Field(default_factory=LoginCredentials)

    @field_validator("max_pages")
    @classmethod
    def _check_pages(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_pages must be >= 1")
        return value


class FetchConfig(BaseModel):
    """Detail-fetch concurrency and pacing."""

    workers: int = 3
    pacing_delay: float = 0.8
    timeout: float = 30.0
    user_agent: str | None = None

    @field_validator("workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("workers must be >= 1")
        return value

    @field_validator("pacing_delay", "timeout")
    @classmethod
    def _check_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("value must be non-negative")
        return value


class OutputConfig(BaseModel):
    snapshot_path: Path = Field(default=Path("data/courses.json"))
    report_path: Path = Field(default=Path("public/index.html"))
    report_title: str = "Syllabus listing"
    collation_locale: str | None = "ja_JP.UTF-8"
    log_dir: Path = Field(default=Path("logs"))

    @field_validator("snapshot_path", "report_path", "log_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


class NotifyConfig(BaseModel):
    """Chat webhook and how many items each summary section enumerates."""

    webhook_url: str | None = None
    added_limit: int = 10
    changed_limit: int = 10
    removed_limit: int = 5

    @field_validator("added_limit", "changed_limit", "removed_limit")
    @classmethod
    def _check_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("limits must be >= 0")
        return value


class WatchConfig(BaseModel):
    """Root configuration passed explicitly into the watcher."""

    portal: PortalConfig = Field(default_factory=PortalConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    def missing_requirements(self) -> list[str]:
        """Return the names of required settings that are still empty."""

        missing: list[str] = []
        if not self.portal.base_url.strip():
            missing.append("portal.base_url")
        if self.portal.requires_login:
            if not self.portal.credentials.username:
                missing.append("portal.credentials.username")
            if not self.portal.credentials.password:
                missing.append("portal.credentials.password")
        return missing


__all__ = [
    "FetchConfig",
    "ListingLayout",
    "LoginCredentials",
    "NotifyConfig",
    "OutputConfig",
    "PortalConfig",
    "ScheduleConfig",
    "ScheduleType",
    "WatchConfig",
]
