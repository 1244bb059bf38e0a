"""Configuration package exports."""

from .loader import ConfigRepository
from .models import (
    FetchConfig,
    ListingLayout,
    LoginCredentials,
    NotifyConfig,
    OutputConfig,
    PortalConfig,
    ScheduleConfig,
    ScheduleType,
    WatchConfig,
)

__all__ = [
    "ConfigRepository",
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
