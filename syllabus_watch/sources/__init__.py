"""Record sources feeding the detail pipeline."""

from __future__ import annotations

from ..config import WatchConfig
from .base import RecordSource
from .portal import PortalRecordSource


def build_source(config: WatchConfig) -> RecordSource:
    return PortalRecordSource(config.portal, config.fetch)


__all__ = ["PortalRecordSource", "RecordSource", "build_source"]
