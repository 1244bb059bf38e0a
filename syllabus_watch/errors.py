"""Exception hierarchy shared across the watcher."""

from __future__ import annotations


class SyllabusWatchError(Exception):
    """Base class for every error raised by syllabus_watch."""


class ConfigError(SyllabusWatchError):
    """Required configuration is missing or invalid."""


class SourceError(SyllabusWatchError):
    """The record source could not list stubs or fetch a detail page."""


class SnapshotWriteError(SyllabusWatchError):
    """The current snapshot could not be persisted."""


class NotificationError(SyllabusWatchError):
    """A notifier failed to deliver the change summary."""


__all__ = [
    "ConfigError",
    "NotificationError",
    "SnapshotWriteError",
    "SourceError",
    "SyllabusWatchError",
]
