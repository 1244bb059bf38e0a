"""Notifiers consuming a DiffResult."""

from __future__ import annotations

from ..config import NotifyConfig
from .base import BaseNotifier
from .console import ConsoleNotifier
from .slack import SlackNotifier
from .summary import NO_CHANGES_MESSAGE, SummaryLimits, format_diff_summary


def build_notifier(config: NotifyConfig) -> BaseNotifier:
    """Slack when a webhook is configured, otherwise the terminal."""

    limits = SummaryLimits(
        added=config.added_limit, changed=config.changed_limit, removed=config.removed_limit
    )
    if config.webhook_url:
        return SlackNotifier(config.webhook_url, limits)
    return ConsoleNotifier(limits)


__all__ = [
    "BaseNotifier",
    "ConsoleNotifier",
    "NO_CHANGES_MESSAGE",
    "SlackNotifier",
    "SummaryLimits",
    "build_notifier",
    "format_diff_summary",
]
