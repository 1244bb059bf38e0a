"""Slack incoming-webhook notifier."""

from __future__ import annotations

import httpx
import structlog

from ..engine.models import DiffResult
from ..errors import NotificationError
from .base import BaseNotifier
from .summary import SummaryLimits, format_diff_summary


class SlackNotifier(BaseNotifier):
    """Post the change summary as ``{"text": ...}`` to an incoming webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        limits: SummaryLimits | None = None,
        client: httpx.Client | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.webhook_url = webhook_url
        self.limits = limits or SummaryLimits()
        self._client = client or httpx.Client(timeout=timeout)
        self.logger = structlog.get_logger("syllabus_watch.notify")

    def notify(self, diff: DiffResult) -> None:
        if not self.webhook_url:
            self.logger.debug("slack_webhook_unset")
            return
        text = format_diff_summary(diff, self.limits)
        try:
            response = self._client.post(self.webhook_url, json={"text": text})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"Slack webhook failed: {exc}") from exc
        self.logger.info("slack_notified", changes=diff.total)

    def close(self) -> None:
        self._client.close()


__all__ = ["SlackNotifier"]
