"""Notifier Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..engine.models import DiffResult


class BaseNotifier(ABC):
    """Delivery channel for a run's change summary."""

    @abstractmethod
    def notify(self, diff: DiffResult) -> None:
        """Deliver a summary of ``diff``."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseNotifier"]
