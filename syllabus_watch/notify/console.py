"""Print the change summary to the terminal."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..engine.models import DiffResult
from .base import BaseNotifier
from .summary import SummaryLimits, format_diff_summary


class ConsoleNotifier(BaseNotifier):
    def __init__(self, limits: SummaryLimits | None = None, console: Console | None = None) -> None:
        self.limits = limits or SummaryLimits()
        self.console = console or Console()

    def notify(self, diff: DiffResult) -> None:
        style = "dim" if diff.is_empty else "cyan"
        self.console.print(
            Panel(Text(format_diff_summary(diff, self.limits)), title="Changes", border_style=style)
        )


__all__ = ["ConsoleNotifier"]
