"""Terminal progress for the listing fetch and the detail pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.status import Status

LOCATOR_WIDTH = 60


@dataclass
class FetchTally:
    total: int
    fetched: int = 0
    failed: int = 0
    last_locator: str = ""

    @property
    def done(self) -> int:
        return self.fetched + self.failed


def _shorten(text: str, width: int = LOCATOR_WIDTH) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


class ProgressReporter:
    """Count detail fetches and draw a bar while a terminal is attached.

    ``advance`` is called from pipeline worker threads.
    """

    def __init__(self, enabled: bool = True, label: str = "details", console: Console | None = None) -> None:
        self.enabled = enabled
        self.label = label
        self._console = console
        self._bar: Progress | None = None
        self._task: TaskID | None = None
        self._lock = Lock()
        self.tally: FetchTally | None = None

    def _build_bar(self, console: Console) -> Progress:
        return Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.description:<10}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[green]ok {task.fields[fetched]}"),
            TextColumn("[red]failed {task.fields[failed]}"),
            TextColumn("[dim]{task.fields[locator]}", markup=False),
            console=console,
            transient=True,
            expand=True,
        )

    def start(self, total: int) -> None:
        self.tally = FetchTally(total=total)
        if not self.enabled:
            return
        console = self._console or Console()
        if not console.is_terminal:
            self.enabled = False
            return
        bar = self._build_bar(console)
        try:
            bar.start()
        except LiveError:
            # Another live display owns the terminal.
            self.enabled = False
            return
        self._bar = bar
        self._task = bar.add_task(self.label, total=total, fetched=0, failed=0, locator="")

    def advance(self, success: bool, locator: str | None = None) -> None:
        with self._lock:
            if self.tally is None:
                raise RuntimeError("ProgressReporter.start must be called before advance")
            if success:
                self.tally.fetched += 1
            else:
                self.tally.failed += 1
            if locator:
                self.tally.last_locator = locator
            if self._bar is not None and self._task is not None:
                self._bar.update(
                    self._task,
                    completed=self.tally.done,
                    fetched=self.tally.fetched,
                    failed=self.tally.failed,
                    locator=_shorten(self.tally.last_locator),
                )

    def close(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.stop()
            self._bar = None
            self._task = None

    def summary(self) -> dict[str, int]:
        if self.tally is None:
            return {"fetched": 0, "failed": 0}
        return {"fetched": self.tally.fetched, "failed": self.tally.failed}


class ProgressActivity:
    """Spinner for work of unknown size, such as walking listing pages."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._status: Status | None = None

    def start(self, message: str) -> None:
        if not self.enabled:
            return
        console = self._console or Console()
        if not console.is_terminal:
            return
        status = console.status(message, spinner="dots")
        try:
            status.start()
        except LiveError:
            return
        self._status = status

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


__all__ = ["FetchTally", "ProgressActivity", "ProgressReporter"]
