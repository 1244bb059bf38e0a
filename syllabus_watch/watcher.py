"""Run coordinator: load history → fetch → reconcile → persist → report → notify."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Callable

import structlog
from structlog.contextvars import bound_contextvars

from .config import WatchConfig
from .engine import DetailPipeline, DiffResult, Snapshot, SnapshotStore, reconcile
from .notify import BaseNotifier, build_notifier
from .report import HtmlReportRenderer
from .sources import RecordSource, build_source
from .ui import ProgressActivity, ProgressReporter


@dataclass(slots=True)
class RunSummary:
    stubs: int
    fetched: int
    failed: int
    added: int
    changed: int
    removed: int
    unchanged: int

    @classmethod
    def from_diff(
        cls, diff: DiffResult, current: Snapshot, stubs: int, fetched: int, failed: int
    ) -> "RunSummary":
        return cls(
            stubs=stubs,
            fetched=fetched,
            failed=failed,
            added=len(diff.added),
            changed=len(diff.changed),
            removed=len(diff.removed),
            unchanged=len(current) - len(diff.added) - len(diff.changed),
        )


class ChangeWatcher:
    """Single parameterised pipeline; the source and notifier are pluggable."""

    def __init__(
        self,
        config: WatchConfig,
        source: RecordSource,
        store: SnapshotStore,
        notifier: BaseNotifier | None = None,
        reporter: HtmlReportRenderer | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.source = source
        self.store = store
        self.notifier = notifier
        self.reporter = reporter
        self._sleep = sleep
        self.logger = structlog.get_logger("syllabus_watch").bind(component="watcher")
        self.last_diff: DiffResult | None = None

    @classmethod
    def from_config(
        cls, config: WatchConfig, *, notify: bool = True, report: bool = True
    ) -> "ChangeWatcher":
        reporter = None
        if report:
            reporter = HtmlReportRenderer(
                config.output.report_path,
                title=config.output.report_title,
                collation_locale=config.output.collation_locale,
            )
        return cls(
            config,
            source=build_source(config),
            store=SnapshotStore(config.output.snapshot_path),
            notifier=build_notifier(config.notify) if notify else None,
            reporter=reporter,
        )

    def run(self, progress_enabled: bool = False) -> RunSummary:
        """Execute one harvest.

        Raises SourceError when the listing cannot be fetched (the stored
        snapshot is left untouched) and SnapshotWriteError when saving fails.
        """

        with bound_contextvars(run_id=uuid.uuid4().hex[:12]):
            return self._run(progress_enabled)

    def _run(self, progress_enabled: bool) -> RunSummary:
        try:
            return self._harvest(progress_enabled)
        finally:
            if self.notifier is not None:
                self.notifier.close()

    def _harvest(self, progress_enabled: bool) -> RunSummary:
        previous = self.store.load()
        try:
            activity = ProgressActivity(enabled=progress_enabled)
            activity.start("Fetching listing…")
            try:
                stubs = self.source.list_stubs()
            finally:
                activity.close()
            self.logger.info("listing_fetched", stubs=len(stubs))

            pipeline = DetailPipeline(
                self.source,
                workers=self.config.fetch.workers,
                pacing_delay=self.config.fetch.pacing_delay,
                sleep=self._sleep,
                progress=ProgressReporter(enabled=progress_enabled),
            )
            result = pipeline.run(stubs)
        finally:
            self.source.close()

        current = Snapshot.from_records(result.records)
        if len(current) < len(result.records):
            self.logger.warning(
                "duplicate_record_ids", records=len(result.records), unique=len(current)
            )
        diff = reconcile(previous, current)
        self.last_diff = diff
        self.store.save(result.records)
        summary = RunSummary.from_diff(
            diff, current, stubs=len(stubs), fetched=len(result.records), failed=len(result.failed)
        )
        self.logger.info(
            "run_finished",
            added=summary.added,
            changed=summary.changed,
            removed=summary.removed,
            unchanged=summary.unchanged,
            failed=summary.failed,
        )

        self._render_report(current)
        self._notify(diff)
        return summary

    def _render_report(self, current: Snapshot) -> None:
        if self.reporter is None:
            return
        try:
            self.reporter.render(current.records())
        except Exception as exc:  # noqa: BLE001
            self.logger.error("report_failed", error=str(exc))

    def _notify(self, diff: DiffResult) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(diff)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("notify_failed", error=str(exc))


__all__ = ["ChangeWatcher", "RunSummary"]
