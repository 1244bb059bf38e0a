from __future__ import annotations

import json

import pytest
from structlog.testing import capture_logs

from syllabus_watch.engine import DetailPayload, SnapshotStore
from syllabus_watch.errors import NotificationError, SnapshotWriteError, SourceError
from syllabus_watch.notify import BaseNotifier
from syllabus_watch.report import HtmlReportRenderer
from syllabus_watch.watcher import ChangeWatcher


class RecordingNotifier(BaseNotifier):
    def __init__(self, error: Exception | None = None) -> None:
        self.diffs = []
        self.closed = False
        self.error = error

    def notify(self, diff) -> None:
        self.diffs.append(diff)
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


def _watcher(config, source, notifier=None, reporter=None) -> ChangeWatcher:
    return ChangeWatcher(
        config,
        source=source,
        store=SnapshotStore(config.output.snapshot_path),
        notifier=notifier,
        reporter=reporter,
        sleep=lambda _: None,
    )


def test_first_run_adds_everything_and_persists(watch_config, make_stub, fake_source_factory) -> None:
    stubs = [make_stub("A"), make_stub("B"), make_stub("C")]
    source = fake_source_factory(stubs)
    notifier = RecordingNotifier()
    reporter = HtmlReportRenderer(watch_config.output.report_path)

    summary = _watcher(watch_config, source, notifier, reporter).run()

    assert (summary.stubs, summary.fetched, summary.failed) == (3, 3, 0)
    assert (summary.added, summary.changed, summary.removed, summary.unchanged) == (3, 0, 0, 0)
    stored = json.loads(watch_config.output.snapshot_path.read_text(encoding="utf-8"))
    assert sorted(entry["id"] for entry in stored) == ["A", "B", "C"]
    assert watch_config.output.report_path.exists()
    assert source.closed
    assert notifier.closed
    assert len(notifier.diffs[0].added) == 3


def test_second_run_detects_changes(watch_config, make_stub, fake_source_factory) -> None:
    first = fake_source_factory([make_stub("A"), make_stub("B"), make_stub("C")])
    _watcher(watch_config, first).run()

    stubs = [make_stub("A"), make_stub("B"), make_stub("D")]
    second = fake_source_factory(
        stubs, details={stubs[1].locator: DetailPayload(body_text="rewritten", room="A101")}
    )
    notifier = RecordingNotifier()
    watcher = _watcher(watch_config, second, notifier)
    summary = watcher.run()

    assert (summary.added, summary.changed, summary.removed, summary.unchanged) == (1, 1, 1, 1)
    diff = watcher.last_diff
    assert [record.record_id for record in diff.added] == ["D"]
    assert [change.after.record_id for change in diff.changed] == ["B"]
    assert [record.record_id for record in diff.removed] == ["C"]


def test_unchanged_run_still_notifies(watch_config, make_stub, fake_source_factory) -> None:
    stubs = [make_stub("A")]
    _watcher(watch_config, fake_source_factory(stubs)).run()
    notifier = RecordingNotifier()
    _watcher(watch_config, fake_source_factory(stubs), notifier).run()
    assert notifier.diffs[0].is_empty


def test_failed_details_excluded_from_snapshot(watch_config, make_stub, fake_source_factory) -> None:
    stubs = [make_stub("A"), make_stub("B")]
    source = fake_source_factory(stubs, failing={stubs[1].locator})
    summary = _watcher(watch_config, source).run()
    assert (summary.fetched, summary.failed) == (1, 1)
    assert list(SnapshotStore(watch_config.output.snapshot_path).load()) == ["A"]


def test_listing_failure_leaves_snapshot_untouched(
    watch_config, make_stub, fake_source_factory
) -> None:
    _watcher(watch_config, fake_source_factory([make_stub("A")])).run()
    before = watch_config.output.snapshot_path.read_text(encoding="utf-8")

    source = fake_source_factory([], listing_error=SourceError("portal down"))
    notifier = RecordingNotifier()
    with pytest.raises(SourceError):
        _watcher(watch_config, source, notifier).run()

    assert watch_config.output.snapshot_path.read_text(encoding="utf-8") == before
    assert source.closed
    assert notifier.diffs == []
    assert notifier.closed


def test_notifier_failure_does_not_fail_run(watch_config, make_stub, fake_source_factory) -> None:
    notifier = RecordingNotifier(error=NotificationError("webhook down"))
    summary = _watcher(watch_config, fake_source_factory([make_stub("A")]), notifier).run()
    assert summary.added == 1
    assert notifier.closed


def test_report_failure_does_not_fail_run(watch_config, make_stub, fake_source_factory) -> None:
    notifier = RecordingNotifier()
    reporter = HtmlReportRenderer(watch_config.output.report_path, collation_locale="C")
    source = fake_source_factory([make_stub("A", title="bad\x00title")])
    with capture_logs() as logs:
        summary = _watcher(watch_config, source, notifier, reporter).run()
    assert summary.added == 1
    assert any(entry["event"] == "report_failed" for entry in logs)
    assert list(SnapshotStore(watch_config.output.snapshot_path).load()) == ["A"]
    assert len(notifier.diffs) == 1
    assert notifier.closed


def test_snapshot_write_failure_propagates(watch_config, make_stub, fake_source_factory) -> None:
    blocker = watch_config.output.snapshot_path.parent
    blocker.parent.mkdir(parents=True, exist_ok=True)
    blocker.write_text("not a directory", encoding="utf-8")
    notifier = RecordingNotifier()
    with pytest.raises(SnapshotWriteError):
        _watcher(watch_config, fake_source_factory([make_stub("A")]), notifier).run()
    assert notifier.closed
    assert notifier.diffs == []


def test_from_config_wires_collaborators(watch_config) -> None:
    watcher = ChangeWatcher.from_config(watch_config, notify=False, report=False)
    assert watcher.notifier is None
    assert watcher.reporter is None
    assert watcher.store.path == watch_config.output.snapshot_path
    watcher.source.close()
