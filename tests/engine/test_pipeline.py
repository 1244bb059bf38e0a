from __future__ import annotations

import threading
import time

import pytest

from syllabus_watch.engine import DetailPayload, DetailPipeline, resolve_record_id
from syllabus_watch.ui import ProgressReporter


class _RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []
        self._lock = threading.Lock()

    def __call__(self, seconds: float) -> None:
        with self._lock:
            self.calls.append(seconds)


def test_failed_details_are_skipped(make_stub, fake_source_factory) -> None:
    stubs = [make_stub(f"C{index}") for index in range(7)]
    failing = {stubs[2].locator, stubs[5].locator}
    source = fake_source_factory(stubs, failing=failing)
    sleep = _RecordingSleep()

    result = DetailPipeline(source, workers=3, pacing_delay=0.8, sleep=sleep).run(stubs)

    assert len(result.records) == 5
    assert sorted(stub.record_id for stub in result.failed) == ["C2", "C5"]
    assert {record.record_id for record in result.records} == {"C0", "C1", "C3", "C4", "C6"}
    assert sorted(source.fetched) == sorted(stub.locator for stub in stubs)
    # Pacing applies after every fetch, failed ones included.
    assert sleep.calls == [0.8] * 7


def test_empty_input_starts_no_workers(fake_source_factory, monkeypatch) -> None:
    created: list[int] = []

    class _TrackingExecutor:
        def __init__(self, *args, **kwargs) -> None:
            created.append(kwargs.get("max_workers", 0))

    monkeypatch.setattr("syllabus_watch.engine.pipeline.ThreadPoolExecutor", _TrackingExecutor)
    source = fake_source_factory([])
    result = DetailPipeline(source, workers=3, sleep=lambda _: None).run([])
    assert result.records == []
    assert result.failed == []
    assert created == []


def test_worker_count_bounded_by_stub_count(make_stub, fake_source_factory, monkeypatch) -> None:
    from concurrent.futures import ThreadPoolExecutor

    seen: list[int] = []

    class _CountingExecutor(ThreadPoolExecutor):
        def __init__(self, max_workers=None, **kwargs) -> None:
            seen.append(max_workers)
            super().__init__(max_workers=max_workers, **kwargs)

    monkeypatch.setattr("syllabus_watch.engine.pipeline.ThreadPoolExecutor", _CountingExecutor)
    stubs = [make_stub("A"), make_stub("B")]
    DetailPipeline(fake_source_factory(stubs), workers=3, sleep=lambda _: None).run(stubs)
    DetailPipeline(fake_source_factory(stubs * 4), workers=3, sleep=lambda _: None).run(stubs * 4)
    assert seen == [2, 3]


def test_at_most_workers_fetch_concurrently(make_stub) -> None:
    active = 0
    peak = 0
    lock = threading.Lock()

    class _SlowSource:
        def fetch_detail(self, locator: str) -> DetailPayload:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return DetailPayload(body_text=locator)

    stubs = [make_stub(f"S{index}") for index in range(12)]
    result = DetailPipeline(_SlowSource(), workers=3, sleep=lambda _: None).run(stubs)
    assert len(result.records) == 12
    assert 1 <= peak <= 3


def test_detail_payload_enriches_record(make_stub, fake_source_factory) -> None:
    stub = make_stub("R1", title="  Data\nScience ")
    payload = DetailPayload(body_text="Body", updated_label="2024-04-01", room="A101")
    source = fake_source_factory([stub], details={stub.locator: payload})
    [record] = DetailPipeline(source, workers=3, sleep=lambda _: None).run([stub]).records
    assert record.record_id == "R1"
    assert record.title == "Data Science"
    assert record.room == "A101"
    assert record.updated_label == "2024-04-01"
    assert record.body_text == "Body"
    assert record.source_url == stub.locator


def test_progress_reporter_tracks_outcomes(make_stub, fake_source_factory) -> None:
    stubs = [make_stub("A"), make_stub("B"), make_stub("C")]
    source = fake_source_factory(stubs, failing={stubs[1].locator})
    progress = ProgressReporter(enabled=False)
    DetailPipeline(source, workers=2, sleep=lambda _: None, progress=progress).run(stubs)
    assert progress.summary() == {"fetched": 2, "failed": 1}


@pytest.mark.parametrize(("workers", "delay"), [(0, 0.8), (3, -1.0)])
def test_invalid_parameters_rejected(fake_source_factory, workers, delay) -> None:
    with pytest.raises(ValueError):
        DetailPipeline(fake_source_factory([]), workers=workers, pacing_delay=delay)


@pytest.mark.parametrize(
    ("stub_id", "locator", "expected"),
    [
        ("MAT101", "https://portal.example.ac.jp/detail?id=X", "MAT101"),
        ("  MAT101 ", "https://portal.example.ac.jp/detail", "MAT101"),
        ("", "https://portal.example.ac.jp/detail?lang=ja&id=PHY200", "PHY200"),
        ("   ", "https://portal.example.ac.jp/detail?id=&id=CHE300", "CHE300"),
        (None, "https://portal.example.ac.jp/detail/42", "https://portal.example.ac.jp/detail/42"),
    ],
)
def test_resolve_record_id(stub_id, locator, expected) -> None:
    assert resolve_record_id(stub_id, locator) == expected
