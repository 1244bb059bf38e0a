"""Bounded worker pool resolving listing stubs into full records."""

from __future__ import annotations

import queue
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Iterable, Protocol
from urllib.parse import parse_qs, urlsplit

import structlog

from ..ui.progress import ProgressReporter
from .models import DetailPayload, Record, Stub

DEFAULT_WORKERS = 3
DEFAULT_PACING_DELAY = 0.8


class DetailFetcher(Protocol):
    def fetch_detail(self, locator: str) -> DetailPayload: ...


@dataclass(slots=True)
class PipelineResult:
    """Records built by one pipeline run plus the stubs that failed."""

    records: list[Record] = field(default_factory=list)
    failed: list[Stub] = field(default_factory=list)


def resolve_record_id(stub_id: str | None, locator: str) -> str:
    """Stub id if present, else the ``id`` query parameter, else the raw locator."""

    if stub_id and stub_id.strip():
        return stub_id.strip()
    try:
        query = parse_qs(urlsplit(locator).query)
    except ValueError:
        return locator
    for candidate in query.get("id", []):
        if candidate.strip():
            return candidate.strip()
    return locator


def build_record(stub: Stub, payload: DetailPayload) -> Record:
    return Record(
        record_id=resolve_record_id(stub.record_id, stub.locator),
        title=stub.title,
        instructor=stub.instructor,
        term=stub.term,
        schedule=stub.schedule,
        room=payload.room or "",
        updated_label=payload.updated_label or "",
        body_text=payload.body_text,
        source_url=stub.locator,
    )


class DetailPipeline:
    """Drain a shared stub queue with a fixed number of worker threads.

    Each worker fetches one detail page at a time and waits ``pacing_delay``
    seconds after every fetch, successful or not. A failed fetch drops that
    stub only; siblings keep going.
    """

    def __init__(
        self,
        source: DetailFetcher,
        workers: int = DEFAULT_WORKERS,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        *,
        sleep: Callable[[float], None] = time.sleep,
        progress: ProgressReporter | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if pacing_delay < 0:
            raise ValueError("pacing_delay must be >= 0")
        self.source = source
        self.workers = workers
        self.pacing_delay = pacing_delay
        self.progress = progress
        self._sleep = sleep
        self.logger = logger or structlog.get_logger("syllabus_watch.pipeline")

    def run(self, stubs: Iterable[Stub]) -> PipelineResult:
        pending: queue.Queue[Stub] = queue.Queue()
        for stub in stubs:
            pending.put(stub)
        result = PipelineResult()
        worker_count = min(self.workers, pending.qsize())
        if worker_count == 0:
            self.logger.info("pipeline_empty")
            return result

        lock = Lock()
        if self.progress is not None:
            self.progress.start(pending.qsize())
        self.logger.info("pipeline_started", stubs=pending.qsize(), workers=worker_count)
        try:
            with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="detail") as executor:
                futures = [
                    executor.submit(self._drain, pending, result, lock) for _ in range(worker_count)
                ]
                for future in futures:
                    future.result()
        finally:
            if self.progress is not None:
                self.progress.close()
        self.logger.info(
            "pipeline_finished", records=len(result.records), failed=len(result.failed)
        )
        return result

    def _drain(self, pending: "queue.Queue[Stub]", result: PipelineResult, lock: Lock) -> None:
        while True:
            try:
                stub = pending.get_nowait()
            except queue.Empty:
                return
            record = self._process(stub)
            with lock:
                if record is None:
                    result.failed.append(stub)
                else:
                    result.records.append(record)
            if self.progress is not None:
                self.progress.advance(success=record is not None, locator=stub.locator)
            self._sleep(self.pacing_delay)

    def _process(self, stub: Stub) -> Record | None:
        try:
            payload = self.source.fetch_detail(stub.locator)
            return build_record(stub, payload)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "detail_fetch_failed",
                locator=stub.locator,
                record_id=stub.record_id,
                error=str(exc),
            )
            return None


__all__ = [
    "DEFAULT_PACING_DELAY",
    "DEFAULT_WORKERS",
    "DetailFetcher",
    "DetailPipeline",
    "PipelineResult",
    "build_record",
    "resolve_record_id",
]
