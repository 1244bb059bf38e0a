"""Shared fixtures: record builders, a scripted record source and tmp-path configs."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from syllabus_watch.config import (
    FetchConfig,
    NotifyConfig,
    OutputConfig,
    PortalConfig,
    WatchConfig,
)
from syllabus_watch.engine import DetailPayload, Record, Stub


class FakeSource:
    """In-memory record source; locators listed in ``failing`` raise on fetch."""

    def __init__(
        self,
        stubs: list[Stub],
        details: dict[str, DetailPayload] | None = None,
        failing: set[str] | None = None,
        listing_error: Exception | None = None,
    ) -> None:
        self.stubs = stubs
        self.details = details or {}
        self.failing = failing or set()
        self.listing_error = listing_error
        self.fetched: list[str] = []
        self.closed = False

    def list_stubs(self) -> list[Stub]:
        if self.listing_error is not None:
            raise self.listing_error
        return list(self.stubs)

    def fetch_detail(self, locator: str) -> DetailPayload:
        self.fetched.append(locator)
        if locator in self.failing:
            raise RuntimeError(f"detail unavailable: {locator}")
        return self.details.get(locator, DetailPayload(body_text=f"body of {locator}"))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_record() -> Callable[..., Record]:
    def _builder(record_id: str = "A", **overrides: Any) -> Record:
        base: dict[str, Any] = {
            "record_id": record_id,
            "title": f"Course {record_id}",
            "instructor": "Sato",
            "term": "前期",
            "schedule": "月1",
            "body_text": f"Syllabus body for {record_id}",
            "source_url": f"https://portal.example.ac.jp/detail?id={record_id}",
        }
        base.update(overrides)
        return Record(**base)

    return _builder


@pytest.fixture
def make_stub() -> Callable[..., Stub]:
    def _builder(record_id: str = "A", **overrides: Any) -> Stub:
        base: dict[str, Any] = {
            "record_id": record_id,
            "title": f"Course {record_id}",
            "locator": f"https://portal.example.ac.jp/detail?id={record_id}",
            "instructor": "Sato",
            "term": "前期",
            "schedule": "月1",
        }
        base.update(overrides)
        return Stub(**base)

    return _builder


@pytest.fixture
def fake_source_factory() -> Callable[..., FakeSource]:
    return FakeSource


@pytest.fixture
def watch_config(tmp_path: Path) -> WatchConfig:
    return WatchConfig(
        portal=PortalConfig(base_url="https://portal.example.ac.jp/syllabus"),
        fetch=FetchConfig(workers=3, pacing_delay=0.0),
        output=OutputConfig(
            snapshot_path=tmp_path / "data" / "courses.json",
            report_path=tmp_path / "public" / "index.html",
            collation_locale=None,
            log_dir=tmp_path / "logs",
        ),
        notify=NotifyConfig(),
    )
