from __future__ import annotations

import json
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from syllabus_watch.engine import SnapshotStore
from syllabus_watch.errors import SnapshotWriteError


def test_load_missing_file_returns_empty(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "absent.json")
    snapshot = store.load()
    assert len(snapshot) == 0


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"id": "A"}',
        '[{"title": "no id"}]',
        '["just a string"]',
    ],
)
def test_load_unreadable_file_returns_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "courses.json"
    path.write_text(content, encoding="utf-8")
    with capture_logs() as logs:
        snapshot = SnapshotStore(path).load()
    assert len(snapshot) == 0
    assert any(entry["event"] == "snapshot_unreadable" for entry in logs)


def test_save_then_load_restores_records(tmp_path: Path, make_record) -> None:
    path = tmp_path / "nested" / "courses.json"
    store = SnapshotStore(path)
    records = [make_record("A"), make_record("B", title="日本語の講義")]
    store.save(records)

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert [entry["id"] for entry in stored] == ["A", "B"]
    assert "日本語の講義" in path.read_text(encoding="utf-8")
    assert not path.with_name("courses.json.tmp").exists()

    loaded = store.load()
    assert dict(loaded) == {"A": records[0], "B": records[1]}


def test_save_replaces_previous_content(tmp_path: Path, make_record) -> None:
    store = SnapshotStore(tmp_path / "courses.json")
    store.save([make_record("A"), make_record("B")])
    store.save([make_record("C")])
    assert list(store.load()) == ["C"]


def test_load_flags_tampered_hash(tmp_path: Path, make_record) -> None:
    path = tmp_path / "courses.json"
    payload = make_record("A").to_payload()
    payload["hash"] = "f" * 64
    path.write_text(json.dumps([payload]), encoding="utf-8")
    with capture_logs() as logs:
        snapshot = SnapshotStore(path).load()
    assert snapshot["A"].fingerprint == make_record("A").fingerprint
    assert [entry["record_id"] for entry in logs if entry["event"] == "snapshot_hash_mismatch"] == ["A"]


def test_save_failure_raises(tmp_path: Path, make_record) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = SnapshotStore(blocker / "courses.json")
    with pytest.raises(SnapshotWriteError):
        store.save([make_record("A")])


def test_load_survives_stat_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _denied(self) -> bool:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "exists", _denied)
    with capture_logs() as logs:
        snapshot = SnapshotStore(tmp_path / "locked" / "courses.json").load()
    assert len(snapshot) == 0
    assert any(entry["event"] == "snapshot_unreadable" for entry in logs)
