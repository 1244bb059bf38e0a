"""JSON snapshot persistence for the previous/current record sets."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable

import structlog

from ..errors import SnapshotWriteError
from .models import Record, Snapshot


class SnapshotStore:
    """Load and save the record list of one run as a JSON array."""

    def __init__(self, path: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.path = Path(path)
        self.logger = logger or structlog.get_logger("syllabus_watch.snapshot")

    def load(self) -> Snapshot:
        """Return the persisted snapshot, or an empty one when there is no usable history."""

        try:
            if not self.path.exists():
                self.logger.info("snapshot_missing", path=str(self.path))
                return Snapshot()
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, list):
                raise ValueError("snapshot root must be a list")
            records = [Record.from_payload(entry) for entry in payload]
        except (OSError, UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self.logger.warning("snapshot_unreadable", path=str(self.path), error=str(exc))
            return Snapshot()

        for entry, record in zip(payload, records):
            stored_hash = entry.get("hash")
            if stored_hash and stored_hash != record.fingerprint:
                self.logger.warning(
                    "snapshot_hash_mismatch", path=str(self.path), record_id=record.record_id
                )
        snapshot = Snapshot.from_records(records)
        self.logger.info("snapshot_loaded", path=str(self.path), records=len(snapshot))
        return snapshot

    def save(self, records: Iterable[Record]) -> None:
        """Write every record to the snapshot file, replacing the old content."""

        payload = [record.to_payload() for record in records]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise SnapshotWriteError(f"Cannot write snapshot {self.path}: {exc}") from exc
        self.logger.info("snapshot_saved", path=str(self.path), records=len(payload))


__all__ = ["SnapshotStore"]
