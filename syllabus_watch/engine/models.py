"""Record, snapshot and diff types shared by every stage of a watch run."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .canonical import canonicalize
from .hashing import fingerprint as compute_fingerprint

_TEXT_FIELDS = ("title", "instructor", "term", "schedule", "room", "updated_label", "body_text")


@dataclass(slots=True)
class Stub:
    """Listing-page reference to a record, before detail enrichment."""

    record_id: str
    title: str
    locator: str
    instructor: str = ""
    term: str = ""
    schedule: str = ""


@dataclass(slots=True)
class DetailPayload:
    """Content extracted from one detail page."""

    body_text: str
    updated_label: str | None = None
    room: str | None = None


@dataclass(frozen=True, slots=True)
class Record:
    """One harvested record.

    Free-text fields are canonicalised on construction and ``fingerprint`` is
    derived from them; it cannot be passed in.
    """

    record_id: str
    title: str
    instructor: str
    term: str
    schedule: str
    body_text: str
    source_url: str
    room: str = ""
    updated_label: str = ""
    fingerprint: str = field(init=False, default="")

    def __post_init__(self) -> None:
        for name in _TEXT_FIELDS:
            object.__setattr__(self, name, canonicalize(getattr(self, name)))
        object.__setattr__(
            self,
            "fingerprint",
            compute_fingerprint(
                self.title,
                self.instructor,
                self.term,
                self.schedule,
                self.room,
                self.updated_label,
                self.body_text,
            ),
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "id": self.record_id,
            "title": self.title,
            "instructor": self.instructor,
            "term": self.term,
            "dayPeriod": self.schedule,
            "room": self.room,
            "updatedAt": self.updated_label,
            "bodyText": self.body_text,
            "detailUrl": self.source_url,
            "hash": self.fingerprint,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Record":
        """Build a record from its persisted form; ``hash`` is recomputed."""

        record_id = payload["id"]
        if not isinstance(record_id, str) or not record_id:
            raise ValueError(f"Invalid record id: {record_id!r}")
        return cls(
            record_id=record_id,
            title=str(payload.get("title") or ""),
            instructor=str(payload.get("instructor") or ""),
            term=str(payload.get("term") or ""),
            schedule=str(payload.get("dayPeriod") or ""),
            body_text=str(payload.get("bodyText") or ""),
            source_url=str(payload.get("detailUrl") or ""),
            room=str(payload.get("room") or ""),
            updated_label=str(payload.get("updatedAt") or ""),
        )


class Snapshot(Mapping[str, Record]):
    """Read-only mapping of record id to record observed in one run."""

    __slots__ = ("_records",)

    def __init__(self, records: Mapping[str, Record] | None = None) -> None:
        self._records: dict[str, Record] = dict(records or {})

    @classmethod
    def from_records(cls, records: Iterable[Record]) -> "Snapshot":
        # Later duplicates overwrite earlier ones.
        return cls({record.record_id: record for record in records})

    def __getitem__(self, record_id: str) -> Record:
        return self._records[record_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Snapshot({len(self._records)} records)"

    def records(self) -> list[Record]:
        return list(self._records.values())


@dataclass(frozen=True, slots=True)
class ChangedRecord:
    before: Record
    after: Record


@dataclass(slots=True)
class DiffResult:
    """Three-way classification of one run against the previous snapshot."""

    added: list[Record] = field(default_factory=list)
    changed: list[ChangedRecord] = field(default_factory=list)
    removed: list[Record] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.changed) + len(self.removed)

    @property
    def is_empty(self) -> bool:
        return self.total == 0


__all__ = ["ChangedRecord", "DetailPayload", "DiffResult", "Record", "Snapshot", "Stub"]
