"""Three-way reconciliation of two snapshots."""

from __future__ import annotations

from collections.abc import Mapping

from .models import ChangedRecord, DiffResult, Record


def reconcile(previous: Mapping[str, Record], current: Mapping[str, Record]) -> DiffResult:
    """Classify every id as added, changed or removed; unchanged ids are omitted.

    Fingerprint equality is the only change signal. Neither input is mutated.
    """

    diff = DiffResult()
    for record_id, record in current.items():
        before = previous.get(record_id)
        if before is None:
            diff.added.append(record)
        elif before.fingerprint != record.fingerprint:
            diff.changed.append(ChangedRecord(before=before, after=record))
    for record_id, record in previous.items():
        if record_id not in current:
            diff.removed.append(record)
    return diff


__all__ = ["reconcile"]
