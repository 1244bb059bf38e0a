"""Change-detection engine: canonicalise → fingerprint → fetch → reconcile."""

from .canonical import canonicalize
from .hashing import fingerprint
from .models import ChangedRecord, DetailPayload, DiffResult, Record, Snapshot, Stub
from .pipeline import DetailPipeline, PipelineResult, resolve_record_id
from .reconciler import reconcile
from .snapshot import SnapshotStore

__all__ = [
    "ChangedRecord",
    "DetailPayload",
    "DetailPipeline",
    "DiffResult",
    "PipelineResult",
    "Record",
    "Snapshot",
    "SnapshotStore",
    "Stub",
    "canonicalize",
    "fingerprint",
    "reconcile",
    "resolve_record_id",
]
