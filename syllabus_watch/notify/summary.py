"""Human-readable, bounded change summaries."""

from __future__ import annotations

from dataclasses import dataclass

from ..engine.models import DiffResult

NO_CHANGES_MESSAGE = "No changes detected."


@dataclass(slots=True)
class SummaryLimits:
    added: int = 10
    changed: int = 10
    removed: int = 5


def format_diff_summary(diff: DiffResult, limits: SummaryLimits | None = None) -> str:
    """Render counts per category and enumerate at most ``limits`` items each."""

    limits = limits or SummaryLimits()
    lines: list[str] = []
    if diff.added:
        lines.append(f"Added: {len(diff.added)}")
        for record in diff.added[: limits.added]:
            lines.append(
                f"• [{record.record_id}] {record.title} ({record.instructor}) "
                f"{record.term} {record.schedule}".rstrip()
            )
    if diff.changed:
        lines.append(f"Changed: {len(diff.changed)}")
        for change in diff.changed[: limits.changed]:
            after = change.after
            lines.append(
                f"• [{after.record_id}] {after.title} ({after.instructor}) "
                f"updated: {after.updated_label or 'unknown'} details: {after.source_url}"
            )
    if diff.removed:
        lines.append(f"Removed: {len(diff.removed)}")
        for record in diff.removed[: limits.removed]:
            lines.append(f"• [{record.record_id}] {record.title}")
    return "\n".join(lines) or NO_CHANGES_MESSAGE


__all__ = ["NO_CHANGES_MESSAGE", "SummaryLimits", "format_diff_summary"]
