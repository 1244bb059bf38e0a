"""Record source contract consumed by the watcher."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..engine.models import DetailPayload, Stub


@runtime_checkable
class RecordSource(Protocol):
    """Yields listing stubs and resolves detail pages for them."""

    def list_stubs(self) -> list[Stub]:
        """Return every stub on the listing; may be empty."""

    def fetch_detail(self, locator: str) -> DetailPayload:
        """Fetch one detail page; raises SourceError on failure."""

    def close(self) -> None:
        """Release network resources."""


__all__ = ["RecordSource"]
