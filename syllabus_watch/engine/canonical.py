"""Whitespace canonicalisation for free-text fields."""

from __future__ import annotations

import re

# Line breaks and NBSP included.
_WHITESPACE_RUN = re.compile(r"[\s\u00a0]+")


def canonicalize(text: str | None) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""

    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", str(text)).strip()


__all__ = ["canonicalize"]
