"""Content fingerprints used as change-detection tokens."""

from __future__ import annotations

import hashlib

from .canonical import canonicalize

FIELD_DELIMITER = "|"


def fingerprint(
    title: str,
    instructor: str,
    term: str,
    schedule: str,
    room: str | None,
    updated_label: str | None,
    body_text: str,
) -> str:
    """Return the SHA-256 hex digest of the canonical field tuple.

    The record id and detail URL are not part of the digest; only the
    harvested content is.
    """

    key = FIELD_DELIMITER.join(
        canonicalize(value)
        for value in (title, instructor, term, schedule, room, updated_label, body_text)
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


__all__ = ["FIELD_DELIMITER", "fingerprint"]
