"""Static HTML listing of the current records."""

from __future__ import annotations

import locale
import unicodedata
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog
from jinja2 import BaseLoader, Environment

from ..engine.models import Record

# setlocale is process-wide.
_LOCALE_LOCK = Lock()

_PAGE_TEMPLATE = """<!doctype html>
<html lang="ja">
<head>
  <meta charset="utf-8">
  <title>{{ title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body { font-family: system-ui, -apple-system, "Segoe UI", Roboto, "Noto Sans JP", sans-serif; margin: 24px; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #ddd; padding: 8px; vertical-align: top; }
    th { background: #f4f4f4; }
  </style>
</head>
<body>
  <h1>{{ title }}</h1>
  <p>{{ records | length }} records</p>
  <table>
    <thead>
      <tr>
        <th>ID</th>
        <th>Title</th>
        <th>Instructor</th>
        <th>Term</th>
        <th>Day / period</th>
        <th>Room</th>
        <th>Updated</th>
      </tr>
    </thead>
    <tbody>
{%- for record in records %}
      <tr>
        <td>{{ record.record_id }}</td>
        <td><a href="{{ record.source_url }}" target="_blank" rel="noopener">{{ record.title }}</a></td>
        <td>{{ record.instructor }}</td>
        <td>{{ record.term }}</td>
        <td>{{ record.schedule }}</td>
        <td>{{ record.room }}</td>
        <td>{{ record.updated_label }}</td>
      </tr>
{%- endfor %}
    </tbody>
  </table>
</body>
</html>
"""

_ENVIRONMENT = Environment(loader=BaseLoader(), autoescape=True, keep_trailing_newline=True)


def _fallback_key(text: str) -> str:
    return unicodedata.normalize("NFKC", text).casefold()


def sort_by_title(records: Iterable[Record], collation_locale: str | None = None) -> list[Record]:
    """Sort records by title using the collation rules of ``collation_locale``.

    Falls back to NFKC + casefold ordering when the locale is not installed.
    Ties keep id order so output is stable.
    """

    items = sorted(records, key=lambda record: record.record_id)
    if not collation_locale:
        return sorted(items, key=lambda record: _fallback_key(record.title))
    with _LOCALE_LOCK:
        previous = locale.setlocale(locale.LC_COLLATE)
        try:
            locale.setlocale(locale.LC_COLLATE, collation_locale)
        except locale.Error:
            structlog.get_logger("syllabus_watch.report").warning(
                "collation_locale_unavailable", locale=collation_locale
            )
            return sorted(items, key=lambda record: _fallback_key(record.title))
        try:
            return sorted(items, key=lambda record: locale.strxfrm(record.title))
        finally:
            locale.setlocale(locale.LC_COLLATE, previous)


def render_html(records: Iterable[Record], title: str, collation_locale: str | None = None) -> str:
    template = _ENVIRONMENT.from_string(_PAGE_TEMPLATE)
    return template.render(title=title, records=sort_by_title(records, collation_locale))


class HtmlReportRenderer:
    """Write the sorted record table to a static HTML file."""

    def __init__(
        self, path: Path, title: str = "Syllabus listing", collation_locale: str | None = None
    ) -> None:
        self.path = Path(path)
        self.title = title
        self.collation_locale = collation_locale
        self.logger = structlog.get_logger("syllabus_watch.report")

    def render(self, records: Iterable[Record]) -> Path:
        records = list(records)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            render_html(records, self.title, self.collation_locale), encoding="utf-8"
        )
        self.logger.info("report_written", path=str(self.path), records=len(records))
        return self.path


__all__ = ["HtmlReportRenderer", "render_html", "sort_by_title"]
