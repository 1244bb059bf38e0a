"""Report renderers."""

from .html import HtmlReportRenderer, render_html, sort_by_title

__all__ = ["HtmlReportRenderer", "render_html", "sort_by_title"]
