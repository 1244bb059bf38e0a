"""HTTP client for form-based syllabus portals."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urljoin

import httpx
import structlog
from selectolax.parser import HTMLParser, Node

from ..config import FetchConfig, ListingLayout, PortalConfig
from ..engine.models import DetailPayload, Stub
from ..errors import SourceError

TERM_PATTERN = re.compile(r"(通年|前期|後期|１学期|２学期|３学期|４学期)")
RESULT_FRAME_PATTERN = re.compile(r"slbssrch|syllabus|Syllabus")
RESULT_HEADINGS = ("講義一覧", "シラバス")
NEXT_PAGE_LABELS = ("次へ", "次のページ", "Next", "next", "»")

USER_FIELD_NAMES = ("userId", "loginId", "username", "user")
OTP_SELECTOR = 'input[name="otp"], input#otp, input[name="totp"]'
YEAR_SELECTOR = 'select[name="nendo"], select#nendo'
SIMPLE_LINK_SELECTOR = "a[href*='syllabus'], a[href*='detail'], a[href*='Syllabus']"
BODY_SELECTORS = (".syllabus-body", "#content", "main", "article", "body")
UPDATED_SELECTORS = (".updated-at", "time")
ROOM_SELECTORS = (".room",)


def _node_text(node: Node | None) -> str:
    if node is None:
        return ""
    return (node.text(deep=True, separator=" ") or "").strip()


def _option_value(option: Node) -> str:
    value = option.attributes.get("value")
    return value if value is not None else _node_text(option)


def _form_fields(form: Node) -> dict[str, str]:
    """Collect the values a browser would submit for ``form`` without clicking a button."""

    fields: dict[str, str] = {}
    for node in form.css("input, select, textarea"):
        attrs = node.attributes
        name = attrs.get("name")
        if not name:
            continue
        if node.tag == "input":
            kind = (attrs.get("type") or "text").lower()
            if kind in ("submit", "button", "image", "reset", "file"):
                continue
            if kind in ("checkbox", "radio") and "checked" not in attrs:
                continue
            fields[name] = attrs.get("value") or ""
        elif node.tag == "select":
            options = node.css("option")
            chosen = next((opt for opt in options if "selected" in opt.attributes), None)
            if chosen is None and options:
                chosen = options[0]
            fields[name] = _option_value(chosen) if chosen is not None else ""
        else:
            fields[name] = node.text() or ""
    return fields


def _submit_button(form: Node, label: str | None = None) -> tuple[str, str] | None:
    for node in form.css('input[type="submit"], button'):
        name = node.attributes.get("name")
        if not name:
            continue
        value = node.attributes.get("value") or _node_text(node)
        if label is None or label in value:
            return name, value
    return None


def _first_text(tree: HTMLParser, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        text = _node_text(tree.css_first(selector))
        if text:
            return text
    return ""


def split_term(schedule: str) -> tuple[str, str]:
    """Split a combined "term + day/period" cell into its two parts."""

    match = TERM_PATTERN.search(schedule)
    term = match.group(1) if match else ""
    remainder = schedule.replace(term, "", 1).strip() if term else schedule.strip()
    return term, remainder


def parse_coded_listing(html: str, base_url: str) -> list[Stub]:
    """Parse rows laid out as ``No | code | title | term+schedule | instructor``."""

    tree = HTMLParser(html)
    for selector in ("table tbody tr", "table tr"):
        stubs: list[Stub] = []
        for row in tree.css(selector):
            cells = row.css("td")
            if len(cells) < 5:
                continue
            code = _node_text(cells[1])
            link = cells[2].css_first("a")
            title = _node_text(link) or _node_text(cells[2])
            href = (link.attributes.get("href") or "").strip() if link is not None else ""
            term, schedule = split_term(_node_text(cells[3]))
            if code and href:
                stubs.append(
                    Stub(
                        record_id=code,
                        title=title,
                        locator=urljoin(base_url, href),
                        instructor=_node_text(cells[4]),
                        term=term,
                        schedule=schedule,
                    )
                )
        if stubs:
            return stubs
    return []


def parse_simple_listing(html: str, base_url: str) -> list[Stub]:
    """Parse rows laid out as ``id | title | instructor | term | schedule`` with a detail link."""

    tree = HTMLParser(html)
    for selector in ("table tbody tr", "table tr"):
        stubs: list[Stub] = []
        for row in tree.css(selector):
            link = row.css_first(SIMPLE_LINK_SELECTOR)
            if link is None:
                continue
            href = (link.attributes.get("href") or "").strip()
            if not href:
                continue
            cells = [_node_text(td) for td in row.css("td")]
            cells += [""] * (5 - len(cells))
            stubs.append(
                Stub(
                    record_id=cells[0],
                    title=cells[1] or _node_text(link),
                    locator=urljoin(base_url, href),
                    instructor=cells[2],
                    term=cells[3],
                    schedule=cells[4],
                )
            )
        if stubs:
            return stubs
    return []


def parse_detail(html: str) -> DetailPayload:
    tree = HTMLParser(html)
    tree.strip_tags(["script", "style", "noscript"])
    return DetailPayload(
        body_text=_first_text(tree, BODY_SELECTORS),
        updated_label=_first_text(tree, UPDATED_SELECTORS) or None,
        room=_first_text(tree, ROOM_SELECTORS) or None,
    )


def next_page_url(html: str, base_url: str) -> str | None:
    tree = HTMLParser(html)
    link = tree.css_first("a[rel='next']")
    if link is None:
        for anchor in tree.css("a[href]"):
            if _node_text(anchor) in NEXT_PAGE_LABELS:
                link = anchor
                break
    if link is None:
        return None
    href = (link.attributes.get("href") or "").strip()
    if not href or href.startswith(("javascript:", "#")):
        return None
    return urljoin(base_url, href)


_LISTING_PARSERS = {
    ListingLayout.CODED: parse_coded_listing,
    ListingLayout.SIMPLE: parse_simple_listing,
}


class PortalRecordSource:
    """Log in (optionally), run the search form and walk listing pages over HTTP."""

    def __init__(
        self,
        portal: PortalConfig,
        fetch: FetchConfig | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.portal = portal
        fetch = fetch or FetchConfig()
        headers = {"User-Agent": fetch.user_agent} if fetch.user_agent else None
        self._client = client or httpx.Client(
            follow_redirects=True, timeout=fetch.timeout, headers=headers
        )
        self.logger = logger or structlog.get_logger("syllabus_watch.source")
        self._logged_in = False

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    def list_stubs(self) -> list[Stub]:
        if self.portal.requires_login and not self._logged_in:
            self._login()
        response = self._search()
        html, url = self._resolve_result_frame(response.text, str(response.url))
        parse = _LISTING_PARSERS[self.portal.layout]

        stubs: list[Stub] = []
        visited = {url}
        for page in range(1, self.portal.max_pages + 1):
            page_stubs = parse(html, url)
            self.logger.info("listing_page_parsed", page=page, url=url, stubs=len(page_stubs))
            stubs.extend(page_stubs)
            next_url = next_page_url(html, url)
            if next_url is None or next_url in visited:
                break
            if page == self.portal.max_pages:
                self.logger.warning("listing_page_limit", max_pages=page, next_url=next_url)
                break
            visited.add(next_url)
            next_response = self._request("GET", next_url)
            html, url = next_response.text, str(next_response.url)
        if not stubs:
            self.logger.warning("listing_empty", url=url, snippet=html[:500])
        return stubs

    def fetch_detail(self, locator: str) -> DetailPayload:
        response = self._request("GET", locator)
        return parse_detail(response.text)

    # ------------------------------------------------------------------
    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SourceError(f"{method} {url} failed: {exc}") from exc
        return response

    def _submit(self, form: Node, page_url: str, fields: dict[str, str]) -> httpx.Response:
        action = urljoin(page_url, form.attributes.get("action") or "")
        method = (form.attributes.get("method") or "get").upper()
        if method == "POST":
            return self._request("POST", action, data=fields)
        return self._request("GET", action, params=fields)

    def _login(self) -> None:
        login_url = self.portal.login_url or self.portal.base_url
        self.logger.info("login_started", url=login_url)
        page = self._request("GET", login_url)
        tree = HTMLParser(page.text)
        form = next(
            (node for node in tree.css("form") if node.css_first('input[type="password"]')), None
        )
        if form is None:
            raise SourceError(f"No login form found at {login_url}")

        fields = _form_fields(form)
        user_field = next((name for name in USER_FIELD_NAMES if name in fields), None)
        if user_field is None:
            user_field = next(
                (
                    node.attributes.get("name")
                    for node in form.css("input")
                    if (node.attributes.get("type") or "text").lower() in ("text", "email")
                ),
                None,
            )
        if not user_field:
            raise SourceError("Login form has no user id field")
        fields[user_field] = self.portal.credentials.username
        password_input = form.css_first('input[type="password"]')
        fields[password_input.attributes.get("name") or "password"] = self.portal.credentials.password
        response = self._submit(form, str(page.url), fields)

        otp_tree = HTMLParser(response.text)
        otp_input = otp_tree.css_first(OTP_SELECTOR)
        if otp_input is not None:
            if not self.portal.credentials.otp:
                raise SourceError("Portal requested a one-time password but none is configured")
            otp_form = next((node for node in otp_tree.css("form") if node.css_first(OTP_SELECTOR)), None)
            if otp_form is None:
                raise SourceError("One-time password field is outside any form")
            otp_fields = _form_fields(otp_form)
            otp_fields[otp_input.attributes.get("name") or "otp"] = self.portal.credentials.otp
            response = self._submit(otp_form, str(response.url), otp_fields)
            self.logger.info("otp_submitted")

        if HTMLParser(response.text).css_first('input[type="password"]') is not None:
            raise SourceError("Login rejected by portal")
        self._logged_in = True
        self.logger.info("login_succeeded")

    def _search(self) -> httpx.Response:
        page = self._request("GET", self.portal.base_url)
        tree = HTMLParser(page.text)
        form = tree.css_first("form")
        if form is None:
            self.logger.warning("search_form_missing", url=str(page.url))
            return page
        fields = _form_fields(form)
        year = self.portal.search_year
        if year:
            year_select = form.css_first(YEAR_SELECTOR)
            if year_select is not None:
                fields[year_select.attributes.get("name") or "nendo"] = year
            else:
                first_select = form.css_first("select")
                option = None
                if first_select is not None:
                    option = next(
                        (opt for opt in first_select.css("option") if _node_text(opt) == year), None
                    )
                if option is not None and first_select.attributes.get("name"):
                    fields[first_select.attributes["name"]] = _option_value(option)
                else:
                    self.logger.warning("year_select_missing", year=year)
        button = _submit_button(form, "検索") or _submit_button(form)
        if button is not None:
            fields[button[0]] = button[1]
        self.logger.info("search_submitted", url=str(page.url), year=year)
        return self._submit(form, str(page.url), fields)

    def _resolve_result_frame(self, html: str, url: str) -> tuple[str, str]:
        """Follow into the frame holding the result table when the page is a frameset."""

        frames = [
            urljoin(url, node.attributes.get("src") or "")
            for node in HTMLParser(html).css("frame[src], iframe[src]")
        ]
        if not frames:
            return html, url
        by_url = next((src for src in frames if RESULT_FRAME_PATTERN.search(src)), None)
        candidates = [by_url] if by_url else frames
        for src in candidates:
            response = self._request("GET", src)
            if by_url or any(
                label in _first_text(HTMLParser(response.text), ("h1", "h2"))
                for label in RESULT_HEADINGS
            ):
                self.logger.info("result_frame_selected", url=src)
                return response.text, str(response.url)
        return html, url


__all__ = [
    "PortalRecordSource",
    "next_page_url",
    "parse_coded_listing",
    "parse_detail",
    "parse_simple_listing",
    "split_term",
]
