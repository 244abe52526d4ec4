"""Structural integrity checks for live pages.

The check is a heuristic regex/stack scan, not an HTML parser: it exists to
catch structural *regressions* introduced by an automated edit (a dropped
closing tag, a duplicated <head>), not to certify standards conformance.
Pages that rely on optional end tags (``<p>``, ``<li>``) report those as
unclosed and are refused for automated edits.
"""

import hashlib
import logging
import re
from typing import Callable, List, Optional

import requests
from bs4 import BeautifulSoup

from seo_remediation import config
from seo_remediation.errors import FetchFailure
from seo_remediation.schemas import IntegrityComparison, IntegrityReport

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

VOID_ELEMENTS = frozenset([
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
])

COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
RAW_TEXT_RE = re.compile(r"(<(script|style)\b[^>]*>).*?(</\2\s*>)", re.DOTALL | re.IGNORECASE)
INTER_TAG_WS_RE = re.compile(r">\s+<")
TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9-]*)[^>]*>")
DOCTYPE_RE = re.compile(r"<!doctype\s+html\b[^>]*>", re.IGNORECASE)
CONTENT_TYPE_RE = re.compile(r"^content-type$", re.IGNORECASE)


def _strip_non_structural(html: str) -> str:
    # Markup inside comments and script/style bodies is not structure
    html = COMMENT_RE.sub("", html)
    return RAW_TEXT_RE.sub(r"\1\3", html)


def iter_tag_events(html: str):
    """Yield ``(name, is_closing, is_self_closing)`` for each tag in document order."""
    for match in TAG_RE.finditer(_strip_non_structural(html)):
        name = match.group(2).lower()
        is_closing = match.group(1) == "/"
        is_self_closing = match.group(0).endswith("/>") or name in VOID_ELEMENTS
        yield name, is_closing, is_self_closing


def find_unclosed_tags(html: str) -> List[str]:
    unclosed = []
    stack = []
    for name, is_closing, is_self_closing in iter_tag_events(html):
        if is_closing:
            if stack and stack[-1] == name:
                stack.pop()
            else:
                unclosed.append(name)
        elif not is_self_closing:
            stack.append(name)
    return unclosed + stack


def structure_hash(html: str) -> str:
    """Hash of the ordered tag-name sequence; text and attribute values are ignored."""
    compact = INTER_TAG_WS_RE.sub("><", _strip_non_structural(html))
    sequence = []
    for match in TAG_RE.finditer(compact):
        name = match.group(2).lower()
        sequence.append(f"/{name}" if match.group(1) else name)
    return hashlib.sha256(",".join(sequence).encode("utf-8")).hexdigest()


def has_leading_doctype(html: str) -> bool:
    head = COMMENT_RE.sub("", html).lstrip("\ufeff \t\r\n")
    return bool(DOCTYPE_RE.match(head))


def analyze_html(html: str) -> IntegrityReport:
    soup = BeautifulSoup(html, "html.parser")
    critical_errors = []
    warnings = []

    has_valid_doctype = has_leading_doctype(html)
    if not has_valid_doctype:
        critical_errors.append("Missing or invalid DOCTYPE declaration")

    has_single_html_root = len(soup.find_all("html")) == 1
    if not has_single_html_root:
        critical_errors.append("Invalid HTML root structure")

    has_single_head = len(soup.find_all("head")) == 1
    if not has_single_head:
        critical_errors.append("Missing or multiple HEAD sections")

    has_single_body = len(soup.find_all("body")) == 1
    if not has_single_body:
        critical_errors.append("Missing or multiple BODY sections")

    unclosed = find_unclosed_tags(html)
    if unclosed:
        critical_errors.append(f"Unclosed tags detected: {', '.join(unclosed)}")

    title_count = len(soup.find_all("title"))
    if title_count > 1:
        warnings.append("Multiple title tags detected")
    elif title_count == 0:
        warnings.append("No title tag found")

    charset = soup.find_all("meta", charset=True) + soup.find_all(
        "meta", attrs={"http-equiv": CONTENT_TYPE_RE}
    )
    if not charset:
        warnings.append("No charset declaration found")

    return IntegrityReport(
        is_valid=not critical_errors,
        has_valid_doctype=has_valid_doctype,
        has_single_html_root=has_single_html_root,
        has_single_head=has_single_head,
        has_single_body=has_single_body,
        meta_tag_count=len(soup.find_all("meta")),
        critical_errors=critical_errors,
        warnings=warnings,
        unclosed_tags=unclosed,
        structure_hash=structure_hash(html),
    )


def compare_integrity(before: IntegrityReport, after: IntegrityReport) -> IntegrityComparison:
    before_errors = set(before.critical_errors)
    after_errors = set(after.critical_errors)
    new_errors = [error for error in after.critical_errors if error not in before_errors]
    resolved_errors = [error for error in before.critical_errors if error not in after_errors]
    return IntegrityComparison(
        has_structural_changes=before.structure_hash != after.structure_hash,
        new_errors=new_errors,
        resolved_errors=resolved_errors,
        integrity_maintained=after.is_valid and not new_errors,
    )


def fetch_html(url: str, timeout: float = config.FETCH_TIMEOUT) -> str:
    try:
        resp = requests.get(url, headers=HEADERS, timeout=timeout)
    except requests.exceptions.Timeout as exc:
        raise FetchFailure(f"timed out after {timeout}s") from exc
    except requests.exceptions.RequestException as exc:
        raise FetchFailure(str(exc)) from exc
    if resp.status_code >= 400:
        raise FetchFailure(f"HTTP {resp.status_code}")
    return resp.text


class HTMLIntegrityService:
    def __init__(self, fetch: Optional[Callable[[str], str]] = None, timeout: float = config.FETCH_TIMEOUT):
        self.timeout = timeout
        self._fetch = fetch or (lambda url: fetch_html(url, timeout=self.timeout))

    def check_integrity(self, url: str) -> IntegrityReport:
        """Fetch a page and report its structure. Fetch problems become an invalid report."""
        try:
            html = self._fetch(url)
        except Exception as exc:
            logger.warning("Integrity fetch failed for %s: %s", url, exc)
            return IntegrityReport(
                is_valid=False,
                critical_errors=[f"Failed to fetch page: {exc}"],
                structure_hash="",
            )
        report = analyze_html(html)
        logger.debug(
            "Integrity for %s: valid=%s errors=%d hash=%s",
            url, report.is_valid, len(report.critical_errors), report.structure_hash[:12],
        )
        return report

    def compare_integrity(self, before: IntegrityReport, after: IntegrityReport) -> IntegrityComparison:
        return compare_integrity(before, after)
