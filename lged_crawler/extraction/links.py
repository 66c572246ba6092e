"""
Link helpers for listing pages and rendered form markup.
"""

import html
import re
import urllib.parse

from lged_crawler.config import DERIVED_LINK_RE
from lged_crawler.extraction.html_parser import extract_anchor_hrefs


def split_listing(hrefs: list[str]) -> tuple[list[str], list[str]]:
    """
    Partition listing hrefs into ``(subdirs, files)``.

    A trailing ``/`` marks a directory.  Sort links (``?C=N;O=D``) and
    in-page anchors have no path and are dropped.
    """
    subdirs: list[str] = []
    files: list[str] = []
    for href in hrefs:
        path = urllib.parse.urlsplit(href).path
        if not path:
            continue
        if path.endswith("/"):
            subdirs.append(href)
        else:
            files.append(href)
    return subdirs, files


def parse_listing(content: str) -> tuple[list[str], list[str]]:
    """Return ``(subdirs, files)`` hrefs from a directory-listing page."""
    return split_listing(extract_anchor_hrefs(content))


def scan_resource_links(
    markup: str,
    pattern: re.Pattern = DERIVED_LINK_RE,
) -> list[str]:
    """Regex-scan rendered *markup* for resource URLs, first-seen order."""
    seen: set[str] = set()
    found: list[str] = []
    for m in pattern.finditer(markup):
        link = html.unescape(m.group(0))
        if link not in seen:
            seen.add(link)
            found.append(link)
    return found
