"""
Resource fetchers.

Two strategies share one contract, ``fetch(url) -> (body, status)`` raising
:class:`~lged_crawler.errors.FetchFailure`, plus ``fetch_binary(url)``
returning an iterator of body chunks for the download sink:

* :class:`FormFetcher` drives the cascading form through a navigator
  (normally a :class:`~lged_crawler.session.BrowserSession`).
* :class:`HttpFetcher` issues stateless GETs with ``requests``.

Neither knows anything about districts or upazilas beyond the option
lists they are asked to read.
"""

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Iterator

import requests

from lged_crawler.config import (
    BINARY_TIMEOUT,
    DERIVED_LINK_IDS,
    DERIVED_LINK_RE,
    PLACEHOLDER_VALUES,
    REQUEST_TIMEOUT,
    STREAM_CHUNK,
)
from lged_crawler.errors import FetchFailure
from lged_crawler.extraction.links import parse_listing, scan_resource_links

log = logging.getLogger("lged-crawler")


@dataclass(frozen=True)
class TaxonomyNode:
    """One selectable entry at a hierarchy level."""

    id: str
    label: str


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class FormFetcher:
    """Reads option lists, derived links and binaries through a navigator.

    The navigator must provide ``url``, ``load_page``, ``select_option``,
    ``query_options``, ``query_link``, ``content`` and
    ``fetch_response_body``.
    """

    def __init__(
        self,
        navigator,
        link_ids: tuple[str, ...] = DERIVED_LINK_IDS,
        link_re=DERIVED_LINK_RE,
    ) -> None:
        self.navigator = navigator
        self.link_ids = link_ids
        self.link_re = link_re

    def load_page(self, url: str) -> None:
        self.navigator.load_page(url)

    def select_option(
        self, selector: str, value: str, fallback_delay: float = 2.0,
    ) -> None:
        self.navigator.select_option(selector, value, fallback_delay)

    def options(self, selector: str) -> list[TaxonomyNode]:
        """Options of *selector* minus the "Select..." placeholders."""
        nodes: list[TaxonomyNode] = []
        for opt in self.navigator.query_options(selector):
            value = (opt.get("value") or "").strip()
            if value in PLACEHOLDER_VALUES:
                continue
            nodes.append(TaxonomyNode(value, (opt.get("text") or "").strip()))
        return nodes

    def read_derived_links(self) -> list[str]:
        """Absolute URLs of the resources revealed by the last selection.

        The known anchors are read first, then the rendered markup is
        scanned for anything else matching the resource pattern.
        """
        page_url = self.navigator.url
        raw: list[str] = []
        for element_id in self.link_ids:
            href = self.navigator.query_link(element_id)
            if href:
                raw.append(href)
        raw.extend(scan_resource_links(self.navigator.content(), self.link_re))

        links: list[str] = []
        for href in raw:
            absolute = urllib.parse.urljoin(page_url, href.strip())
            if absolute not in links:
                links.append(absolute)
        return links

    def fetch(self, url: str) -> tuple[bytes, int]:
        status, body = self.navigator.fetch_response_body(url)
        if not _is_success(status):
            raise FetchFailure(url, f"HTTP {status}")
        if not body:
            raise FetchFailure(url, "Empty response body")
        return body, status

    def fetch_binary(self, url: str) -> Iterator[bytes]:
        body, _ = self.fetch(url)
        return iter([body])


class HttpFetcher:
    """Stateless GETs over a shared ``requests.Session``."""

    def __init__(
        self,
        session: requests.Session,
        timeout: float = REQUEST_TIMEOUT,
        binary_timeout: float = BINARY_TIMEOUT,
    ) -> None:
        self.session = session
        self.timeout = timeout
        self.binary_timeout = binary_timeout

    def fetch(self, url: str) -> tuple[bytes, int]:
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchFailure(url, f"Request failed: {exc}") from exc
        if not _is_success(resp.status_code):
            raise FetchFailure(url, f"HTTP {resp.status_code}")
        return resp.content, resp.status_code

    def list_directory(self, url: str) -> tuple[list[str], list[str]]:
        """Return the raw ``(subdirs, files)`` hrefs of the listing at *url*."""
        body, _ = self.fetch(url)
        if not body.strip():
            raise FetchFailure(url, "Empty listing")
        subdirs, files = parse_listing(body.decode("utf-8", errors="replace"))
        log.debug("  Listing %s: %d dir(s), %d file(s)",
                  url, len(subdirs), len(files))
        return subdirs, files

    def fetch_binary(self, url: str) -> Iterator[bytes]:
        try:
            resp = self.session.get(
                url, timeout=self.binary_timeout, stream=True,
            )
        except requests.RequestException as exc:
            raise FetchFailure(url, f"Request failed: {exc}") from exc
        if not _is_success(resp.status_code):
            resp.close()
            raise FetchFailure(url, f"HTTP {resp.status_code}")
        return self._iter_body(resp, url)

    @staticmethod
    def _iter_body(resp: requests.Response, url: str) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_content(chunk_size=STREAM_CHUNK):
                yield chunk
        except requests.RequestException as exc:
            raise FetchFailure(url, f"Transfer failed: {exc}") from exc
        finally:
            resp.close()
