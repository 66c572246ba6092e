"""
Transport collaborators for the LGED map crawler.

Provides:
* ``build_session`` – a ``requests.Session`` for the static listing tree
* ``BrowserSession`` – one headless Chromium page driving the cascading
  district / upazila form, acquired and released as a context manager
"""

import logging
import random

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lged_crawler.config import (
    BINARY_TIMEOUT,
    BROWSER_VIEWPORT,
    MAX_RETRIES,
    PAGE_TIMEOUT,
    SETTLE_TIMEOUT,
    USER_AGENTS,
)
from lged_crawler.errors import FetchFailure, SessionError, TransitionFailure

log = logging.getLogger("lged-crawler")


def build_session(verify_ssl: bool = True) -> requests.Session:
    """Return a ``requests.Session`` with keep-alive, a browser
    User-Agent and no transport-level retries."""
    session = requests.Session()
    retry = Retry(total=MAX_RETRIES, raise_on_status=False)
    adapter = HTTPAdapter(
        max_retries=retry,
        pool_connections=20,
        pool_maxsize=20,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify_ssl
    session.headers.update({
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })
    return session


class BrowserSession:
    """A single Playwright page shared by every step of a cascade walk.

    Use it as a context manager; the browser is closed on every exit path::

        with BrowserSession() as browser:
            browser.load_page(BASE_URL)
    """

    def __init__(
        self,
        headless: bool = True,
        page_timeout: float = PAGE_TIMEOUT,
        binary_timeout: float = BINARY_TIMEOUT,
        settle_timeout: float = SETTLE_TIMEOUT,
        verify_ssl: bool = True,
    ) -> None:
        self.headless = headless
        self.page_timeout = page_timeout
        self.binary_timeout = binary_timeout
        self.settle_timeout = settle_timeout
        self.verify_ssl = verify_ssl
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def __enter__(self) -> "BrowserSession":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
            )
            self._context = self._browser.new_context(
                viewport=BROWSER_VIEWPORT,
                user_agent=random.choice(USER_AGENTS),
                ignore_https_errors=not self.verify_ssl,
            )
            self._page = self._context.new_page()
        except PlaywrightError as exc:
            self.close()
            raise SessionError(
                f"Could not launch Chromium ({exc}). "
                "Run:  playwright install chromium"
            ) from exc
        log.debug("Browser session opened (headless=%s)", self.headless)

    def close(self) -> None:
        for name in ("_context", "_browser"):
            handle = getattr(self, name)
            if handle is not None:
                try:
                    handle.close()
                except PlaywrightError as exc:
                    log.debug("Error closing %s: %s", name.lstrip("_"), exc)
                setattr(self, name, None)
        self._page = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as exc:
                log.debug("Error stopping Playwright: %s", exc)
            self._playwright = None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._page.url if self._page is not None else ""

    def load_page(self, url: str) -> None:
        try:
            resp = self._page.goto(
                url, wait_until="networkidle",
                timeout=self.page_timeout * 1000,
            )
        except PlaywrightError as exc:
            raise FetchFailure(url, f"Page load failed: {exc}") from exc
        if resp is None:
            raise FetchFailure(url, "No response")
        if not 200 <= resp.status < 300:
            raise FetchFailure(url, f"HTTP {resp.status}")

    def select_option(
        self, selector: str, value: str, fallback_delay: float = 2.0,
    ) -> None:
        """Select *value* and wait for the postback to settle.

        The settle signal is the postback navigation reaching network idle.
        If no navigation happens within ``settle_timeout`` (partial
        postback), wait *fallback_delay* seconds instead.

        Raises :class:`TransitionFailure` if the option cannot be selected
        or the control does not hold *value* once the page has settled.
        """
        selected = False
        try:
            with self._page.expect_navigation(
                wait_until="networkidle",
                timeout=self.settle_timeout * 1000,
            ):
                self._page.select_option(
                    selector, value, timeout=self.settle_timeout * 1000,
                )
                selected = True
        except PlaywrightTimeoutError as exc:
            if not selected:
                raise TransitionFailure(
                    f"Could not select {value!r} in {selector}: {exc}"
                ) from exc
            log.debug("No settle signal after %s=%s; waiting %.1f s",
                      selector, value, fallback_delay)
            self._page.wait_for_timeout(fallback_delay * 1000)
        except PlaywrightError as exc:
            raise TransitionFailure(
                f"Could not select {value!r} in {selector}: {exc}"
            ) from exc

        try:
            current = self._page.input_value(selector)
        except PlaywrightError as exc:
            raise TransitionFailure(
                f"Could not read back {selector} after selecting {value!r}: {exc}"
            ) from exc
        if current != value:
            raise TransitionFailure(
                f"{selector} holds {current!r} after selecting {value!r}"
            )

    def query_options(self, selector: str) -> list[dict[str, str]]:
        """Return ``[{value, text}, ...]`` for the options of *selector*."""
        try:
            return self._page.eval_on_selector_all(
                f"{selector} option",
                "opts => opts.map(o => ({value: o.value || '', "
                "text: (o.textContent || '').trim()}))",
            )
        except PlaywrightError as exc:
            raise TransitionFailure(
                f"Could not read options of {selector}: {exc}"
            ) from exc

    def query_link(self, element_id: str) -> str | None:
        try:
            el = self._page.query_selector(f"[id='{element_id}']")
            return el.get_attribute("href") if el is not None else None
        except PlaywrightError as exc:
            log.debug("Could not read link #%s: %s", element_id, exc)
            return None

    def content(self) -> str:
        try:
            return self._page.content()
        except PlaywrightError as exc:
            log.debug("Could not read page content: %s", exc)
            return ""

    def fetch_response_body(self, url: str) -> tuple[int, bytes]:
        """GET *url* with the page's cookies; returns ``(status, body)``."""
        try:
            resp = self._context.request.get(
                url, timeout=self.binary_timeout * 1000,
            )
            return resp.status, resp.body()
        except PlaywrightError as exc:
            raise FetchFailure(url, f"Request failed: {exc}") from exc
