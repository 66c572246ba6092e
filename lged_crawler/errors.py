"""
Failure taxonomy for a crawl run.

Only :class:`DiscoveryFailure` and :class:`SessionError` are allowed to end
a run.  Everything else is caught at the leaf or file that raised it,
logged, and the traversal moves on to the next sibling.
"""

from __future__ import annotations

__all__ = [
    "CrawlError",
    "SessionError",
    "DiscoveryFailure",
    "TransitionFailure",
    "FetchFailure",
    "WriteFailure",
]


class CrawlError(RuntimeError):
    """Base class for every failure raised by the crawler."""


class SessionError(CrawlError):
    """A transport or browser collaborator could not be initialised."""


class DiscoveryFailure(CrawlError):
    """The top-level taxonomy (district list, tree root) could not be read."""


class TransitionFailure(CrawlError):
    """A cascading selection did not produce the dependent option set."""


class FetchFailure(CrawlError):
    """A page load or binary fetch failed (non-2xx, timeout, transport)."""

    def __init__(self, url: str, cause: str) -> None:
        super().__init__(f"{cause} for {url}")
        self.url = url
        self.cause = cause


class WriteFailure(CrawlError):
    """A fetched body could not be written to its local path."""

    def __init__(self, path: str, cause: str) -> None:
        super().__init__(f"{cause} writing {path}")
        self.path = path
        self.cause = cause
