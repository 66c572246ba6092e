"""
Path normalisation and naming helpers.
"""

import re
import urllib.parse

from lged_crawler.config import NON_NAVIGATIONAL_SCHEMES

_SLUG_QUOTES_RE = re.compile(r"['’`]")
_SLUG_SEP_RE = re.compile(r"[^a-z0-9]+")


def root_segments(root: str) -> list[str]:
    """Return the lower-cased path segments of *root* (a path or a URL)."""
    if "://" in root:
        root = urllib.parse.urlsplit(root).path
    return [s.lower() for s in root.replace("\\", "/").split("/") if s]


def _resolve_segments(parts: list[str]) -> list[str] | None:
    """Collapse ``.`` / ``..`` / empty segments.

    Percent-encoded dots count as dots.  Returns ``None`` when a ``..``
    would climb above the first segment, or when a segment hides an encoded
    path separator.
    """
    out: list[str] = []
    for seg in parts:
        decoded = urllib.parse.unquote(seg)
        if "/" in decoded or "\\" in decoded:
            return None
        if decoded in ("", "."):
            continue
        if decoded == "..":
            if not out:
                return None
            out.pop()
            continue
        out.append(seg)
    return out


def normalise_path(raw: str, root: str = "", base: str = "") -> str | None:
    """
    Convert the href *raw* into a path relative to *root*.

    * Query strings and fragments are dropped.
    * Absolute URLs contribute only their path; scheme and host are ignored.
    * Root-anchored hrefs (``/x/y``) must live under *root*, whose prefix is
      matched case-insensitively and stripped.
    * Relative hrefs are resolved against *base*, itself a root-relative
      directory path (``""`` means the root).
    * A trailing ``/`` is kept if, and only if, the href denotes a directory.

    Returns ``None`` for empty hrefs, ``javascript:`` / ``mailto:`` style
    pseudo-links, hrefs that climb out of *root*, and hrefs that resolve to
    the root itself.
    """
    raw = raw.strip()
    if not raw or raw.lower().startswith(NON_NAVIGATIONAL_SCHEMES):
        return None

    parsed = urllib.parse.urlsplit(raw.replace("\\", "/"))
    if parsed.scheme and parsed.scheme.lower() not in ("http", "https"):
        return None

    path = parsed.path
    if not path:
        return None
    anchored = bool(parsed.scheme or parsed.netloc) or path.startswith("/")
    last = path.rsplit("/", 1)[-1]
    is_dir = path.endswith("/") or urllib.parse.unquote(last) in (".", "..")

    if anchored:
        segments = _resolve_segments(path.split("/"))
        if segments is None:
            return None
        prefix = root_segments(root)
        if [s.lower() for s in segments[:len(prefix)]] != prefix:
            return None
        segments = segments[len(prefix):]
    else:
        base_parts = base.replace("\\", "/").split("/")
        segments = _resolve_segments(base_parts + path.split("/"))
        if segments is None:
            return None

    if not segments:
        return None
    return "/".join(segments) + ("/" if is_dir else "")


def path_depth(path: str) -> int:
    """Number of non-empty segments in a root-relative *path*."""
    return len([s for s in path.split("/") if s])


def join_remote(root_url: str, path: str) -> str:
    """Build the absolute URL of a root-relative *path* under *root_url*."""
    if not root_url.endswith("/"):
        root_url = root_url.rsplit("/", 1)[0] + "/"
    return root_url + path.lstrip("/")


def site_root(url: str) -> str:
    """``https://host/a/b.aspx`` -> ``https://host/``."""
    parsed = urllib.parse.urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}/"


def slugify(text: str) -> str:
    """Lower-case *text* and collapse every non-alphanumeric run to ``_``."""
    text = _SLUG_QUOTES_RE.sub("", str(text).lower())
    return _SLUG_SEP_RE.sub("_", text).strip("_")
