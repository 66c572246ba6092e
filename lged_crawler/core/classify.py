"""
Leaf classification – partitions the resources found at one leaf into
primary and secondary maps.

The remote index is not scoped per leaf, so the leaf's own label is the
only relevance filter.  A path is *secondary* when it contains the marker
token anywhere (``road`` also matches ``railroad``; the heuristic is kept
as-is).
"""

from dataclasses import dataclass, field
from enum import Enum

from lged_crawler.config import (
    PRIMARY_CATEGORY,
    SECONDARY_CATEGORY,
    SECONDARY_MARKER,
)


class Category(str, Enum):
    PRIMARY = PRIMARY_CATEGORY
    SECONDARY = SECONDARY_CATEGORY


@dataclass(frozen=True)
class ResourceCandidate:
    """One classified downloadable item discovered at a leaf."""

    remote_path: str
    category: Category


@dataclass
class Classification:
    primary: list[str] = field(default_factory=list)
    secondary: list[str] = field(default_factory=list)
    fallback: bool = False

    def __bool__(self) -> bool:
        return bool(self.primary or self.secondary)

    def by_category(self) -> dict[Category, list[str]]:
        return {
            Category.PRIMARY: list(self.primary),
            Category.SECONDARY: list(self.secondary),
        }

    def candidates(self) -> list[ResourceCandidate]:
        """Primary candidates first, then secondary, each in discovery order."""
        return [
            ResourceCandidate(path, category)
            for category, paths in self.by_category().items()
            for path in paths
        ]


def dedup(paths) -> list[str]:
    """Drop repeated paths, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for p in paths:
        if p and p not in seen:
            seen.add(p)
            out.append(p)
    return out


def classify(
    paths,
    label: str | None,
    marker: str = SECONDARY_MARKER,
) -> Classification:
    """
    Split *paths* into primary / secondary lists for the leaf *label*.

    Only paths containing *label* (case-insensitive) are kept.  If that
    leaves nothing while *paths* is non-empty, every path is returned as
    primary and ``fallback`` is set: an imprecise result beats a silently
    empty leaf.  A ``None`` label disables the relevance filter, for
    listings that are already scoped to the leaf.
    """
    unique = dedup(paths)
    marker = marker.lower()
    result = Classification()

    needle = label.strip().lower() if label is not None else ""
    for path in unique:
        lower = path.lower()
        if needle and needle not in lower:
            continue
        if marker and marker in lower:
            result.secondary.append(path)
        else:
            result.primary.append(path)

    if not result and unique:
        return Classification(primary=unique, fallback=True)
    return result
