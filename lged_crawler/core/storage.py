"""
File storage helpers – deterministic local naming and the write-once
download sink.
"""

import logging
import urllib.parse
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from lged_crawler.core.classify import Category, Classification
from lged_crawler.errors import FetchFailure, WriteFailure
from lged_crawler.utils.url import join_remote, slugify

log = logging.getLogger("lged-crawler")

DEFAULT_EXTENSION = ".jpg"
LEAF_SEPARATOR = "__"


class SinkResult(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DownloadTask:
    """A fully resolved unit of work: one remote URL, one local path."""

    remote_url: str
    local_path: Path


def _extension(remote_path: str) -> str:
    suffix = Path(urllib.parse.unquote(remote_path)).suffix.lower()
    return suffix or DEFAULT_EXTENSION


def local_name(
    trail: Sequence[str],
    category: Category,
    ordinal: int,
    ext: str = DEFAULT_EXTENSION,
) -> str:
    """``("Dhaka", "Savar"), PRIMARY, 1`` -> ``dhaka__savar_upazila_1.jpg``."""
    stem = LEAF_SEPARATOR.join(slugify(label) or "unnamed" for label in trail)
    return f"{stem}_{category.value}_{ordinal}{ext}"


def task_path(
    output_dir: Path,
    trail: Sequence[str],
    category: Category,
    ordinal: int,
    ext: str = DEFAULT_EXTENSION,
) -> Path:
    return output_dir / category.value / local_name(trail, category, ordinal, ext)


def build_tasks(
    trail: Sequence[str],
    classification: Classification,
    root_url: str,
    output_dir: Path,
) -> list[DownloadTask]:
    """One task per classified path; ordinals count from 1 per category."""
    tasks: list[DownloadTask] = []
    ordinals: Counter = Counter()
    for candidate in classification.candidates():
        ordinals[candidate.category] += 1
        tasks.append(DownloadTask(
            remote_url=join_remote(root_url, candidate.remote_path),
            local_path=task_path(
                output_dir, trail, candidate.category,
                ordinals[candidate.category], _extension(candidate.remote_path),
            ),
        ))
    return tasks


def stream_to_file(local_path: Path, chunks: Iterable[bytes]) -> int:
    """Write streaming *chunks* to *local_path*.

    The body goes to ``<name>.part`` first and is renamed into place once
    complete, so an interrupted write never leaves *local_path* behind.
    Returns the total number of bytes written.
    """
    local_path.parent.mkdir(parents=True, exist_ok=True)
    part = local_path.with_name(local_path.name + ".part")
    total = 0
    try:
        with part.open("wb") as fh:
            for chunk in chunks:
                if chunk:
                    fh.write(chunk)
                    total += len(chunk)
        if total:
            part.replace(local_path)
    finally:
        part.unlink(missing_ok=True)
    log.debug("Streamed → %s (%d bytes)", local_path, total)
    return total


def save_task(
    task: DownloadTask,
    fetch: Callable[[str], Iterator[bytes]],
) -> SinkResult:
    """Download *task* unless its local path already exists.

    *fetch* is only called when the file is missing, which makes a rerun
    after a partial failure skip everything already on disk.
    """
    if task.local_path.exists():
        return SinkResult.SKIPPED

    chunks = fetch(task.remote_url)
    try:
        total = stream_to_file(task.local_path, chunks)
    except OSError as exc:
        raise WriteFailure(str(task.local_path), str(exc)) from exc
    if not total:
        raise FetchFailure(task.remote_url, "Empty response body")
    return SinkResult.WRITTEN
