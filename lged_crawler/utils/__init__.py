"""Utility helpers for path normalisation, naming and logging."""

from lged_crawler.utils.url import (
    join_remote,
    normalise_path,
    path_depth,
    site_root,
    slugify,
)
from lged_crawler.utils.log import setup_logging, log

__all__ = [
    "normalise_path",
    "path_depth",
    "join_remote",
    "site_root",
    "slugify",
    "setup_logging",
    "log",
]
