"""Core crawl logic – classification, fetchers, download sink and traversers."""

from lged_crawler.core.classify import Category, Classification, classify
from lged_crawler.core.fetcher import FormFetcher, HttpFetcher, TaxonomyNode
from lged_crawler.core.storage import DownloadTask, SinkResult, build_tasks, save_task
from lged_crawler.core.traverser import CascadeTraverser, DirectoryTraverser, Traverser

__all__ = [
    "Category",
    "Classification",
    "classify",
    "FormFetcher",
    "HttpFetcher",
    "TaxonomyNode",
    "DownloadTask",
    "SinkResult",
    "build_tasks",
    "save_task",
    "Traverser",
    "CascadeTraverser",
    "DirectoryTraverser",
]
