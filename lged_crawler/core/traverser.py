"""
Hierarchical traversal of the LGED map taxonomy.

Two strategies walk the same division → district → upazila leaves:

* :class:`CascadeTraverser` drives the district / upazila drop-downs of the
  map form one selection at a time.  The navigator session is never used
  concurrently.
* :class:`DirectoryTraverser` recursively walks the static directory
  listing, files before subdirectories.  Top-level subtrees may be spread
  over a bounded worker pool; each subtree is still walked in order.

Both share the same failure boundary: an error at a leaf or file is logged
and the walk continues with the next sibling.  Only a failure to read the
top of the taxonomy ends the run (:class:`DiscoveryFailure`).
"""

import logging
import threading
import urllib.parse
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

try:
    from tqdm import tqdm as _tqdm
    _TQDM_AVAILABLE = True
except ImportError:
    _TQDM_AVAILABLE = False

from lged_crawler.config import (
    ALLOWED_EXTENSIONS,
    BASE_URL,
    DISTRICT_DELAY,
    DISTRICT_SELECT,
    DISTRICT_SETTLE_FALLBACK,
    LEAF_DELAY,
    MIN_FILE_DEPTH,
    TREE_ROOT_URL,
    UPAZILA_SELECT,
    UPAZILA_SETTLE_FALLBACK,
)
from lged_crawler.core.classify import Classification, classify
from lged_crawler.core.fetcher import FormFetcher, HttpFetcher, TaxonomyNode
from lged_crawler.core.storage import DownloadTask, SinkResult, build_tasks, save_task
from lged_crawler.errors import (
    CrawlError,
    DiscoveryFailure,
    FetchFailure,
    TransitionFailure,
    WriteFailure,
)
from lged_crawler.utils.url import (
    join_remote,
    normalise_path,
    path_depth,
    site_root,
)

log = logging.getLogger("lged-crawler")


class Traverser:
    """Shared dispatch, failure boundary, pacing and stop flag."""

    def __init__(self, output_dir: Path, leaf_delay: float = LEAF_DELAY) -> None:
        self.output_dir = Path(output_dir)
        self.leaf_delay = leaf_delay
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._stats = {"saved": 0, "skipped": 0, "missed": 0, "errors": 0}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> dict[str, int]:
        """Walk the whole taxonomy and return the run statistics."""
        log.info("Output directory : %s", self.output_dir.resolve())
        try:
            self._run()
        except KeyboardInterrupt:
            self.stop()
            raise
        finally:
            log.info(
                "Crawl %s. saved=%d  skipped=%d  missed=%d  errors=%d",
                "stopped" if self.stopped else "complete",
                self._stats["saved"], self._stats["skipped"],
                self._stats["missed"], self._stats["errors"],
            )
        return dict(self._stats)

    def stop(self) -> None:
        """Stop issuing new fetches; work already written stays on disk."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    def _run(self) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _count(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def _pause(self, seconds: float) -> None:
        if seconds > 0 and not self.stopped:
            self._stop.wait(seconds)

    def _dispatch(self, task: DownloadTask, fetch) -> SinkResult | None:
        """Hand *task* to the sink; a failure is logged, never raised."""
        if self.stopped:
            return None
        try:
            result = save_task(task, fetch)
        except FetchFailure as exc:
            log.error("    [ERR] Download failed for %s – %s", exc.url, exc.cause)
            self._count("errors")
            return None
        except WriteFailure as exc:
            log.error("    [ERR] Could not write %s (from %s) – %s",
                      exc.path, task.remote_url, exc.cause)
            self._count("errors")
            return None

        if result is SinkResult.SKIPPED:
            log.info("    [SKIP] Already on disk: %s", task.local_path)
            self._count("skipped")
        else:
            log.info("    [SAVE] %s", task.local_path)
            self._count("saved")
        return result


class CascadeTraverser(Traverser):
    """Root → DistrictSelected → UpazilaSelected walk over the map form."""

    def __init__(
        self,
        fetcher: FormFetcher,
        output_dir: Path,
        base_url: str = BASE_URL,
        district_select: str = DISTRICT_SELECT,
        upazila_select: str = UPAZILA_SELECT,
        leaf_delay: float = LEAF_DELAY,
        district_delay: float = DISTRICT_DELAY,
        district_settle: float = DISTRICT_SETTLE_FALLBACK,
        upazila_settle: float = UPAZILA_SETTLE_FALLBACK,
        progress: bool = False,
    ) -> None:
        super().__init__(output_dir, leaf_delay)
        self.fetcher = fetcher
        self.base_url = base_url
        self.root_url = site_root(base_url)
        self.district_select = district_select
        self.upazila_select = upazila_select
        self.district_delay = district_delay
        self.district_settle = district_settle
        self.upazila_settle = upazila_settle
        self.progress = progress

    def _run(self) -> None:
        log.info("Form URL         : %s", self.base_url)
        try:
            self.fetcher.load_page(self.base_url)
            districts = self.fetcher.options(self.district_select)
        except CrawlError as exc:
            raise DiscoveryFailure(
                f"Could not read the district list from {self.base_url}: {exc}"
            ) from exc
        if not districts:
            raise DiscoveryFailure(
                f"No districts found at {self.base_url}. "
                "Check if selectors changed."
            )
        log.info("Found %d districts (after filtering dummy ones).", len(districts))

        if self.progress and _TQDM_AVAILABLE:
            districts = _tqdm(
                districts, desc="Districts", unit="district",
                dynamic_ncols=True,
            )

        resync = False
        for district in districts:
            if self.stopped:
                break
            try:
                if resync:
                    self._resync()
                    resync = False
                self._walk_district(district)
            except TransitionFailure as exc:
                log.warning("  [WARN] %s", exc)
                resync = True
            except CrawlError as exc:
                log.error("  [ERR] District %s failed – %s", district.label, exc)
                self._count("errors")
                resync = True
            self._pause(self.district_delay)

    def _resync(self, district: TaxonomyNode | None = None) -> None:
        """Reload the form, and reselect *district*, after a failed step."""
        log.info("  Reloading %s", self.base_url)
        self.fetcher.load_page(self.base_url)
        if district is not None:
            self.fetcher.select_option(
                self.district_select, district.id, self.district_settle,
            )

    def _walk_district(self, district: TaxonomyNode) -> None:
        log.info("[DISTRICT] %s (%s)", district.label, district.id)
        self.fetcher.select_option(
            self.district_select, district.id, self.district_settle,
        )
        upazilas = self.fetcher.options(self.upazila_select)
        if not upazilas:
            raise TransitionFailure(
                f"No upazilas found for district: {district.label}"
            )
        log.info("  Upazilas in %s: %d", district.label, len(upazilas))

        resync = False
        for upazila in upazilas:
            if self.stopped:
                return
            if resync:
                # A failure here abandons the rest of the district.
                self._resync(district)
                resync = False
            try:
                self._walk_upazila(district, upazila)
            except CrawlError as exc:
                log.error("  [ERR] Upazila %s / %s failed – %s",
                          district.label, upazila.label, exc)
                self._count("errors")
                resync = True
            self._pause(self.leaf_delay)

    def _walk_upazila(self, district: TaxonomyNode, upazila: TaxonomyNode) -> None:
        log.info("  [UPAZILA] %s (%s)", upazila.label, upazila.id)
        self.fetcher.select_option(
            self.upazila_select, upazila.id, self.upazila_settle,
        )
        paths = []
        for link in self.fetcher.read_derived_links():
            path = normalise_path(link, self.root_url)
            if path and not path.endswith("/"):
                paths.append(path)

        classification = classify(paths, upazila.label)
        if not self._check_classification(classification, upazila.label):
            return
        trail = (district.label, upazila.label)
        for task in build_tasks(trail, classification, self.root_url, self.output_dir):
            if self.stopped:
                return
            self._dispatch(task, self.fetcher.fetch_binary)

    def _check_classification(self, classification: Classification, label: str) -> bool:
        if not classification:
            log.warning("    [MISS] No map links found for %s", label)
            self._count("missed")
            return False
        if classification.fallback:
            log.warning("    [WARN] No link mentions %s; keeping all %d as primary",
                        label, len(classification.primary))
        return True


class DirectoryTraverser(Traverser):
    """Depth-first walk of a static directory listing."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        output_dir: Path,
        root_url: str = TREE_ROOT_URL,
        min_depth: int = MIN_FILE_DEPTH,
        extensions: frozenset[str] = ALLOWED_EXTENSIONS,
        workers: int = 1,
        leaf_delay: float = LEAF_DELAY,
    ) -> None:
        super().__init__(output_dir, leaf_delay)
        self.fetcher = fetcher
        self.root_url = root_url.rstrip("/") + "/"
        self.min_depth = min_depth
        self.extensions = frozenset(e.lower() for e in extensions)
        self.workers = max(1, workers)
        self._visited: set[str] = set()

    def _run(self) -> None:
        log.info("Tree root        : %s", self.root_url)
        try:
            subdirs, files = self.fetcher.list_directory(self.root_url)
        except FetchFailure as exc:
            raise DiscoveryFailure(
                f"Could not list the tree root {exc.url}: {exc.cause}"
            ) from exc
        self._visited.add("")
        self._pause(self.leaf_delay)

        self._process_files("", files)
        children = self._child_dirs("", subdirs)
        if not children and not files:
            raise DiscoveryFailure(f"Tree root {self.root_url} lists nothing")

        if self.workers > 1 and len(children) > 1:
            self._walk_parallel(children)
        else:
            for child in children:
                if self.stopped:
                    break
                self._walk(child)

    def _walk_parallel(self, children: list[str]) -> None:
        log.info("Walking %d subtrees with %d workers", len(children), self.workers)
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [pool.submit(self._walk, child) for child in children]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                self.stop()
                for future in futures:
                    future.cancel()
                raise

    def _walk(self, rel: str) -> None:
        if self.stopped:
            return
        with self._lock:
            if rel in self._visited:
                log.debug("Already listed, skipping: %s", rel)
                return
            self._visited.add(rel)

        url = join_remote(self.root_url, rel)
        log.info("[DIR] %s", rel)
        try:
            subdirs, files = self.fetcher.list_directory(url)
        except FetchFailure as exc:
            log.error("  [ERR] Listing failed for %s – %s", exc.url, exc.cause)
            self._count("errors")
            return
        self._pause(self.leaf_delay)

        self._process_files(rel, files)
        for child in self._child_dirs(rel, subdirs):
            if self.stopped:
                return
            self._walk(child)

    def _child_dirs(self, rel: str, hrefs: list[str]) -> list[str]:
        """Subdirectory paths that strictly extend *rel*."""
        children: list[str] = []
        for href in hrefs:
            path = normalise_path(href, self.root_url, base=rel)
            if (not path or not path.endswith("/")
                    or not path.startswith(rel) or path == rel):
                log.debug("  Ignoring directory link %r in %s", href, rel or "/")
                continue
            if path not in children:
                children.append(path)
        return children

    def _select_files(self, rel: str, hrefs: list[str]) -> list[str]:
        """Files directly inside *rel* that pass the depth and type filters."""
        selected: list[str] = []
        for href in hrefs:
            path = normalise_path(href, self.root_url, base=rel)
            if not path or path.endswith("/"):
                continue
            parent, _, name = path.rpartition("/")
            if (parent + "/" if parent else "") != rel:
                log.debug("  Ignoring file outside %s: %s", rel or "/", path)
                continue
            if path_depth(path) < self.min_depth:
                log.debug("  Too shallow, skipping: %s", path)
                continue
            ext = Path(urllib.parse.unquote(name)).suffix.lower()
            if ext not in self.extensions:
                log.debug("  Extension %r not allowed: %s", ext, path)
                continue
            selected.append(path)
        return selected

    def _process_files(self, rel: str, hrefs: list[str]) -> None:
        paths = self._select_files(rel, hrefs)
        if not paths:
            return
        classification = classify(paths, None)
        trail = [urllib.parse.unquote(s) for s in rel.split("/") if s]
        for task in build_tasks(trail, classification, self.root_url, self.output_dir):
            if self.stopped:
                return
            result = self._dispatch(task, self.fetcher.fetch_binary)
            if result is not SinkResult.SKIPPED:
                self._pause(self.leaf_delay)
