"""
Command-line interface for the LGED map crawler.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from lged_crawler.config import (
    ALLOWED_EXTENSIONS,
    BASE_URL,
    DEFAULT_OUTPUT,
    DEFAULT_WORKERS,
    DISTRICT_DELAY,
    LEAF_DELAY,
    MIN_FILE_DEPTH,
    SETTLE_TIMEOUT,
    TREE_ROOT_URL,
)
from lged_crawler.core.fetcher import FormFetcher, HttpFetcher
from lged_crawler.core.traverser import CascadeTraverser, DirectoryTraverser
from lged_crawler.errors import DiscoveryFailure, SessionError
from lged_crawler.session import BrowserSession, build_session
from lged_crawler.utils.log import setup_logging, log

try:
    import colorlog  # noqa: F401
    _COLORLOG_AVAILABLE = True
except ImportError:
    _COLORLOG_AVAILABLE = False


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download LGED upazila and road maps, organised by "
                    "district and upazila.  Reruns skip files already on disk.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m lged_crawler cascade\n"
            "  python -m lged_crawler cascade --output maps --headful\n"
            "  python -m lged_crawler tree --workers 4\n"
            "  python -m lged_crawler tree --root-url https://host/Maps/ --min-depth 3\n"
        ),
    )
    parser.add_argument(
        "mode", choices=("cascade", "tree"),
        help="cascade: drive the district/upazila form in a headless browser; "
             "tree: walk the static directory listing",
    )
    parser.add_argument(
        "--output", default=DEFAULT_OUTPUT,
        help=f"Output directory (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--base-url", default=BASE_URL,
        help=f"Map form URL for cascade mode (default: {BASE_URL})",
    )
    parser.add_argument(
        "--root-url", default=TREE_ROOT_URL,
        help=f"Listing root for tree mode (default: {TREE_ROOT_URL})",
    )
    parser.add_argument(
        "--leaf-delay", type=float, default=LEAF_DELAY,
        help=f"Pause after each upazila / request in seconds (default: {LEAF_DELAY})",
    )
    parser.add_argument(
        "--district-delay", type=float, default=DISTRICT_DELAY,
        help=f"Pause after each district in seconds (default: {DISTRICT_DELAY})",
    )
    parser.add_argument(
        "--settle-timeout", type=float, default=SETTLE_TIMEOUT,
        help="Seconds to wait for a drop-down postback to settle "
             f"(default: {SETTLE_TIMEOUT})",
    )
    parser.add_argument(
        "--min-depth", type=int, default=MIN_FILE_DEPTH,
        help="Minimum path depth of downloaded files in tree mode "
             f"(default: {MIN_FILE_DEPTH})",
    )
    parser.add_argument(
        "--extensions", default=",".join(sorted(ALLOWED_EXTENSIONS)),
        metavar="EXTS",
        help="Comma-separated file extensions to download in tree mode",
    )
    parser.add_argument(
        "--workers", type=int, default=DEFAULT_WORKERS, metavar="N",
        help="Parallel top-level subtrees in tree mode "
             f"(default: {DEFAULT_WORKERS})",
    )
    parser.add_argument(
        "--headful", action="store_true",
        help="Show the browser window in cascade mode",
    )
    parser.add_argument(
        "--no-verify-ssl", dest="verify_ssl", action="store_false", default=True,
        help="Disable TLS certificate verification",
    )
    parser.add_argument(
        "--no-progress", dest="progress", action="store_false", default=True,
        help="Disable the district progress bar",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Write detailed logs to this file (always at DEBUG level)",
    )
    return parser.parse_args(argv)


def parse_extensions(raw: str) -> frozenset[str]:
    """``"jpg, .PNG"`` -> ``{".jpg", ".png"}``."""
    return frozenset(
        f".{e.strip().lstrip('.').lower()}"
        for e in raw.split(",")
        if e.strip().lstrip(".")
    )


def run_cascade(args: argparse.Namespace, output_dir: Path) -> dict[str, int]:
    with BrowserSession(
        headless=not args.headful,
        settle_timeout=args.settle_timeout,
        verify_ssl=args.verify_ssl,
    ) as browser:
        traverser = CascadeTraverser(
            FormFetcher(browser),
            output_dir,
            base_url=args.base_url,
            leaf_delay=args.leaf_delay,
            district_delay=args.district_delay,
            progress=args.progress,
        )
        return traverser.run()


def run_tree(args: argparse.Namespace, output_dir: Path) -> dict[str, int]:
    with build_session(verify_ssl=args.verify_ssl) as session:
        traverser = DirectoryTraverser(
            HttpFetcher(session),
            output_dir,
            root_url=args.root_url,
            min_depth=args.min_depth,
            extensions=parse_extensions(args.extensions),
            workers=args.workers,
            leaf_delay=args.leaf_delay,
        )
        return traverser.run()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)

    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    if not args.verify_ssl:
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log.warning("TLS certificate verification is DISABLED (--no-verify-ssl)")

    if not _COLORLOG_AVAILABLE:
        log.debug("Tip: install colorlog for colored output   (pip install colorlog)")

    if args.mode == "cascade" and args.workers != DEFAULT_WORKERS:
        log.warning("--workers is ignored in cascade mode; the form is walked serially")

    if args.mode == "tree" and not parse_extensions(args.extensions):
        log.critical("--extensions must name at least one file extension")
        sys.exit(2)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    runner = run_cascade if args.mode == "cascade" else run_tree
    t0 = time.monotonic()
    try:
        runner(args, output_dir)
    except (DiscoveryFailure, SessionError) as exc:
        log.critical("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        log.warning("Interrupted. Files already saved are skipped on the next run.")
        sys.exit(130)
    log.info("Total elapsed time: %.1f s", time.monotonic() - t0)


if __name__ == "__main__":
    main()
