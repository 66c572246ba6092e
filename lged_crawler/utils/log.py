"""
Logging for the crawler.

Console lines carry a ``[TAG]`` naming what happened to a node or file
(``[DISTRICT]``, ``[SAVE]``, ``[MISS]`` ...).  The tags are coloured on the
console, through ``colorlog`` when it is installed; the optional log file
always gets plain DEBUG-level text.
"""

import logging
import os
from pathlib import Path

try:
    import colorlog
    _COLORLOG_AVAILABLE = True
except ImportError:
    _COLORLOG_AVAILABLE = False

log = logging.getLogger("lged-crawler")

_TIME_FMT = "%H:%M:%S"
_FILE_FMT = "%(asctime)s [%(levelname)s] %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# GitHub Actions turns these prefixes into run annotations
_CI_PREFIXES: dict[int, str] = {
    logging.WARNING:  "::warning::",
    logging.ERROR:    "::error::",
    logging.CRITICAL: "::error::",
}

_RESET = "\033[0m"
TAG_STYLES: dict[str, str] = {
    "[DISTRICT]": "\033[1;34m",
    "[UPAZILA]":  "\033[34m",
    "[DIR]":      "\033[37m",
    "[SAVE]":     "\033[1;32m",
    "[SKIP]":     "\033[90m",
    "[MISS]":     "\033[33m",
    "[WARN]":     "\033[33m",
    "[ERR]":      "\033[1;31m",
}

_Base = colorlog.ColoredFormatter if _COLORLOG_AVAILABLE else logging.Formatter


def colour_tags(msg: str) -> str:
    """Wrap every known tag in *msg* in its ANSI style."""
    for tag, style in TAG_STYLES.items():
        if tag in msg:
            msg = msg.replace(tag, f"{style}{tag}{_RESET}")
    return msg


class TagFormatter(_Base):  # type: ignore[misc,valid-type]
    """Console formatter: level colours from colorlog, plus tag colours.

    With *ci* set, warnings and errors are prefixed with the matching
    GitHub Actions workflow command.
    """

    def __init__(self, *args, ci: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.ci = ci

    def format(self, record: logging.LogRecord) -> str:
        formatted = colour_tags(super().format(record))
        if self.ci:
            return _CI_PREFIXES.get(record.levelno, "") + formatted
        return formatted


def _console_handler(ci: bool) -> logging.Handler:
    if _COLORLOG_AVAILABLE and not ci:
        handler = colorlog.StreamHandler()
        handler.setFormatter(TagFormatter(
            "%(log_color)s%(asctime)s [%(levelname)s]%(reset)s %(message)s",
            datefmt=_TIME_FMT,
            log_colors={
                "DEBUG":    "cyan",
                "INFO":     "green",
                "WARNING":  "yellow",
                "ERROR":    "red",
                "CRITICAL": "bold_red",
            },
        ))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(TagFormatter(
            "%(asctime)s [%(levelname)s] %(message)s", datefmt=_TIME_FMT, ci=ci,
        ))
    return handler


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Attach the console handler, and a DEBUG file handler if *log_file*
    is given.  Calling it again replaces the previous handlers."""
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(logging.DEBUG if log_file else level)
    log.handlers.clear()

    console = _console_handler(os.environ.get("GITHUB_ACTIONS") == "true")
    console.setLevel(level)
    log.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
        log.addHandler(fh)
        log.info("Logging to file: %s", log_path.resolve())
