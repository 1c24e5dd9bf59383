"""Logging setup for the score aggregation CLI.

Conflict and validation warnings raised by the engine are captured through
``logging.captureWarnings`` and rewritten into one-line records tagged with
their review category, so that a reviewer can follow them on the console or
in a dedicated review log.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from ....domain.aggregation.exceptions import ConflictUnresolvedWarning, ValidationFailure

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Warning category name -> review tag
REVIEW_TAGS = {
    ConflictUnresolvedWarning.__name__: "conflict",
    ValidationFailure.__name__: "flagged",
}


class EngineWarningFilter(logging.Filter):
    """Rewrite captured engine warnings into tagged one-line records."""

    def filter(self, record: logging.LogRecord) -> bool:
        # captureWarnings emits "path:line: Category: message\n  source line"
        text = record.getMessage()
        for category, tag in REVIEW_TAGS.items():
            marker = f": {category}: "
            if marker in text:
                record.msg = text.split(marker, 1)[1].splitlines()[0]
                record.args = None
                record.review_tag = tag
                break
        return True


class ReviewFilter(logging.Filter):
    """Pass only records that need human review."""

    def filter(self, record: logging.LogRecord) -> bool:
        return hasattr(record, "review_tag")


class ReviewFormatter(logging.Formatter):
    """Formatter prefixing review records with their tag, optionally colored."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = LOG_FORMAT, colored: bool = False):
        super().__init__(fmt)
        self.colored = colored

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)

        tag = getattr(record, "review_tag", None)
        if tag:
            message = message.replace(record.message, f"[{tag}] {record.message}", 1)

        color = self.COLORS.get(record.levelname) if self.colored else None
        if color:
            message = message.replace(
                record.levelname, f"{color}{record.levelname}{self.RESET}", 1
            )
        return message


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    review_file: Optional[str] = None,
    enable_colors: bool = True,
) -> None:
    """Configure the root logger for a CLI invocation.

    Args:
        level: Logging level of the console and log file
        log_file: Optional log file path, rotated at 10MB
        review_file: Optional file receiving only conflict and flagged-score
            records, whatever the console level
        enable_colors: Whether to color level names on a terminal
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    colored = enable_colors and hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ReviewFormatter(colored=colored))
    handlers = [console_handler]

    if log_file:
        handlers.append(_file_handler(log_file, level))

    if review_file:
        review_handler = _file_handler(review_file, logging.WARNING)
        review_handler.addFilter(ReviewFilter())
        handlers.append(review_handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    # The review log must see warnings the console level hides
    root_logger.setLevel(min(level, logging.WARNING) if review_file else level)

    warnings_logger = logging.getLogger("py.warnings")
    if not any(isinstance(f, EngineWarningFilter) for f in warnings_logger.filters):
        warnings_logger.addFilter(EngineWarningFilter())
    logging.captureWarnings(True)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _file_handler(path: str, level: int) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(ReviewFormatter())
    return handler


def level_from_flags(verbose: bool, debug: bool, default: str = "WARNING") -> int:
    """Logging level for the --verbose/--debug flags."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    level = logging.getLevelName(default.upper())
    return level if isinstance(level, int) else logging.WARNING
