"""Tests for CLI logging setup."""

import logging
import warnings

import pytest

from score_aggregation.domain.aggregation.exceptions import (
    ConflictUnresolvedWarning,
    ValidationFailure,
)
from score_aggregation.presentation.cli.utils.logging_setup import (
    ReviewFormatter,
    level_from_flags,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logging():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    logging.captureWarnings(False)
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def _captured(message, category):
    """Emit a warning the way logging.captureWarnings forwards it."""
    text = warnings.formatwarning(message, category, "aggregation_pipeline.py", 90)
    logging.getLogger("py.warnings").warning("%s", text)


class TestSetupLogging:
    """Test root logger configuration."""

    def test_review_log_receives_only_review_records(self, tmp_path):
        review_log = tmp_path / "logs" / "review.log"
        setup_logging(logging.ERROR, review_file=str(review_log), enable_colors=False)
        logger = logging.getLogger("score_aggregation.tests")

        _captured(
            "Conflict on 'correctness' left for human deliberation", ConflictUnresolvedWarning
        )
        _captured("Aggregated score for execution exec-42 v2 was flagged", ValidationFailure)
        _captured("old option", DeprecationWarning)
        logger.warning("Skipped record from judge staff-9")
        logger.warning("AggregationFlagged: execution exec-42 v2", extra={"review_tag": "flagged"})

        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = review_log.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert lines[0].endswith(
            "WARNING - [conflict] Conflict on 'correctness' left for human deliberation"
        )
        assert lines[1].endswith(
            "WARNING - [flagged] Aggregated score for execution exec-42 v2 was flagged"
        )
        assert lines[2].endswith("WARNING - [flagged] AggregationFlagged: execution exec-42 v2")

    def test_review_file_keeps_warnings_visible_below_console_level(self, tmp_path):
        setup_logging(logging.ERROR, review_file=str(tmp_path / "review.log"))

        assert logging.getLogger().level == logging.WARNING

    def test_log_file_without_review_file(self, tmp_path):
        log_file = tmp_path / "engine.log"
        setup_logging(logging.INFO, log_file=str(log_file), enable_colors=False)

        logging.getLogger("score_aggregation.tests").info("Collected 5 judge scores")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.INFO
        assert "INFO - Collected 5 judge scores" in log_file.read_text(encoding="utf-8")


class TestReviewFormatter:
    """Test record formatting."""

    def _record(self, level=logging.WARNING, **extra):
        record = logging.LogRecord(
            "engine", level, __file__, 1, "3 judges, 10 required", None, None
        )
        record.__dict__.update(extra)
        return record

    def test_colors_level_name(self):
        formatter = ReviewFormatter("%(levelname)s %(message)s", colored=True)

        assert formatter.format(self._record()) == "\033[33mWARNING\033[0m 3 judges, 10 required"

    def test_tags_review_records(self):
        formatter = ReviewFormatter("%(levelname)s %(message)s")

        formatted = formatter.format(self._record(review_tag="flagged"))

        assert formatted == "WARNING [flagged] 3 judges, 10 required"


@pytest.mark.parametrize(
    "verbose, debug, default, expected",
    [
        (False, True, "WARNING", logging.DEBUG),
        (True, False, "WARNING", logging.INFO),
        (False, False, "error", logging.ERROR),
        (False, False, "chatty", logging.WARNING),
    ],
)
def test_level_from_flags(verbose, debug, default, expected):
    assert level_from_flags(verbose, debug, default) == expected
