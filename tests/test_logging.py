"""Unit tests for logging configuration."""
import json
import logging
import sys

import pytest

from training_tracker.core.logging import ContextLogger, JSONFormatter, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging changes to the root logger."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Test JSONFormatter."""

    def _record(self, **extra):
        record = logging.LogRecord(
            name="training_tracker.test",
            level=logging.ERROR,
            pathname=__file__,
            lineno=10,
            msg="Mapping %s failed",
            args=("GoalEntity",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        """Test that core fields are serialised."""
        payload = json.loads(JSONFormatter().format(self._record()))

        assert payload["level"] == "ERROR"
        assert payload["logger"] == "training_tracker.test"
        assert payload["message"] == "Mapping GoalEntity failed"
        assert payload["timestamp"].endswith("Z")

    def test_mapping_context(self):
        """Test that mapping context attributes are included."""
        record = self._record(source_type="GoalEntity", target_type="GoalView", path="owner.id")

        payload = json.loads(JSONFormatter().format(record))

        assert payload["source_type"] == "GoalEntity"
        assert payload["target_type"] == "GoalView"
        assert payload["path"] == "owner.id"

    def test_exception_info(self):
        """Test that exceptions are serialised."""
        try:
            raise ValueError("bad field")
        except ValueError:
            record = self._record()
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))

        assert payload["exception"]["type"] == "ValueError"
        assert payload["exception"]["message"] == "bad field"


class TestGetLogger:
    """Test get_logger."""

    def test_plain_logger(self):
        logger = get_logger("training_tracker.plain")

        assert isinstance(logger, logging.Logger)

    def test_context_logger(self, caplog):
        """Test that context is attached to every record."""
        logger = get_logger("training_tracker.ctx", {"component": "domain_mapper"})

        with caplog.at_level(logging.INFO, logger="training_tracker.ctx"):
            logger.info("Mapped", extra={"path": "goals[0]"})

        assert isinstance(logger, ContextLogger)
        record = caplog.records[-1]
        assert record.component == "domain_mapper"
        assert record.path == "goals[0]"


class TestSetupLogging:
    """Test setup_logging."""

    def test_json_handler_installed(self, restore_root_logger):
        """Test that a JSON console handler is added."""
        root = setup_logging(level="DEBUG", json_format=True)

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[-1].formatter, JSONFormatter)

    def test_repeated_setup_replaces_handler(self, restore_root_logger):
        """Test that calling setup twice keeps a single handler of ours."""
        setup_logging(level="INFO")
        root = setup_logging(level="WARNING")

        ours = [h for h in root.handlers if getattr(h, "_training_tracker", False)]
        assert len(ours) == 1
        assert ours[0].level == logging.WARNING

    def test_defaults_come_from_settings(self, restore_root_logger, monkeypatch):
        """Test that LOG_LEVEL and LOG_JSON apply when no arguments are given."""
        from training_tracker.core import logging as logging_module

        monkeypatch.setattr(logging_module.settings, "log_level", "DEBUG")
        monkeypatch.setattr(logging_module.settings, "log_json", True)

        root = setup_logging()

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[-1].formatter, JSONFormatter)
