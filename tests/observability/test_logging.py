"""Tests for structured logging."""

import json
import logging

import pytest

from brain.core.config import BrainSettings
from brain.observability.logging import (
    StructuredFormatter,
    TrainingRun,
    _sanitize_log_message,
    configure_from_settings,
    configure_logging,
    get_logger,
)


@pytest.fixture
def restore_logging():
    """Put root handlers and levels back after a test reconfigures them."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    brain_level = logging.getLogger("brain").level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("brain").setLevel(brain_level)


class TestSanitize:
    def test_newlines_escaped(self):
        """Newlines could be used to forge log entries."""
        sanitized = _sanitize_log_message("ok\n[ERROR] forged")
        assert "\n" not in sanitized
        assert "\\n" in sanitized

    def test_control_chars_removed(self):
        assert _sanitize_log_message("a\x00b\x07c") == "abc"

    def test_tab_kept(self):
        assert _sanitize_log_message("a\tb") == "a\tb"


class TestStructuredFormatter:
    def _record(self, msg, **extra):
        record = logging.LogRecord(
            name="brain.test",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_output(self):
        line = StructuredFormatter().format(self._record("hello"))
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "brain.test"
        assert data["message"] == "hello"
        assert "timestamp" in data

    def test_extra_fields_flattened(self):
        record = self._record("epoch", extra_fields={"epoch": 3, "loss": 0.5})
        data = json.loads(StructuredFormatter().format(record))
        assert data["epoch"] == 3
        assert data["loss"] == 0.5


class TestConfigure:
    def test_get_logger_prefix(self):
        assert get_logger("training").name == "brain.training"
        assert get_logger("brain.nn").name == "brain.nn"
        assert get_logger("brain").name == "brain"

    def test_configure_logging(self, restore_logging, tmp_path):
        log_file = tmp_path / "brain.log"
        configure_logging(level="debug", json_output=True, log_file=str(log_file))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

        get_logger("test").debug("written")
        for handler in root.handlers:
            handler.flush()
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "written"

    def test_configure_from_settings(self, restore_logging):
        configure_from_settings(BrainSettings(log_level="ERROR"))
        assert logging.getLogger("brain").level == logging.ERROR


class TestTrainingRun:
    def test_records_losses(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="brain"):
            with TrainingRun("demo", log_every=2, layers=3) as run:
                for epoch, loss in enumerate([0.9, 0.4, 0.6, 0.5]):
                    run.record(epoch, loss)
        assert run.epochs == 4
        assert run.last_loss == 0.5
        assert run.best_loss == 0.4
        assert run.duration_ms >= 0
        messages = [r.getMessage() for r in caplog.records]
        assert "Starting training run demo" in messages
        assert sum(m.startswith("demo epoch") for m in messages) == 2
        assert any(m.startswith("Completed training run demo") for m in messages)
        completed = caplog.records[-1]
        assert completed.extra_fields["layers"] == 3
        assert completed.extra_fields["best_loss"] == 0.4

    def test_failure_logged_and_raised(self, caplog):
        with caplog.at_level(logging.INFO, logger="brain"):
            with pytest.raises(RuntimeError):
                with TrainingRun("broken"):
                    raise RuntimeError("diverged")
        failure = caplog.records[-1]
        assert failure.levelno == logging.ERROR
        assert failure.extra_fields["error_type"] == "RuntimeError"
