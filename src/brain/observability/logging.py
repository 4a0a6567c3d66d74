"""
Structured Logging for brain.

Provides plain or JSON-structured log output and a context manager that
logs a caller-driven training run with timing. Logging never influences
the engine; every component also accepts an injected logger.
"""

import json
import logging
import re
import sys
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from brain.core.config import BrainSettings, get_settings

# Matches CR, LF, null bytes, and other control chars except tab
_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _sanitize_log_message(message: str) -> str:
    """
    Sanitize log message to prevent log injection.

    Escapes newlines and carriage returns and drops other control
    characters, which could otherwise forge log entries.
    """
    if not isinstance(message, str):
        message = str(message)

    message = message.replace("\r\n", "\\r\\n")
    message = message.replace("\n", "\\n")
    message = message.replace("\r", "\\r")

    return _CONTROL_CHAR_PATTERN.sub("", message)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogContext:
    """Structured log context."""
    timestamp: str = field(default_factory=_utcnow)
    level: str = "INFO"
    logger: str = "brain"
    message: str = ""
    extra: dict = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = asdict(self)
        # Flatten extra into main dict
        extra = data.pop("extra", {})
        data.update(extra)
        return json.dumps(data, default=str)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        ctx = LogContext(
            level=record.levelname,
            logger=record.name,
            message=_sanitize_log_message(record.getMessage()),
        )

        if hasattr(record, "extra_fields"):
            ctx.extra = dict(record.extra_fields)

        if record.exc_info:
            ctx.extra["exception"] = self.formatException(record.exc_info)

        return ctx.to_json()


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure logging for brain.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON format
        log_file: Optional file path for logs
    """
    numeric = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric)
    if json_output:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    logging.getLogger("brain").setLevel(numeric)


def configure_from_settings(settings: BrainSettings | None = None) -> None:
    """Configure logging from ``BRAIN_LOG_*`` settings."""
    settings = settings or get_settings()
    configure_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        log_file=settings.log_file,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``brain`` namespace.

    Args:
        name: Logger name (usually __name__)
    """
    if name != "brain" and not name.startswith("brain."):
        name = f"brain.{name}"
    return logging.getLogger(name)


class TrainingRun:
    """
    Context manager logging a caller-driven training loop with timing.

    Example:
        with TrainingRun("xor", log_every=1000) as run:
            for epoch in range(5000):
                loss = sum(net.train(x, y) for x, y in samples)
                run.record(epoch, loss)
    """

    def __init__(
        self,
        name: str,
        log_every: int = 0,
        log: logging.Logger | None = None,
        **extra,
    ):
        """
        Initialize training run logger.

        Args:
            name: Run name
            log_every: Log an epoch line every N epochs (0 disables)
            log: Logger to use (default ``brain.training``)
            **extra: Additional fields to log
        """
        self.name = name
        self.log_every = log_every
        self.extra = extra
        self.epochs = 0
        self.last_loss: float | None = None
        self.best_loss: float | None = None
        self.start_time = 0.0
        self.duration_ms = 0.0
        self.logger = log or get_logger("brain.training")

    def __enter__(self) -> "TrainingRun":
        self.start_time = time.time()
        self.logger.info(
            f"Starting training run {self.name}",
            extra={"extra_fields": {"run": self.name, **self.extra}},
        )
        return self

    def record(self, epoch: int, loss: float) -> None:
        """Record the aggregate loss of one epoch."""
        self.epochs = epoch + 1
        self.last_loss = float(loss)
        if self.best_loss is None or self.last_loss < self.best_loss:
            self.best_loss = self.last_loss
        if self.log_every and self.epochs % self.log_every == 0:
            self.logger.debug(
                f"{self.name} epoch {self.epochs}: loss={self.last_loss:.6f}",
                extra={"extra_fields": {"run": self.name, "epoch": self.epochs, "loss": self.last_loss}},
            )

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.time() - self.start_time) * 1000
        fields = {
            "run": self.name,
            "epochs": self.epochs,
            "loss": self.last_loss,
            "best_loss": self.best_loss,
            "duration_ms": round(self.duration_ms, 2),
            **self.extra,
        }
        if exc_type:
            fields["error"] = str(exc_val)
            fields["error_type"] = exc_type.__name__
            self.logger.error(
                f"Failed training run {self.name}: {exc_val}",
                extra={"extra_fields": fields},
            )
        else:
            self.logger.info(
                f"Completed training run {self.name}: {self.epochs} epochs in {self.duration_ms:.2f}ms",
                extra={"extra_fields": fields},
            )
