"""Logging for brain."""

from brain.observability.logging import (
    StructuredFormatter,
    TrainingRun,
    configure_from_settings,
    configure_logging,
    get_logger,
)

__all__ = [
    "StructuredFormatter",
    "TrainingRun",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
