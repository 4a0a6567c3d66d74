"""
Error taxonomy and input validation for brain.

Provides the exceptions raised at the engine boundaries and the helpers
that check signal vectors before any buffer is touched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class BrainError(Exception):
    """Base class for every error raised by brain."""


class ConstructionError(BrainError, ValueError):
    """Raised when a topology cannot produce a network.

    Attributes:
        field: Part of the topology that is invalid
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class DimensionMismatch(BrainError, ValueError):
    """Raised when a signal length disagrees with the network shape.

    Attributes:
        name: Name of the offending signal ("input", "desired", ...)
        expected: Length required by the network
        actual: Length received
    """

    def __init__(self, name: str, expected: int, actual: int) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"{name}: expected {expected} values, got {actual}")


class PersistenceError(BrainError):
    """Raised when a network document cannot be read or written.

    Attributes:
        path: Optional path of the document involved
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path else None


def validate_signal(values: Any, expected: int, name: str) -> np.ndarray:
    """
    Validate a signal vector and convert it to a float64 array.

    Args:
        values: Sequence or array of numbers
        expected: Required length
        name: Name for error messages

    Returns:
        One-dimensional float64 array (a new array, never a view on
        caller memory)

    Raises:
        DimensionMismatch: If the length differs from ``expected``
        ValueError: If the values are not one-dimensional numbers
    """
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"{name}: expected a flat vector, got shape {arr.shape}")
    if arr.shape[0] != expected:
        raise DimensionMismatch(name, expected, arr.shape[0])
    return arr


def normalize_tag(value: str) -> str:
    """Fold a strategy tag to lower case with '-' as the only separator."""
    return value.strip().lower().replace("_", "-").replace(" ", "-")


def coerce_enum(
    value: Any,
    enum_class: type[E],
    default: E,
    *,
    aliases: Mapping[str, E] | None = None,
    field: str = "type",
    log: logging.Logger | None = None,
) -> E:
    """
    Resolve a tag to an enum member, substituting a default when unknown.

    Unlike strict enum validation this never raises: a malformed tag in a
    persisted document must not prevent the network from loading.

    Args:
        value: Enum member, tag string or None
        enum_class: Enum class to resolve against
        default: Member returned for missing or unknown tags
        aliases: Extra spellings (already normalized) mapped to members
        field: Field name for the diagnostic
        log: Logger receiving the fallback warning

    Returns:
        Enum member
    """
    if isinstance(value, enum_class):
        return value
    if value is None:
        return default

    tag = normalize_tag(str(value))
    for member in enum_class:
        if member.value == tag:
            return member
    if aliases and tag in aliases:
        return aliases[tag]

    (log or logger).warning(
        f"Unknown {field} '{value}', falling back to '{default.value}'"
    )
    return default
