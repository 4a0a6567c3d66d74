"""Core configuration and validation for brain."""

from brain.core.validation import (
    BrainError,
    ConstructionError,
    DimensionMismatch,
    PersistenceError,
    validate_signal,
)
from brain.core.config import (
    BrainSettings,
    LayerSpec,
    Topology,
    get_settings,
)

__all__ = [
    "BrainError",
    "ConstructionError",
    "DimensionMismatch",
    "PersistenceError",
    "validate_signal",
    "BrainSettings",
    "LayerSpec",
    "Topology",
    "get_settings",
]
