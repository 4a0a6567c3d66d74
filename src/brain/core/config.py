"""
Configuration management for brain.

Topology descriptors are pydantic models; runtime settings use
pydantic-settings for environment variable support (``BRAIN_`` prefix).
"""

import logging
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from brain.nn.activation import DEFAULT_ACTIVATION, ActivationType, get_activation_type
from brain.nn.cost import DEFAULT_COST, CostType, get_cost_type
from brain.nn.learning import LearningConfig

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ===================
# Topology
# ===================

class LayerSpec(BaseModel):
    """
    Description of one layer.

    Sizes are deliberately unbounded here: ``Network.create`` reports an
    empty layer as a ConstructionError.
    """

    model_config = ConfigDict(frozen=True)

    neurons: int
    activation: ActivationType = DEFAULT_ACTIVATION
    dropout: float = Field(default=0.0, ge=0.0, lt=1.0)
    learning: LearningConfig = Field(default_factory=LearningConfig)

    @field_validator("activation", mode="before")
    @classmethod
    def _resolve_activation(cls, v: Any) -> ActivationType:
        return get_activation_type(v)


class Topology(BaseModel):
    """Network shape: input size, ordered layers and the cost function."""

    model_config = ConfigDict(frozen=True)

    inputs: int
    layers: list[LayerSpec]
    cost: CostType = DEFAULT_COST

    @field_validator("cost", mode="before")
    @classmethod
    def _resolve_cost(cls, v: Any) -> CostType:
        return get_cost_type(v)

    @property
    def sizes(self) -> list[int]:
        """Input size followed by each layer's neuron count."""
        return [self.inputs] + [layer.neurons for layer in self.layers]

    @classmethod
    def from_sizes(
        cls,
        sizes: list[int],
        activation: ActivationType | str = DEFAULT_ACTIVATION,
        learning: LearningConfig | None = None,
        cost: CostType | str = DEFAULT_COST,
        dropout: float = 0.0,
    ) -> "Topology":
        """
        Build a uniform topology from a size list.

        Example:
            Topology.from_sizes([2, 2, 1])  # 2 inputs, 2 hidden, 1 output
        """
        if not sizes:
            return cls(inputs=0, layers=[], cost=cost)
        learning = learning or LearningConfig()
        return cls(
            inputs=sizes[0],
            layers=[
                LayerSpec(neurons=n, activation=activation, dropout=dropout, learning=learning)
                for n in sizes[1:]
            ],
            cost=cost,
        )


# ===================
# Runtime settings
# ===================

class BrainSettings(BaseSettings):
    """brain runtime settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="BRAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(
        default="WARNING",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional file receiving log output",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for weight initialization and dropout masks",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, v: Any) -> str:
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v!r}")
        return level


@lru_cache
def get_settings() -> BrainSettings:
    """
    Get cached settings instance.

    Settings are loaded from (in order of precedence):
    1. Environment variables (BRAIN_* prefix)
    2. .env file in the working directory
    3. Default values
    """
    return BrainSettings()
