"""
Weight-adaptation rules.

Two rules are available, selected per layer:

- ``backprop``: momentum gradient descent
      w[i] -= lr * gradient * in[i] - momentum * w[i]
- ``rprop``: sign-based adaptive step (resilient propagation). Each
  parameter keeps its previous gradient and its own step size. The step
  grows by ``eta_plus`` while consecutive gradients agree in sign, shrinks
  by ``eta_minus`` when they disagree (and the update is skipped), and is
  always kept within ``[delta_min, delta_max]``.

Rules mutate a ``ParameterState`` in place and never touch any other
buffer; upstream error propagation is the neuron's job.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from brain.core.validation import coerce_enum

logger = logging.getLogger(__name__)

# Below this |prev * g| the previous gradient counts as absent
RPROP_EPSILON = 1e-6

DEFAULT_LEARNING_RATE = 1.2
DEFAULT_MOMENTUM = 0.0
DEFAULT_ETA_PLUS = 1.25
DEFAULT_ETA_MINUS = 0.95
DEFAULT_DELTA_MAX = 50.0
DEFAULT_DELTA_MIN = 1e-6
DEFAULT_DELTA_INIT = 0.1


class LearningType(str, Enum):
    """Supported weight-adaptation rules."""
    BACKPROP = "backprop"
    RPROP = "rprop"


DEFAULT_LEARNING = LearningType.BACKPROP

_ALIASES = {
    "backpropagation": LearningType.BACKPROP,
    "momentum": LearningType.BACKPROP,
    "resilient": LearningType.RPROP,
}


def get_learning_type(
    value: str | LearningType | None,
    log: logging.Logger | None = None,
) -> LearningType:
    """Resolve a learning tag, falling back to backprop when unknown."""
    return coerce_enum(
        value,
        LearningType,
        DEFAULT_LEARNING,
        aliases=_ALIASES,
        field="learning",
        log=log or logger,
    )


class LearningConfig(BaseModel):
    """Learning rule and its hyper-parameters."""

    model_config = ConfigDict(frozen=True)

    type: LearningType = DEFAULT_LEARNING
    learning_rate: float = Field(default=DEFAULT_LEARNING_RATE, ge=0.0)
    momentum: float = Field(default=DEFAULT_MOMENTUM, ge=0.0)
    eta_plus: float = Field(default=DEFAULT_ETA_PLUS, gt=0.0)
    eta_minus: float = Field(default=DEFAULT_ETA_MINUS, gt=0.0)
    delta_max: float = Field(default=DEFAULT_DELTA_MAX, gt=0.0)
    delta_min: float = Field(default=DEFAULT_DELTA_MIN, gt=0.0)
    delta_init: float = Field(default=DEFAULT_DELTA_INIT, gt=0.0)

    @field_validator("type", mode="before")
    @classmethod
    def _resolve_type(cls, v: Any) -> LearningType:
        return get_learning_type(v)

    @model_validator(mode="after")
    def _check_delta_bounds(self) -> LearningConfig:
        if self.delta_min > self.delta_max:
            raise ValueError(
                f"delta_min ({self.delta_min}) must not exceed delta_max ({self.delta_max})"
            )
        return self

    @property
    def initial_step(self) -> float:
        """Starting Rprop step, clipped into the allowed range."""
        return min(max(self.delta_init, self.delta_min), self.delta_max)


@dataclass
class ParameterState:
    """Trainable parameters of one neuron plus the Rprop history."""

    weights: np.ndarray
    bias: float
    gradients: np.ndarray
    steps: np.ndarray
    bias_gradient: float = 0.0
    bias_step: float = 0.0

    @classmethod
    def create(
        cls, weights: np.ndarray, bias: float, config: LearningConfig
    ) -> ParameterState:
        """Wrap initial weights with fresh adaptive state."""
        state = cls(
            weights=weights,
            bias=float(bias),
            gradients=np.zeros_like(weights),
            steps=np.empty_like(weights),
        )
        state.reset(config)
        return state

    def reset(self, config: LearningConfig) -> None:
        """Forget the gradient history and restart every step size."""
        self.gradients.fill(0.0)
        self.steps.fill(config.initial_step)
        self.bias_gradient = 0.0
        self.bias_step = config.initial_step


def momentum_update(
    state: ParameterState,
    inputs: np.ndarray,
    gradient: float,
    config: LearningConfig,
) -> None:
    """Apply one momentum gradient-descent step."""
    lr = config.learning_rate
    momentum = config.momentum
    state.weights -= lr * gradient * inputs - momentum * state.weights
    state.bias -= lr * gradient - momentum * state.bias


def _resilient(
    g: np.ndarray,
    previous: np.ndarray,
    steps: np.ndarray,
    config: LearningConfig,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (correction, new steps, new previous gradients)."""
    product = previous * g
    grow = product > 0.0
    shrink = product < 0.0
    hold = ~(grow | shrink) & (np.abs(product) <= RPROP_EPSILON)

    new_steps = np.where(grow, np.minimum(steps * config.eta_plus, config.delta_max), steps)
    new_steps = np.where(shrink, np.maximum(steps * config.eta_minus, config.delta_min), new_steps)
    # Eta factors are unconstrained, so clamp both sides
    new_steps = np.clip(new_steps, config.delta_min, config.delta_max)

    apply = grow | hold
    correction = np.where(apply, -np.sign(g) * new_steps, 0.0)
    new_previous = np.where(apply, g, 0.0)
    return correction, new_steps, new_previous


def resilient_update(
    state: ParameterState,
    inputs: np.ndarray,
    gradient: float,
    config: LearningConfig,
) -> None:
    """Apply one Rprop step to every weight and to the bias."""
    correction, steps, previous = _resilient(
        np.array([gradient]),
        np.array([state.bias_gradient]),
        np.array([state.bias_step]),
        config,
    )
    state.bias += float(correction[0])
    state.bias_step = float(steps[0])
    state.bias_gradient = float(previous[0])

    correction, steps, previous = _resilient(
        gradient * inputs, state.gradients, state.steps, config
    )
    state.weights += correction
    state.steps[:] = steps
    state.gradients[:] = previous


LearningRule = Callable[[ParameterState, np.ndarray, float, LearningConfig], None]

LEARNING_RULES: dict[LearningType, LearningRule] = {
    LearningType.BACKPROP: momentum_update,
    LearningType.RPROP: resilient_update,
}


def get_learning_rule(config: LearningConfig) -> LearningRule:
    """Return the update rule selected by a configuration."""
    return LEARNING_RULES[config.type]
