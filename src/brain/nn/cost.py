"""Cost functions used to seed backpropagation."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from brain.core.validation import coerce_enum

logger = logging.getLogger(__name__)

# Outputs are clipped away from 0 and 1 before taking logs
_CLIP = 1e-12


class CostType(str, Enum):
    """Supported network cost functions."""
    QUADRATIC = "quadratic"
    CROSS_ENTROPY = "cross-entropy"


DEFAULT_COST = CostType.QUADRATIC


def _clip(actual: float) -> float:
    return min(max(actual, _CLIP), 1.0 - _CLIP)


def _quadratic(actual: float, desired: float) -> float:
    return 0.5 * (actual - desired) ** 2


def _quadratic_derivative(actual: float, desired: float) -> float:
    return actual - desired


def _cross_entropy(actual: float, desired: float) -> float:
    a = _clip(actual)
    return -(desired * math.log(a) + (1.0 - desired) * math.log(1.0 - a))


def _cross_entropy_derivative(actual: float, desired: float) -> float:
    a = _clip(actual)
    return (a - desired) / (a * (1.0 - a))


@dataclass(frozen=True)
class Cost:
    """A cost function paired with its derivative w.r.t. the output."""

    type: CostType
    function: Callable[[float, float], float]
    derivative: Callable[[float, float], float]

    def __call__(self, actual: float, desired: float) -> float:
        return self.function(actual, desired)


COSTS: dict[CostType, Cost] = {
    CostType.QUADRATIC: Cost(CostType.QUADRATIC, _quadratic, _quadratic_derivative),
    CostType.CROSS_ENTROPY: Cost(
        CostType.CROSS_ENTROPY, _cross_entropy, _cross_entropy_derivative
    ),
}

_ALIASES = {
    "crossentropy": CostType.CROSS_ENTROPY,
    "mse": CostType.QUADRATIC,
}


def get_cost_type(
    value: str | CostType | None,
    log: logging.Logger | None = None,
) -> CostType:
    """Resolve a cost tag, falling back to quadratic when unknown."""
    return coerce_enum(
        value,
        CostType,
        DEFAULT_COST,
        aliases=_ALIASES,
        field="cost-function",
        log=log or logger,
    )


def get_cost(
    value: str | CostType | None,
    log: logging.Logger | None = None,
) -> Cost:
    """Return the cost strategy for a tag."""
    return COSTS[get_cost_type(value, log)]
