"""
Activation functions for brain neurons.

Each activation type maps to an ``Activation`` strategy holding the
function and its derivative. The derivative is evaluated either on the
pre-activation sum or on the neuron output; the convention is fixed per
type and recorded in ``Activation.derivative_on``:

    identity       sum     1
    sigmoid        output  y(1 - y)
    tanh           output  1 - y^2
    arctan         sum     1 / (1 + x^2)
    softplus       sum     logistic(x)
    softsign       sum     1 / (1 + |x|)^2
    sinusoid       sum     cos(x)
    relu           sum     1 if x > 0 else 0
    bent-identity  sum     x / (2 sqrt(x^2 + 1)) + 1
    gaussian       sum     -2x exp(-x^2)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from brain.core.validation import coerce_enum

logger = logging.getLogger(__name__)


class ActivationType(str, Enum):
    """Supported activation functions."""
    IDENTITY = "identity"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    ARCTAN = "arctan"
    SOFTPLUS = "softplus"
    SOFTSIGN = "softsign"
    SINUSOID = "sinusoid"
    RELU = "relu"
    BENT_IDENTITY = "bent-identity"
    GAUSSIAN = "gaussian"


class DerivativeInput(str, Enum):
    """Quantity an activation derivative is evaluated on."""
    SUM = "sum"
    OUTPUT = "output"


DEFAULT_ACTIVATION = ActivationType.SIGMOID


def _logistic(x: float) -> float:
    # Split on the sign so exp never overflows
    if x >= 0.0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _softplus(x: float) -> float:
    if x > 30.0:
        return x
    return math.log1p(math.exp(x))


def _relu(x: float) -> float:
    return x if x > 0.0 else 0.0


@dataclass(frozen=True)
class Activation:
    """An activation function paired with its derivative."""

    type: ActivationType
    function: Callable[[float], float]
    derivative_function: Callable[[float], float]
    derivative_on: DerivativeInput

    def __call__(self, x: float) -> float:
        return self.function(x)

    def derivative(self, total: float, output: float) -> float:
        """
        Evaluate the derivative for a neuron state.

        Args:
            total: Pre-activation sum of the neuron
            output: Activated output of the neuron

        Returns:
            dA/dsum at this state
        """
        if self.derivative_on is DerivativeInput.OUTPUT:
            return self.derivative_function(output)
        return self.derivative_function(total)


ACTIVATIONS: dict[ActivationType, Activation] = {
    ActivationType.IDENTITY: Activation(
        ActivationType.IDENTITY,
        lambda x: x,
        lambda x: 1.0,
        DerivativeInput.SUM,
    ),
    ActivationType.SIGMOID: Activation(
        ActivationType.SIGMOID,
        _logistic,
        lambda y: y * (1.0 - y),
        DerivativeInput.OUTPUT,
    ),
    ActivationType.TANH: Activation(
        ActivationType.TANH,
        math.tanh,
        lambda y: 1.0 - y * y,
        DerivativeInput.OUTPUT,
    ),
    ActivationType.ARCTAN: Activation(
        ActivationType.ARCTAN,
        math.atan,
        lambda x: 1.0 / (1.0 + x * x),
        DerivativeInput.SUM,
    ),
    ActivationType.SOFTPLUS: Activation(
        ActivationType.SOFTPLUS,
        _softplus,
        _logistic,
        DerivativeInput.SUM,
    ),
    ActivationType.SOFTSIGN: Activation(
        ActivationType.SOFTSIGN,
        lambda x: x / (1.0 + abs(x)),
        lambda x: 1.0 / (1.0 + abs(x)) ** 2,
        DerivativeInput.SUM,
    ),
    ActivationType.SINUSOID: Activation(
        ActivationType.SINUSOID,
        math.sin,
        math.cos,
        DerivativeInput.SUM,
    ),
    ActivationType.RELU: Activation(
        ActivationType.RELU,
        _relu,
        lambda x: 1.0 if x > 0.0 else 0.0,
        DerivativeInput.SUM,
    ),
    ActivationType.BENT_IDENTITY: Activation(
        ActivationType.BENT_IDENTITY,
        lambda x: (math.sqrt(x * x + 1.0) - 1.0) / 2.0 + x,
        lambda x: x / (2.0 * math.sqrt(x * x + 1.0)) + 1.0,
        DerivativeInput.SUM,
    ),
    ActivationType.GAUSSIAN: Activation(
        ActivationType.GAUSSIAN,
        lambda x: math.exp(-x * x),
        lambda x: -2.0 * x * math.exp(-x * x),
        DerivativeInput.SUM,
    ),
}

# Spellings used by older network documents
_ALIASES = {
    "linear": ActivationType.IDENTITY,
    "logistic": ActivationType.SIGMOID,
    "hyperbolic-tangent": ActivationType.TANH,
    "atan": ActivationType.ARCTAN,
    "softsine": ActivationType.SOFTSIGN,
    "sinus": ActivationType.SINUSOID,
    "sin": ActivationType.SINUSOID,
    "bentidentity": ActivationType.BENT_IDENTITY,
    "bent": ActivationType.BENT_IDENTITY,
}


def get_activation_type(
    value: str | ActivationType | None,
    log: logging.Logger | None = None,
) -> ActivationType:
    """Resolve an activation tag, falling back to sigmoid when unknown."""
    return coerce_enum(
        value,
        ActivationType,
        DEFAULT_ACTIVATION,
        aliases=_ALIASES,
        field="activation-function",
        log=log or logger,
    )


def get_activation(
    value: str | ActivationType | None,
    log: logging.Logger | None = None,
) -> Activation:
    """Return the activation strategy for a tag."""
    return ACTIVATIONS[get_activation_type(value, log)]
