"""
Neuron: the smallest stateful unit of a brain network.

A neuron owns its weights, bias and adaptive learning state. It owns no
buffers: it reads its input from the arena, writes one slot of its
layer's output, and pushes weighted error into the upstream accumulator
during ``update``. That push is the only place where error crosses from
one layer to the previous one.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from brain.core.validation import DimensionMismatch
from brain.nn.activation import DEFAULT_ACTIVATION, Activation, ActivationType, get_activation
from brain.nn.arena import SignalArena
from brain.nn.learning import LearningConfig, ParameterState, get_learning_rule

logger = logging.getLogger(__name__)


class Neuron:
    """
    A single unit computing ``activation(<in, w> + bias)``.

    Wiring is expressed through arena indices: layer ``k`` neurons read
    ``signals[k]``, write ``signals[k + 1][slot]`` and accumulate upstream
    error into ``errors[k]``.
    """

    def __init__(
        self,
        arena: SignalArena,
        layer_index: int,
        slot: int,
        *,
        activation: Activation | ActivationType | str | None = DEFAULT_ACTIVATION,
        learning: LearningConfig | None = None,
        weights: Sequence[float] | np.ndarray | None = None,
        bias: float | None = None,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Create a neuron wired into an arena.

        Args:
            arena: Buffer owner
            layer_index: Position of the owning layer
            slot: Index of this neuron in the layer output
            activation: Activation strategy or tag
            learning: Learning rule configuration
            weights: Explicit initial weights (random when None)
            bias: Explicit initial bias (random when None)
            rng: Generator for random initialization
            log: Logger for diagnostics
        """
        self._log = log or logger
        self._arena = arena
        self._input_index = layer_index
        self._output_index = layer_index + 1
        self._upstream_index = layer_index
        self._slot = slot

        n_inputs = arena.signal(layer_index).shape[0]
        if not 0 <= slot < arena.signal(self._output_index).shape[0]:
            raise IndexError(f"output slot {slot} out of range for layer {layer_index}")

        if isinstance(activation, Activation):
            self._activation = activation
        else:
            self._activation = get_activation(activation, self._log)
        self._learning = learning or LearningConfig()
        self._rule = get_learning_rule(self._learning)

        # Uniform in [-1/n, 1/n]
        limit = 1.0 / n_inputs
        if weights is None or bias is None:
            rng = rng if rng is not None else np.random.default_rng()
        if weights is None:
            w = rng.uniform(-limit, limit, size=n_inputs)
        else:
            w = np.array(weights, dtype=np.float64)
            if w.shape != (n_inputs,):
                raise DimensionMismatch("weights", n_inputs, w.size)
        if bias is None:
            bias = float(rng.uniform(-limit, limit))

        self._state = ParameterState.create(w, bias, self._learning)
        self._sum = 0.0
        self._active = True

    # ------------------------------------------------------------------
    # Wiring views
    # ------------------------------------------------------------------

    @property
    def input(self) -> np.ndarray:
        return self._arena.signal(self._input_index)

    @property
    def output(self) -> float:
        return float(self._arena.signal(self._output_index)[self._slot])

    @property
    def upstream_error(self) -> np.ndarray:
        return self._arena.error(self._upstream_index)

    @property
    def slot(self) -> int:
        return self._slot

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def number_of_inputs(self) -> int:
        return self._state.weights.shape[0]

    @property
    def weights(self) -> np.ndarray:
        """Copy of the weight vector."""
        return self._state.weights.copy()

    @property
    def bias(self) -> float:
        return self._state.bias

    @property
    def steps(self) -> np.ndarray:
        """Copy of the per-weight Rprop step sizes."""
        return self._state.steps.copy()

    @property
    def bias_step(self) -> float:
        return self._state.bias_step

    @property
    def sum(self) -> float:
        """Pre-activation sum from the last forward pass."""
        return self._sum

    @property
    def active(self) -> bool:
        """False when dropout suppressed this neuron in the last pass."""
        return self._active

    @property
    def activation(self) -> Activation:
        return self._activation

    @property
    def learning(self) -> LearningConfig:
        return self._learning

    def set_parameters(self, weights: Sequence[float] | np.ndarray, bias: float) -> None:
        """
        Overwrite weights and bias, e.g. when restoring a saved network.

        The weight vector is written in place so its length never changes.
        """
        w = np.asarray(weights, dtype=np.float64)
        if w.shape != self._state.weights.shape:
            raise DimensionMismatch("weights", self.number_of_inputs, w.size)
        self._state.weights[:] = w
        self._state.bias = float(bias)

    def configure(
        self,
        activation: Activation | ActivationType | str | None = None,
        learning: LearningConfig | None = None,
    ) -> None:
        """Swap the activation and/or learning rule; resets adaptive state."""
        if activation is not None:
            if isinstance(activation, Activation):
                self._activation = activation
            else:
                self._activation = get_activation(activation, self._log)
        if learning is not None:
            self._learning = learning
            self._rule = get_learning_rule(learning)
            self._state.reset(learning)

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------

    def activate(self, active: bool = True) -> float:
        """
        Compute the neuron output and write it to the output slot.

        Args:
            active: False suppresses the neuron for this pass (dropout)

        Returns:
            The output value
        """
        out = self._arena.signal(self._output_index)
        self._active = active
        if not active:
            self._sum = 0.0
            out[self._slot] = 0.0
            return 0.0

        self._sum = float(np.dot(self.input, self._state.weights)) + self._state.bias
        value = self._activation(self._sum)
        out[self._slot] = value
        return value

    def update(self, loss: float) -> None:
        """
        Backpropagate a loss signal through this neuron.

        Pushes ``gradient * w[i]`` into the upstream accumulator before
        any weight changes, then applies the configured learning rule.
        A neuron suppressed by dropout neither learns nor propagates.

        Args:
            loss: dC/d(output) for this neuron
        """
        if not self._active:
            return

        gradient = loss * self._activation.derivative(self._sum, self.output)
        upstream = self._arena.error(self._upstream_index)
        upstream += gradient * self._state.weights
        self._rule(self._state, self.input, gradient, self._learning)

    def __repr__(self) -> str:
        return (
            f"Neuron(inputs={self.number_of_inputs}, "
            f"activation={self._activation.type.value}, "
            f"learning={self._learning.type.value})"
        )
