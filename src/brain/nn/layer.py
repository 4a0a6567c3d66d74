"""
Layer: a fixed group of neurons sharing one input and one output buffer.

The layer owns its neurons. Its buffers live in the network's
``SignalArena``; the layer only knows its position ``k`` in it:

    input         signals[k]     (previous layer output or network input)
    output        signals[k+1]   (next layer input or network output)
    input_error   errors[k]      (filled by this layer's neurons)
    output_error  errors[k+1]    (filled by the next layer, or the network)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

import numpy as np

from brain.core.validation import ConstructionError
from brain.nn.activation import DEFAULT_ACTIVATION, Activation, ActivationType, get_activation
from brain.nn.arena import SignalArena
from brain.nn.learning import LearningConfig
from brain.nn.neuron import Neuron

logger = logging.getLogger(__name__)


class Layer:
    """Ordered neurons plus the forward and update passes over them."""

    def __init__(
        self,
        arena: SignalArena,
        index: int,
        *,
        activation: Activation | ActivationType | str | None = DEFAULT_ACTIVATION,
        learning: LearningConfig | None = None,
        dropout: float = 0.0,
        parameters: Sequence[tuple[Sequence[float], float]] | None = None,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Create the neurons of layer ``index``.

        Args:
            arena: Buffer owner, already sized for this layer
            index: Position of the layer in the network
            activation: Activation strategy or tag shared by all neurons
            learning: Learning configuration shared by all neurons
            dropout: Probability of suppressing a neuron in a training pass
            parameters: Optional (weights, bias) per neuron; random when None
            rng: Generator for initialization and dropout masks
            log: Logger for diagnostics
        """
        self._log = log or logger
        self._arena = arena
        self._index = index
        self._rng = rng if rng is not None else np.random.default_rng()

        if not 0.0 <= dropout < 1.0:
            raise ConstructionError(f"dropout must be in [0, 1), got {dropout}", field="dropout")
        self._dropout = float(dropout)

        size = arena.signal(index + 1).shape[0]
        if size == 0:
            raise ConstructionError(f"layer {index} has no neurons", field="neurons")
        if parameters is not None and len(parameters) != size:
            raise ConstructionError(
                f"layer {index} expects {size} neuron parameter sets, got {len(parameters)}",
                field="parameters",
            )

        if not isinstance(activation, Activation):
            activation = get_activation(activation, self._log)
        learning = learning or LearningConfig()

        self._neurons: list[Neuron] = []
        for slot in range(size):
            weights, bias = parameters[slot] if parameters is not None else (None, None)
            self._neurons.append(
                Neuron(
                    arena,
                    index,
                    slot,
                    activation=activation,
                    learning=learning,
                    weights=weights,
                    bias=bias,
                    rng=self._rng,
                    log=self._log,
                )
            )

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def size(self) -> int:
        return len(self._neurons)

    def __len__(self) -> int:
        return len(self._neurons)

    @property
    def input_size(self) -> int:
        return self._arena.signal(self._index).shape[0]

    @property
    def neurons(self) -> tuple[Neuron, ...]:
        return tuple(self._neurons)

    def neuron(self, index: int) -> Neuron:
        return self._neurons[index]

    def __iter__(self) -> Iterator[Neuron]:
        return iter(self._neurons)

    @property
    def input(self) -> np.ndarray:
        return self._arena.signal(self._index)

    @property
    def output(self) -> np.ndarray:
        return self._arena.signal(self._index + 1)

    @property
    def input_error(self) -> np.ndarray:
        return self._arena.error(self._index)

    @property
    def output_error(self) -> np.ndarray:
        return self._arena.error(self._index + 1)

    @property
    def activation(self) -> Activation:
        return self._neurons[0].activation

    @property
    def learning(self) -> LearningConfig:
        return self._neurons[0].learning

    @property
    def dropout(self) -> float:
        return self._dropout

    def configure(
        self,
        activation: Activation | ActivationType | str | None = None,
        learning: LearningConfig | None = None,
        dropout: float | None = None,
    ) -> None:
        """Change the per-layer parameters of an existing layer."""
        if dropout is not None:
            if not 0.0 <= dropout < 1.0:
                raise ValueError(f"dropout must be in [0, 1), got {dropout}")
            self._dropout = float(dropout)
        if activation is not None and not isinstance(activation, Activation):
            activation = get_activation(activation, self._log)
        for neuron in self._neurons:
            neuron.configure(activation=activation, learning=learning)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def forward(self, training: bool = False) -> np.ndarray:
        """
        Activate every neuron.

        Clears this layer's input-error accumulator first so that the
        following update pass starts from zero.

        Args:
            training: Apply dropout masks

        Returns:
            The layer output buffer (shared, not a copy)
        """
        self.input_error.fill(0.0)
        drop = training and self._dropout > 0.0
        for neuron in self._neurons:
            active = not (drop and self._rng.random() < self._dropout)
            neuron.activate(active)
        return self.output

    def update(self) -> None:
        """
        Update every neuron from this layer's output-error buffer.

        Must run after the next layer's update, which fills the buffer.
        """
        losses = self.output_error
        for neuron in self._neurons:
            neuron.update(float(losses[neuron.slot]))

    def __repr__(self) -> str:
        return (
            f"Layer(index={self._index}, neurons={self.size}, inputs={self.input_size}, "
            f"activation={self.activation.type.value})"
        )
