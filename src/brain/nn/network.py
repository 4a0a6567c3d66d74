"""
Network: layered topology, forward inference and backpropagation.

Usage:
    net = Network.create(Topology.from_sizes([2, 2, 1]))
    loss = net.train([0.0, 1.0], [1.0])
    out = net.predict([0.0, 1.0])

A network is single-threaded: every call mutates the shared buffers in
place, so concurrent callers must serialise access themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
from pydantic import ValidationError

from brain.core.config import LayerSpec, Topology, get_settings
from brain.core.validation import ConstructionError, validate_signal
from brain.nn.arena import SignalArena
from brain.nn.cost import Cost, get_cost
from brain.nn.layer import Layer
from brain.nn.learning import LearningConfig

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

logger = logging.getLogger(__name__)

# Per layer, per neuron: (weights, bias)
LayerParameters = Sequence[tuple[Sequence[float], float]]


def _coerce_topology(topology: Topology | Mapping[str, Any]) -> Topology:
    if isinstance(topology, Topology):
        return topology
    try:
        return Topology.model_validate(topology)
    except ValidationError as e:
        raise ConstructionError(f"invalid topology: {e}") from e


def check_topology(topology: Topology) -> None:
    """
    Reject topologies that cannot produce a network.

    Raises:
        ConstructionError: Empty layer list, zero input size or an empty layer
    """
    if not topology.layers:
        raise ConstructionError("topology has no layers", field="layers")
    if topology.inputs <= 0:
        raise ConstructionError(
            f"input size must be positive, got {topology.inputs}", field="inputs"
        )
    for i, spec in enumerate(topology.layers):
        if spec.neurons <= 0:
            raise ConstructionError(
                f"layer {i} must have at least one neuron, got {spec.neurons}",
                field="neurons",
            )


class Network:
    """Feed-forward multilayer network."""

    def __init__(
        self,
        topology: Topology | Mapping[str, Any],
        *,
        parameters: Sequence[LayerParameters | None] | None = None,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Build layers and wire their buffers.

        Args:
            topology: Network descriptor
            parameters: Optional explicit (weights, bias) per neuron, per
                layer; a None entry draws that layer randomly
            rng: Generator for initial weights and dropout masks
                (default seeded from settings)
            log: Logger for diagnostics

        Raises:
            ConstructionError: If the topology cannot produce a network
        """
        self._log = log or logger
        topology = _coerce_topology(topology)
        check_topology(topology)
        if parameters is not None and len(parameters) != len(topology.layers):
            raise ConstructionError(
                f"expected parameters for {len(topology.layers)} layers, got {len(parameters)}",
                field="parameters",
            )

        self._rng = rng if rng is not None else np.random.default_rng(get_settings().seed)
        self._cost = get_cost(topology.cost, self._log)
        self._arena = SignalArena(topology.sizes)
        self._layers: list[Layer] = [
            Layer(
                self._arena,
                index,
                activation=spec.activation,
                learning=spec.learning,
                dropout=spec.dropout,
                parameters=parameters[index] if parameters is not None else None,
                rng=self._rng,
                log=self._log,
            )
            for index, spec in enumerate(topology.layers)
        ]
        self._log.debug(f"Created network sizes={topology.sizes} cost={self._cost.type.value}")

    @classmethod
    def create(
        cls,
        topology: Topology | Mapping[str, Any],
        *,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ) -> Network:
        """Create a freshly initialised network from a topology."""
        return cls(topology, rng=rng, log=log)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def inputs(self) -> int:
        return self._arena.sizes[0]

    @property
    def outputs(self) -> int:
        return self._arena.sizes[-1]

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    def layer(self, index: int) -> Layer:
        return self._layers[index]

    def __len__(self) -> int:
        return len(self._layers)

    @property
    def arena(self) -> SignalArena:
        return self._arena

    @property
    def cost(self) -> Cost:
        return self._cost

    @property
    def topology(self) -> Topology:
        """Descriptor of the current network state."""
        return Topology(
            inputs=self.inputs,
            layers=[
                LayerSpec(
                    neurons=layer.size,
                    activation=layer.activation.type,
                    dropout=layer.dropout,
                    learning=layer.learning,
                )
                for layer in self._layers
            ],
            cost=self._cost.type,
        )

    def configure_learning(self, config: LearningConfig, layer: int | None = None) -> None:
        """
        Replace the learning configuration of one layer, or of all layers.

        Adaptive Rprop state is reset for every affected neuron.
        """
        targets = self._layers if layer is None else [self._layers[layer]]
        for target in targets:
            target.configure(learning=config)

    # ------------------------------------------------------------------
    # Inference and training
    # ------------------------------------------------------------------

    def _forward(self, training: bool) -> np.ndarray:
        for layer in self._layers:
            layer.forward(training)
        return self._arena.output

    def predict(self, values: Sequence[float] | np.ndarray) -> np.ndarray:
        """
        Run a deterministic forward pass (no dropout).

        Weights and adaptive learning state are never touched. Per-pass
        state such as neuron sums and the error accumulators is overwritten
        as in any forward pass.

        Args:
            values: Input vector of length ``inputs``

        Returns:
            Copy of the output layer values

        Raises:
            DimensionMismatch: If the input length is wrong
        """
        x = validate_signal(values, self.inputs, "input")
        self._arena.load_input(x)
        return self._forward(training=False).copy()

    def train(
        self,
        values: Sequence[float] | np.ndarray,
        desired: Sequence[float] | np.ndarray,
    ) -> float:
        """
        Train on a single example.

        Runs a forward pass with dropout, seeds the output error buffer
        with the cost derivative, then updates layers from last to first.

        Args:
            values: Input vector of length ``inputs``
            desired: Target vector of length ``outputs``

        Returns:
            Sum over outputs of the cost of the forward-pass output

        Raises:
            DimensionMismatch: If either vector has the wrong length; no
                buffer or weight is modified in that case
        """
        x = validate_signal(values, self.inputs, "input")
        d = validate_signal(desired, self.outputs, "desired")

        self._arena.load_input(x)
        output = self._forward(training=True)

        seed = self._arena.output_error
        loss = 0.0
        for i in range(self.outputs):
            actual = float(output[i])
            seed[i] = self._cost.derivative(actual, float(d[i]))
            loss += self._cost(actual, float(d[i]))

        for layer in reversed(self._layers):
            layer.update()
        return loss

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_tree(self) -> Element:
        """Serialize to an XML element tree."""
        from brain.persistence.codec import serialize_network

        return serialize_network(self)

    serialize = to_tree

    @classmethod
    def from_tree(
        cls,
        tree: Element,
        *,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ) -> Network:
        """Build a network from an XML element tree."""
        from brain.persistence.codec import deserialize_network

        return deserialize_network(tree, rng=rng, log=log)

    deserialize = from_tree

    def restore(self, tree: Element) -> None:
        """Load weights from a tree into this network, all or nothing."""
        from brain.persistence.codec import restore_network

        restore_network(self, tree)

    def dumps(self) -> str:
        """Serialize to an XML document string."""
        from brain.persistence.codec import dumps

        return dumps(self)

    @classmethod
    def loads(
        cls,
        text: str | bytes,
        *,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ) -> Network:
        """Build a network from an XML document string."""
        from brain.persistence.codec import loads

        return loads(text, rng=rng, log=log)

    def save(self, path: Path | str) -> Path:
        """Write the network document atomically to ``path``."""
        from brain.persistence.storage import save_network

        return save_network(self, path)

    @classmethod
    def load(
        cls,
        path: Path | str,
        *,
        rng: np.random.Generator | None = None,
        log: logging.Logger | None = None,
    ) -> Network:
        """Read a network document from ``path``."""
        from brain.persistence.storage import load_network

        return load_network(path, rng=rng, log=log)

    def __repr__(self) -> str:
        sizes = ", ".join(str(n) for n in self._arena.sizes)
        return f"Network(sizes=[{sizes}], cost={self._cost.type.value})"
