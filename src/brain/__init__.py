"""
brain - feed-forward multilayer neural networks.

Layered topology construction, forward inference, backpropagation with
momentum gradient descent or Rprop, and XML persistence.

Quick Start:
    from brain import Network, Topology

    net = Network.create(Topology.from_sizes([2, 2, 1]))
    for _ in range(5000):
        for x, y in samples:
            net.train(x, y)
    net.predict([0.0, 1.0])
    net.save("xor.xml")
"""

__version__ = "1.0.0"

from brain.core.validation import (
    BrainError,
    ConstructionError,
    DimensionMismatch,
    PersistenceError,
)
from brain.core.config import BrainSettings, LayerSpec, Topology, get_settings
from brain.nn.activation import ActivationType
from brain.nn.cost import CostType
from brain.nn.learning import LearningConfig, LearningType
from brain.nn.network import Network

__all__ = [
    # Errors
    "BrainError",
    "ConstructionError",
    "DimensionMismatch",
    "PersistenceError",
    # Config
    "BrainSettings",
    "LayerSpec",
    "Topology",
    "get_settings",
    # Strategies
    "ActivationType",
    "CostType",
    "LearningConfig",
    "LearningType",
    # Engine
    "Network",
]
