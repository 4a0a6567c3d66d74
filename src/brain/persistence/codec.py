"""
XML codec for brain networks.

Document shape::

    <network inputs="2" cost-function="quadratic">
      <layer neurons="2" activation-function="sigmoid" dropout="0.0">
        <training>
          <backprop learning-rate="1.2" momentum="0.0"/>
        </training>
        <neuron bias="0.1">
          <weight>0.25</weight>
          <weight>-0.3</weight>
        </neuron>
      </layer>
    </network>

Rprop layers use ``<rprop delta-init=".."><resilient-eta positive=".."
negative=".."/><resilient-delta max=".." min=".."/></rprop>`` instead of
``<backprop>``. Weights are positional: the n-th ``<weight>`` belongs to
the n-th input. A layer without ``<neuron>`` children only describes the
topology and gets fresh random weights.

Reading is all or nothing. The whole document is parsed and validated
into a topology plus parameter arrays before any network is built or
modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from xml.etree.ElementTree import Element, ElementTree, SubElement

import numpy as np
from pydantic import ValidationError

from brain.core.config import LayerSpec, Topology
from brain.core.validation import ConstructionError, PersistenceError
from brain.nn.activation import get_activation_type
from brain.nn.cost import get_cost_type
from brain.nn.learning import (
    DEFAULT_DELTA_INIT,
    DEFAULT_DELTA_MAX,
    DEFAULT_DELTA_MIN,
    DEFAULT_ETA_MINUS,
    DEFAULT_ETA_PLUS,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MOMENTUM,
    LearningConfig,
    LearningType,
)
from brain.nn.network import Network, check_topology
from brain.persistence.xml_utils import (
    format_float,
    get_child,
    get_children,
    get_content_float,
    get_float,
    get_int,
    is_node_with_name,
    parse_document,
    to_document,
)

logger = logging.getLogger(__name__)

NETWORK = "network"
LAYER = "layer"
NEURON = "neuron"
WEIGHT = "weight"
TRAINING = "training"
BACKPROP = "backprop"
RPROP = "rprop"
RPROP_ETA = "resilient-eta"
RPROP_DELTA = "resilient-delta"


@dataclass
class NetworkDocument:
    """Validated content of a network document."""

    topology: Topology
    # Per layer: (weights, bias) per neuron, or None for fresh weights
    parameters: list[list[tuple[np.ndarray, float]] | None]


# ----------------------------------------------------------------------
# Writing
# ----------------------------------------------------------------------

def _write_learning(parent: Element, config: LearningConfig) -> None:
    training = SubElement(parent, TRAINING)
    if config.type is LearningType.RPROP:
        rprop = SubElement(training, RPROP)
        rprop.set("delta-init", format_float(config.delta_init))
        eta = SubElement(rprop, RPROP_ETA)
        eta.set("positive", format_float(config.eta_plus))
        eta.set("negative", format_float(config.eta_minus))
        delta = SubElement(rprop, RPROP_DELTA)
        delta.set("max", format_float(config.delta_max))
        delta.set("min", format_float(config.delta_min))
    else:
        backprop = SubElement(training, BACKPROP)
        backprop.set("learning-rate", format_float(config.learning_rate))
        backprop.set("momentum", format_float(config.momentum))


def serialize_network(network: Network) -> Element:
    """Build the XML element tree of a network."""
    root = Element(NETWORK)
    root.set("inputs", str(network.inputs))
    root.set("cost-function", network.cost.type.value)

    for layer in network.layers:
        node = SubElement(root, LAYER)
        node.set("neurons", str(layer.size))
        node.set("activation-function", layer.activation.type.value)
        node.set("dropout", format_float(layer.dropout))
        _write_learning(node, layer.learning)

        for neuron in layer.neurons:
            neuron_node = SubElement(node, NEURON)
            neuron_node.set("bias", format_float(neuron.bias))
            for weight in neuron.weights:
                SubElement(neuron_node, WEIGHT).text = format_float(weight)

    return root


def dumps(network: Network) -> str:
    """Serialize a network to an XML document string."""
    return to_document(serialize_network(network))


# ----------------------------------------------------------------------
# Reading
# ----------------------------------------------------------------------

def _read_learning(layer_node: Element, log: logging.Logger) -> LearningConfig:
    training = get_child(layer_node, TRAINING)
    if training is None:
        return LearningConfig()

    backprop = get_child(training, BACKPROP)
    if backprop is not None:
        fields = {
            "type": LearningType.BACKPROP,
            "learning_rate": get_float(backprop, "learning-rate", DEFAULT_LEARNING_RATE),
            "momentum": get_float(backprop, "momentum", DEFAULT_MOMENTUM),
        }
    else:
        rprop = get_child(training, RPROP)
        if rprop is None:
            tags = [child.tag for child in training]
            log.warning(f"Unknown learning rule {tags}, falling back to '{BACKPROP}'")
            return LearningConfig()
        fields = {
            "type": LearningType.RPROP,
            "delta_init": get_float(rprop, "delta-init", DEFAULT_DELTA_INIT),
            "eta_plus": DEFAULT_ETA_PLUS,
            "eta_minus": DEFAULT_ETA_MINUS,
            "delta_max": DEFAULT_DELTA_MAX,
            "delta_min": DEFAULT_DELTA_MIN,
        }
        eta = get_child(rprop, RPROP_ETA)
        if eta is not None:
            fields["eta_plus"] = get_float(eta, "positive", DEFAULT_ETA_PLUS)
            fields["eta_minus"] = get_float(eta, "negative", DEFAULT_ETA_MINUS)
        delta = get_child(rprop, RPROP_DELTA)
        if delta is not None:
            fields["delta_max"] = get_float(delta, "max", DEFAULT_DELTA_MAX)
            fields["delta_min"] = get_float(delta, "min", DEFAULT_DELTA_MIN)

    try:
        return LearningConfig(**fields)
    except ValidationError as e:
        raise PersistenceError(f"invalid learning configuration: {e}") from e


def _read_neuron(node: Element, inputs: int, where: str) -> tuple[np.ndarray, float]:
    bias = get_float(node, "bias", 0.0)
    weights = np.array(
        [get_content_float(w) for w in get_children(node, WEIGHT)], dtype=np.float64
    )
    if weights.shape[0] != inputs:
        raise PersistenceError(
            f"{where}: expected {inputs} weights, found {weights.shape[0]}"
        )
    return weights, bias


def _infer_inputs(root: Element, layer_nodes: list[Element]) -> int:
    declared = get_int(root, "inputs", None)
    if declared is not None:
        return declared
    first = get_child(layer_nodes[0], NEURON)
    if first is None:
        raise PersistenceError(
            "network 'inputs' attribute is missing and cannot be inferred"
        )
    return len(get_children(first, WEIGHT))


def read_document(tree: Element | ElementTree, log: logging.Logger | None = None) -> NetworkDocument:
    """
    Validate a network tree into a topology and parameters.

    Raises:
        PersistenceError: If a structural node is missing, a value is
            malformed, or the counts are inconsistent
    """
    log = log or logger
    root = tree.getroot() if isinstance(tree, ElementTree) else tree
    if not is_node_with_name(root, NETWORK):
        tag = None if root is None else root.tag
        raise PersistenceError(f"expected <{NETWORK}> root element, found <{tag}>")

    layer_nodes = get_children(root, LAYER)
    if not layer_nodes:
        raise PersistenceError(f"<{NETWORK}> has no <{LAYER}> elements")

    inputs = _infer_inputs(root, layer_nodes)
    cost = get_cost_type(root.get("cost-function"), log)

    specs: list[LayerSpec] = []
    parameters: list[list[tuple[np.ndarray, float]] | None] = []
    layer_inputs = inputs
    for index, node in enumerate(layer_nodes):
        where = f"layer {index}"
        neuron_nodes = get_children(node, NEURON)
        neurons = get_int(node, "neurons", None)
        if neurons is None:
            if not neuron_nodes:
                raise PersistenceError(f"{where}: no 'neurons' attribute and no <{NEURON}> elements")
            neurons = len(neuron_nodes)
        elif neuron_nodes and len(neuron_nodes) != neurons:
            raise PersistenceError(
                f"{where}: declares {neurons} neurons, found {len(neuron_nodes)}"
            )

        try:
            specs.append(
                LayerSpec(
                    neurons=neurons,
                    activation=get_activation_type(node.get("activation-function"), log),
                    dropout=get_float(node, "dropout", 0.0),
                    learning=_read_learning(node, log),
                )
            )
        except ValidationError as e:
            raise PersistenceError(f"{where}: {e}") from e

        if neuron_nodes:
            parameters.append(
                [
                    _read_neuron(n, layer_inputs, f"{where} neuron {i}")
                    for i, n in enumerate(neuron_nodes)
                ]
            )
        else:
            parameters.append(None)
        layer_inputs = neurons

    topology = Topology(inputs=inputs, layers=specs, cost=cost)
    try:
        check_topology(topology)
    except ConstructionError as e:
        raise PersistenceError(f"invalid topology: {e}") from e
    return NetworkDocument(topology=topology, parameters=parameters)


def deserialize_network(
    tree: Element | ElementTree,
    *,
    rng: np.random.Generator | None = None,
    log: logging.Logger | None = None,
) -> Network:
    """Build a new network from a tree; raises without side effects."""
    document = read_document(tree, log)
    try:
        return Network(document.topology, parameters=document.parameters, rng=rng, log=log)
    except ConstructionError as e:
        raise PersistenceError(f"cannot build network: {e}") from e


def loads(
    text: str | bytes,
    *,
    rng: np.random.Generator | None = None,
    log: logging.Logger | None = None,
) -> Network:
    """Build a network from an XML document string."""
    return deserialize_network(parse_document(text), rng=rng, log=log)


def restore_network(network: Network, tree: Element | ElementTree) -> None:
    """
    Copy weights and biases from a tree into an existing network.

    Everything is validated before the first assignment, so on error the
    network is left exactly as it was.

    Raises:
        PersistenceError: If the document is invalid, lacks weights, or
            describes a different shape
    """
    document = read_document(tree)
    if document.topology.sizes != network.topology.sizes:
        raise PersistenceError(
            f"document shape {document.topology.sizes} does not match "
            f"network shape {network.topology.sizes}"
        )
    for index, layer_parameters in enumerate(document.parameters):
        if layer_parameters is None:
            raise PersistenceError(f"layer {index}: document carries no weights")

    for layer, layer_parameters in zip(network.layers, document.parameters):
        for neuron, (weights, bias) in zip(layer.neurons, layer_parameters):
            neuron.set_parameters(weights, bias)
