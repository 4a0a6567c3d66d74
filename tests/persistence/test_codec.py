"""
Tests for the XML network codec.
"""

import logging
from xml.etree.ElementTree import fromstring

import numpy as np
import pytest

from brain.core.config import LayerSpec, Topology
from brain.core.validation import PersistenceError
from brain.nn.activation import ActivationType
from brain.nn.cost import CostType
from brain.nn.learning import LearningConfig, LearningType
from brain.nn.network import Network
from brain.persistence.codec import (
    deserialize_network,
    dumps,
    loads,
    read_document,
    restore_network,
    serialize_network,
)

TWO_LAYER = """<?xml version="1.0"?>
<network inputs="2" cost-function="quadratic">
  <layer neurons="2" activation-function="tanh">
    <neuron bias="0.5"><weight>0.25</weight><weight>-0.75</weight></neuron>
    <neuron bias="-0.5"><weight>1.0</weight><weight>2.0</weight></neuron>
  </layer>
  <layer neurons="1" activation-function="identity">
    <neuron bias="0.0"><weight>0.5</weight><weight>0.5</weight></neuron>
  </layer>
</network>
"""


def _parameters(net):
    return [(n.weights, n.bias) for layer in net.layers for n in layer]


@pytest.fixture
def net(rng):
    topology = Topology(
        inputs=3,
        layers=[
            LayerSpec(neurons=4, activation="tanh", dropout=0.25),
            LayerSpec(
                neurons=2,
                activation="softplus",
                learning=LearningConfig(
                    type="rprop", eta_plus=1.3, eta_minus=0.4, delta_max=7.5, delta_min=1e-4, delta_init=0.2
                ),
            ),
        ],
        cost="cross-entropy",
    )
    return Network.create(topology, rng=rng)


class TestRoundTrip:
    """Writing then reading a network preserves everything that matters."""

    def test_tree_round_trip(self, net):
        copy = deserialize_network(serialize_network(net))
        assert copy.topology == net.topology
        for (wa, ba), (wb, bb) in zip(_parameters(net), _parameters(copy)):
            np.testing.assert_array_equal(wa, wb)
            assert ba == bb

    def test_copy_predicts_identically(self, net):
        copy = loads(dumps(net))
        x = [0.3, -0.6, 0.9]
        assert net.predict(x).tobytes() == copy.predict(x).tobytes()

    def test_document_text(self, net):
        text = net.dumps()
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert 'cost-function="cross-entropy"' in text
        assert 'activation-function="softplus"' in text
        assert "<resilient-eta" in text

    def test_rprop_configuration_survives(self, net):
        copy = Network.loads(net.dumps())
        learning = copy.layer(1).learning
        assert learning.type is LearningType.RPROP
        assert learning.eta_plus == 1.3
        assert learning.eta_minus == 0.4
        assert learning.delta_max == 7.5
        assert learning.delta_min == 1e-4
        assert learning.delta_init == 0.2
        assert copy.layer(0).dropout == 0.25

    def test_trained_network_round_trip(self, rng, xor_samples):
        net = Network.create(Topology.from_sizes([2, 3, 1]), rng=rng)
        for _ in range(20):
            for x, y in xor_samples:
                net.train(x, y)
        copy = Network.from_tree(net.to_tree())
        for x, _ in xor_samples:
            assert net.predict(x).tobytes() == copy.predict(x).tobytes()


class TestReading:
    def test_weights_are_positional(self):
        net = loads(TWO_LAYER)
        np.testing.assert_array_equal(net.layer(0).neuron(0).weights, [0.25, -0.75])
        np.testing.assert_array_equal(net.layer(0).neuron(1).weights, [1.0, 2.0])
        assert net.layer(0).neuron(1).bias == -0.5
        assert net.layer(0).activation.type is ActivationType.TANH

    def test_defaults_for_missing_attributes(self):
        net = loads(TWO_LAYER)
        layer = net.layer(1)
        assert layer.dropout == 0.0
        assert layer.learning == LearningConfig()

    def test_backprop_attributes(self):
        doc = TWO_LAYER.replace(
            '<layer neurons="1" activation-function="identity">',
            '<layer neurons="1" activation-function="identity">'
            '<training><backprop learning-rate="0.3" momentum="0.1"/></training>',
        )
        learning = loads(doc).layer(1).learning
        assert learning.type is LearningType.BACKPROP
        assert learning.learning_rate == 0.3
        assert learning.momentum == 0.1

    def test_unknown_tags_fall_back(self, caplog):
        doc = (
            TWO_LAYER.replace('cost-function="quadratic"', 'cost-function="hinge"')
            .replace('activation-function="tanh"', 'activation-function="swish"')
            .replace(
                '<layer neurons="1" activation-function="identity">',
                '<layer neurons="1" activation-function="identity"><training><adam/></training>',
            )
        )
        with caplog.at_level(logging.WARNING):
            net = loads(doc)
        assert net.cost.type is CostType.QUADRATIC
        assert net.layer(0).activation.type is ActivationType.SIGMOID
        assert net.layer(1).learning.type is LearningType.BACKPROP
        assert "hinge" in caplog.text
        assert "swish" in caplog.text

    def test_inputs_inferred_from_weights(self):
        net = loads(TWO_LAYER.replace(' inputs="2"', ""))
        assert net.inputs == 2

    def test_topology_only_document(self, rng):
        doc = """<network inputs="3">
          <layer neurons="5" activation-function="relu"/>
          <layer neurons="2"/>
        </network>"""
        net = deserialize_network(fromstring(doc), rng=rng)
        assert net.topology.sizes == [3, 5, 2]
        assert all(np.all(np.abs(n.weights) <= 1.0 / 3) for n in net.layer(0))

    def test_topology_only_text_uses_given_generator(self):
        doc = "<network inputs='2'><layer neurons='3'/><layer neurons='1'/></network>"
        a = loads(doc, rng=np.random.default_rng(21))
        b = Network.loads(doc, rng=np.random.default_rng(21))
        for (wa, ba), (wb, bb) in zip(_parameters(a), _parameters(b)):
            np.testing.assert_array_equal(wa, wb)
            assert ba == bb

    def test_neuron_count_from_children(self):
        net = loads(TWO_LAYER.replace('neurons="2" ', ""))
        assert net.layer(0).size == 2

    def test_read_document_is_side_effect_free(self):
        document = read_document(fromstring(TWO_LAYER))
        assert document.topology.sizes == [2, 2, 1]
        assert len(document.parameters) == 2


class TestMalformedDocuments:
    """Every malformed document raises PersistenceError and yields no network."""

    @pytest.mark.parametrize(
        "doc",
        [
            pytest.param("<model inputs='2'><layer neurons='1'/></model>", id="wrong-root"),
            pytest.param("<network inputs='2'/>", id="no-layers"),
            pytest.param("<network inputs='2'><layer neurons='0'/></network>", id="empty-layer"),
            pytest.param("<network inputs='0'><layer neurons='1'/></network>", id="no-inputs"),
            pytest.param("<network inputs='x'><layer neurons='1'/></network>", id="bad-inputs"),
            pytest.param("<network><layer neurons='1'/></network>", id="inputs-unknowable"),
            pytest.param("<network inputs='1'><layer/></network>", id="no-neuron-count"),
            pytest.param(
                "<network inputs='1'><layer neurons='1' dropout='1.5'/></network>", id="bad-dropout"
            ),
        ],
    )
    def test_structure(self, doc):
        with pytest.raises(PersistenceError):
            loads(doc)

    def test_malformed_bias(self):
        with pytest.raises(PersistenceError, match="bias"):
            loads(TWO_LAYER.replace('bias="0.5"', 'bias="half"'))

    def test_malformed_weight(self):
        with pytest.raises(PersistenceError):
            loads(TWO_LAYER.replace("<weight>0.25</weight>", "<weight>a quarter</weight>"))

    def test_weight_count_mismatch(self):
        with pytest.raises(PersistenceError, match="expected 2 weights"):
            loads(TWO_LAYER.replace("<weight>-0.75</weight>", ""))

    def test_neuron_count_mismatch(self):
        with pytest.raises(PersistenceError, match="declares 3 neurons"):
            loads(TWO_LAYER.replace('neurons="2"', 'neurons="3"'))

    def test_not_xml(self):
        with pytest.raises(PersistenceError):
            loads("<network inputs='2'><layer>")

    def test_entity_declarations_rejected(self):
        doc = '<!DOCTYPE network [<!ENTITY x "1">]><network inputs="&x;"><layer neurons="1"/></network>'
        with pytest.raises(PersistenceError):
            loads(doc)

    def test_invalid_rprop_bounds(self):
        doc = """<network inputs="1"><layer neurons="1"><training>
          <rprop><resilient-delta max="0.1" min="1.0"/></rprop>
        </training></layer></network>"""
        with pytest.raises(PersistenceError):
            loads(doc)


class TestRestore:
    def test_restores_weights(self, rng):
        target = Network.create(Topology.from_sizes([2, 2, 1]), rng=rng)
        target.restore(fromstring(TWO_LAYER))
        np.testing.assert_array_equal(target.layer(1).neuron(0).weights, [0.5, 0.5])
        assert target.layer(0).neuron(0).bias == 0.5

    def test_shape_mismatch(self, rng):
        target = Network.create(Topology.from_sizes([2, 3, 1]), rng=rng)
        before = _parameters(target)
        with pytest.raises(PersistenceError, match="shape"):
            restore_network(target, fromstring(TWO_LAYER))
        for (wa, ba), (wb, bb) in zip(before, _parameters(target)):
            np.testing.assert_array_equal(wa, wb)
            assert ba == bb

    def test_error_in_last_layer_leaves_network_untouched(self, rng):
        """A bad value late in the document must not half-restore the network."""
        target = Network.create(Topology.from_sizes([2, 2, 1]), rng=rng)
        before = _parameters(target)
        doc = TWO_LAYER.replace('<neuron bias="0.0">', '<neuron bias="oops">')
        with pytest.raises(PersistenceError):
            target.restore(fromstring(doc))
        for (wa, ba), (wb, bb) in zip(before, _parameters(target)):
            np.testing.assert_array_equal(wa, wb)
            assert ba == bb

    def test_document_without_weights(self, rng):
        target = Network.create(Topology.from_sizes([2, 2, 1]), rng=rng)
        doc = "<network inputs='2'><layer neurons='2'/><layer neurons='1'/></network>"
        with pytest.raises(PersistenceError, match="no weights"):
            target.restore(fromstring(doc))
