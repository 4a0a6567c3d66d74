"""
Tests for network document files.
"""

import os

import numpy as np
import pytest

from brain.core.config import Topology
from brain.core.validation import PersistenceError
from brain.nn.network import Network
from brain.persistence.storage import atomic_write, load_network, save_network


@pytest.fixture
def net(rng):
    return Network.create(Topology.from_sizes([2, 3, 1]), rng=rng)


class TestSaveLoad:
    def test_round_trip(self, net, tmp_path):
        path = net.save(tmp_path / "xor.xml")
        assert path.exists()
        copy = Network.load(path)
        assert copy.topology == net.topology
        x = [0.25, 0.75]
        assert net.predict(x).tobytes() == copy.predict(x).tobytes()

    def test_creates_parent_directories(self, net, tmp_path):
        path = save_network(net, tmp_path / "a" / "b" / "net.xml")
        assert path.parent.is_dir()

    def test_no_temp_file_left(self, net, tmp_path):
        save_network(net, tmp_path / "net.xml")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["net.xml"]

    def test_overwrite(self, net, tmp_path, rng):
        path = tmp_path / "net.xml"
        save_network(Network.create(Topology.from_sizes([2, 3, 1]), rng=rng), path)
        save_network(net, path)
        copy = load_network(path)
        np.testing.assert_array_equal(copy.layer(0).neuron(0).weights, net.layer(0).neuron(0).weights)

    def test_topology_only_file_uses_given_generator(self, tmp_path):
        path = tmp_path / "shape.xml"
        path.write_text("<network inputs='2'><layer neurons='2'/><layer neurons='1'/></network>")
        a = load_network(path, rng=np.random.default_rng(5))
        b = Network.load(path, rng=np.random.default_rng(5))
        for layer_a, layer_b in zip(a.layers, b.layers):
            for na, nb in zip(layer_a, layer_b):
                np.testing.assert_array_equal(na.weights, nb.weights)
                assert na.bias == nb.bias


class TestFailures:
    def test_missing_file(self, tmp_path):
        path = tmp_path / "missing.xml"
        with pytest.raises(PersistenceError) as info:
            load_network(path)
        assert info.value.path == path

    def test_malformed_file_carries_path(self, tmp_path):
        path = tmp_path / "broken.xml"
        path.write_text("<network inputs='2'><layer neurons='1'>")
        with pytest.raises(PersistenceError) as info:
            load_network(path)
        assert info.value.path == path

    def test_failed_replace_keeps_previous_document(self, net, tmp_path, monkeypatch):
        path = tmp_path / "net.xml"
        path.write_bytes(b"previous")

        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(PersistenceError) as info:
            save_network(net, path)
        assert info.value.path == path
        assert path.read_bytes() == b"previous"
        assert not path.with_suffix(".xml.tmp").exists()

    def test_atomic_write_cleans_up_on_error(self, tmp_path, monkeypatch):
        path = tmp_path / "data.bin"
        def fail(fd):
            raise OSError("io")

        monkeypatch.setattr(os, "fsync", fail)
        with pytest.raises(OSError):
            atomic_write(path, b"payload")
        assert list(tmp_path.iterdir()) == []
