"""
brain XOR Demo

Trains a 2-2-1 sigmoid network on XOR, first with backpropagation and
then with Rprop, saves the result and reloads it from disk.
"""

import tempfile
from pathlib import Path

import numpy as np

from brain import LearningConfig, Network, Topology
from brain.observability import TrainingRun, configure_logging

XOR = [
    ([0.0, 0.0], [0.0]),
    ([0.0, 1.0], [1.0]),
    ([1.0, 0.0], [1.0]),
    ([1.0, 1.0], [0.0]),
]


def train(net: Network, name: str, epochs: int) -> None:
    with TrainingRun(name, log_every=epochs // 5, sizes=net.topology.sizes) as run:
        for epoch in range(epochs):
            run.record(epoch, sum(net.train(x, y) for x, y in XOR))
    print(f"  {name}: {run.epochs} epochs, final loss {run.last_loss:.6f}")


def show(net: Network) -> None:
    for x, y in XOR:
        print(f"    {x} -> {net.predict(x)[0]:.4f} (target {y[0]:.0f})")


def demo_backprop() -> Network:
    print("\n[1] Backpropagation")
    net = Network.create(Topology.from_sizes([2, 2, 1]), rng=np.random.default_rng(1))
    train(net, "xor-backprop", 5000)
    show(net)
    return net


def demo_rprop() -> Network:
    print("\n[2] Rprop")
    topology = Topology.from_sizes([2, 3, 1], learning=LearningConfig(type="rprop"))
    net = Network.create(topology, rng=np.random.default_rng(1))
    train(net, "xor-rprop", 1000)
    show(net)
    return net


def demo_persistence(net: Network) -> None:
    print("\n[3] Save and reload")
    with tempfile.TemporaryDirectory() as tmpdir:
        path = net.save(Path(tmpdir) / "xor.xml")
        copy = Network.load(path)
        same = all(np.array_equal(net.predict(x), copy.predict(x)) for x, _ in XOR)
        print(f"  {path.name}: {path.stat().st_size} bytes, identical predictions: {same}")


if __name__ == "__main__":
    configure_logging(level="INFO")
    print("=" * 60)
    print("  BRAIN XOR DEMO")
    print("=" * 60)

    demo_backprop()
    demo_persistence(demo_rprop())

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)
