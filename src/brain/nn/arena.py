"""
Signal arena: the single owner of every buffer a network passes around.

For input size n0 and layer sizes n1..nL the arena holds

    signals[0]      network input                       (n0)
    signals[k]      output of layer k-1                 (nk)
    errors[k]       input-error accumulator of layer k  (len(signals[k]))
    errors[L]       output error seeding backpropagation (nL)

Layer k reads ``signals[k]``, writes ``signals[k+1]``, collects upstream
error in ``errors[k]`` and takes its own error from ``errors[k+1]``.
Adjacent layers therefore share storage through a common index instead
of holding references into each other. Buffers are allocated once and
only written in place.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


class SignalArena:
    """Fixed set of float64 signal and error buffers indexed by position."""

    def __init__(self, sizes: Sequence[int]):
        """
        Allocate buffers.

        Args:
            sizes: Input size followed by each layer's neuron count
        """
        if len(sizes) < 2:
            raise ValueError("arena needs an input size and at least one layer")
        self._sizes = tuple(int(s) for s in sizes)
        self._signals = [np.zeros(n, dtype=np.float64) for n in self._sizes]
        self._errors = [np.zeros(n, dtype=np.float64) for n in self._sizes]

    @property
    def sizes(self) -> tuple[int, ...]:
        return self._sizes

    def signal(self, index: int) -> np.ndarray:
        return self._signals[index]

    def error(self, index: int) -> np.ndarray:
        return self._errors[index]

    @property
    def input(self) -> np.ndarray:
        return self._signals[0]

    @property
    def output(self) -> np.ndarray:
        return self._signals[-1]

    @property
    def output_error(self) -> np.ndarray:
        return self._errors[-1]

    def load_input(self, values: np.ndarray) -> None:
        """Copy a validated input vector into the input buffer."""
        self._signals[0][:] = values

    def __repr__(self) -> str:
        return f"SignalArena(sizes={list(self._sizes)})"
