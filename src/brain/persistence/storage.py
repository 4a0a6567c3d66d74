"""
File storage for network documents.

Writes go through a temp file + fsync + rename so the target path only
ever holds a complete document. Reads are a single buffered read
followed by a full parse; a failure yields no network.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import numpy as np

from brain.core.validation import PersistenceError
from brain.nn.network import Network
from brain.persistence.codec import dumps, loads

logger = logging.getLogger(__name__)


def atomic_write(path: Path, data: bytes) -> None:
    """Write data atomically using temp file + rename."""
    # Write to temp file in same directory
    tmp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename
        os.replace(tmp_path, path)

        # Sync directory to ensure rename is durable
        if hasattr(os, "O_DIRECTORY"):
            dir_fd = os.open(str(path.parent), os.O_RDONLY | os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)

    except Exception:
        # Clean up temp file on failure
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def save_network(network: Network, path: Path | str) -> Path:
    """
    Save a network document.

    Args:
        network: Network to save
        path: Destination file; parent directories are created

    Returns:
        The resolved destination path

    Raises:
        PersistenceError: If the file cannot be written
    """
    path = Path(path)
    data = dumps(network).encode("utf-8")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(path, data)
    except OSError as e:
        raise PersistenceError(f"cannot write network document: {e}", path=path) from e

    logger.info(f"Saved network {network.topology.sizes} to {path} ({len(data)} bytes)")
    return path


def load_network(
    path: Path | str,
    *,
    rng: np.random.Generator | None = None,
    log: logging.Logger | None = None,
) -> Network:
    """
    Load a network document.

    Raises:
        PersistenceError: If the file cannot be read or is invalid

    ``rng`` seeds layers the document describes without weights.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise PersistenceError(f"cannot read network document: {e}", path=path) from e

    try:
        network = loads(data, rng=rng, log=log)
    except PersistenceError as e:
        if e.path is None:
            e.path = path
        raise

    (log or logger).info(f"Loaded network {network.topology.sizes} from {path}")
    return network
