"""XML persistence for brain networks."""

from brain.persistence.codec import (
    NetworkDocument,
    deserialize_network,
    dumps,
    loads,
    read_document,
    restore_network,
    serialize_network,
)
from brain.persistence.storage import load_network, save_network

__all__ = [
    "NetworkDocument",
    "deserialize_network",
    "dumps",
    "loads",
    "read_document",
    "restore_network",
    "serialize_network",
    "load_network",
    "save_network",
]
