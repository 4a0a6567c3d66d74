"""
Pytest configuration for brain tests.

Provides seeded generators, small topologies and settings isolation.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Fresh settings per test, with no seed leaking in from the environment."""
    from brain.core.config import get_settings

    monkeypatch.delenv("BRAIN_SEED", raising=False)
    monkeypatch.delenv("BRAIN_LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def rng():
    """Seeded generator for reproducible initialization."""
    return np.random.default_rng(1234)


@pytest.fixture
def xor_samples():
    return [
        ([0.0, 0.0], [0.0]),
        ([0.0, 1.0], [1.0]),
        ([1.0, 0.0], [1.0]),
        ([1.0, 1.0], [0.0]),
    ]
