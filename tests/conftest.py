"""Root pytest configuration for all tests."""

import multiprocessing

import numpy as np
import pytest

from grid_taskr import SharedGrid

# Worker processes are started with spawn on every platform so the tests
# behave the same on Linux, macOS and Windows.
SPAWN_CTX = multiprocessing.get_context("spawn")


@pytest.fixture
def spawn_context():
    """Provide spawn multiprocessing context for tests."""
    return SPAWN_CTX


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def shared_pair(rng):
    """A random 8x8 shared source grid and a zeroed shared target grid."""
    source = SharedGrid.from_array(rng.random((8, 8)))
    target = SharedGrid((8, 8), dtype=source.dtype)
    try:
        yield source, target
    finally:
        target.close()
        source.close()
