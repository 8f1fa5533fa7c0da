import numpy as np
import pytest

from pssim.backends.numpy import NumpyBackend
from pssim.grid import Grid


@pytest.fixture
def backend() -> NumpyBackend:
    return NumpyBackend(seed=1234)


@pytest.fixture
def grid_1d() -> Grid:
    return Grid(sx=8, dx=1.0)


@pytest.fixture
def grid_2d() -> Grid:
    return Grid(sx=16, sy=16, dx=0.5, dy=0.5)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)
