"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def shifted_samples(rng):
    """Two small normal samples, y shifted up by 2 relative to x."""
    x = rng.normal(0.0, 1.0, 8)
    y = rng.normal(2.0, 1.0, 8)
    return x, y


@pytest.fixture
def separated_samples():
    """Fully separated constant samples: every value of y exceeds x."""
    x = np.zeros(5)
    y = np.full(5, 5.0)
    return x, y
