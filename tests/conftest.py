"""
Shared fixtures for the streamclust test suite.
"""

import numpy as np
import pytest


@pytest.fixture
def six_points():
    """Two well separated triangles in the plane."""
    return np.array([
        [0.0, 0.0], [0.0, 1.0], [1.0, 0.0],
        [10.0, 10.0], [10.0, 11.0], [11.0, 10.0],
    ])


@pytest.fixture
def two_families():
    """
    Twelve 3D streamlines of 10 vertices: six run along x, six along y.

    Returned as a flattened (12, 30) matrix.
    """
    rng = np.random.default_rng(7)
    t = np.linspace(0.0, 9.0, 10)
    curves = []
    for offset in range(6):
        line = np.column_stack([t, np.full(10, 0.1 * offset), np.zeros(10)])
        curves.append(line + rng.normal(scale=0.01, size=line.shape))
    for offset in range(6):
        line = np.column_stack([np.full(10, 20.0 + 0.1 * offset), t, np.zeros(10)])
        curves.append(line + rng.normal(scale=0.01, size=line.shape))
    return np.vstack([c.reshape(-1) for c in curves])
