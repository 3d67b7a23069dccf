"""
Test configuration and fixtures for imresample tests.
"""

import numpy as np
import pytest

from imresample import from_array


@pytest.fixture
def rng():
    """Seeded random generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def create_image_3x3():
    """Create the 3x3 test image [[1, 2, 3], [4, 5, 6], [7, 8, 9]]."""

    def _create_image(dtype=np.uint8, **kwargs):
        data = np.arange(1, 10, dtype=dtype).reshape(3, 3)
        return from_array(data, **kwargs)

    return _create_image


@pytest.fixture
def create_random_image(rng):
    """Create a random image with an arbitrary geometry."""

    def _create_image(shape, dtype=np.float64, **kwargs):
        if np.issubdtype(np.dtype(dtype), np.integer):
            data = rng.integers(0, 100, size=shape).astype(dtype)
        else:
            data = rng.random(shape).astype(dtype)
        return from_array(data, **kwargs)

    return _create_image


@pytest.fixture
def rotation_3d():
    """Create a 3D rotation matrix from Euler angles (radians)."""

    def _rotation(rx=0.0, ry=0.0, rz=0.0):
        cx, sx = np.cos(rx), np.sin(rx)
        cy, sy = np.cos(ry), np.sin(ry)
        cz, sz = np.cos(rz), np.sin(rz)
        Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
        Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
        Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
        return Rz @ Ry @ Rx

    return _rotation


@pytest.fixture
def tolerance():
    """Default tolerance for numerical comparisons."""
    return {'rtol': 1e-9, 'atol': 1e-9}
