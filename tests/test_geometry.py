"""
Tests for the voxel <-> world mapping.
"""

import numpy as np
import pytest

from imresample.errors import (
    ConfigurationError,
    DimensionMismatchError,
    SingularDirectionError,
    SingularMatrixError,
)
from imresample.geometry import AffineGeometry, as_direction, as_size


class TestIndexToPhysical:
    """Test the forward map."""

    def test_axis_aligned(self):
        geom = AffineGeometry([0.5, 0.5], [2.0, 3.0])
        np.testing.assert_array_equal(geom.index_to_physical([1, 2]), [2.5, 6.5])

    def test_rotation(self):
        geom = AffineGeometry([2, 0], [1, 1], [[0, -1], [1, 0]])
        np.testing.assert_array_equal(geom.index_to_physical([0, 0]), [2, 0])
        np.testing.assert_array_equal(geom.index_to_physical([1, 0]), [2, 1])
        np.testing.assert_array_equal(geom.index_to_physical([0, 1]), [1, 0])

    def test_affine_matrix(self):
        geom = AffineGeometry([1, 2, 3], [2, 3, 4])
        expected = np.array(
            [[2, 0, 0, 1], [0, 3, 0, 2], [0, 0, 4, 3], [0, 0, 0, 1]], dtype=float
        )
        np.testing.assert_array_equal(geom.affine, expected)
        point = geom.affine @ np.array([1, 1, 1, 1])
        np.testing.assert_array_equal(geom.index_to_physical([1, 1, 1]), point[:3])


class TestPhysicalToIndex:
    """Test the inverse map."""

    def test_axis_aligned(self):
        geom = AffineGeometry([0.5, 0.5], [0.5, 0.5])
        np.testing.assert_array_equal(geom.physical_to_index([2.75, 1.0]), [4.5, 1.0])

    def test_rotation(self):
        geom = AffineGeometry([2, 0], [1, 1], [[0, -1], [1, 0]])
        np.testing.assert_array_equal(geom.physical_to_index([2, 1]), [1, 0])

    def test_round_trip_3d(self, rng, rotation_3d, tolerance):
        geom = AffineGeometry([10, -5, 3], [0.7, 1.3, 2.1], rotation_3d(0.3, -0.7, 1.1))
        for point in rng.uniform(-50, 50, size=(20, 3)):
            back = geom.index_to_physical(geom.physical_to_index(point))
            np.testing.assert_allclose(back, point, **tolerance)

    def test_round_trip_not_orthonormal(self, rng, tolerance):
        """The composed system is solved, so shear is handled exactly."""
        with pytest.warns(RuntimeWarning):
            geom = AffineGeometry([1, 2], [0.5, 2.0], [[1, 0.5], [0.2, 1]])
        for point in rng.uniform(-10, 10, size=(20, 2)):
            back = geom.index_to_physical(geom.physical_to_index(point))
            np.testing.assert_allclose(back, point, **tolerance)

    def test_singular_direction(self):
        with pytest.warns(RuntimeWarning):
            geom = AffineGeometry([0, 0], [1, 1], [1, 2, 2, 4])
        with pytest.raises(SingularDirectionError) as info:
            geom.physical_to_index([1, 1])
        assert isinstance(info.value, SingularMatrixError)

    def test_point_length_mismatch(self):
        geom = AffineGeometry([0, 0], [1, 1])
        with pytest.raises(DimensionMismatchError):
            geom.physical_to_index([1, 2, 3])


class TestValidation:
    """Test geometry validation."""

    @pytest.mark.parametrize('spacing', [[0, 1], [1, -2], [1, np.inf]])
    def test_non_positive_spacing(self, spacing):
        with pytest.raises(ConfigurationError):
            AffineGeometry([0, 0], spacing)

    def test_unsupported_dimension(self):
        with pytest.raises(ConfigurationError):
            AffineGeometry([0, 0, 0, 0], [1, 1, 1, 1])

    def test_origin_length(self):
        with pytest.raises(DimensionMismatchError):
            AffineGeometry([0, 0, 0], [1, 1])

    def test_default_direction(self):
        assert np.array_equal(AffineGeometry([0, 0, 0], [1, 1, 1]).direction, np.eye(3))

    def test_equality(self):
        assert AffineGeometry([0, 0], [1, 2]) == AffineGeometry([0, 0], [1, 2])
        assert AffineGeometry([0, 0], [1, 2]) != AffineGeometry([0, 1], [1, 2])


class TestAsDirection:
    """Test the accepted direction layouts."""

    def test_flat(self):
        np.testing.assert_array_equal(as_direction([0, -1, 1, 0], 2), [[0, -1], [1, 0]])

    def test_flat_3x3_for_2d(self):
        d = as_direction([0, -1, 0, 1, 0, 0, 0, 0, 1], 2)
        np.testing.assert_array_equal(d, [[0, -1], [1, 0]])

    def test_matrix_3x3_for_2d(self):
        np.testing.assert_array_equal(as_direction(np.eye(3), 2), np.eye(2))

    def test_wrong_shape(self):
        with pytest.raises(DimensionMismatchError):
            as_direction(np.eye(2), 3)


class TestBatchMaps:
    """Test the maps applied to many indices or points at once."""

    def test_indices_to_physical(self, rng, rotation_3d):
        geom = AffineGeometry([1, -2, 3], [0.5, 1.5, 2.0], rotation_3d(0.2, 0.4, -0.3))
        indices = rng.uniform(-2, 6, size=(15, 3))
        expected = [geom.index_to_physical(index) for index in indices]
        np.testing.assert_allclose(geom.indices_to_physical(indices), expected, atol=1e-12)

    def test_physical_to_indices(self, rng, tolerance):
        geom = AffineGeometry([2, 0], [1, 3], [[0, -1], [1, 0]])
        points = rng.uniform(-10, 10, size=(25, 2))
        indices = geom.physical_to_indices(points)

        assert indices.shape == (25, 2)
        for point, index in zip(points, indices):
            np.testing.assert_allclose(index, geom.physical_to_index(point), **tolerance)
        np.testing.assert_allclose(geom.indices_to_physical(indices), points, **tolerance)

    def test_singular_direction(self):
        with pytest.warns(RuntimeWarning):
            geom = AffineGeometry([0, 0], [1, 1], [1, 2, 2, 4])
        with pytest.raises(SingularDirectionError):
            geom.physical_to_indices(np.ones((3, 2)))

    def test_shape_mismatch(self):
        geom = AffineGeometry([0, 0], [1, 1])
        with pytest.raises(DimensionMismatchError):
            geom.physical_to_indices(np.ones((3, 3)))
        with pytest.raises(DimensionMismatchError):
            geom.indices_to_physical([1, 1])

    def test_non_finite(self):
        geom = AffineGeometry([0, 0], [1, 1])
        with pytest.raises(ConfigurationError):
            geom.physical_to_indices([[0, 0], [np.nan, 1]])


class TestFiniteness:
    """Non-finite coordinates are configuration errors."""

    @pytest.mark.parametrize('origin', [[np.nan, 0], [0, np.inf], [-np.inf, 1]])
    def test_origin(self, origin):
        with pytest.raises(ConfigurationError):
            AffineGeometry(origin, [1, 1])

    @pytest.mark.parametrize('point', [[np.nan, 0], [np.inf, 0], [0, -np.inf]])
    def test_point(self, point):
        geom = AffineGeometry([0, 0], [1, 1])
        with pytest.raises(ConfigurationError):
            geom.physical_to_index(point)


class TestAsSize:
    """Test size validation."""

    def test_integers(self):
        assert as_size([3, 4.0, np.int64(5)]) == (3, 4, 5)

    @pytest.mark.parametrize('size', [[2.7, 2], [2, 0], [-1, 3], [np.nan, 2], [np.inf, 2]])
    def test_invalid(self, size):
        with pytest.raises(ConfigurationError):
            as_size(size)
