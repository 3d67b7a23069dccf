"""
Tests for the nibabel bridge.
"""

import nibabel as nib
import numpy as np
import pytest

from imresample import from_array
from imresample.errors import ConfigurationError
from imresample.io import (
    affine_to_geometry,
    from_nibabel,
    geometry_to_affine,
    load,
    save,
    to_nibabel,
)


class TestAffine:
    """Test the affine <-> geometry translation."""

    def test_round_trip_3d(self, rotation_3d, tolerance):
        direction = rotation_3d(0.2, -0.4, 0.9)
        affine = geometry_to_affine([1, 2, 3], [0.5, 1.0, 2.5], direction)
        origin, spacing, back = affine_to_geometry(affine, 3)

        np.testing.assert_allclose(origin, [1, 2, 3], **tolerance)
        np.testing.assert_allclose(spacing, [0.5, 1.0, 2.5], **tolerance)
        np.testing.assert_allclose(back, direction, **tolerance)

    def test_2d_is_embedded(self):
        affine = geometry_to_affine([1, 2], [2, 3], [[0, -1], [1, 0]])
        expected = np.array(
            [[0, -3, 0, 1], [2, 0, 0, 2], [0, 0, 1, 0], [0, 0, 0, 1]], dtype=float
        )
        np.testing.assert_array_equal(affine, expected)

    def test_null_voxel_size(self):
        affine = np.eye(4)
        affine[1, 1] = 0
        with pytest.raises(ConfigurationError):
            affine_to_geometry(affine, 3)


class TestConversion:
    """Test in-memory conversion to and from nibabel images."""

    def test_round_trip_3d(self, create_random_image, rotation_3d, tolerance):
        image = create_random_image(
            (4, 5, 6), np.int16, origin=[-10, 5, 2], spacing=[1.5, 1.0, 3.0],
            direction=rotation_3d(0.1, 0.0, -0.3),
        )
        img = to_nibabel(image)
        assert isinstance(img, nib.Nifti1Image)
        assert img.get_data_dtype() == np.int16

        back = from_nibabel(img)
        assert back.dtype == np.int16
        np.testing.assert_array_equal(back.to_array(), image.to_array())
        np.testing.assert_allclose(back.origin, image.origin, **tolerance)
        np.testing.assert_allclose(back.spacing, image.spacing, **tolerance)
        np.testing.assert_allclose(back.direction, image.direction, **tolerance)

    def test_round_trip_2d(self):
        image = from_array(np.arange(6, dtype=np.float32).reshape(2, 3),
                           origin=[1, 2], spacing=[2, 3])
        back = from_nibabel(to_nibabel(image))

        assert back.dimension == 2
        np.testing.assert_array_equal(back.to_array(), image.to_array())
        np.testing.assert_array_equal(back.origin, [1, 2])
        np.testing.assert_array_equal(back.spacing, [2, 3])

    def test_dtype_override(self):
        img = nib.Nifti1Image(np.ones((2, 2, 2), dtype=np.float32), np.eye(4))
        assert from_nibabel(img, dtype=np.uint8).dtype == np.uint8

    def test_squeeze_trailing_singletons(self):
        img = nib.Nifti1Image(np.ones((2, 3, 4, 1), dtype=np.float32), np.eye(4))
        with pytest.warns(RuntimeWarning):
            image = from_nibabel(img)
        assert image.size == (2, 3, 4)

    def test_time_series_rejected(self):
        img = nib.Nifti1Image(np.ones((2, 3, 4, 5), dtype=np.float32), np.eye(4))
        with pytest.raises(ConfigurationError):
            from_nibabel(img)

    def test_not_a_spatial_image(self):
        with pytest.raises(TypeError):
            from_nibabel(np.zeros((2, 2)))


def test_save_load(tmp_path, create_random_image):
    image = create_random_image((3, 4, 5), np.float32, origin=[1, 2, 3], spacing=[0.5, 1, 2])
    fname = str(tmp_path / 'image.nii.gz')
    save(image, fname)
    back = load(fname)

    np.testing.assert_array_equal(back.to_array(), image.to_array())
    np.testing.assert_allclose(back.origin, image.origin, atol=1e-5)
    np.testing.assert_allclose(back.spacing, image.spacing, atol=1e-5)
    np.testing.assert_allclose(back.direction, image.direction, atol=1e-5)
