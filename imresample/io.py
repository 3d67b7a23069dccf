"""Conversion between :class:`Image` and nibabel spatial images.

File formats are handled by nibabel; this module only translates its
voxel-to-world affine into an origin, a spacing and a direction, and
back. nibabel affines follow the same convention as :class:`Image`::

    affine[:dim, :dim] = direction @ diag(spacing)
    affine[:dim, dim]  = origin

"""

from warnings import warn
import nibabel as nb
import numpy as np
from nibabel.spatialimages import SpatialImage
from .errors import ConfigurationError
from .geometry import check_dim
from .image import Image


def geometry_to_affine(origin, spacing, direction):
    """Build a 4x4 voxel-to-world matrix.

    Two-dimensional geometries are embedded in 3D, with an identity
    third axis.

    Parameters
    ----------
    origin : (dim,) vector_like
    spacing : (dim,) vector_like
    direction : (dim, dim) matrix_like

    Returns
    -------
    affine : (4, 4) np.ndarray

    """
    origin = np.asarray(origin, dtype=np.float64)
    spacing = np.asarray(spacing, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    dim = check_dim(origin.shape[0])
    mat = np.eye(4, dtype=np.float64)
    mat[:dim, :dim] = direction * spacing[None, :]
    mat[:dim, 3] = origin
    return mat


def affine_to_geometry(affine, dim):
    """Split a voxel-to-world matrix into origin, spacing and direction.

    Parameters
    ----------
    affine : (D+1, D+1) matrix_like, with D >= dim
    dim : {2, 3}

    Returns
    -------
    origin : (dim,) np.ndarray
    spacing : (dim,) np.ndarray
        Norm of each column of the linear part
    direction : (dim, dim) np.ndarray
        Columns of the linear part, normalised

    """
    affine = np.asarray(affine, dtype=np.float64)
    dim = check_dim(dim)
    last = affine.shape[1] - 1
    mat = affine[:dim, :dim]
    spacing = np.sqrt((mat ** 2).sum(axis=0))
    if np.any(spacing == 0):
        raise ConfigurationError('Affine has a null voxel size: {}'
                                 .format(spacing.tolist()))
    direction = mat / spacing[None, :]
    origin = affine[:dim, last].copy()
    return origin, spacing, direction


def from_nibabel(img, dtype=None):
    """Convert a nibabel spatial image.

    Parameters
    ----------
    img : nib.spatialimages.SpatialImage
        Input image. Trailing singleton dimensions beyond the third
        are squeezed.
    dtype : type or str, default=on-disk data type (after scaling)

    Returns
    -------
    image : Image

    """
    if not isinstance(img, SpatialImage):
        raise TypeError("Input type '{}' not handled".format(type(img)))
    data = np.asanyarray(img.dataobj)
    if data.ndim > 3:
        if any(s != 1 for s in data.shape[3:]):
            raise ConfigurationError('Only 2D and 3D images are supported. '
                                     'Got shape {}.'.format(data.shape))
        warn('Squeezing trailing singleton dimensions of shape {}'
             .format(data.shape), RuntimeWarning)
        data = data.reshape(data.shape[:3])
    dim = check_dim(data.ndim)
    data = np.array(data, dtype=dtype, copy=True, order='C')
    origin, spacing, direction = affine_to_geometry(img.affine, dim)
    return Image(data, spacing=spacing, origin=origin, direction=direction)


def to_nibabel(image, klass=nb.Nifti1Image):
    """Convert to a nibabel spatial image.

    Parameters
    ----------
    image : Image
    klass : type, default=nib.Nifti1Image
        nibabel image class

    Returns
    -------
    img : nib.spatialimages.SpatialImage

    """
    affine = geometry_to_affine(image.origin, image.spacing, image.direction)
    data = image.to_array()
    header = klass.header_class()
    header.set_data_dtype(data.dtype)
    return klass(data, affine, header=header)


def load(fname, dtype=None):
    """Load an image from any file format readable by nibabel."""
    return from_nibabel(nb.load(fname), dtype=dtype)


def save(image, fname, klass=nb.Nifti1Image):
    """Save an image to a file (format chosen from the class)."""
    nb.save(to_nibabel(image, klass), fname)
