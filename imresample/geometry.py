"""Voxel <-> world mapping of an image.

An image places voxel ``index`` at the physical point::

    point = D @ diag(spacing) @ index + origin

where ``D`` is the (row-major) direction cosine matrix. Axis ``k`` of the
index is axis ``k`` of the pixel array.

"""

from warnings import warn
import numpy as np
from .errors import ConfigurationError, DimensionMismatchError, \
                    SingularMatrixError, SingularDirectionError
from .linalg import solve_linear, is_orthonormal

SUPPORTED_DIMS = (2, 3)


def check_dim(dim):
    dim = int(dim)
    if dim not in SUPPORTED_DIMS:
        raise ConfigurationError('dim must be one of {}. Got {}.'
                                 .format(SUPPORTED_DIMS, dim))
    return dim


def as_vector(x, dim, name='vector'):
    """Convert to a float64 vector of length ``dim``."""
    x = np.array(x, dtype=np.float64).reshape(-1)
    if x.shape[0] != dim:
        raise DimensionMismatchError('{} must have length {}. Got {}.'
                                     .format(name, dim, x.shape[0]))
    if not np.all(np.isfinite(x)):
        raise ConfigurationError('{} must be finite. Got {}.'
                                 .format(name, x.tolist()))
    return x


def as_points(x, dim, name='points'):
    """Convert to a float64 array of ``N`` vectors, with shape ``(N, dim)``."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 2 or x.shape[1] != dim:
        raise DimensionMismatchError('{} must have shape (N, {}). Got {}.'
                                     .format(name, dim, x.shape))
    if not np.all(np.isfinite(x)):
        raise ConfigurationError('{} must be finite'.format(name))
    return x


def as_size(size):
    """Convert to a tuple of positive integers."""
    s = np.asarray(size, dtype=np.float64).reshape(-1)
    if (not np.all(np.isfinite(s)) or np.any(s != np.floor(s))
            or np.any(s < 1)):
        raise ConfigurationError('size must contain positive integers. '
                                 'Got {}.'.format(s.tolist()))
    return tuple(int(n) for n in s)


def as_spacing(spacing, dim):
    spacing = as_vector(spacing, dim, 'spacing')
    if np.any(spacing <= 0):
        raise ConfigurationError('spacing must be positive. Got {}.'
                                 .format(spacing.tolist()))
    return spacing


def as_direction(direction, dim):
    """Convert to a ``(dim, dim)`` direction matrix.

    Parameters
    ----------
    direction : array_like
        * (dim, dim) matrix,
        * flat row-major sequence of dim*dim values, or
        * if dim == 2, a 3x3 matrix (flat or not) whose upper-left
          2x2 block is used.
    dim : {2, 3}

    Returns
    -------
    direction : (dim, dim) np.ndarray

    """
    d = np.array(direction, dtype=np.float64)
    if d.ndim == 1:
        if d.size == dim * dim:
            d = d.reshape((dim, dim))
        elif dim == 2 and d.size == 9:
            d = d.reshape((3, 3))
    if d.ndim == 2 and dim == 2 and d.shape == (3, 3):
        d = d[:2, :2]
    if d.shape != (dim, dim):
        raise DimensionMismatchError('direction must be a {0}x{0} matrix. '
                                     'Got shape {1}.'.format(dim, d.shape))
    if not np.all(np.isfinite(d)):
        raise ConfigurationError('direction must be finite')
    return np.ascontiguousarray(d)


class AffineGeometry:
    """Physical geometry of a sampling grid."""

    def __init__(self, origin, spacing, direction=None):
        """

        Parameters
        ----------
        origin : vector_like
            Physical position of the voxel of index (0, ..., 0)
        spacing : vector_like
            Distance between two voxels along each axis
        direction : matrix_like, default=identity
            Direction cosine matrix
        """
        dim = check_dim(len(np.asarray(spacing).reshape(-1)))
        self._origin = as_vector(origin, dim, 'origin')
        self._spacing = as_spacing(spacing, dim)
        if direction is None:
            direction = np.eye(dim)
        self._direction = as_direction(direction, dim)
        if not is_orthonormal(self._direction):
            warn('Direction matrix is not orthonormal: {}'
                 .format(self._direction.tolist()), RuntimeWarning)
        self._matrix = self._direction * self._spacing[None, :]

    @classmethod
    def from_image(cls, image):
        """Geometry of an image (or of anything exposing ``origin``,
        ``spacing`` and ``direction``)."""
        return cls(image.origin, image.spacing, image.direction)

    @property
    def dimension(self):
        return self._spacing.shape[0]

    @property
    def origin(self):
        return self._origin.copy()

    @property
    def spacing(self):
        return self._spacing.copy()

    @property
    def direction(self):
        return self._direction.copy()

    @property
    def matrix(self):
        """Linear part ``D @ diag(spacing)`` of the voxel-to-world map."""
        return self._matrix.copy()

    @property
    def affine(self):
        """Homogeneous ``(dim+1, dim+1)`` voxel-to-world matrix."""
        dim = self.dimension
        mat = np.eye(dim + 1, dtype=np.float64)
        mat[:dim, :dim] = self._matrix
        mat[:dim, dim] = self._origin
        return mat

    def index_to_physical(self, index):
        """Map a (continuous) voxel index to a physical point.

        Parameters
        ----------
        index : (dim,) vector_like

        Returns
        -------
        point : (dim,) np.ndarray

        """
        index = as_vector(index, self.dimension, 'index')
        return self._matrix @ index + self._origin

    def physical_to_index(self, point):
        """Map a physical point to a continuous voxel index.

        The voxel-to-world system is solved as a whole, which is valid
        for any invertible direction matrix, orthonormal or not.

        Parameters
        ----------
        point : (dim,) vector_like

        Returns
        -------
        index : (dim,) np.ndarray

        Raises
        ------
        SingularDirectionError
            If ``D @ diag(spacing)`` is not invertible.

        """
        point = as_vector(point, self.dimension, 'point')
        try:
            return solve_linear(self._matrix, point - self._origin)
        except SingularMatrixError as e:
            raise SingularDirectionError(str(e)) from e

    def indices_to_physical(self, indices):
        """Map voxel indices to physical points.

        Parameters
        ----------
        indices : (N, dim) array_like

        Returns
        -------
        points : (N, dim) np.ndarray

        """
        indices = as_points(indices, self.dimension, 'indices')
        # elementwise: each point is independent of the batch it is in
        points = np.empty_like(indices)
        points[...] = self._origin
        for k in range(self.dimension):
            points += indices[:, k, None] * self._matrix[None, :, k]
        return points

    def physical_to_indices(self, points):
        """Map physical points to continuous voxel indices.

        All points are solved in a single elimination (one right-hand
        side per point).

        Parameters
        ----------
        points : (N, dim) array_like

        Returns
        -------
        indices : (N, dim) np.ndarray

        """
        points = as_points(points, self.dimension, 'points')
        try:
            return solve_linear(self._matrix, (points - self._origin).T).T
        except SingularMatrixError as e:
            raise SingularDirectionError(str(e)) from e

    def __eq__(self, other):
        if not isinstance(other, AffineGeometry):
            return NotImplemented
        return (self.dimension == other.dimension
                and np.array_equal(self._origin, other._origin)
                and np.array_equal(self._spacing, other._spacing)
                and np.array_equal(self._direction, other._direction))

    def __repr__(self):
        return '{}(origin={}, spacing={}, direction={})'.format(
            type(self).__name__, self._origin.tolist(),
            self._spacing.tolist(), self._direction.tolist())
