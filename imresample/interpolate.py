"""Multilinear sampling of an image at physical points."""

import enum
import itertools
import math
import numpy as np
from .errors import DimensionMismatchError, UnsupportedFillPolicyError
from .geometry import AffineGeometry
from .utils import strides
from .hints import Point, Fill

# Continuous indices closer than this to an integer are snapped to it.
SNAP_TOLERANCE = 1e-9


class FillPolicy(enum.Enum):
    """Value of voxels that fall outside of the image grid.

    ZERO
        Out-of-range corners contribute nothing. Their weight is not
        redistributed, so values fade toward zero near the border.
    NEAREST
        Out-of-range coordinates are clamped to the closest voxel.
    """

    ZERO = 'zero'
    NEAREST = 'nearest'

    @classmethod
    def coerce(cls, fill):
        """Convert a policy, its name or its historical integer code."""
        if isinstance(fill, cls):
            return fill
        if isinstance(fill, str):
            try:
                return cls(fill.lower())
            except ValueError:
                pass
        elif isinstance(fill, (int, np.integer)) and not isinstance(fill, bool):
            codes = {0: cls.ZERO, 1: cls.NEAREST}
            if int(fill) in codes:
                return codes[int(fill)]
        raise UnsupportedFillPolicyError('Unsupported fill policy: {!r}'
                                         .format(fill))


_corners = {dim: list(itertools.product([False, True], repeat=dim))
            for dim in (2, 3)}


def corners(dim):
    """All ``2**dim`` corners of a cell, as tuples of booleans.

    ``True`` means that the corner uses the ceil index along that axis.
    """
    return _corners[dim]


def bound_nearest(i, n):
    """Clamp an index into ``[0, n-1]``."""
    return min(max(i, 0), n - 1)


def split_index(index, tol=SNAP_TOLERANCE):
    """Split a continuous index into its floor and fractional parts.

    Parameters
    ----------
    index : (dim,) vector_like
        Continuous index
    tol : float, default=1e-9
        Coordinates closer than ``tol`` to an integer are snapped to it.

    Returns
    -------
    i0 : list[int]
        Floor index
    t : list[float]
        Fractional part, in ``[0, 1)``

    """
    i0 = []
    t = []
    for x in index:
        x = float(x)
        r = round(x)
        if abs(x - r) < tol:
            x = float(r)
        f = math.floor(x)
        i0.append(int(f))
        t.append(x - f)
    return i0, t


def split_indices(index, size, tol=SNAP_TOLERANCE):
    """Split an array of continuous indices into floor and fractional parts.

    Parameters
    ----------
    index : (N, dim) np.ndarray
        Continuous indices
    size : (dim,) iterable[int]
        Size of the sampled grid
    tol : float, default=1e-9
        Coordinates closer than ``tol`` to an integer are snapped to it.

    Returns
    -------
    i0 : (N, dim) np.ndarray[int64]
        Floor indices
    t : (N, dim) np.ndarray[float64]
        Fractional parts, in ``[0, 1)``

    """
    # Past one voxel outside the grid, every corner is out of range
    # (or clamped to the same voxel), whatever the exact coordinate.
    index = np.clip(index, -1, np.asarray(size, dtype=np.float64))
    r = np.round(index)
    index = np.where(np.abs(index - r) < tol, r, index)
    i0 = np.floor(index)
    return i0.astype(np.int64), index - i0


class PointSampler:
    """Sample an image at physical points.

    The geometry and pixel buffer of the image are captured once, so
    that a sampler can be queried many times (possibly from several
    threads, as long as the image is not modified meanwhile).
    """

    def __init__(self, image, fill=FillPolicy.ZERO):
        """

        Parameters
        ----------
        image : Image
            Image to sample
        fill : FillPolicy or {'zero', 'nearest'}, default=ZERO
            Out-of-bounds policy
        """
        self.image = image
        self.fill = FillPolicy.coerce(fill)
        self.geometry = AffineGeometry.from_image(image)
        self.buffer = image.buffer
        self.size = tuple(image.size)
        self.dim = len(self.size)
        self._strides = strides(self.size)

    def __call__(self, point):
        return self.sample(point)

    def continuous_index(self, point):
        """Continuous voxel index of a physical point."""
        point = np.asarray(point, dtype=np.float64).reshape(-1)
        if point.shape[0] != self.dim:
            raise DimensionMismatchError('Point has {} coordinates but the '
                                         'image has {} dimensions'
                                         .format(point.shape[0], self.dim))
        return self.geometry.physical_to_index(point)

    def _value(self, index):
        """Value of a (possibly out-of-range) voxel, or None if the
        fill policy drops it."""
        fill = self.fill
        ind = 0
        for i, n, s in zip(index, self.size, self._strides):
            if i < 0 or i >= n:
                if fill is FillPolicy.ZERO:
                    return None
                elif fill is FillPolicy.NEAREST:
                    i = bound_nearest(i, n)
                else:
                    raise UnsupportedFillPolicyError(
                        'Unsupported fill policy: {!r}'.format(fill))
            ind += i * s
        return self.buffer.get_as_float64(ind)

    def sample(self, point):
        """Multilinear interpolation at a physical point.

        Parameters
        ----------
        point : (dim,) vector_like
            Physical coordinates

        Returns
        -------
        value : float

        Raises
        ------
        DimensionMismatchError
            If the point does not have one coordinate per image axis.
        SingularDirectionError
            If the image geometry cannot be inverted.

        """
        i0, t = split_index(self.continuous_index(point))

        if not any(t):
            # Exact grid hit
            value = self._value(i0)
            return 0.0 if value is None else value

        acc = 0.0
        for corner in corners(self.dim):
            weight = 1.0
            index = []
            for d, ceil in enumerate(corner):
                if ceil:
                    weight *= t[d]
                    index.append(i0[d] + 1)
                else:
                    weight *= 1.0 - t[d]
                    index.append(i0[d])
            if weight == 0:
                continue
            value = self._value(index)
            if value is not None:
                acc += weight * value
        return acc

    def sample_points(self, points):
        """Multilinear interpolation at many physical points.

        Vectorized counterpart of :meth:`sample`: exact grid hits reduce
        to their floor corner, zero-weight corners are never read and the
        fill policy is applied per corner.

        Parameters
        ----------
        points : (N, dim) array_like
            Physical coordinates

        Returns
        -------
        values : (N,) np.ndarray[float64]

        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != self.dim:
            raise DimensionMismatchError('Points must have shape (N, {}). '
                                         'Got {}.'.format(self.dim,
                                                          points.shape))
        i0, t = split_indices(self.geometry.physical_to_indices(points),
                              self.size)
        size = np.asarray(self.size, dtype=np.int64)
        stride = np.asarray(self._strides, dtype=np.int64)

        acc = np.zeros(len(points), dtype=np.float64)
        for corner in corners(self.dim):
            weight = np.ones(len(points), dtype=np.float64)
            index = i0.copy()
            for d, ceil in enumerate(corner):
                if ceil:
                    weight *= t[:, d]
                    index[:, d] += 1
                else:
                    weight *= 1.0 - t[:, d]
            keep = weight != 0
            if self.fill is FillPolicy.ZERO:
                keep &= np.all((index >= 0) & (index < size), axis=1)
            elif self.fill is FillPolicy.NEAREST:
                index = np.clip(index, 0, size - 1)
            else:
                raise UnsupportedFillPolicyError(
                    'Unsupported fill policy: {!r}'.format(self.fill))
            values = self.buffer.take_as_float64(index[keep] @ stride)
            acc[keep] += weight[keep] * values
        return acc


def sample(image, point, fill=FillPolicy.ZERO):
    # type: (Image, Point, Fill) -> float
    """Sample an image at a physical point.

    Parameters
    ----------
    image : Image
        Image to sample
    point : (dim,) vector_like
        Physical coordinates
    fill : FillPolicy or {'zero', 'nearest'}, default=ZERO
        Out-of-bounds policy

    Returns
    -------
    value : float
        Interpolated value

    """
    return PointSampler(image, fill).sample(point)
