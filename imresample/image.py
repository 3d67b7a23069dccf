"""In-memory image container consumed by the samplers.

An :class:`Image` is a 2D or 3D numpy array of one of the supported pixel
types, together with a physical geometry (origin, spacing, direction).
Samplers never touch the array directly: they go through a
:class:`PixelBuffer`, which reads any pixel as a float64 and writes a
float64 back with the conversion rules of the pixel type.

"""

import math
import numpy as np
from .errors import ConfigurationError, DimensionMismatchError
from .geometry import AffineGeometry, check_dim, as_vector, as_spacing, \
                      as_direction, as_size
from .utils import ind2sub, sub2ind, prod

SUPPORTED_DTYPES = tuple(np.dtype(t) for t in (
    'uint8', 'int8', 'uint16', 'int16', 'uint32', 'int32',
    'uint64', 'int64', 'float32', 'float64'))


def check_dtype(dtype):
    try:
        dtype = np.dtype(dtype)
    except TypeError as e:
        raise ConfigurationError('Unknown pixel type {}'.format(dtype)) from e
    if dtype not in SUPPORTED_DTYPES:
        raise ConfigurationError('Unsupported pixel type: {}'.format(dtype))
    return dtype


class PixelBuffer:
    """Flat float64 view over a typed pixel array.

    Integer pixel types truncate toward zero and saturate to their
    range (NaN is stored as 0). Floating point types are plain casts.
    """

    def __init__(self, array):
        """

        Parameters
        ----------
        array : np.ndarray
            C-contiguous array. The buffer is a view: writes are visible
            in ``array``.
        """
        if not array.flags.c_contiguous:
            raise ConfigurationError('Pixel buffers need C-contiguous arrays')
        self.dtype = check_dtype(array.dtype)
        self.flat = array.reshape(-1)
        if np.issubdtype(self.dtype, np.integer):
            info = np.iinfo(self.dtype)
            self._bounds = (int(info.min), int(info.max))
        else:
            self._bounds = None

    def __len__(self):
        return self.flat.shape[0]

    def to_native(self, value):
        """Convert a float64 to the pixel type."""
        value = float(value)
        if self._bounds is None:
            return self.dtype.type(value)
        lo, hi = self._bounds
        if math.isnan(value):
            return self.dtype.type(0)
        if math.isinf(value):
            return self.dtype.type(hi if value > 0 else lo)
        return self.dtype.type(min(max(math.trunc(value), lo), hi))

    def to_native_array(self, values):
        """Convert an array of float64 to the pixel type."""
        values = np.asarray(values, dtype=np.float64)
        if self._bounds is None:
            return values.astype(self.dtype)
        lo, hi = self._bounds
        values = np.trunc(values)
        # float(hi) may round up past the range: compare in float64 and
        # only cast values that are known to fit.
        low = values <= float(lo)
        high = values >= float(hi)
        fits = ~(low | high | np.isnan(values))
        out = np.zeros(values.shape, dtype=self.dtype)
        out[low] = lo
        out[high] = hi
        out[fits] = values[fits].astype(self.dtype)
        return out

    def get_as_float64(self, i):
        return float(self.flat[i])

    def set_from_float64(self, i, value):
        self.flat[i] = self.to_native(value)

    def take_as_float64(self, indices):
        """Read pixels at an array of linear indices."""
        return self.flat[indices].astype(np.float64)

    def set_range_from_float64(self, start, values):
        """Write consecutive pixels, starting at linear index ``start``."""
        values = self.to_native_array(values)
        self.flat[start:start + values.shape[0]] = values


class Image:
    """2D or 3D image with a physical geometry."""

    def __init__(self, array, spacing=None, origin=None, direction=None):
        """

        Parameters
        ----------
        array : np.ndarray
            Pixel data. Axis ``k`` of the array is axis ``k`` of the
            image. The array is used as is (no copy) when it is already
            C-contiguous.
        spacing : vector_like, default=1
        origin : vector_like, default=0
        direction : matrix_like, default=identity
        """
        array = np.ascontiguousarray(array)
        check_dim(array.ndim)
        check_dtype(array.dtype)
        if any(s < 1 for s in array.shape):
            raise ConfigurationError('Image size must be positive. Got {}.'
                                     .format(array.shape))
        self._array = array
        self._buffer = PixelBuffer(array)
        dim = array.ndim
        self._spacing = np.ones(dim)
        self._origin = np.zeros(dim)
        self._direction = np.eye(dim)
        if spacing is not None:
            self.spacing = spacing
        if origin is not None:
            self.origin = origin
        if direction is not None:
            self.direction = direction

    @classmethod
    def new(cls, size, dtype, spacing=None, origin=None, direction=None):
        """Create a zero-filled image."""
        size = as_size(size)
        check_dim(len(size))
        array = np.zeros(size, dtype=check_dtype(dtype))
        return cls(array, spacing=spacing, origin=origin, direction=direction)

    # ------------------------------------------------------------------
    #   Metadata
    # ------------------------------------------------------------------

    @property
    def dimension(self):
        return self._array.ndim

    @property
    def size(self):
        return tuple(self._array.shape)

    @property
    def dtype(self):
        return self._array.dtype

    pixel_type = dtype

    @property
    def num_pixels(self):
        return prod(self.size)

    @property
    def spacing(self):
        return self._spacing.copy()

    @spacing.setter
    def spacing(self, value):
        self._spacing = as_spacing(value, self.dimension)

    @property
    def origin(self):
        return self._origin.copy()

    @origin.setter
    def origin(self, value):
        self._origin = as_vector(value, self.dimension, 'origin')

    @property
    def direction(self):
        return self._direction.copy()

    @direction.setter
    def direction(self, value):
        self._direction = as_direction(value, self.dimension)

    @property
    def geometry(self):
        return AffineGeometry.from_image(self)

    @property
    def buffer(self):
        return self._buffer

    # ------------------------------------------------------------------
    #   Pixel access
    # ------------------------------------------------------------------

    def linear_index(self, index):
        """Row-major linear index of a voxel."""
        index = list(index)
        if len(index) != self.dimension:
            raise DimensionMismatchError('Index must have length {}. Got {}.'
                                         .format(self.dimension, len(index)))
        for i, s in zip(index, self.size):
            if not 0 <= i < s:
                raise IndexError('Index {} out of range for size {}'
                                 .format(index, self.size))
        return sub2ind(index, self.size)

    def index_from_linear_index(self, i):
        """Voxel index of a row-major linear index."""
        if not 0 <= i < self.num_pixels:
            raise IndexError('Linear index {} out of range [0, {})'
                             .format(i, self.num_pixels))
        return tuple(ind2sub(i, self.size))

    def get_as_float64(self, i):
        return self._buffer.get_as_float64(i)

    def set_from_float64(self, i, value):
        self._buffer.set_from_float64(i, value)

    def get_pixel(self, index):
        return self._buffer.flat[self.linear_index(index)]

    def set_pixel(self, index, value):
        self._buffer.set_from_float64(self.linear_index(index), value)

    # ------------------------------------------------------------------
    #   Conversion
    # ------------------------------------------------------------------

    def copy(self):
        return type(self)(self._array.copy(), spacing=self._spacing,
                          origin=self._origin, direction=self._direction)

    def astype(self, dtype):
        """Convert to another pixel type (truncating and saturating)."""
        dtype = check_dtype(dtype)
        out = Image.new(self.size, dtype, spacing=self._spacing,
                        origin=self._origin, direction=self._direction)
        out.buffer.set_range_from_float64(
            0, self._buffer.flat.astype(np.float64))
        return out

    def to_array(self):
        """Copy of the pixel data as a numpy array."""
        return self._array.copy()

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._array
        return self._array.astype(dtype)

    def __repr__(self):
        return ('{}(size={}, dtype={}, spacing={}, origin={}, direction={})'
                .format(type(self).__name__, self.size, self.dtype,
                        self._spacing.tolist(), self._origin.tolist(),
                        self._direction.tolist()))


def from_array(data, spacing=None, origin=None, direction=None, dtype=None):
    """Build an image from (nested sequences of) pixel values.

    Parameters
    ----------
    data : array_like
        2D or 3D pixel data. The data is copied.
    spacing, origin, direction : optional
        Physical geometry (default: unit spacing, zero origin,
        identity direction)
    dtype : type or str, default=data.dtype

    Returns
    -------
    image : Image

    """
    array = np.array(data, dtype=dtype, copy=True, order='C')
    return Image(array, spacing=spacing, origin=origin, direction=direction)


def to_array(image):
    """Copy of the pixel data of an image."""
    return image.to_array()
