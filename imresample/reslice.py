"""Resample an image onto a new grid.

Resampling evaluates the continuous (multilinear) image function at the
physical centre of every voxel of an output grid. The output grid is
fully explicit: its size, spacing, origin and direction must all be
given.

The output index space is split into contiguous chunks, one per worker
thread. Each worker writes to its own chunk of the output buffer and only
reads the source image, so no locking is needed on pixel data. Within a
chunk, voxels are processed in blocks of numpy operations (grid
coordinates, solve, corner weights, fill policy), which release the GIL
and let the workers run concurrently. The first
error raised by any worker is re-raised once all workers have returned;
the partially filled output is then discarded.

"""

import math
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from warnings import warn
import numpy as np
from .errors import ConfigurationError, DimensionMismatchError
from .geometry import AffineGeometry, check_dim, as_size, as_spacing, \
                      as_vector, as_direction
from .image import Image
from .interpolate import FillPolicy, PointSampler
from .utils import argdef, cpu_count, prod
from .hints import GridLike, Fill

_grid_fields = ('size', 'spacing', 'origin', 'direction')

# Output voxels sampled per vectorized block.
BLOCK_SIZE = 65536


class OutputGrid:
    """Explicit description of a sampling grid."""

    def __init__(self, size, spacing, origin, direction):
        """

        Parameters
        ----------
        size : iterable[int]
            Number of voxels along each axis
        spacing : vector_like
            Voxel size along each axis (> 0)
        origin : vector_like
            Physical position of voxel (0, ..., 0)
        direction : matrix_like
            Direction cosine matrix

        Raises
        ------
        ConfigurationError
            If a field is missing or invalid. Missing fields are never
            defaulted.
        """
        for name, value in zip(_grid_fields,
                               (size, spacing, origin, direction)):
            if value is None:
                raise ConfigurationError("Output grid field '{}' is missing"
                                         .format(name))
        size = as_size(size)
        dim = check_dim(len(size))
        self.size = size
        self.spacing = as_spacing(spacing, dim)
        self.origin = as_vector(origin, dim, 'origin')
        self.direction = as_direction(direction, dim)

    @classmethod
    def from_mapping(cls, grid):
        """Build a grid from a mapping with keys ``size``, ``spacing``,
        ``origin`` and ``direction``."""
        missing = [name for name in _grid_fields if grid.get(name) is None]
        if missing:
            raise ConfigurationError('Output grid field(s) {} missing'
                                     .format(', '.join(map(repr, missing))))
        return cls(**{name: grid[name] for name in _grid_fields})

    @property
    def dimension(self):
        return len(self.size)

    @property
    def num_pixels(self):
        return prod(self.size)

    @property
    def geometry(self):
        return AffineGeometry(self.origin, self.spacing, self.direction)

    def __repr__(self):
        return '{}(size={}, spacing={}, origin={}, direction={})'.format(
            type(self).__name__, self.size, self.spacing.tolist(),
            self.origin.tolist(), self.direction.tolist())


def grid_like(image):
    """Sampling grid of an existing image."""
    return OutputGrid(image.size, image.spacing, image.origin, image.direction)


def as_grid(grid):
    if isinstance(grid, OutputGrid):
        return grid
    if isinstance(grid, Mapping):
        return OutputGrid.from_mapping(grid)
    raise ConfigurationError('Unknown interpolation specification: {}'
                             .format(type(grid).__name__))


def partition(n, workers):
    """Split ``range(n)`` into contiguous chunks.

    Parameters
    ----------
    n : int
        Number of elements
    workers : int
        Number of workers

    Returns
    -------
    chunks : list[tuple[int, int]]
        ``(start, stop)`` pairs of at most ``ceil(n / workers)``
        elements. Empty chunks are dropped.

    """
    if workers < 1:
        raise ConfigurationError('Number of workers must be positive. '
                                 'Got {}.'.format(workers))
    if n <= 0:
        return []
    chunk = math.ceil(n / workers)
    return [(start, min(start + chunk, n)) for start in range(0, n, chunk)]


class _FirstError:
    """Slot that keeps the first exception raised by any worker."""

    def __init__(self):
        self._lock = threading.Lock()
        self.error = None
        self.raised = threading.Event()

    def capture(self, error):
        with self._lock:
            if self.error is None:
                self.error = error
                self.raised.set()


class Resampler:
    """Resample images onto an explicit output grid.

    Options given at construction are defaults that can be overridden
    at call time.
    """

    def __init__(self, output_grid=None, fill=None, *, workers=None):
        """

        Parameters
        ----------
        output_grid : OutputGrid or mapping, optional
            Default output grid
        fill : FillPolicy or {'zero', 'nearest'}, default=ZERO
            Out-of-bounds policy
        workers : int, default=number of hardware threads
            Number of worker threads
        """
        self.output_grid = output_grid
        self.fill = fill
        self.workers = workers

    def __call__(self, source, output_grid=None, fill=None, *, workers=None):
        """Resample an image.

        Parameters
        ----------
        source : Image
            Image to resample. It is only read.
        output_grid : OutputGrid or mapping, default=self.output_grid
            Output grid (size, spacing, origin, direction)
        fill : FillPolicy or {'zero', 'nearest'}, default=self.fill
            Out-of-bounds policy
        workers : int, default=self.workers
            Number of worker threads

        Returns
        -------
        resampled : Image
            New image on the output grid, with the pixel type of
            ``source``.

        Raises
        ------
        ConfigurationError
            Invalid grid or options.
        SingularDirectionError
            Source or output geometry cannot be inverted.
        UnsupportedFillPolicyError
            Unknown fill policy.

        """
        output_grid = argdef(output_grid, self.output_grid)
        if output_grid is None:
            raise ConfigurationError('No output grid provided')
        grid = as_grid(output_grid)
        fill = FillPolicy.coerce(argdef(fill, self.fill, FillPolicy.ZERO))
        workers = argdef(workers, self.workers)
        explicit = workers is not None
        workers = int(argdef(workers, cpu_count()))

        if grid.dimension != source.dimension:
            raise DimensionMismatchError('Output grid has {} dimensions but '
                                         'the source image has {}'
                                         .format(grid.dimension,
                                                 source.dimension))

        sampler = PointSampler(source, fill)
        geometry = grid.geometry
        output = Image.new(grid.size, source.dtype, spacing=grid.spacing,
                           origin=grid.origin, direction=grid.direction)
        buffer = output.buffer
        size = grid.size

        n = grid.num_pixels
        if explicit and workers > n:
            warn('{} workers requested for {} output voxels'
                 .format(workers, n), RuntimeWarning)
        chunks = partition(n, workers)
        errors = _FirstError()

        def work(start, stop):
            try:
                for lo in range(start, stop, BLOCK_SIZE):
                    if errors.raised.is_set():
                        return
                    hi = min(lo + BLOCK_SIZE, stop)
                    index = np.stack(np.unravel_index(np.arange(lo, hi), size),
                                     axis=-1)
                    points = geometry.indices_to_physical(index)
                    buffer.set_range_from_float64(
                        lo, sampler.sample_points(points))
            except Exception as e:
                errors.capture(e)

        if len(chunks) == 1:
            work(*chunks[0])
        else:
            with ThreadPoolExecutor(max_workers=len(chunks)) as pool:
                futures = [pool.submit(work, *chunk) for chunk in chunks]
            for future in futures:
                future.result()

        if errors.error is not None:
            raise errors.error
        return output


class ResamplerLike(Resampler):
    """Resample an image onto the grid of a reference image."""

    def __init__(self, reference=None, **kwargs):
        super().__init__(**kwargs)
        self.reference = reference

    def __call__(self, source, reference=None, **kwargs):
        """Resample an image onto the grid of a reference image.

        Parameters
        ----------
        source : Image
            Image to resample
        reference : Image, default=self.reference
            Image whose grid defines the output space

        Other Parameters
        ----------------
        fill : FillPolicy or {'zero', 'nearest'}, default=self.fill
        workers : int, default=self.workers

        Returns
        -------
        resampled : Image

        """
        reference = argdef(reference, self.reference)
        if reference is None:
            raise ConfigurationError('No reference image provided')
        return super().__call__(source, output_grid=grid_like(reference),
                                **kwargs)


def resample(source, output_grid, fill=FillPolicy.ZERO, *, workers=None):
    # type: (Image, GridLike, Fill, int) -> Image
    """Resample an image onto an explicit output grid.

    Parameters
    ----------
    source : Image
        Image to resample
    output_grid : OutputGrid or mapping
        Output size, spacing, origin and direction (all mandatory)
    fill : FillPolicy or {'zero', 'nearest'}, default=ZERO
        Out-of-bounds policy
    workers : int, default=number of hardware threads
        Number of worker threads

    Returns
    -------
    resampled : Image

    """
    return Resampler()(source, output_grid, fill, workers=workers)


def resample_like(source, reference, fill=FillPolicy.ZERO, *, workers=None):
    # type: (Image, Image, Fill, int) -> Image
    """Resample an image onto the grid of a reference image.

    Parameters
    ----------
    source : Image
        Image to resample
    reference : Image
        Image whose grid defines the output space
    fill : FillPolicy or {'zero', 'nearest'}, default=ZERO
        Out-of-bounds policy
    workers : int, default=number of hardware threads

    Returns
    -------
    resampled : Image

    """
    return ResamplerLike()(source, reference, fill=fill, workers=workers)
