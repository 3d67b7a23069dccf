"""Point sampling and resampling of 2D and 3D images.

Resampling is the sequential process of:
    * **interpolation:** transform the discrete set of voxels into a
      continuous (multilinear) function of the voxel index;
    * **change of coordinates:** map physical points to continuous voxel
      indices through the image geometry (origin, spacing, direction);
    * **resampling:** evaluate the continuous function at the physical
      centre of every voxel of a new grid.

"""

from .errors import ResampleError, ConfigurationError, \
                    DimensionMismatchError, SingularMatrixError, \
                    SingularDirectionError, UnsupportedFillPolicyError
from .image import Image, PixelBuffer, from_array, to_array
from .geometry import AffineGeometry
from .interpolate import FillPolicy, PointSampler, sample
from .reslice import OutputGrid, Resampler, ResamplerLike, resample, \
                     resample_like, grid_like

__version__ = '0.1a'
