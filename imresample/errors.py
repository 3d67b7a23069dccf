"""Exceptions raised by the sampling and resampling routines.

All errors are deterministic: calling again with the same inputs raises
the same error, so none of them should be retried.

"""


class ResampleError(Exception):
    """Base class of all errors raised by ``imresample``."""


class ConfigurationError(ResampleError, ValueError):
    """Missing or invalid geometry, grid, buffer or option."""


class DimensionMismatchError(ConfigurationError):
    """A point, index or matrix does not match the image dimension."""


class SingularMatrixError(ResampleError, ArithmeticError):
    """A matrix (or a composed linear system) is not invertible."""


class SingularDirectionError(SingularMatrixError):
    """The voxel-to-world map of an image cannot be inverted."""


class UnsupportedFillPolicyError(ResampleError, ValueError):
    """The fill policy is not one of the known variants."""
