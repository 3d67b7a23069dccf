import os
import numpy as np


def argdef(*args):
    """Return the first non-None value from a list of arguments.

    Parameters
    ----------
    value0
        First potential value. If None, try value 1
    value1
        Second potential value. If None, try value 2
    ...
    valueN
        Last potential value

    Returns
    -------
    value
        First non-None value

    """
    args = list(args)
    arg = args.pop(0)
    while arg is None and len(args) > 0:
        arg = args.pop(0)
    return arg


def strides(shape):
    """Row-major strides (in elements) of an array with a given shape.

    The rightmost dimension is the most rapidly changing one
    -> if shape == [D, H, W], the strides are [H*W, W, 1]

    """
    shape = [int(s) for s in shape]
    stride = [1] * len(shape)
    for d in range(len(shape) - 2, -1, -1):
        stride[d] = stride[d+1] * shape[d+1]
    return stride


def sub2ind(subs, shape):
    """Convert sub indices (i, j, k) into a linear index.

    Parameters
    ----------
    subs : iterable[int]
        Sub-indices. Its length is the number of dimension.
    shape : iterable[int]
        Size of each dimension.

    Returns
    -------
    ind : int
        Linear (row-major) index

    """
    ind = 0
    for i, s in zip(subs, strides(shape)):
        ind += int(i) * s
    return ind


def ind2sub(ind, shape):
    """Convert a linear index into sub indices (i, j, k).

    Parameters
    ----------
    ind : int
        Linear (row-major) index
    shape : iterable[int]
        Size of each dimension.

    Returns
    -------
    subs : list[int]
        Sub-indices

    """
    ind = int(ind)
    subs = []
    for s in strides(shape):
        subs.append(ind // s)
        ind %= s
    return subs


def prod(shape):
    """Number of elements in an array of a given shape."""
    return int(np.prod([int(s) for s in shape], dtype=np.int64))


def cpu_count():
    """Number of usable hardware threads (at least one)."""
    try:
        return max(1, len(os.sched_getaffinity(0)))
    except AttributeError:
        return max(1, os.cpu_count() or 1)
