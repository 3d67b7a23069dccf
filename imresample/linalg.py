"""Small dense linear algebra for 2D and 3D geometry.

Closed-form inverses and a Gaussian-elimination solver. They work on
float64 numpy arrays and never modify their inputs.

"""

import numpy as np
from .errors import SingularMatrixError, ConfigurationError

# Smallest pivot magnitude accepted by ``solve_linear``.
PIVOT_TOLERANCE = 1e-9


def _as_square(m, n=None):
    """Convert a nested or flat sequence to a square float64 matrix."""
    m = np.array(m, dtype=np.float64)
    if m.ndim == 1:
        side = int(round(np.sqrt(m.size)))
        if side * side != m.size:
            raise ConfigurationError('Cannot reshape {} values into a square '
                                     'matrix'.format(m.size))
        m = m.reshape((side, side))
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ConfigurationError('Expected a square matrix. Got shape {}.'
                                 .format(m.shape))
    if n is not None and m.shape[0] != n:
        raise ConfigurationError('Expected a {0}x{0} matrix. Got shape {1}.'
                                 .format(n, m.shape))
    return m


def invert2x2(m):
    """Invert a 2x2 matrix with the adjugate formula.

    Parameters
    ----------
    m : (2, 2) or (4,) array_like
        Input matrix (flat inputs are read row-major)

    Returns
    -------
    minv : (2, 2) np.ndarray
        Inverse matrix

    Raises
    ------
    SingularMatrixError
        If the determinant is zero.

    """
    m = _as_square(m, 2)
    (a, b), (c, d) = m
    det = a * d - b * c
    if det == 0:
        raise SingularMatrixError('Matrix is singular (det = 0)')
    return np.array([[d, -b], [-c, a]], dtype=np.float64) / det


def invert3x3(m):
    """Invert a 3x3 matrix by cofactor expansion.

    Parameters
    ----------
    m : (3, 3) or (9,) array_like
        Input matrix (flat inputs are read row-major)

    Returns
    -------
    minv : (3, 3) np.ndarray
        Inverse matrix

    Raises
    ------
    SingularMatrixError
        If the determinant is zero.

    """
    m = _as_square(m, 3)
    (a, b, c), (d, e, f), (g, h, i) = m

    # cofactors of the first row
    c00 = e * i - f * h
    c01 = -(d * i - f * g)
    c02 = d * h - e * g
    det = a * c00 + b * c01 + c * c02
    if det == 0:
        raise SingularMatrixError('Matrix is singular (det = 0)')

    adj = np.array([
        [c00, -(b * i - c * h), b * f - c * e],
        [c01, a * i - c * g, -(a * f - c * d)],
        [c02, -(a * h - b * g), a * e - b * d],
    ], dtype=np.float64)
    return adj / det


def invert(m):
    """Invert a 2x2 or 3x3 matrix.

    Parameters
    ----------
    m : (D, D) or (D*D,) array_like, with D in {2, 3}

    Returns
    -------
    minv : (D, D) np.ndarray

    """
    m = _as_square(m)
    if m.shape[0] == 2:
        return invert2x2(m)
    elif m.shape[0] == 3:
        return invert3x3(m)
    else:
        raise ConfigurationError('Only 2x2 and 3x3 matrices can be '
                                 'inverted. Got {}.'.format(m.shape))


def solve_linear(A, b, tol=PIVOT_TOLERANCE):
    """Solve the linear system ``A @ x = b`` by Gaussian elimination.

    The system is eliminated on an augmented copy with partial pivoting
    (the largest remaining entry of each column is swapped onto the
    diagonal), then solved by back substitution.

    Several systems that share ``A`` are solved at once when ``b`` is a
    matrix: each of its columns is a right-hand side. The pivots only
    depend on ``A``, so every column goes through the same elimination.

    Parameters
    ----------
    A : (N, N) array_like
        System matrix
    b : (N,) or (N, K) array_like
        Right-hand side(s)
    tol : float, default=1e-9
        Pivots with a smaller magnitude are considered to be zero.

    Returns
    -------
    x : (N,) or (N, K) np.ndarray
        Solution(s), with the shape of ``b``

    Raises
    ------
    SingularMatrixError
        If a pivot is smaller than ``tol``.

    """
    A = _as_square(A)
    b = np.asarray(b, dtype=np.float64)
    vector = b.ndim == 1
    if vector:
        b = b[:, None]
    n = A.shape[0]
    if b.ndim != 2 or b.shape[0] != n:
        raise ConfigurationError('Right-hand side has shape {} but the '
                                 'system has {} rows'.format(b.shape, n))

    aug = np.empty((n, n + b.shape[1]), dtype=np.float64)
    aug[:, :n] = A
    aug[:, n:] = b

    # Forward elimination
    for i in range(n):
        pivot = i + int(np.argmax(np.abs(aug[i:, i])))
        if pivot != i:
            aug[[i, pivot]] = aug[[pivot, i]]
        if abs(aug[i, i]) < tol:
            raise SingularMatrixError('Matrix is singular or nearly '
                                      'singular (pivot {} = {})'
                                      .format(i, aug[i, i]))
        for k in range(i + 1, n):
            ratio = aug[k, i] / aug[i, i]
            aug[k, i:] -= ratio * aug[i, i:]

    # Back substitution
    x = np.zeros((n, b.shape[1]), dtype=np.float64)
    for i in range(n - 1, -1, -1):
        acc = aug[i, n:].copy()
        for j in range(i + 1, n):
            acc -= aug[i, j] * x[j]
        x[i] = acc / aug[i, i]
    return x[:, 0] if vector else x


def is_orthonormal(m, tol=1e-6):
    """Check whether the columns of a matrix are orthonormal."""
    m = _as_square(m)
    return np.allclose(m.T @ m, np.eye(m.shape[0]), atol=tol)
