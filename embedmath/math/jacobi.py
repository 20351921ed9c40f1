"""
Symmetric eigen-decomposition by Jacobi rotations.

This module provides a self-contained eigensolver for the small covariance
matrices produced by the PCA engine. Each step zeroes the largest remaining
off-diagonal element with a plane rotation and accumulates the rotation into
the eigenvector matrix.
"""

import logging
import numpy as np
from typing import Any, Dict, Tuple

from embedmath.utils.general import sign

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-10
DEFAULT_MAX_SWEEPS = 100


def largest_off_diagonal(a: np.ndarray) -> Tuple[int, int, float]:
    """
    Locate the off-diagonal element of largest magnitude.

    Ties resolve to the first element in row-major order of the upper
    triangle.

    Args:
        a: Symmetric matrix

    Returns:
        Tuple of (row, column, magnitude) with row < column
    """
    upper = np.abs(np.triu(a, 1))
    flat = int(np.argmax(upper))
    p, q = divmod(flat, a.shape[1])
    return p, q, float(upper[p, q])


def rotation(a: np.ndarray, p: int, q: int) -> Tuple[float, float]:
    """
    Compute the rotation that zeroes a[p, q].

    Uses the small-angle form t = sign(theta) / (|theta| + sqrt(theta^2 + 1))
    to avoid cancellation.

    Args:
        a: Symmetric matrix
        p: Row of the element to annihilate
        q: Column of the element to annihilate

    Returns:
        Tuple of (cosine, sine)
    """
    theta = (a[q, q] - a[p, p]) / (2.0 * a[p, q])
    t = sign(theta) / (abs(theta) + np.hypot(theta, 1.0))
    c = 1.0 / np.sqrt(t * t + 1.0)
    return c, t * c


def rotate(a: np.ndarray, v: np.ndarray, p: int, q: int, c: float, s: float) -> None:
    """
    Apply a rotation in the (p, q) plane in place.

    Args:
        a: Working symmetric matrix
        v: Accumulated eigenvector matrix
        p: First plane index
        q: Second plane index
        c: Cosine of the rotation angle
        s: Sine of the rotation angle
    """
    app, aqq, apq = a[p, p], a[q, q], a[p, q]

    col_p = a[:, p].copy()
    col_q = a[:, q].copy()
    a[:, p] = c * col_p - s * col_q
    a[:, q] = s * col_p + c * col_q
    a[p, :] = a[:, p]
    a[q, :] = a[:, q]

    a[p, p] = c * c * app - 2.0 * s * c * apq + s * s * aqq
    a[q, q] = s * s * app + 2.0 * s * c * apq + c * c * aqq
    a[p, q] = a[q, p] = 0.0

    vec_p = v[:, p].copy()
    vec_q = v[:, q].copy()
    v[:, p] = c * vec_p - s * vec_q
    v[:, q] = s * vec_p + c * vec_q


def jacobi_eigen(matrix: np.ndarray,
                 tol: float = DEFAULT_TOLERANCE,
                 max_sweeps: int = DEFAULT_MAX_SWEEPS) -> Dict[str, Any]:
    """
    Eigen-decompose a symmetric matrix.

    A sweep is p(p-1)/2 rotations. If the largest off-diagonal element is
    still above tol after max_sweeps sweeps, the current approximation is
    returned with converged=False.

    When eigenvalues are tied, the eigenvectors returned for them are some
    orthonormal basis of the shared eigenspace; which one is not specified.

    Args:
        matrix: Symmetric p x p matrix
        tol: Convergence threshold on the largest off-diagonal magnitude
        max_sweeps: Maximum number of sweeps

    Returns:
        Dictionary with 'eigenvalues' (unsorted), 'eigenvectors' (one per
        column), 'converged' and 'rotations'
    """
    a = np.array(matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {a.shape}")
    if not np.allclose(a, a.T, rtol=1e-9, atol=1e-12):
        raise ValueError("Jacobi eigen-decomposition requires a symmetric matrix")

    n = a.shape[0]
    v = np.eye(n)

    if n == 1:
        return {
            'eigenvalues': np.array([a[0, 0]]),
            'eigenvectors': v,
            'converged': True,
            'rotations': 0
        }

    max_rotations = max_sweeps * n * (n - 1) // 2
    converged = False
    rotations = 0

    while rotations < max_rotations:
        p, q, max_val = largest_off_diagonal(a)
        if max_val < tol:
            converged = True
            break

        c, s = rotation(a, p, q)
        rotate(a, v, p, q, c, s)
        rotations += 1
    else:
        # Rotation budget spent; accept it if the last rotation finished the job
        converged = largest_off_diagonal(a)[2] < tol

    if not converged:
        logger.warning(f"Jacobi eigensolver stopped after {max_sweeps} sweeps without converging "
                       f"(largest off-diagonal {largest_off_diagonal(a)[2]:.3e})")

    return {
        'eigenvalues': np.diag(a).copy(),
        'eigenvectors': v,
        'converged': converged,
        'rotations': rotations
    }
