"""
PCA (Principal Component Analysis) implementation.

This module builds the sample covariance matrix, eigen-decomposes it with
the Jacobi solver, and projects the centered data onto the components in
order of decreasing eigenvalue.
"""

import logging
import numpy as np
from typing import Any, Dict, Tuple

from embedmath.math.errors import InsufficientDataError
from embedmath.math.jacobi import jacobi_eigen
from embedmath.math.preprocess import center_matrix

logger = logging.getLogger(__name__)


def covariance_matrix(centered: np.ndarray) -> np.ndarray:
    """
    Unbiased sample covariance of a centered matrix.

    Args:
        centered: Centered data matrix (n x p), n >= 2

    Returns:
        Covariance matrix (p x p)
    """
    n = centered.shape[0]
    cov = centered.T @ centered / (n - 1)
    # Exact symmetry for the eigensolver
    return (cov + cov.T) / 2.0


def sort_components(eigenvalues: np.ndarray,
                    eigenvectors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Order eigenpairs by descending eigenvalue.

    Ties keep their original order.

    Args:
        eigenvalues: Unsorted eigenvalues
        eigenvectors: Matching eigenvectors, one per column

    Returns:
        Tuple of (sorted eigenvalues, components with one eigenvector per row)
    """
    order = np.argsort(-eigenvalues, kind='stable')
    return eigenvalues[order], eigenvectors[:, order].T


def variance_explained(eigenvalues: np.ndarray) -> np.ndarray:
    """
    Percent of total variance carried by each component.

    Negative eigenvalues count as zero.

    Args:
        eigenvalues: Eigenvalues in component order

    Returns:
        Percentages in the same order
    """
    clipped = np.maximum(eigenvalues, 0.0)
    total = clipped.sum()
    if total <= 0:
        return np.zeros_like(clipped)
    return clipped / total * 100.0


def project(centered: np.ndarray, components: np.ndarray) -> np.ndarray:
    """
    Project centered rows onto components.

    Args:
        centered: Centered data matrix (n x p)
        components: Components, one per row (k x p)

    Returns:
        Scores (n x k)
    """
    return centered @ components.T


def pca(data: np.ndarray) -> Dict[str, Any]:
    """
    Run PCA on a data matrix.

    Args:
        data: Data matrix (n x p); NaN entries count as 0

    Returns:
        Dictionary with 'scores' (n x p), 'eigenvalues', 'eigenvectors'
        (one component per row), 'var_explained', 'center' and 'converged'

    Raises:
        InsufficientDataError: If n < 2 or p < 2
    """
    data = np.asarray(data, dtype=float)
    n_rows, n_cols = data.shape if data.ndim == 2 else (len(data), 0)
    if n_rows < 2 or n_cols < 2:
        raise InsufficientDataError(
            'pca', n_rows, n_cols,
            f"PCA needs at least 2 samples and 2 features, got {n_rows} x {n_cols}")

    centered, center = center_matrix(data)
    cov = covariance_matrix(centered)

    decomposition = jacobi_eigen(cov)
    eigenvalues, components = sort_components(decomposition['eigenvalues'],
                                              decomposition['eigenvectors'])

    logger.debug(f"PCA on {n_rows} x {n_cols}: {decomposition['rotations']} rotations, "
                 f"leading eigenvalue {eigenvalues[0]:.4g}")

    return {
        'scores': project(centered, components),
        'eigenvalues': eigenvalues,
        'eigenvectors': components,
        'var_explained': variance_explained(eigenvalues),
        'center': center,
        'converged': decomposition['converged']
    }


def select_axes(n_components: int, pc_x: int = 1, pc_y: int = 2) -> Tuple[int, int]:
    """
    Resolve 1-based display components to score column indices.

    An x component beyond the available ones falls back to the first
    component; a y component beyond them falls back to the second (or the
    first if there is only one).

    Args:
        n_components: Number of available components
        pc_x: 1-based component for the x axis
        pc_y: 1-based component for the y axis

    Returns:
        Tuple of 0-based (x index, y index)
    """
    x_idx = max(0, pc_x - 1)
    y_idx = max(0, pc_y - 1)
    if x_idx >= n_components:
        x_idx = 0
    if y_idx >= n_components:
        y_idx = min(1, n_components - 1)
    return x_idx, y_idx
