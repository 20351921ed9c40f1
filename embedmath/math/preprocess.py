"""
Matrix preprocessing for the embedding engines.

Missing entries are substituted with 0 before any statistic is taken, and
still count towards the number of rows. PCA works on the centered matrix;
t-SNE and UMAP work on the column-standardized matrix.
"""

import numpy as np
from typing import Tuple

# Standard deviations at or below this are treated as constant columns
MIN_STD = 1e-12


def clean_matrix(data: np.ndarray) -> np.ndarray:
    """
    Replace missing entries with zeros.

    Args:
        data: Data matrix (NaN marks missing values)

    Returns:
        Float copy of the matrix without NaNs; infinities are left alone
    """
    data = np.asarray(data, dtype=float)
    return np.where(np.isnan(data), 0.0, data)


def column_means(data: np.ndarray) -> np.ndarray:
    """
    Calculate per-column means, counting missing entries as zeros.

    Args:
        data: Data matrix

    Returns:
        Vector of column means
    """
    return np.mean(clean_matrix(data), axis=0)


def column_stds(data: np.ndarray, means: np.ndarray) -> np.ndarray:
    """
    Calculate per-column population standard deviations.

    Constant (or numerically constant) columns get a standard deviation of
    1.0 so they standardize to an all-zero column.

    Args:
        data: Data matrix
        means: Column means from column_means

    Returns:
        Vector of column standard deviations
    """
    cleaned = clean_matrix(data)
    stds = np.sqrt(np.mean((cleaned - means) ** 2, axis=0))
    stds[~(stds > MIN_STD)] = 1.0
    return stds


def center_matrix(data: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Subtract column means.

    Args:
        data: Data matrix

    Returns:
        Tuple of (centered matrix, column means)
    """
    cleaned = clean_matrix(data)
    means = np.mean(cleaned, axis=0)
    return cleaned - means, means


def standardize_matrix(data: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Z-score every column.

    Args:
        data: Data matrix

    Returns:
        Tuple of (standardized matrix, column means, column standard deviations)
    """
    cleaned = clean_matrix(data)
    means = np.mean(cleaned, axis=0)
    stds = column_stds(cleaned, means)
    return (cleaned - means) / stds, means, stds
