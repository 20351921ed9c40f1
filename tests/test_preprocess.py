"""
Tests for the preprocess module.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from embedmath.math.preprocess import (
    clean_matrix, column_means, column_stds, center_matrix, standardize_matrix
)


class TestMissingValues:
    """Tests for missing value substitution."""

    def test_clean_matrix(self):
        """NaN entries become zeros without touching the input."""
        data = np.array([[1.0, np.nan], [3.0, 4.0]])
        cleaned = clean_matrix(data)

        assert np.array_equal(cleaned, [[1.0, 0.0], [3.0, 4.0]])
        assert np.isnan(data[0, 1])

    def test_infinity_kept(self):
        """Only NaN is replaced; infinities are not clamped to large numbers."""
        cleaned = clean_matrix(np.array([[np.inf, np.nan], [-np.inf, 1.0]]))

        assert np.isposinf(cleaned[0, 0])
        assert np.isneginf(cleaned[1, 0])
        assert cleaned[0, 1] == 0.0

    def test_missing_counts_towards_n(self):
        """A missing entry contributes 0 to the sum and 1 to the count."""
        data = np.array([[2.0, 1.0], [np.nan, 1.0], [4.0, 1.0]])
        means = column_means(data)

        assert np.isclose(means[0], 2.0)
        assert np.isclose(means[1], 1.0)


class TestStandardDeviation:
    """Tests for column standard deviations."""

    def test_population_std(self):
        """Standard deviation divides by n."""
        data = np.array([[1.0], [3.0]])
        means = column_means(data)

        assert np.isclose(column_stds(data, means)[0], 1.0)

    def test_constant_column(self):
        """Constant columns get a standard deviation of 1."""
        data = np.array([[7.0, 1.0], [7.0, 2.0], [7.0, 3.0]])
        stds = column_stds(data, column_means(data))

        assert stds[0] == 1.0
        assert stds[1] > 0

    def test_numerically_constant_column(self):
        """Rounding noise in a constant column is not amplified."""
        data = np.full((3, 1), 0.1)
        stds = column_stds(data, column_means(data))

        assert stds[0] == 1.0


class TestTransforms:
    """Tests for centering and standardization."""

    def test_center_matrix(self):
        """Centered columns have zero mean."""
        data = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 60.0]])
        centered, means = center_matrix(data)

        assert np.allclose(centered.mean(axis=0), 0.0)
        assert np.allclose(means, [2.0, 30.0])

    def test_standardize_matrix(self):
        """Standardized columns have zero mean and unit variance."""
        rng = np.random.RandomState(0)
        data = rng.randn(20, 4) * [1.0, 5.0, 0.1, 100.0] + [0.0, 3.0, -2.0, 50.0]
        standardized, means, stds = standardize_matrix(data)

        assert np.allclose(standardized.mean(axis=0), 0.0)
        assert np.allclose(standardized.std(axis=0), 1.0)

    def test_standardize_constant_column(self):
        """A constant column standardizes to zeros, not NaN."""
        data = np.array([[7.0, 1.0], [7.0, 2.0], [7.0, 4.0]])
        standardized, _, _ = standardize_matrix(data)

        assert np.all(np.isfinite(standardized))
        assert np.allclose(standardized[:, 0], 0.0)

    def test_deterministic(self):
        """Same input, same output."""
        data = np.array([[1.0, np.nan], [2.0, 5.0], [0.5, 1.0]])

        first, _, _ = standardize_matrix(data)
        second, _, _ = standardize_matrix(data)

        assert np.array_equal(first, second)
