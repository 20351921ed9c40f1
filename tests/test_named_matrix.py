"""
Tests for the named_matrix module.
"""

import math
import pytest
import numpy as np
import pandas as pd
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from embedmath.math.named_matrix import IndexHash, NamedMatrix, create_named_matrix, to_float_array


class TestIndexHash:
    """Tests for the IndexHash class."""

    def test_init_empty(self):
        """Test creating an empty IndexHash."""
        idx = IndexHash()
        assert idx.get_names() == []
        assert len(idx) == 0

    def test_init_with_names(self):
        """Test creating an IndexHash with initial names."""
        idx = IndexHash(['a', 'b', 'c'])
        assert idx.get_names() == ['a', 'b', 'c']
        assert len(idx) == 3

    def test_names_are_copied(self):
        """Mutating the returned names leaves the index alone."""
        idx = IndexHash(['a', 'b'])
        idx.get_names().append('c')
        assert idx.get_names() == ['a', 'b']

    def test_is_unique(self):
        """Test duplicate detection."""
        assert IndexHash(['a', 'b']).is_unique()
        assert not IndexHash(['a', 'b', 'a']).is_unique()


class TestToFloatArray:
    """Tests for converting raw rows to a float matrix."""

    def test_missing_markers(self):
        """None and NaN both become NaN."""
        values = to_float_array([[1, None], [float('nan'), 4.5]])

        assert values.shape == (2, 2)
        assert np.isnan(values[0, 1])
        assert np.isnan(values[1, 0])
        assert values[1, 1] == 4.5

    def test_ragged_rows(self):
        """Rows of different lengths are rejected."""
        with pytest.raises(ValueError, match="Row 1"):
            to_float_array([[1, 2], [3]])

    def test_non_numeric(self):
        """Strings are rejected rather than parsed."""
        with pytest.raises(ValueError, match="Non-numeric"):
            to_float_array([[1, 'x'], [3, 4]])

    def test_numeric_strings_array(self):
        """A string array is not parsed into numbers."""
        with pytest.raises(ValueError, match="Non-numeric"):
            to_float_array(np.array([['1', '2'], ['3', '4']]))

    def test_numpy_passthrough(self):
        """Numeric arrays are converted to float."""
        values = to_float_array(np.array([[1, 2], [3, 4]]))
        assert values.dtype == float

    def test_wrong_dimensions(self):
        """A 1D array is not a matrix."""
        with pytest.raises(ValueError):
            to_float_array(np.array([1.0, 2.0]))

    def test_flat_list(self):
        """A flat list of numbers is not a list of rows."""
        with pytest.raises(ValueError, match="Row 0"):
            to_float_array([1.0, 2.0, 3.0])

    def test_scalar_row(self):
        """A single scalar among rows is rejected."""
        with pytest.raises(ValueError, match="Row 1"):
            to_float_array([[1.0, 2.0], 3.0])

    def test_string_row(self):
        """Strings are not rows even though they have a length."""
        with pytest.raises(ValueError, match="Row 0"):
            to_float_array(['ab', 'cd'])

    def test_not_a_matrix(self):
        """Scalars and strings are not matrices."""
        with pytest.raises(ValueError):
            to_float_array(5)
        with pytest.raises(ValueError):
            to_float_array('1,2;3,4')

    @pytest.mark.parametrize('bad', [math.inf, -math.inf])
    def test_infinite_entry(self, bad):
        """Infinite entries are rejected with their position."""
        with pytest.raises(ValueError, match="row 1, column 1"):
            to_float_array([[1.0, 2.0], [3.0, bad]])

    def test_infinite_in_array(self):
        """Infinite entries in a numeric array are rejected too."""
        with pytest.raises(ValueError, match="Infinite"):
            to_float_array(np.array([[1.0, np.inf], [0.0, 1.0]]))

    def test_dataframe_integer_columns(self):
        """DataFrame rows are read as rows, whatever the column labels."""
        df = pd.DataFrame([[1.0, 2.0, 0.5], [2.0, 1.0, 0.1]])
        values = to_float_array(df)

        assert np.array_equal(values, [[1.0, 2.0, 0.5], [2.0, 1.0, 0.1]])

    def test_dataframe_string_columns(self):
        """Column labels are not mistaken for data."""
        df = pd.DataFrame({'a': [1, 2, 3], 'b': [4.0, None, 6.0]})
        values = to_float_array(df)

        assert values.shape == (3, 2)
        assert values[2, 0] == 3.0
        assert np.isnan(values[1, 1])


class TestNamedMatrix:
    """Tests for the NamedMatrix class."""

    def test_init_empty(self):
        """Test creating an empty NamedMatrix."""
        nmat = NamedMatrix()
        assert nmat.rownames() == []
        assert nmat.colnames() == []
        assert nmat.matrix.shape == (0, 0)

    def test_init_with_data(self):
        """Test creating a NamedMatrix with initial data."""
        data = np.array([[1, 2, 3], [4, 5, 6]])
        rownames = ['r1', 'r2']
        colnames = ['c1', 'c2', 'c3']

        nmat = NamedMatrix(data, rownames, colnames)

        assert nmat.rownames() == rownames
        assert nmat.colnames() == colnames
        assert np.array_equal(nmat.values, data)
        assert nmat.shape == (2, 3)

    def test_default_names(self):
        """Rows default to sample labels, columns to positions."""
        nmat = NamedMatrix([[1, 2], [3, 4]])

        assert nmat.rownames() == ['Sample 1', 'Sample 2']
        assert nmat.colnames() == [0, 1]

    def test_init_with_dataframe(self):
        """Test creating a NamedMatrix with a pandas DataFrame."""
        df = pd.DataFrame({
            'c1': [1, 4],
            'c2': [2, 5],
            'c3': [3, 6]
        }, index=['r1', 'r2'])

        nmat = NamedMatrix(df)

        assert nmat.rownames() == ['r1', 'r2']
        assert nmat.colnames() == ['c1', 'c2', 'c3']
        assert np.array_equal(nmat.values, df.values)

    def test_missing_values(self):
        """Missing entries are stored as NaN and counted."""
        nmat = NamedMatrix([[1, None, 3], [4, 5, None]], ['r1', 'r2'], ['a', 'b', 'c'])

        assert nmat.missing_count() == 2
        assert np.isnan(nmat.values[0, 1])
        assert repr(nmat) == "NamedMatrix(rows=2, cols=3, missing=2)"

    def test_name_count_mismatch(self):
        """Row and column names must match the data shape."""
        with pytest.raises(ValueError):
            NamedMatrix([[1, 2], [3, 4]], rownames=['r1'])
        with pytest.raises(ValueError):
            NamedMatrix([[1, 2], [3, 4]], colnames=['a', 'b', 'c'])

    def test_duplicate_rownames(self):
        """Duplicate row names are rejected."""
        with pytest.raises(ValueError, match="unique"):
            NamedMatrix([[1, 2], [3, 4]], rownames=['r1', 'r1'])

    def test_row_subset_by_index(self):
        """Test subsetting rows by position."""
        nmat = NamedMatrix(
            np.array([[1, 2], [3, 4], [5, 6]]),
            ['r1', 'r2', 'r3'],
            ['c1', 'c2']
        )

        subset = nmat.row_subset_by_index([2, 0])

        assert subset.rownames() == ['r3', 'r1']
        assert subset.colnames() == ['c1', 'c2']
        assert np.array_equal(subset.values, [[5, 6], [1, 2]])

    def test_row_subset_empty(self):
        """Selecting no rows keeps the columns."""
        nmat = NamedMatrix([[1, 2], [3, 4]])
        subset = nmat.row_subset_by_index([])

        assert subset.shape == (0, 2)
        assert subset.values.shape == (0, 2)


class TestCreateNamedMatrix:
    """Tests for the create_named_matrix helper."""

    def test_from_lists(self):
        """Test creating from nested lists."""
        nmat = create_named_matrix([[1, 2], [3, 4]], ['r1', 'r2'], ['c1', 'c2'])

        assert nmat.rownames() == ['r1', 'r2']
        assert np.array_equal(nmat.values, [[1, 2], [3, 4]])

    def test_passthrough(self):
        """An existing NamedMatrix is returned as is."""
        nmat = NamedMatrix([[1, 2], [3, 4]])
        assert create_named_matrix(nmat) is nmat

    def test_none_is_empty(self):
        """No data gives an empty matrix."""
        assert create_named_matrix(None).shape == (0, 0)
