"""
Named Matrix implementation for the embedding math module.

This module provides a data structure for matrices with named rows (samples)
and columns (features), used as the labelled input to the embedding engines.
"""

import numpy as np
import pandas as pd
from typing import Any, List, Optional, Sequence, Tuple, Union

from embedmath.utils.general import is_missing


class IndexHash:
    """
    Ordered labels with a uniqueness check.
    """

    def __init__(self, names: Optional[List[Any]] = None):
        """
        Build the index.

        Args:
            names: Labels in position order
        """
        self._names = [] if names is None else list(names)
        self._index_hash = {name: idx for idx, name in enumerate(self._names)}

    def get_names(self) -> List[Any]:
        """Copy of the labels in position order."""
        return self._names.copy()

    def is_unique(self) -> bool:
        """Check that no name occurs twice."""
        return len(self._index_hash) == len(self._names)

    def __len__(self) -> int:
        """Number of labels."""
        return len(self._names)


def _is_row(value: Any) -> bool:
    return isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes))


def to_float_array(data: Union[np.ndarray, pd.DataFrame, Sequence[Sequence[Any]]]) -> np.ndarray:
    """
    Convert nested rows to a 2D float array with NaN for missing entries.

    Args:
        data: Numpy array, DataFrame or list of rows; None and NaN mark
            missing values

    Returns:
        2D float array

    Raises:
        ValueError: If the data is not a list of equal-length rows of finite
            numbers or missing markers
    """
    if isinstance(data, pd.DataFrame):
        data = data.to_numpy(dtype=object)

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise ValueError(f"Matrix must be 2-dimensional, got {data.ndim} dimensions")
        if np.issubdtype(data.dtype, np.integer) or np.issubdtype(data.dtype, np.floating):
            return _check_finite(data.astype(float))
        data = data.tolist()

    if not _is_row(data):
        raise ValueError(f"Matrix must be a list of rows, got {type(data).__name__}")

    rows = list(data)
    if not rows:
        return np.zeros((0, 0))

    for i, row in enumerate(rows):
        if not _is_row(row):
            raise ValueError(f"Row {i} is {type(row).__name__}, expected a list of values")

    width = len(rows[0])
    values = np.empty((len(rows), width))
    for i, row in enumerate(rows):
        if len(row) != width:
            raise ValueError(f"Row {i} has {len(row)} entries, expected {width}")
        for j, value in enumerate(row):
            if is_missing(value):
                values[i, j] = np.nan
            elif isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
                raise ValueError(f"Non-numeric entry {value!r} at row {i}, column {j}")
            else:
                values[i, j] = float(value)
    return _check_finite(values)


def _check_finite(values: np.ndarray) -> np.ndarray:
    infinite = np.argwhere(np.isinf(values))
    if len(infinite):
        i, j = infinite[0]
        raise ValueError(f"Infinite entry {values[i, j]} at row {i}, column {j}")
    return values


class NamedMatrix:
    """
    Sample x feature matrix with labelled rows and columns.

    Uses a pandas DataFrame of floats as the underlying storage; missing
    entries are stored as NaN.
    """

    def __init__(self,
                 matrix: Optional[Union[np.ndarray, pd.DataFrame, Sequence[Sequence[Any]]]] = None,
                 rownames: Optional[List[Any]] = None,
                 colnames: Optional[List[Any]] = None):
        """
        Initialize a NamedMatrix.

        Args:
            matrix: Matrix data (numpy array, pandas DataFrame or list of rows)
            rownames: List of row names (defaults to "Sample 1".."Sample n")
            colnames: List of column names (defaults to 0..p-1)

        Raises:
            ValueError: If the data is ragged, non-numeric, or names do not fit
        """
        if matrix is None:
            values = np.zeros((0, 0))
        elif isinstance(matrix, pd.DataFrame):
            if rownames is None:
                rownames = list(matrix.index)
            if colnames is None:
                colnames = list(matrix.columns)
            values = to_float_array(matrix)
        else:
            values = to_float_array(matrix)

        n_rows, n_cols = values.shape
        if rownames is None:
            rownames = [f"Sample {i + 1}" for i in range(n_rows)]
        if colnames is None:
            colnames = list(range(n_cols))

        if len(rownames) != n_rows:
            raise ValueError(f"Got {len(rownames)} row names for {n_rows} rows")
        if len(colnames) != n_cols:
            raise ValueError(f"Got {len(colnames)} column names for {n_cols} columns")

        self._row_index = IndexHash(rownames)
        self._col_index = IndexHash(colnames)
        if not self._row_index.is_unique():
            raise ValueError("Row names must be unique")

        self._matrix = pd.DataFrame(values, index=list(rownames), columns=list(colnames))

    @property
    def matrix(self) -> pd.DataFrame:
        """Backing DataFrame."""
        return self._matrix

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a float numpy array (NaN for missing)."""
        return self._matrix.to_numpy(dtype=float)

    @property
    def shape(self) -> Tuple[int, int]:
        """(rows, columns)"""
        return self._matrix.shape

    def rownames(self) -> List[Any]:
        """Sample labels."""
        return self._row_index.get_names()

    def colnames(self) -> List[Any]:
        """Feature labels."""
        return self._col_index.get_names()

    def missing_count(self) -> int:
        """Number of missing entries."""
        return int(self._matrix.isna().to_numpy().sum())

    def row_subset_by_index(self, indices: Sequence[int]) -> 'NamedMatrix':
        """
        Keep the rows at the given positions, in that order.

        Args:
            indices: Row positions to keep, in order

        Returns:
            New NamedMatrix
        """
        indices = list(indices)
        subset_df = self._matrix.iloc[indices]

        result = NamedMatrix.__new__(NamedMatrix)
        result._matrix = subset_df
        result._row_index = IndexHash(list(subset_df.index))
        result._col_index = self._col_index
        return result

    def __repr__(self) -> str:
        n_rows, n_cols = self.shape
        return f"NamedMatrix(rows={n_rows}, cols={n_cols}, missing={self.missing_count()})"


def create_named_matrix(data: Any = None,
                        rownames: Optional[List[Any]] = None,
                        colnames: Optional[List[Any]] = None) -> NamedMatrix:
    """
    Wrap data in a NamedMatrix, passing an existing one through.

    Args:
        data: Array, DataFrame, list of rows or NamedMatrix
        rownames: Sample labels
        colnames: Feature labels

    Returns:
        NamedMatrix
    """
    if isinstance(data, NamedMatrix):
        return data
    return NamedMatrix(data, rownames, colnames)
