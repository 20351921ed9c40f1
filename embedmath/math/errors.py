"""
Exceptions raised by the embedding math engines.
"""


class InsufficientDataError(ValueError):
    """
    Raised when a matrix has too few rows or columns for a method.
    """

    def __init__(self, method: str, n_rows: int, n_cols: int, message: str):
        self.method = method
        self.n_rows = n_rows
        self.n_cols = n_cols
        super().__init__(message)


class EmbeddingCancelled(Exception):
    """
    Raised between iterations when a caller asked to stop.
    """

    def __init__(self, method: str, iteration: int):
        self.method = method
        self.iteration = iteration
        super().__init__(f"{method} cancelled at iteration {iteration}")
