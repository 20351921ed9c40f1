"""
Embedding engine: the library boundary used by the rendering layer.

The engine validates the input matrix and parameters, filters hidden rows,
dispatches to the PCA, t-SNE or UMAP engine, and memoizes the last result.
Problems with the data or parameters come back as EmbeddingFailure values;
they are never raised to the caller.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
import numpy as np
import pandas as pd
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from embedmath.components.config import Config, ConfigManager
from embedmath.embedding.cache import CacheKey, EmbeddingCache, matrix_fingerprint
from embedmath.embedding.params import EmbeddingParams, make_params
from embedmath.math.errors import EmbeddingCancelled, InsufficientDataError
from embedmath.math.named_matrix import NamedMatrix, create_named_matrix
from embedmath.math.pca import pca, select_axes
from embedmath.math.tsne import tsne
from embedmath.math.umap import umap
from embedmath.utils.general import ParkMillerRandom

logger = logging.getLogger(__name__)

# Failure reasons
INSUFFICIENT_DATA = 'insufficient-data'
INVALID_INPUT = 'invalid-input'
INVALID_PARAMETERS = 'invalid-parameters'
CANCELLED = 'cancelled'

DEFAULT_GROUP = 'All'

METHOD_AXIS_NAMES = {
    'tsne': 't-SNE',
    'umap': 'UMAP',
}


def visibility_mask(groups: Sequence[str], hidden_groups: Optional[Iterable[str]] = None) -> List[bool]:
    """
    Mark the rows whose group is not hidden.

    Args:
        groups: Group label per row
        hidden_groups: Groups to hide

    Returns:
        One flag per row, True if the row is visible
    """
    hidden = set(hidden_groups or ())
    return [group not in hidden for group in groups]


class EmbeddingFailure:
    """
    A computation that could not produce coordinates.
    """

    ok = False

    def __init__(self, reason: str, message: str, method: Optional[str] = None):
        """
        Initialize a failure.

        Args:
            reason: One of the failure reason constants
            message: Human-readable explanation
            method: Method that was requested
        """
        self.reason = reason
        self.message = message
        self.method = method

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': False,
            'reason': self.reason,
            'message': self.message,
            'method': self.method
        }

    def __repr__(self) -> str:
        return f"EmbeddingFailure(reason={self.reason!r}, message={self.message!r})"


class EmbeddingResult:
    """
    2D coordinates for the visible rows, plus method metadata.
    """

    ok = True

    def __init__(self,
                 method: str,
                 coordinates: np.ndarray,
                 row_indices: List[int],
                 row_labels: List[Any],
                 groups: List[str],
                 params: EmbeddingParams,
                 metadata: Optional[Dict[str, Any]] = None,
                 from_cache: bool = False):
        """
        Initialize a result.

        Args:
            method: Method used
            coordinates: Coordinates (n_visible x 2)
            row_indices: Positions of the visible rows in the input matrix
            row_labels: Label per visible row
            groups: Group per visible row
            params: Parameters used
            metadata: Method-specific extras
            from_cache: Whether the layout came from the cache
        """
        self.method = method
        self.coordinates = coordinates
        self.row_indices = row_indices
        self.row_labels = row_labels
        self.groups = groups
        self.params = params
        self.metadata = metadata or {}
        self.from_cache = from_cache

    @property
    def axis_labels(self) -> List[str]:
        """Axis titles for the x and y coordinates."""
        if self.method == 'pca':
            x_idx, y_idx = self.metadata['axes']
            ve = self.metadata['var_explained']
            return [f"PC{x_idx + 1} ({ve[x_idx]:.1f}%)", f"PC{y_idx + 1} ({ve[y_idx]:.1f}%)"]
        name = METHOD_AXIS_NAMES[self.method]
        return [f"{name} 1", f"{name} 2"]

    @property
    def converged(self) -> bool:
        """False when the eigensolver hit its sweep cap."""
        return self.metadata.get('converged', True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to plain Python types for the rendering layer.

        Returns:
            Dictionary representation
        """
        metadata = {k: v.tolist() if isinstance(v, np.ndarray) else v
                    for k, v in self.metadata.items()}
        return {
            'ok': True,
            'method': self.method,
            'coordinates': self.coordinates.tolist(),
            'row_indices': list(self.row_indices),
            'row_labels': list(self.row_labels),
            'groups': list(self.groups),
            'axis_labels': self.axis_labels,
            'metadata': metadata
        }

    def __repr__(self) -> str:
        return f"EmbeddingResult(method={self.method!r}, rows={len(self.row_indices)}, from_cache={self.from_cache})"


class EmbeddingEngine:
    """
    Computes and caches embeddings.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize an engine.

        Args:
            config: Configuration (defaults to the shared instance)
        """
        self.config = config or ConfigManager.get_config()
        self.cache = EmbeddingCache(enabled=bool(self.config.get('embedding.cache-enabled', True)))
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.RLock()

    def compute(self,
                matrix: Union[NamedMatrix, pd.DataFrame, np.ndarray, Sequence[Sequence[Any]]],
                groups: Optional[Sequence[str]] = None,
                method: Optional[str] = None,
                params: Optional[Union[EmbeddingParams, Dict[str, Any]]] = None,
                visible: Optional[Sequence[bool]] = None,
                hidden_groups: Optional[Iterable[str]] = None,
                row_labels: Optional[Sequence[Any]] = None,
                cancel_event: Optional[threading.Event] = None) -> Union[EmbeddingResult, EmbeddingFailure]:
        """
        Compute a 2D embedding of the visible rows.

        Args:
            matrix: Samples x features; None or NaN marks missing values
            groups: Group label per row (defaults to a single group)
            method: 'pca', 'tsne' or 'umap' (defaults to configuration)
            params: Parameter model or dictionary of overrides
            visible: Visibility flag per row
            hidden_groups: Groups whose rows are left out
            row_labels: Label per row (defaults to the matrix row names; the
                row names of a NamedMatrix always take precedence)
            cancel_event: Set to abandon a running t-SNE or UMAP computation

        Returns:
            EmbeddingResult, or EmbeddingFailure describing why none was produced
        """
        start_time = time.time()
        method = str(method or self.config.get('embedding.default-method', 'pca')).lower()

        try:
            params = make_params(method, params, self.config)
        except ValueError as e:
            return self._fail(INVALID_PARAMETERS, str(e), method)

        try:
            nmat = create_named_matrix(matrix)
        except ValueError as e:
            return self._fail(INVALID_INPUT, str(e), method)

        n_rows, n_cols = nmat.shape
        if n_rows == 0 or n_cols < 1:
            return self._fail(INVALID_INPUT, f"Matrix has no data (shape {nmat.shape})", method)

        if row_labels is None or isinstance(matrix, NamedMatrix):
            row_labels = nmat.rownames()
        if groups is None:
            groups = [DEFAULT_GROUP] * n_rows
        if len(row_labels) != n_rows or len(groups) != n_rows:
            return self._fail(INVALID_INPUT,
                              f"Expected {n_rows} row labels and groups, got "
                              f"{len(row_labels)} and {len(groups)}", method)

        mask = [True] * n_rows
        if visible is not None:
            if len(visible) != n_rows:
                return self._fail(INVALID_INPUT,
                                  f"Visibility mask has {len(visible)} entries for {n_rows} rows", method)
            mask = [bool(v) for v in visible]
        if hidden_groups:
            mask = [m and v for m, v in zip(mask, visibility_mask(groups, hidden_groups))]

        row_indices = [i for i, v in enumerate(mask) if v]
        visible_values = nmat.row_subset_by_index(row_indices).values
        n_missing = nmat.missing_count()
        if n_missing:
            logger.debug(f"{n_missing} missing entries treated as 0")

        key = CacheKey(method, params.cache_fields(), tuple(row_indices),
                       matrix_fingerprint(visible_values))
        should_stop = cancel_event.is_set if cancel_event is not None else None

        try:
            output, from_cache = self.cache.get_or_compute(
                key, lambda: self._run(method, params, visible_values, should_stop))
        except InsufficientDataError as e:
            return self._fail(INSUFFICIENT_DATA, str(e), method)
        except EmbeddingCancelled as e:
            return self._fail(CANCELLED, str(e), method)

        result = self._build_result(method, params, output, row_indices,
                                    [row_labels[i] for i in row_indices],
                                    [groups[i] for i in row_indices],
                                    nmat.colnames(),
                                    from_cache)

        logger.info(f"{method} embedding of {len(row_indices)} x {n_cols} "
                    f"{'served from cache' if from_cache else 'computed'} "
                    f"in {time.time() - start_time:.2f}s")
        return result

    def submit(self, *args: Any, **kwargs: Any) -> Future:
        """
        Run compute on the worker thread.

        Takes the same arguments as compute.

        Returns:
            Future resolving to an EmbeddingResult or EmbeddingFailure
        """
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='embedmath')
            return self._executor.submit(self.compute, *args, **kwargs)

    def clear_cache(self) -> None:
        """Drop the cached embedding."""
        self.cache.clear()

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop the worker thread.

        Args:
            wait: Block until pending computations finish
        """
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None

    def _run(self,
             method: str,
             params: EmbeddingParams,
             values: np.ndarray,
             should_stop: Optional[Callable[[], bool]]) -> Dict[str, Any]:
        """
        Dispatch to a method engine.

        Args:
            method: Method name
            params: Validated parameters
            values: Visible rows
            should_stop: Cancellation check

        Returns:
            Engine output dictionary
        """
        logger.debug(f"Computing {method} embedding for {values.shape[0]} rows")

        if method == 'pca':
            return pca(values)
        if method == 'tsne':
            return tsne(values,
                        perplexity=params.perplexity,
                        iterations=params.iterations,
                        learning_rate=params.learning_rate,
                        rng=ParkMillerRandom(params.seed),
                        should_stop=should_stop)
        return umap(values,
                    n_neighbors=params.n_neighbors,
                    min_dist=params.min_dist,
                    iterations=params.iterations,
                    rng=ParkMillerRandom(params.seed),
                    should_stop=should_stop)

    def _build_result(self,
                      method: str,
                      params: EmbeddingParams,
                      output: Dict[str, Any],
                      row_indices: List[int],
                      row_labels: List[Any],
                      groups: List[str],
                      feature_names: List[Any],
                      from_cache: bool) -> EmbeddingResult:
        """
        Wrap engine output, choosing the displayed PCA components.

        PCA loadings are labelled with the feature names, one per loading column.
        """
        scores = output['scores']

        if method == 'pca':
            x_idx, y_idx = select_axes(scores.shape[1], params.pc_x, params.pc_y)
            coordinates = scores[:, [x_idx, y_idx]]
            metadata = {
                'scores': scores.copy(),
                'eigenvalues': output['eigenvalues'].copy(),
                'var_explained': output['var_explained'].copy(),
                'loadings': output['eigenvectors'].copy(),
                'feature_names': list(feature_names),
                'center': output['center'].copy(),
                'converged': output['converged'],
                'axes': (x_idx, y_idx)
            }
            if not output['converged']:
                logger.warning("PCA eigenvectors are approximate (eigensolver did not converge)")
        else:
            coordinates = scores.copy()
            metadata = {k: v for k, v in output.items() if k != 'scores'}

        return EmbeddingResult(method, coordinates, row_indices, row_labels, groups,
                               params, metadata, from_cache)

    def _fail(self, reason: str, message: str, method: Optional[str]) -> EmbeddingFailure:
        logger.warning(f"Embedding failed ({reason}): {message}")
        return EmbeddingFailure(reason, message, method)


class EngineManager:
    """
    Singleton manager for the embedding engine.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_engine(cls, config: Optional[Config] = None) -> EmbeddingEngine:
        """
        Get the engine instance.

        Args:
            config: Configuration used when the engine is first created

        Returns:
            EmbeddingEngine instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = EmbeddingEngine(config)

            return cls._instance

    @classmethod
    def shutdown(cls) -> None:
        """
        Stop and drop the engine instance.
        """
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None
