"""
Simplified UMAP (Uniform Manifold Approximation and Projection).

A single-threaded approximation of the published algorithm: a k-nearest
neighbor graph with per-point fuzzy membership calibration, a fuzzy-union
symmetrization, a PCA-seeded layout, and stochastic gradient descent with a
fixed number of negative samples per point and epoch.
"""

import logging
import math
import numpy as np
from typing import Any, Callable, Dict, List, Optional, Tuple

from scipy.spatial.distance import pdist, squareform

from embedmath.math.errors import EmbeddingCancelled, InsufficientDataError
from embedmath.math.pca import pca
from embedmath.math.preprocess import standardize_matrix
from embedmath.utils.general import ParkMillerRandom, make_rng

logger = logging.getLogger(__name__)

# Membership calibration
SIGMA_MAX_ITER = 64
SIGMA_TOL = 1e-5
SIGMA_LO = 1e-20
SIGMA_HI = 1000.0

# Curve fit
CURVE_A_NUM = 1.929
CURVE_A_COEF = 0.0815
CURVE_A_EXP = 1.8
CURVE_B = 0.7915

# Optimization
EDGE_THRESHOLD = 0.01
NEGATIVE_SKIP_WEIGHT = 0.5
NEGATIVE_SAMPLES = 5
MAX_REPULSION = 4.0
DIST_EPS = 1e-6
REPULSION_EPS = 0.001
RANDOM_INIT_SCALE = 10.0


def curve_params(min_dist: float) -> Tuple[float, float]:
    """
    Approximate the low-dimensional kernel parameters for a minimum distance.

    Args:
        min_dist: Minimum distance between embedded points

    Returns:
        Tuple of (a, b)
    """
    a = CURVE_A_NUM / (1.0 + CURVE_A_COEF * math.pow(min_dist, CURVE_A_EXP))
    return a, CURVE_B


def nearest_neighbors(dists: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Find the k nearest neighbors of every point, excluding itself.

    Args:
        dists: Pairwise distances (n x n)
        k: Number of neighbors

    Returns:
        Tuple of (indices, distances), each n x k, nearest first
    """
    n = dists.shape[0]
    knn_indices = np.zeros((n, k), dtype=int)
    knn_dists = np.zeros((n, k))

    for i in range(n):
        row = dists[i].copy()
        row[i] = np.inf
        idx = np.argsort(row, kind='stable')[:k]
        knn_indices[i] = idx
        knn_dists[i] = row[idx]

    return knn_indices, knn_dists


def smooth_knn_sigma(knn_dists_i: np.ndarray, rho: float, target: float) -> float:
    """
    Bisect for the scale whose membership weights sum to target.

    Args:
        knn_dists_i: Distances from one point to its neighbors
        rho: Distance to the nearest neighbor
        target: Desired sum of weights, log2(k)

    Returns:
        Scale sigma
    """
    shifted = np.maximum(knn_dists_i - rho, 0.0)
    lo, hi, sigma = SIGMA_LO, SIGMA_HI, 1.0

    for _ in range(SIGMA_MAX_ITER):
        total = np.sum(np.exp(-shifted / sigma))
        if abs(total - target) < SIGMA_TOL:
            break
        if total > target:
            hi = sigma
            sigma = (lo + sigma) / 2.0
        else:
            lo = sigma
            sigma = sigma * 2.0 if hi >= SIGMA_HI else (sigma + hi) / 2.0

    return sigma


def fuzzy_simplicial_set(dists: np.ndarray, k: int) -> np.ndarray:
    """
    Build the symmetrized fuzzy neighbor graph.

    Args:
        dists: Pairwise distances (n x n)
        k: Number of neighbors

    Returns:
        Dense symmetric membership matrix (n x n)
    """
    n = dists.shape[0]
    knn_indices, knn_dists = nearest_neighbors(dists, k)
    target = math.log2(k)

    graph = np.zeros((n, n))
    for i in range(n):
        rho = knn_dists[i, 0]
        sigma = smooth_knn_sigma(knn_dists[i], rho, target)
        graph[i, knn_indices[i]] = np.exp(-np.maximum(knn_dists[i] - rho, 0.0) / sigma)

    # Probabilistic t-conorm: either endpoint may claim the edge
    return graph + graph.T - graph * graph.T


def initial_layout(data: np.ndarray, rng: ParkMillerRandom) -> np.ndarray:
    """
    Seed the layout from the first two principal components.

    Each component is divided by its root-mean-square. Falls back to a random
    layout when PCA is not applicable.

    Args:
        data: Standardized data matrix (n x p)
        rng: Seeded generator for the fallback

    Returns:
        Layout (n x 2)
    """
    n = data.shape[0]
    try:
        scores = pca(data)['scores'][:, :2]
    except InsufficientDataError:
        logger.debug("PCA initialization not applicable, using random layout")
        Y = np.empty((n, 2))
        for i in range(n):
            Y[i, 0] = (rng.random() - 0.5) * RANDOM_INIT_SCALE
            Y[i, 1] = (rng.random() - 0.5) * RANDOM_INIT_SCALE
        return Y

    rms = np.sqrt(np.mean(scores ** 2, axis=0))
    rms[~(rms > 0)] = 1.0
    return scores / rms


def edge_list(graph: np.ndarray, threshold: float = EDGE_THRESHOLD) -> List[Tuple[int, int, float]]:
    """
    Collect the upper-triangle edges above a weight threshold.

    Args:
        graph: Symmetric membership matrix
        threshold: Minimum weight to keep

    Returns:
        List of (i, j, weight) with i < j, in row-major order
    """
    rows, cols = np.nonzero(np.triu(graph, 1) > threshold)
    return [(int(i), int(j), float(graph[i, j])) for i, j in zip(rows, cols)]


def optimize_layout(Y: np.ndarray,
                    graph: np.ndarray,
                    edges: List[Tuple[int, int, float]],
                    a: float,
                    b: float,
                    iterations: int,
                    rng: ParkMillerRandom,
                    should_stop: Optional[Callable[[], bool]] = None) -> np.ndarray:
    """
    Run the stochastic gradient layout.

    Updates are applied one edge and one sample at a time, so later updates
    within an epoch see the positions moved by earlier ones.

    Args:
        Y: Initial layout (n x 2)
        graph: Symmetric membership matrix
        edges: Attractive edges from edge_list
        a: Curve parameter a
        b: Curve parameter b
        iterations: Number of epochs
        rng: Seeded generator for negative sampling
        should_stop: Polled between epochs; returning True cancels

    Returns:
        Optimized layout (n x 2)
    """
    n = Y.shape[0]
    xs = Y[:, 0].tolist()
    ys = Y[:, 1].tolist()
    weights = graph.tolist()
    n_neg = min(NEGATIVE_SAMPLES, n - 1)

    for epoch in range(iterations):
        if should_stop is not None and should_stop():
            raise EmbeddingCancelled('umap', epoch)

        alpha = 1.0 - epoch / iterations

        for i, j, w in edges:
            dx = xs[i] - xs[j]
            dy = ys[i] - ys[j]
            d2 = dx * dx + dy * dy + DIST_EPS
            grad = -2.0 * a * b * d2 ** (b - 1.0) / (1.0 + a * d2 ** b)
            gx = grad * dx * alpha * w
            gy = grad * dy * alpha * w
            xs[i] += gx
            ys[i] += gy
            xs[j] -= gx
            ys[j] -= gy

        for i in range(n):
            row = weights[i]
            for _ in range(n_neg):
                j = rng.randint(n)
                if j == i or row[j] > NEGATIVE_SKIP_WEIGHT:
                    continue
                dx = xs[i] - xs[j]
                dy = ys[i] - ys[j]
                d2 = dx * dx + dy * dy + DIST_EPS
                grad = 2.0 * b / ((REPULSION_EPS + d2) * (1.0 + a * d2 ** b))
                grad = min(grad, MAX_REPULSION)
                xs[i] += grad * dx * alpha
                ys[i] += grad * dy * alpha

        if (epoch + 1) % 100 == 0:
            logger.debug(f"UMAP epoch {epoch + 1}/{iterations}")

    return np.column_stack([xs, ys])


def umap(data: np.ndarray,
         n_neighbors: int = 15,
         min_dist: float = 0.1,
         iterations: int = 500,
         rng: Optional[ParkMillerRandom] = None,
         should_stop: Optional[Callable[[], bool]] = None) -> Dict[str, Any]:
    """
    Compute a 2D UMAP layout.

    Args:
        data: Data matrix (n x p); standardized here, NaN counts as 0
        n_neighbors: Neighborhood size, clamped to n - 1
        min_dist: Minimum distance between embedded points
        iterations: Number of epochs
        rng: Seeded generator for fallback initialization and negative sampling
        should_stop: Polled between epochs; returning True cancels

    Returns:
        Dictionary with 'scores' (n x 2), the effective 'n_neighbors', the
        curve parameters 'a' and 'b', and 'n_edges'

    Raises:
        InsufficientDataError: If n < 3
        EmbeddingCancelled: If should_stop returned True
    """
    data = np.asarray(data, dtype=float)
    n = data.shape[0]
    n_cols = data.shape[1] if data.ndim == 2 else 0
    if n < 3 or n_cols < 1:
        raise InsufficientDataError(
            'umap', n, n_cols,
            f"UMAP needs at least 3 samples and 1 feature, got {n} x {n_cols}")

    rng = make_rng(rng)
    k = min(n_neighbors, n - 1)
    a, b = curve_params(min_dist)

    standardized, _, _ = standardize_matrix(data)
    dists = squareform(pdist(standardized, metric='euclidean'))
    graph = fuzzy_simplicial_set(dists, k)

    Y = initial_layout(standardized, rng)
    edges = edge_list(graph)
    logger.debug(f"UMAP graph for {n} points: k={k}, {len(edges)} edges, a={a:.4f}, b={b:.4f}")

    Y = optimize_layout(Y, graph, edges, a, b, iterations, rng, should_stop)

    return {
        'scores': Y,
        'n_neighbors': k,
        'a': a,
        'b': b,
        'n_edges': len(edges)
    }
