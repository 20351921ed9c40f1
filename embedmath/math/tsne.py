"""
t-SNE (t-distributed Stochastic Neighbor Embedding) implementation.

High-dimensional neighborhoods are turned into Gaussian affinities whose
width is calibrated per point to a target perplexity, then matched in two
dimensions with a Student-t kernel by gradient descent on the KL divergence.
"""

import logging
import math
import numpy as np
from typing import Any, Callable, Dict, Optional

from scipy.spatial.distance import pdist, squareform

from embedmath.math.errors import EmbeddingCancelled, InsufficientDataError
from embedmath.math.preprocess import standardize_matrix
from embedmath.utils.general import ParkMillerRandom, make_rng

logger = logging.getLogger(__name__)

# Perplexity calibration
BETA_MAX_ITER = 50
BETA_TOL = 1e-5
MIN_SUM_P = 1e-20
MIN_ENTROPY_P = 1e-7
MIN_JOINT_P = 1e-12

# Optimization
EXAGGERATION = 4.0
EXAGGERATION_MAX_ITER = 100
MOMENTUM_SWITCH_ITER = 250
INITIAL_MOMENTUM = 0.5
FINAL_MOMENTUM = 0.8
MAX_GRAD_NORM = 5.0
GAIN_INCREMENT = 0.2
GAIN_DECAY = 0.8
MIN_GAIN = 0.01
FINAL_LR_FRACTION = 0.1
INIT_SCALE = 0.01


def effective_perplexity(perplexity: float, n: int) -> float:
    """
    Clamp a perplexity to what n samples can support.

    Args:
        perplexity: Requested perplexity
        n: Number of samples

    Returns:
        min(perplexity, floor((n - 1) / 3)), never below 1
    """
    return float(min(perplexity, max(1, (n - 1) // 3)))


def squared_distances(data: np.ndarray) -> np.ndarray:
    """
    Pairwise squared Euclidean distances.

    Args:
        data: Data matrix (n x p)

    Returns:
        Symmetric n x n matrix with a zero diagonal
    """
    return squareform(pdist(data, metric='sqeuclidean'))


def binary_search_beta(dist_row: np.ndarray, log_perplexity: float) -> np.ndarray:
    """
    Find the Gaussian precision giving a row the target entropy.

    Args:
        dist_row: Squared distances from one point to all others (self excluded)
        log_perplexity: Target entropy in nats

    Returns:
        Conditional probabilities for the row
    """
    beta = 1.0
    beta_lo = -np.inf
    beta_hi = np.inf
    row = np.zeros_like(dist_row)

    for _ in range(BETA_MAX_ITER):
        row = np.exp(-dist_row * beta)
        sum_p = max(row.sum(), MIN_SUM_P)
        row = row / sum_p

        kept = row[row > MIN_ENTROPY_P]
        entropy = -np.sum(kept * np.log(kept))

        diff = entropy - log_perplexity
        if abs(diff) < BETA_TOL:
            break

        if diff > 0:
            # Distribution too flat: sharpen
            beta_lo = beta
            beta = beta * 2.0 if beta_hi == np.inf else (beta + beta_hi) / 2.0
        else:
            beta_hi = beta
            beta = beta / 2.0 if beta_lo == -np.inf else (beta_lo + beta) / 2.0

    return row


def conditional_affinities(dist2: np.ndarray, perplexity: float) -> np.ndarray:
    """
    Per-point conditional probabilities p(j|i).

    Args:
        dist2: Pairwise squared distances (n x n)
        perplexity: Effective perplexity

    Returns:
        Row-stochastic matrix with a zero diagonal
    """
    n = dist2.shape[0]
    log_perplexity = math.log(perplexity)
    P = np.zeros((n, n))

    for i in range(n):
        mask = np.arange(n) != i
        P[i, mask] = binary_search_beta(dist2[i, mask], log_perplexity)

    return P


def joint_affinities(P_cond: np.ndarray) -> np.ndarray:
    """
    Symmetrize conditional probabilities.

    Args:
        P_cond: Conditional probabilities (n x n)

    Returns:
        Joint probabilities (P + P^T) / 2n, floored off the diagonal
    """
    n = P_cond.shape[0]
    P = np.maximum((P_cond + P_cond.T) / (2.0 * n), MIN_JOINT_P)
    np.fill_diagonal(P, 0.0)
    return P


def initial_layout(n: int, rng: ParkMillerRandom, scale: float = INIT_SCALE) -> np.ndarray:
    """
    Small random starting positions.

    Args:
        n: Number of points
        rng: Seeded generator
        scale: Spread of the starting cloud

    Returns:
        Layout (n x 2)
    """
    Y = np.empty((n, 2))
    for i in range(n):
        Y[i, 0] = (rng.random() - 0.5) * scale
        Y[i, 1] = (rng.random() - 0.5) * scale
    return Y


def kl_gradient(P: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    Gradient of KL(P || Q) for a Student-t layout.

    Args:
        P: Joint probabilities (n x n)
        Y: Current layout (n x 2)

    Returns:
        Gradient (n x 2)
    """
    num = 1.0 / (1.0 + squared_distances(Y))
    np.fill_diagonal(num, 0.0)
    sum_q = max(num.sum(), MIN_SUM_P)

    mult = 4.0 * (P - num / sum_q) * num
    return mult.sum(axis=1)[:, np.newaxis] * Y - mult @ Y


def clip_rows(grad: np.ndarray, max_norm: float = MAX_GRAD_NORM) -> np.ndarray:
    """
    Scale each row down to at most max_norm.

    Args:
        grad: Gradient (n x 2)
        max_norm: Largest allowed row norm

    Returns:
        Clipped gradient
    """
    norms = np.linalg.norm(grad, axis=1)
    scale = np.where(norms > max_norm, max_norm / np.maximum(norms, MIN_SUM_P), 1.0)
    return grad * scale[:, np.newaxis]


def tsne(data: np.ndarray,
         perplexity: float = 30.0,
         iterations: int = 1000,
         learning_rate: float = 200.0,
         rng: Optional[ParkMillerRandom] = None,
         should_stop: Optional[Callable[[], bool]] = None) -> Dict[str, Any]:
    """
    Compute a 2D t-SNE layout.

    Args:
        data: Data matrix (n x p); standardized here, NaN counts as 0
        perplexity: Target perplexity, clamped to the sample count
        iterations: Number of gradient steps
        learning_rate: Initial learning rate, decayed linearly to 10%
        rng: Seeded generator for the initial layout
        should_stop: Polled between iterations; returning True cancels

    Returns:
        Dictionary with 'scores' (n x 2) and the effective 'perplexity'

    Raises:
        InsufficientDataError: If n < 3
        EmbeddingCancelled: If should_stop returned True
    """
    data = np.asarray(data, dtype=float)
    n = data.shape[0]
    n_cols = data.shape[1] if data.ndim == 2 else 0
    if n < 3 or n_cols < 1:
        raise InsufficientDataError(
            'tsne', n, n_cols,
            f"t-SNE needs at least 3 samples and 1 feature, got {n} x {n_cols}")

    rng = make_rng(rng)
    perp = effective_perplexity(perplexity, n)
    if perp < perplexity:
        logger.debug(f"Perplexity {perplexity} clamped to {perp} for {n} samples")

    standardized, _, _ = standardize_matrix(data)
    P = joint_affinities(conditional_affinities(squared_distances(standardized), perp))

    Y = initial_layout(n, rng)
    gains = np.ones_like(Y)
    update = np.zeros_like(Y)

    exaggeration_end = min(EXAGGERATION_MAX_ITER, iterations // 10)

    for it in range(iterations):
        if should_stop is not None and should_stop():
            raise EmbeddingCancelled('tsne', it)

        P_used = P * EXAGGERATION if it < exaggeration_end else P
        lr = learning_rate * (1.0 - (1.0 - FINAL_LR_FRACTION) * it / iterations)
        momentum = INITIAL_MOMENTUM if it < MOMENTUM_SWITCH_ITER else FINAL_MOMENTUM

        grad = clip_rows(kl_gradient(P_used, Y))

        flipped = np.sign(grad) != np.sign(update)
        gains = np.where(flipped, gains + GAIN_INCREMENT, np.maximum(gains * GAIN_DECAY, MIN_GAIN))

        update = momentum * update - lr * gains * grad
        Y = Y + update
        Y = Y - Y.mean(axis=0)

        if (it + 1) % 250 == 0:
            logger.debug(f"t-SNE iteration {it + 1}/{iterations}")

    return {
        'scores': Y,
        'perplexity': perp
    }
