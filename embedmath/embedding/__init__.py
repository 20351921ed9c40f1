"""
Embedding computation for the rendering layer.

This module provides the engine facade, parameter models and the
single-entry result cache.
"""

from embedmath.embedding.cache import CacheKey, EmbeddingCache, matrix_fingerprint
from embedmath.embedding.engine import (
    EmbeddingEngine, EngineManager, EmbeddingResult, EmbeddingFailure, visibility_mask
)
from embedmath.embedding.params import EmbeddingParams, PCAParams, TSNEParams, UMAPParams, make_params
