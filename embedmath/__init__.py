"""
Embedmath package: dimensionality reduction for the charting tool.

Reduces a samples x features matrix to 2D coordinates with PCA, t-SNE or a
simplified UMAP, for use by the scatter-plot renderer.
"""

__version__ = '0.1.0'

from embedmath.components.config import Config, ConfigManager, configure_logging
from embedmath.embedding.engine import (
    EmbeddingEngine, EngineManager, EmbeddingResult, EmbeddingFailure, visibility_mask
)
from embedmath.embedding.params import PCAParams, TSNEParams, UMAPParams
