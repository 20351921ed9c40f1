"""
Parameter models for the embedding methods.

Each model validates the ranges a method can accept. Limits that depend on
the sample count (perplexity, neighbor count) are not checked here; the
engines clamp them instead.
"""

from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from embedmath.components.config import Config

METHODS = ('pca', 'tsne', 'umap')


class EmbeddingParams(BaseModel):
    """Base class for method parameters."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    method: str = ''

    def cache_fields(self) -> Tuple[Any, ...]:
        """
        Parameters that change the computed layout.

        Returns:
            Tuple of values, in declaration order
        """
        return tuple(getattr(self, name) for name in self._cache_field_names())

    def _cache_field_names(self) -> Tuple[str, ...]:
        return tuple(name for name in type(self).model_fields if name != 'method')


class PCAParams(EmbeddingParams):
    """
    PCA display parameters.

    pc_x and pc_y are 1-based component numbers. They only select columns of
    the computed scores, so they do not take part in caching.
    """

    method: str = Field(default='pca', frozen=True)
    pc_x: int = Field(default=1, ge=1)
    pc_y: int = Field(default=2, ge=1)

    def _cache_field_names(self) -> Tuple[str, ...]:
        return ()


class TSNEParams(EmbeddingParams):
    """t-SNE optimization parameters."""

    method: str = Field(default='tsne', frozen=True)
    perplexity: float = Field(default=30.0, gt=0)
    iterations: int = Field(default=1000, ge=1)
    learning_rate: float = Field(default=200.0, gt=0)
    seed: int = 42


class UMAPParams(EmbeddingParams):
    """UMAP graph and optimization parameters."""

    method: str = Field(default='umap', frozen=True)
    n_neighbors: int = Field(default=15, ge=2)
    min_dist: float = Field(default=0.1, ge=0)
    iterations: int = Field(default=500, ge=1)
    seed: int = 42


PARAMS_BY_METHOD: Dict[str, Type[EmbeddingParams]] = {
    'pca': PCAParams,
    'tsne': TSNEParams,
    'umap': UMAPParams,
}

# Config section key -> model field, per method
CONFIG_KEYS: Dict[str, Dict[str, str]] = {
    'pca': {'pc-x': 'pc_x', 'pc-y': 'pc_y'},
    'tsne': {'perplexity': 'perplexity', 'iterations': 'iterations',
             'learning-rate': 'learning_rate', 'seed': 'seed'},
    'umap': {'n-neighbors': 'n_neighbors', 'min-dist': 'min_dist',
             'iterations': 'iterations', 'seed': 'seed'},
}


def params_from_config(method: str, config: Config) -> Dict[str, Any]:
    """
    Read a method's default parameters from configuration.

    Args:
        method: Method name
        config: Configuration

    Returns:
        Dictionary of model field values
    """
    section = config.section(method)
    return {field: section[key] for key, field in CONFIG_KEYS[method].items() if key in section}


def make_params(method: str,
                params: Optional[Union[EmbeddingParams, Dict[str, Any]]] = None,
                config: Optional[Config] = None) -> EmbeddingParams:
    """
    Build a validated parameter model.

    Values given explicitly override configuration defaults, which override
    the model defaults.

    Args:
        method: One of 'pca', 'tsne', 'umap'
        params: Parameter model or dictionary of overrides
        config: Configuration supplying defaults

    Returns:
        Parameter model for the method

    Raises:
        ValueError: If the method is unknown, the model does not match it, or
            params is neither a model nor a mapping
        pydantic.ValidationError: If a value is out of range
    """
    if method not in PARAMS_BY_METHOD:
        raise ValueError(f"Unknown embedding method '{method}', expected one of {', '.join(METHODS)}")

    model = PARAMS_BY_METHOD[method]
    if isinstance(params, EmbeddingParams):
        if not isinstance(params, model):
            raise ValueError(f"{type(params).__name__} cannot be used for method '{method}'")
        return params

    if params is not None and (not isinstance(params, Mapping)
                               or not all(isinstance(k, str) for k in params)):
        raise ValueError(f"Parameters for '{method}' must be a mapping of names or a parameter model, "
                         f"got {type(params).__name__}")

    values = params_from_config(method, config) if config is not None else {}
    values.update({k: v for k, v in (params or {}).items() if k != 'method'})
    return model(**values)
