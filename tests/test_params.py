"""
Tests for the embedding parameter models.
"""

import pytest
import sys
import os

from pydantic import ValidationError

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from embedmath.components.config import Config
from embedmath.embedding.params import (
    PCAParams, TSNEParams, UMAPParams, make_params, params_from_config
)


class TestParamModels:
    """Tests for the pydantic models."""

    def test_defaults(self):
        """Models carry the documented defaults."""
        tsne = TSNEParams()
        umap = UMAPParams()

        assert (tsne.perplexity, tsne.iterations, tsne.learning_rate, tsne.seed) == (30.0, 1000, 200.0, 42)
        assert (umap.n_neighbors, umap.min_dist, umap.iterations, umap.seed) == (15, 0.1, 500, 42)
        assert (PCAParams().pc_x, PCAParams().pc_y) == (1, 2)

    @pytest.mark.parametrize('model,values', [
        (TSNEParams, {'perplexity': 0}),
        (TSNEParams, {'iterations': 0}),
        (TSNEParams, {'learning_rate': -1}),
        (UMAPParams, {'n_neighbors': 1}),
        (UMAPParams, {'min_dist': -0.1}),
        (PCAParams, {'pc_x': 0}),
    ])
    def test_out_of_range(self, model, values):
        """Values outside the accepted ranges are rejected."""
        with pytest.raises(ValidationError):
            model(**values)

    def test_unknown_field(self):
        """Misspelled parameters are rejected."""
        with pytest.raises(ValidationError):
            TSNEParams(perplexty=10)

    def test_frozen(self):
        """Models are immutable."""
        params = TSNEParams()
        with pytest.raises(ValidationError):
            params.perplexity = 5.0

    def test_cache_fields(self):
        """Everything that shapes a layout is part of the cache fields."""
        assert TSNEParams(iterations=10).cache_fields() == (30.0, 10, 200.0, 42)
        assert UMAPParams(min_dist=0.5).cache_fields() == (15, 0.5, 500, 42)

    def test_pca_axes_not_cached(self):
        """Switching PCA axes does not change the cache fields."""
        assert PCAParams(pc_x=3).cache_fields() == PCAParams().cache_fields() == ()


class TestMakeParams:
    """Tests for building parameters from overrides and configuration."""

    def test_from_dict(self):
        """Dictionary overrides are validated into a model."""
        params = make_params('umap', {'n_neighbors': 5})

        assert isinstance(params, UMAPParams)
        assert params.n_neighbors == 5

    def test_model_passthrough(self):
        """A matching model is used as is."""
        params = TSNEParams(perplexity=5)
        assert make_params('tsne', params) is params

    def test_model_mismatch(self):
        """A model for another method is refused."""
        with pytest.raises(ValueError):
            make_params('umap', TSNEParams())

    def test_unknown_method(self):
        """Unknown methods are refused."""
        with pytest.raises(ValueError, match="Unknown embedding method"):
            make_params('isomap')

    @pytest.mark.parametrize('params', [[1, 2], 'fast', 3, {1: 2}])
    def test_wrong_type(self, params):
        """Anything but a mapping of names or a model is a ValueError."""
        with pytest.raises(ValueError, match="must be a mapping"):
            make_params('tsne', params)

    def test_validation_error_is_value_error(self):
        """Range errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            make_params('tsne', {'perplexity': -3})

    def test_config_defaults(self):
        """Configuration supplies defaults and explicit values win."""
        config = Config({'tsne': {'perplexity': 12, 'learning-rate': 50}})
        params = make_params('tsne', {'learning_rate': 75}, config)

        assert params.perplexity == 12.0
        assert params.learning_rate == 75.0
        assert params.iterations == 1000

    def test_params_from_config(self):
        """Kebab-case configuration keys map to model fields."""
        config = Config({'umap': {'n-neighbors': 7}})
        values = params_from_config('umap', config)

        assert values['n_neighbors'] == 7
        assert values['min_dist'] == 0.1
