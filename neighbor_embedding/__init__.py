"""
Neighbor Embedding Package.

This package provides a t-SNE engine that embeds high-dimensional points
into a low-dimensional space, plus tools for mapping feature files to 2D/3D
coordinates and evaluating the resulting embeddings.
"""

__version__ = "1.0.0"
__author__ = ""

from .config import EmbeddingConfig, MapperConfig, TSNEConfig
from .exceptions import ConfigurationError, DimensionError, EmbeddingError
from .randomizer import Randomizer
from .metrics import PRECOMPUTED, distance_matrix
from .similarity import SimilarityEstimator
from .symmetrize import symmetrize
from .optimizer import EmbeddingOptimizer, OptimizerState
from .tsne import TSNE, DimensionalityReducer
from .tsne_mapper import TSNEMapper
from .evaluator import EmbeddingEvaluator

__all__ = [
    "EmbeddingConfig",
    "MapperConfig",
    "TSNEConfig",
    "ConfigurationError",
    "DimensionError",
    "EmbeddingError",
    "Randomizer",
    "PRECOMPUTED",
    "distance_matrix",
    "SimilarityEstimator",
    "symmetrize",
    "EmbeddingOptimizer",
    "OptimizerState",
    "TSNE",
    "DimensionalityReducer",
    "TSNEMapper",
    "EmbeddingEvaluator",
]
