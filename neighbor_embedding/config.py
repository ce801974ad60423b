"""Configuration management for the neighbor embedding project."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union
import json

from .exceptions import ConfigurationError

MetricLike = Union[str, Callable]


@dataclass
class TSNEConfig:
    """t-SNE optimizer configuration."""
    perplexity: float = 50
    learning_rate: float = 10.0
    output_dim: int = 2
    metric: MetricLike = "squared_euclidean"  # name, callable or "precomputed"
    seed: int = 1212
    iterations: int = 500
    log_every: int = 50
    n_jobs: Optional[int] = None  # processes for the perplexity search

    def validate(self) -> None:
        """Raise ConfigurationError for values the optimizer cannot run with."""
        if self.output_dim is None or int(self.output_dim) <= 0:
            raise ConfigurationError(f"output_dim must be positive, got {self.output_dim}")
        if self.perplexity is None or self.perplexity <= 0:
            raise ConfigurationError(f"perplexity must be positive, got {self.perplexity}")
        if self.learning_rate is None or self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.iterations < 0:
            raise ConfigurationError(f"iterations must be non-negative, got {self.iterations}")
        if not (isinstance(self.metric, str) or callable(self.metric)):
            raise ConfigurationError(f"metric must be a name or a callable, got {self.metric!r}")


@dataclass
class MapperConfig:
    """Dataset-level mapping configuration."""
    use_pca: bool = True
    initial_dims: int = 30
    n_dims_2d: int = 2
    n_dims_3d: int = 3
    validate_perplexity: bool = True


@dataclass
class EmbeddingConfig:
    """Main configuration class for the embedding project."""

    # Data paths
    input_file: Optional[Path] = None
    labels_file: Optional[Path] = None
    output_directory: Optional[Path] = None

    # Sub-configurations
    tsne: TSNEConfig = field(default_factory=TSNEConfig)
    mapper: MapperConfig = field(default_factory=MapperConfig)

    def __post_init__(self):
        """Normalize path fields."""
        if self.input_file is not None:
            self.input_file = Path(self.input_file)
        if self.labels_file is not None:
            self.labels_file = Path(self.labels_file)
        if self.output_directory is not None:
            self.output_directory = Path(self.output_directory)

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'EmbeddingConfig':
        """Create configuration from dictionary."""
        tsne_config = TSNEConfig(**config_dict.get('tsne', {}))
        mapper_config = MapperConfig(**config_dict.get('mapper', {}))

        main_config = {k: v for k, v in config_dict.items()
                       if k not in ['tsne', 'mapper']}

        return cls(
            tsne=tsne_config,
            mapper=mapper_config,
            **main_config
        )

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> 'EmbeddingConfig':
        """Load configuration from JSON file."""
        with open(json_path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        metric = self.tsne.metric
        return {
            'input_file': str(self.input_file) if self.input_file else None,
            'labels_file': str(self.labels_file) if self.labels_file else None,
            'output_directory': str(self.output_directory) if self.output_directory else None,
            'tsne': {
                'perplexity': self.tsne.perplexity,
                'learning_rate': self.tsne.learning_rate,
                'output_dim': self.tsne.output_dim,
                # callables are not serializable, keep their name
                'metric': metric if isinstance(metric, str) else getattr(metric, '__name__', repr(metric)),
                'seed': self.tsne.seed,
                'iterations': self.tsne.iterations,
                'log_every': self.tsne.log_every,
                'n_jobs': self.tsne.n_jobs,
            },
            'mapper': {
                'use_pca': self.mapper.use_pca,
                'initial_dims': self.mapper.initial_dims,
                'n_dims_2d': self.mapper.n_dims_2d,
                'n_dims_3d': self.mapper.n_dims_3d,
                'validate_perplexity': self.mapper.validate_perplexity,
            }
        }

    def to_json(self, json_path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def get_output_subdirectory(self) -> Path:
        """Generate output subdirectory name based on configuration."""
        if not self.output_directory:
            raise ConfigurationError("Output directory not specified")

        metric = self.tsne.metric if isinstance(self.tsne.metric, str) else "custom"
        subdir_name = (f"tsne_{metric}_{self.tsne.perplexity}_{self.tsne.learning_rate}_"
                       f"{self.tsne.iterations}_{self.tsne.seed}")

        return self.output_directory / subdir_name
