"""t-SNE mapping module."""

import numpy as np
from dataclasses import replace
from pathlib import Path
from typing import List, Dict, Any, Optional
import json
import logging
from sklearn.decomposition import PCA
from .config import TSNEConfig, MapperConfig
from .evaluator import EmbeddingEvaluator
from .exceptions import ConfigurationError
from .metrics import PRECOMPUTED
from .randomizer import Randomizer
from .tsne import TSNE
from .utils import normalize_coordinates

logger = logging.getLogger(__name__)


class TSNEMapper:
    """Handles t-SNE dimensionality reduction and coordinate mapping."""

    def __init__(self, config: TSNEConfig, mapper_config: Optional[MapperConfig] = None):
        """Initialize t-SNE mapper with configuration.

        Args:
            config: t-SNE configuration
            mapper_config: Preprocessing and output configuration
        """
        self.config = config
        self.mapper_config = mapper_config if mapper_config is not None else MapperConfig()

    def preprocess(self, features: np.ndarray) -> np.ndarray:
        """Reduce wide feature matrices with PCA before computing affinities."""
        if (self.mapper_config.use_pca and self.config.metric != PRECOMPUTED
                and features.shape[1] > self.mapper_config.initial_dims
                and features.shape[0] > self.mapper_config.initial_dims):
            logger.info(f"Applying PCA preprocessing to reduce from {features.shape[1]}D "
                        f"to {self.mapper_config.initial_dims}D")
            pca = PCA(n_components=self.mapper_config.initial_dims, random_state=self.config.seed)
            data = pca.fit_transform(features)
            logger.info(f"PCA explained variance ratio: {pca.explained_variance_ratio_.sum():.3f}")
            return data
        return features.copy()

    def fit_transform(self, features: np.ndarray,
                      n_dims: int = 2) -> np.ndarray:
        """Apply t-SNE to reduce dimensionality of features.

        Args:
            features: High-dimensional feature matrix (n_samples, n_features)
            n_dims: Target dimensionality

        Returns:
            Low-dimensional embeddings (n_samples, n_dims)
        """
        features = np.asarray(features, dtype=float)
        if features.ndim != 2 or features.shape[0] == 0:
            raise ConfigurationError("Cannot perform t-SNE on empty feature matrix")

        if features.shape[1] == 0:
            raise ConfigurationError("Feature matrix has zero dimensions")

        logger.info(f"Performing t-SNE reduction from {features.shape[1]}D to {n_dims}D "
                    f"for {features.shape[0]} samples")

        try:
            data = self.preprocess(features)

            tsne = TSNE(
                data,
                config=replace(self.config, output_dim=n_dims),
                randomizer=Randomizer(self.config.seed),
            )
            embeddings = tsne.fit_transform(self.config.iterations).copy()

            logger.info("t-SNE computation completed successfully")
            logger.info(f"Final KL divergence: {tsne.optimizer.kl_divergence():.6f}")

            return embeddings

        except Exception as e:
            logger.error(f"Error during t-SNE computation: {e}")
            raise

    def create_embeddings(self, features: np.ndarray,
                          labels: Optional[List[str]] = None) -> Dict[str, Any]:
        """Create 2D and 3D t-SNE embeddings with normalized coordinates.

        Args:
            features: High-dimensional feature matrix
            labels: Optional per-sample labels (sample indices when omitted)

        Returns:
            Dictionary containing 2D coordinates, 3D colors, and metadata
        """
        if labels is None:
            labels = [str(i) for i in range(len(features))]
        if len(features) != len(labels):
            raise ConfigurationError("Number of features must match number of labels")

        logger.info("Generating 2D t-SNE embeddings for visualization coordinates...")
        embeddings_2d = self.fit_transform(features, n_dims=self.mapper_config.n_dims_2d)
        coordinates_2d = normalize_coordinates(embeddings_2d)
        trust_2d = EmbeddingEvaluator.trustworthiness(
            features, embeddings_2d,
            metric="precomputed" if self.config.metric == PRECOMPUTED else "euclidean")
        logger.info(f"2D trustworthiness: {trust_2d:.4f}")

        colors_3d = None
        if self.mapper_config.n_dims_3d:
            logger.info("Generating 3D t-SNE embeddings for color mapping...")
            embeddings_3d = self.fit_transform(features, n_dims=self.mapper_config.n_dims_3d)
            colors_3d = normalize_coordinates(embeddings_3d)

        visualization_data = []
        for i, label in enumerate(labels):
            point_data = {
                "label": label,
                "point": coordinates_2d[i].tolist(),
            }
            if colors_3d is not None:
                point_data["color"] = colors_3d[i].tolist()
            visualization_data.append(point_data)

        metric = self.config.metric
        return {
            "data": visualization_data,
            "coordinates_2d": coordinates_2d,
            "colors_3d": colors_3d,
            "metadata": {
                "n_samples": len(labels),
                "feature_dim": int(np.asarray(features).shape[1]),
                "trustworthiness_2d": trust_2d,
                "tsne_config": {
                    "perplexity": self.config.perplexity,
                    "learning_rate": self.config.learning_rate,
                    "iterations": self.config.iterations,
                    "metric": metric if isinstance(metric, str) else getattr(metric, '__name__', 'custom'),
                    "seed": self.config.seed,
                    "use_pca": self.mapper_config.use_pca,
                    "initial_dims": self.mapper_config.initial_dims,
                }
            }
        }

    def save_embeddings(self, embeddings_dict: Dict[str, Any],
                        output_directory: Path) -> Dict[str, Path]:
        """Save t-SNE embeddings to various file formats.

        Args:
            embeddings_dict: Dictionary containing embeddings and metadata
            output_directory: Directory to save files

        Returns:
            Dictionary mapping file types to saved file paths
        """
        output_directory = Path(output_directory)
        output_directory.mkdir(parents=True, exist_ok=True)

        saved_files = {}

        json_path = output_directory / "points.json"
        with open(json_path, 'w') as f:
            json.dump(embeddings_dict["data"], f, indent=2)
        saved_files["json"] = json_path

        tsv_2d_path = output_directory / f"{self.config.perplexity}.2d.tsv"
        np.savetxt(tsv_2d_path, embeddings_dict["coordinates_2d"],
                   fmt='%.5f', delimiter='\t')
        saved_files["tsv_2d"] = tsv_2d_path

        if embeddings_dict.get("colors_3d") is not None:
            tsv_3d_path = output_directory / f"{self.config.perplexity}.3d.tsv"
            np.savetxt(tsv_3d_path, embeddings_dict["colors_3d"],
                       fmt='%.5f', delimiter='\t')
            saved_files["tsv_3d"] = tsv_3d_path

        labels_path = output_directory / "labels.txt"
        with open(labels_path, 'w') as f:
            for item in embeddings_dict["data"]:
                f.write(f"{item['label']}\n")
        saved_files["labels"] = labels_path

        metadata_path = output_directory / "metadata.json"
        with open(metadata_path, 'w') as f:
            json.dump(embeddings_dict["metadata"], f, indent=2)
        saved_files["metadata"] = metadata_path

        logger.info(f"Saved embeddings to {output_directory}")
        logger.info(f"Files saved: {list(saved_files.keys())}")

        return saved_files

    def load_embeddings(self, input_directory: Path) -> Dict[str, Any]:
        """Load previously saved t-SNE embeddings.

        Args:
            input_directory: Directory containing saved embeddings

        Returns:
            Dictionary containing loaded embeddings and metadata
        """
        input_directory = Path(input_directory)

        json_path = input_directory / "points.json"
        if not json_path.exists():
            raise FileNotFoundError(f"No embeddings file found in {input_directory}")

        with open(json_path, 'r') as f:
            data = json.load(f)

        coordinates_2d = np.array([item["point"] for item in data])
        colors_3d = None
        if data and "color" in data[0]:
            colors_3d = np.array([item["color"] for item in data])

        metadata_path = input_directory / "metadata.json"
        metadata = {}
        if metadata_path.exists():
            with open(metadata_path, 'r') as f:
                metadata = json.load(f)

        return {
            "data": data,
            "coordinates_2d": coordinates_2d,
            "colors_3d": colors_3d,
            "metadata": metadata
        }

    def validate_perplexity(self, n_samples: int) -> float:
        """Validate and adjust perplexity based on number of samples.

        Args:
            n_samples: Number of samples

        Returns:
            Validated perplexity value
        """
        # A good rule of thumb is perplexity < n_samples / 3
        max_perplexity = max(1, n_samples // 3)

        if self.config.perplexity > max_perplexity:
            logger.warning(f"Perplexity {self.config.perplexity} is too high for {n_samples} samples. "
                           f"Adjusting to {max_perplexity}")
            return max_perplexity

        return self.config.perplexity
