"""Utility functions for the neighbor embedding project."""

import numpy as np
from pathlib import Path
from typing import List, Optional, Union
import logging

logger = logging.getLogger(__name__)


def normalize_coordinates(coordinates: np.ndarray) -> np.ndarray:
    """Normalize coordinates to [0, 1] range.

    Args:
        coordinates: Array of coordinates to normalize

    Returns:
        Normalized coordinates
    """
    if coordinates.size == 0:
        return coordinates

    # Handle single dimension case
    if coordinates.ndim == 1:
        coordinates = coordinates.reshape(-1, 1)

    normalized = np.zeros_like(coordinates, dtype=float)

    for dim in range(coordinates.shape[1]):
        col = coordinates[:, dim]
        min_val = np.min(col)
        max_val = np.max(col)

        if max_val - min_val == 0:
            normalized[:, dim] = 0.5  # Center all points if no variation
        else:
            normalized[:, dim] = (col - min_val) / (max_val - min_val)

    return normalized


def create_directory_if_not_exists(directory: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist.

    Args:
        directory: Directory path to create

    Returns:
        Path object of the created directory
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def load_feature_matrix(file_path: Union[str, Path]) -> np.ndarray:
    """Load a feature matrix from .npy or delimited text.

    Args:
        file_path: Path to a .npy, .csv, .tsv or whitespace separated file

    Returns:
        Feature matrix (n_samples, n_features)
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Feature file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == '.npy':
        features = np.load(file_path)
    elif suffix == '.csv':
        features = np.loadtxt(file_path, delimiter=',', ndmin=2)
    elif suffix == '.tsv':
        features = np.loadtxt(file_path, delimiter='\t', ndmin=2)
    else:
        features = np.loadtxt(file_path, ndmin=2)

    logger.info(f"Loaded feature matrix {features.shape} from {file_path}")
    return np.asarray(features, dtype=float)


def load_labels(file_path: Union[str, Path]) -> List[str]:
    """Read one label per line."""
    with open(file_path, 'r') as f:
        return [line.rstrip('\n') for line in f if line.strip()]


def setup_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging setup complete. Level: {level}")


def calculate_distance_matrix(coordinates: np.ndarray) -> np.ndarray:
    """Calculate pairwise Euclidean distance matrix.

    Args:
        coordinates: Array of coordinates (n_samples, n_dims)

    Returns:
        Distance matrix (n_samples, n_samples)
    """
    coordinates = np.asarray(coordinates, dtype=float)
    diff = coordinates[:, np.newaxis, :] - coordinates[np.newaxis, :, :]
    return np.sqrt(np.sum(diff ** 2, axis=-1))
