"""Evaluation module for t-SNE mappings."""

import numpy as np
from pathlib import Path
from typing import Dict, List, Any, Optional
import json
import logging
from sklearn.manifold import trustworthiness
from .utils import calculate_distance_matrix

logger = logging.getLogger(__name__)


class EmbeddingEvaluator:
    """Evaluates t-SNE mappings by how tightly labeled groups cluster."""

    def __init__(self, min_group_size: int = 2):
        """Initialize evaluator.

        Args:
            min_group_size: Groups with fewer samples are ignored
        """
        self.min_group_size = max(2, min_group_size)

    def evaluate_directory(self, directory: Path,
                           top_results: Optional[int] = None) -> Dict[str, Any]:
        """Evaluate all t-SNE mappings in a directory.

        Args:
            directory: Directory containing points.json files
            top_results: Number of top results to return (None for all)

        Returns:
            Dictionary containing evaluation results
        """
        directory = Path(directory)
        results = []

        points_files = sorted(directory.rglob("points.json"))

        if not points_files:
            logger.warning(f"No embedding files found in {directory}")
            return {"results": [], "summary": {}}

        logger.info(f"Found {len(points_files)} embedding files to evaluate")

        for points_file in points_files:
            try:
                result = self.evaluate_single_mapping(points_file)
            except (OSError, ValueError, KeyError) as e:
                logger.error(f"Error evaluating {points_file}: {e}")
                continue
            if result:
                results.append(result)

        # lower is better
        results.sort(key=lambda x: x['total_mean_distance'])

        if top_results:
            results = results[:top_results]

        summary = self._create_summary(results)

        return {
            "results": results,
            "summary": summary,
            "evaluation_metadata": {
                "total_mappings_evaluated": len(results),
                "min_group_size": self.min_group_size
            }
        }

    def evaluate_single_mapping(self, points_file: Path) -> Optional[Dict[str, Any]]:
        """Evaluate a single t-SNE mapping.

        Args:
            points_file: Path to points.json file

        Returns:
            Dictionary containing evaluation metrics, None if nothing to score
        """
        with open(points_file, 'r') as f:
            data = json.load(f)

        if not data:
            logger.warning(f"Empty data in {points_file}")
            return None

        group_distances = self.group_mean_distances(data)

        if not group_distances:
            logger.warning(f"No valid groups found in {points_file}")
            return None

        total_mean_distance = float(np.mean(list(group_distances.values())))

        result = {
            "file_path": str(points_file),
            "parameter_info": points_file.parent.name,
            "group_distances": group_distances,
            "total_mean_distance": total_mean_distance,
            "n_samples": len(data),
            "n_valid_groups": len(group_distances)
        }

        metadata_file = points_file.parent / "metadata.json"
        if metadata_file.exists():
            with open(metadata_file, 'r') as f:
                metadata = json.load(f)
            if "trustworthiness_2d" in metadata:
                result["trustworthiness"] = metadata["trustworthiness_2d"]

        return result

    def group_mean_distances(self, data: List[Dict[str, Any]]) -> Dict[str, float]:
        """Mean within-group pairwise distance for every label."""
        grouped: Dict[str, List[List[float]]] = {}
        for sample in data:
            grouped.setdefault(str(sample.get('label', '')), []).append(sample['point'])

        logger.debug(f"Sample grouping: {[(name, len(points)) for name, points in grouped.items()]}")

        group_distances = {}
        for label, points in grouped.items():
            if len(points) < self.min_group_size:
                logger.debug(f"Skipping group '{label}' with < {self.min_group_size} samples")
                continue
            group_distances[label] = self._calculate_group_mean_distance(np.array(points))
        return group_distances

    def _calculate_group_mean_distance(self, coordinates: np.ndarray) -> float:
        """Calculate mean pairwise distance within a group."""
        n_samples = coordinates.shape[0]
        if n_samples < 2:
            return 0.0

        distance_matrix = calculate_distance_matrix(coordinates)
        upper = np.triu_indices(n_samples, k=1)
        return float(np.mean(distance_matrix[upper]))

    @staticmethod
    def trustworthiness(features: np.ndarray, embedding: np.ndarray,
                        n_neighbors: int = 5, metric: str = "euclidean") -> float:
        """How well the embedding keeps each point's input-space neighbors.

        Args:
            features: Input matrix (n_samples, n_features)
            embedding: Embedding (n_samples, n_dims)
            n_neighbors: Neighborhood size, capped below n_samples / 2
            metric: Input-space metric, "precomputed" when features are distances

        Returns:
            Score in [0, 1], 1 meaning no intruding neighbors
        """
        n_samples = len(features)
        n_neighbors = max(1, min(n_neighbors, (n_samples - 1) // 2))
        return float(trustworthiness(features, embedding, n_neighbors=n_neighbors, metric=metric))

    def _create_summary(self, results: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Create summary statistics from evaluation results."""
        if not results:
            return {}

        total_distances = [r['total_mean_distance'] for r in results]

        return {
            "best_result": {
                "parameter_info": results[0]['parameter_info'],
                "total_mean_distance": results[0]['total_mean_distance']
            },
            "statistics": {
                "mean_distance": {
                    "min": float(np.min(total_distances)),
                    "max": float(np.max(total_distances)),
                    "mean": float(np.mean(total_distances)),
                    "std": float(np.std(total_distances))
                },
                "n_results": len(results)
            }
        }

    def save_evaluation_results(self, results: Dict[str, Any],
                                output_path: Path) -> None:
        """Save evaluation results to JSON file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)

        logger.info(f"Evaluation results saved to {output_path}")

    def print_results(self, results: Dict[str, Any],
                      top_n: Optional[int] = None) -> None:
        """Print evaluation results in a formatted way."""
        evaluation_results = results.get("results", [])

        if not evaluation_results:
            print("No evaluation results found.")
            return

        if top_n:
            evaluation_results = evaluation_results[:top_n]

        print(f"\n=== t-SNE Evaluation Results (Top {len(evaluation_results)}) ===")
        print()

        for i, result in enumerate(evaluation_results, 1):
            print(f"{i}. Parameters: {result['parameter_info']}")
            print(f"   Total Mean Distance: {result['total_mean_distance']:.6f}")
            print(f"   Samples: {result['n_samples']}, Valid Groups: {result['n_valid_groups']}")
            if result.get('trustworthiness') is not None:
                print(f"   Trustworthiness: {result['trustworthiness']:.4f}")

            if result.get('group_distances'):
                print("   Group Distances:")
                for group, distance in result['group_distances'].items():
                    print(f"     {group}: {distance:.6f}")
            print()

        if results.get("summary"):
            summary = results["summary"]
            print("=== Summary Statistics ===")
            best = summary["best_result"]
            print(f"Best Result: {best['parameter_info']} "
                  f"(distance: {best['total_mean_distance']:.6f})")

            stats = summary["statistics"]["mean_distance"]
            print(f"Distance Range: {stats['min']:.6f} - {stats['max']:.6f}")
            print(f"Mean ± Std: {stats['mean']:.6f} ± {stats['std']:.6f}")
            print()
