#!/usr/bin/env python3
"""
Rank embedding runs written by run_embedding.py.

Each run directory holds a points.json; runs are ordered by their mean
within-label distance (tighter first) and reported together with the
trustworthiness recorded in their metadata.
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from neighbor_embedding import EmbeddingEvaluator
from neighbor_embedding.utils import setup_logging

logger = logging.getLogger(__name__)

RANKING_COLUMNS = ["rank", "run", "mean_distance", "trustworthiness", "n_samples", "n_groups"]


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Rank embedding runs by how tightly labeled groups cluster",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--directory', '--dir', type=Path, required=True,
                        help='Directory searched recursively for points.json files')
    parser.add_argument('--top', type=int, default=None,
                        help='Keep only the best N runs (default: all)')
    parser.add_argument('--min-group-size', type=int, default=2,
                        help='Labels with fewer samples are not scored')

    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-file', type=Path,
                              help='Write the full evaluation as JSON')
    output_group.add_argument('--ranking-file', type=Path,
                              help='Write one tab-separated row per run '
                                   '(defaults to ranking.tsv beside --output-file)')
    output_group.add_argument('--quiet', action='store_true',
                              help='Do not print the ranking to stdout')

    log_group = parser.add_argument_group('Logging')
    log_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                           default='INFO', help='Logging level')
    log_group.add_argument('--log-file', type=Path, help='Log file path')

    return parser


def ranking_rows(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten evaluation results into one row per run, best first."""
    rows = []
    for rank, result in enumerate(results, 1):
        trust = result.get("trustworthiness")
        rows.append({
            "rank": rank,
            "run": result["parameter_info"],
            "mean_distance": f"{result['total_mean_distance']:.6f}",
            "trustworthiness": "" if trust is None else f"{trust:.4f}",
            "n_samples": result["n_samples"],
            "n_groups": result["n_valid_groups"],
        })
    return rows


def write_ranking(results: List[Dict[str, Any]], ranking_path: Path) -> None:
    ranking_path.parent.mkdir(parents=True, exist_ok=True)
    with open(ranking_path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=RANKING_COLUMNS, delimiter='\t')
        writer.writeheader()
        writer.writerows(ranking_rows(results))
    logger.info(f"Ranking written to {ranking_path}")


def main(argv=None) -> int:
    """Main function."""
    try:
        args = create_argument_parser().parse_args(argv)
        setup_logging(args.log_level, args.log_file)

        if not args.directory.is_dir():
            logger.error(f"Not a directory: {args.directory}")
            return 1

        logger.info(f"Ranking embedding runs under {args.directory}")
        evaluator = EmbeddingEvaluator(args.min_group_size)
        evaluation = evaluator.evaluate_directory(args.directory, args.top)

        if not evaluation["results"]:
            logger.warning("Nothing to rank")
            return 0

        if not args.quiet:
            evaluator.print_results(evaluation, args.top)

        if args.output_file:
            evaluator.save_evaluation_results(evaluation, args.output_file)

        ranking_file = args.ranking_file
        if ranking_file is None and args.output_file:
            ranking_file = args.output_file.parent / "ranking.tsv"
        if ranking_file is not None:
            write_ranking(evaluation["results"], ranking_file)

        best = evaluation["summary"]["best_result"]
        logger.info(f"Best run: {best['parameter_info']} "
                    f"(mean distance {best['total_mean_distance']:.6f})")
        return 0

    except KeyboardInterrupt:
        logger.info("Evaluation interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Evaluation failed with error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
