#!/usr/bin/env python3
"""
Main script for computing t-SNE embeddings of a feature matrix.

Reads features from a .npy or delimited text file and writes normalized 2D
coordinates, 3D colors and metadata for visualization.
"""

import argparse
import sys
import logging
from pathlib import Path

from neighbor_embedding import EmbeddingConfig, TSNEMapper
from neighbor_embedding.metrics import METRICS, PRECOMPUTED
from neighbor_embedding.utils import (
    setup_logging,
    create_directory_if_not_exists,
    load_feature_matrix,
    load_labels,
)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Create t-SNE embeddings of a feature matrix for visualization",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Required arguments
    parser.add_argument(
        '--input-file', '--features',
        type=Path,
        required=True,
        help='Feature matrix (.npy, .csv, .tsv or whitespace separated)'
    )
    parser.add_argument(
        '--output-dir', '--out_dir',
        type=Path,
        required=True,
        help='Directory for output files'
    )
    parser.add_argument(
        '--labels-file',
        type=Path,
        default=None,
        help='Optional file with one label per sample'
    )

    # t-SNE arguments
    parser.add_argument(
        '--perplexity',
        type=float,
        default=None,
        help='t-SNE perplexity parameter (default: 50)'
    )
    parser.add_argument(
        '--learning-rate', '--epsilon',
        type=float,
        default=None,
        help='Learning rate (default: 10)'
    )
    parser.add_argument(
        '--iterations',
        type=int,
        default=None,
        help='Number of optimization steps (default: 500)'
    )
    parser.add_argument(
        '--metric',
        choices=sorted(METRICS) + [PRECOMPUTED],
        default=None,
        help='Input-space metric (default: squared_euclidean)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed (default: 1212)'
    )
    parser.add_argument(
        '--n-jobs',
        type=int,
        default=None,
        help='Processes for the perplexity search (-1 for all cores)'
    )

    # Mapper arguments
    parser.add_argument(
        '--initial-dims', '--initial_dims',
        type=int,
        default=None,
        help='PCA dimensionality applied before t-SNE (default: 30)'
    )
    parser.add_argument(
        '--no-pca',
        action='store_false',
        dest='use_pca',
        default=None,
        help='Disable PCA preprocessing'
    )

    # Other arguments
    parser.add_argument(
        '--config-file',
        type=Path,
        help='JSON configuration file'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        help='Log file path'
    )

    return parser


def parse_arguments(argv=None) -> EmbeddingConfig:
    """Parse command line arguments and create configuration."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    if args.config_file:
        if not args.config_file.exists():
            raise FileNotFoundError(f"Config file not found: {args.config_file}")
        config = EmbeddingConfig.from_json(args.config_file)
        logging.info(f"Loaded configuration from {args.config_file}")
    else:
        config = EmbeddingConfig()

    config.input_file = args.input_file
    config.output_directory = args.output_dir
    if args.labels_file is not None:
        config.labels_file = args.labels_file

    # Command line values override the config file only when given
    for name in ('perplexity', 'learning_rate', 'iterations', 'metric', 'seed', 'n_jobs'):
        value = getattr(args, name)
        if value is not None:
            setattr(config.tsne, name, value)
    if args.initial_dims is not None:
        config.mapper.initial_dims = args.initial_dims
    if args.use_pca is not None:
        config.mapper.use_pca = args.use_pca

    config.tsne.validate()
    return config


def main(argv=None) -> int:
    """Main function."""
    logger = logging.getLogger(__name__)
    try:
        config = parse_arguments(argv)

        logger.info("Starting embedding pipeline")
        logger.info(f"Input file: {config.input_file}")
        logger.info(f"Output directory: {config.output_directory}")

        features = load_feature_matrix(config.input_file)
        labels = load_labels(config.labels_file) if config.labels_file else None
        if labels is not None and len(labels) != len(features):
            logger.error(f"{len(labels)} labels for {len(features)} samples")
            return 1

        tsne_mapper = TSNEMapper(config.tsne, config.mapper)

        if config.mapper.validate_perplexity and config.tsne.metric != "precomputed":
            config.tsne.perplexity = tsne_mapper.validate_perplexity(len(features))

        output_subdir = config.get_output_subdirectory()
        create_directory_if_not_exists(output_subdir)

        logger.info("Creating t-SNE embeddings...")
        embeddings = tsne_mapper.create_embeddings(features, labels)

        saved_files = tsne_mapper.save_embeddings(embeddings, output_subdir)

        logger.info("Pipeline completed successfully!")
        logger.info(f"Results saved in: {output_subdir}")
        logger.info(f"Main visualization file: {saved_files['json']}")

        config_path = output_subdir / "config.json"
        config.to_json(config_path)
        logger.info(f"Configuration saved to {config_path}")

        return 0

    except KeyboardInterrupt:
        logger.info("Pipeline interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Pipeline failed with error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
