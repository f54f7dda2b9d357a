#!/usr/bin/env python
"""
Tree Analysis Tool - Main Script

A tool for pruning, resolving and summarizing phylogenetic trees.
This script serves as the command-line interface to the tree analysis pipeline.
"""

import sys
import argparse
import logging
import time

from treecore.pipeline import TreeAnalysisPipeline


# Set up logging
def setup_logging(log_level, log_file=None):
    """Configure logging system based on specified log level and optional log file."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    # Basic configuration for console logging
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Add file handler if log_file is specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logging.getLogger().addHandler(file_handler)

        logging.info(f"Logging to file: {log_file}")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Prune, resolve and summarize a phylogenetic tree",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input tree file, or a Newick string"
    )

    parser.add_argument(
        "--output", "-o",
        help="Output tree file in Newick format"
    )

    parser.add_argument(
        "--metrics", "-m",
        help="Output file for tree statistics in JSON format"
    )

    parser.add_argument(
        "--format",
        default="newick",
        help="Input tree format; formats other than newick are read with DendroPy"
    )

    parser.add_argument(
        "--alignment", "-a",
        help="Sequence file; tips without a sequence are dropped from the tree"
    )

    parser.add_argument(
        "--alignment-format",
        default="fasta",
        help="Biopython format name of the sequence file"
    )

    parser.add_argument(
        "--resolve",
        action="store_true",
        help="Resolve polytomies into random bifurcations"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed for polytomy resolution"
    )

    parser.add_argument(
        "--collapse-tolerance",
        type=float,
        help="Collapse internal branches no longer than this before resolving"
    )

    parser.add_argument(
        "--ladderize",
        choices=["right", "left"],
        help="Ladderize the tree with larger clades on this side"
    )

    parser.add_argument(
        "--ultrametric-tolerance",
        type=float,
        default=1e-8,
        help="Tolerance for the ultrametricity check"
    )

    parser.add_argument(
        "--replicates",
        type=int,
        default=0,
        help="Number of random resolutions to compute the imbalance index over"
    )

    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="Set logging level"
    )

    parser.add_argument(
        "--log-file",
        help="Path to output log file"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 0.1.0"
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main function."""
    args = parse_args(argv)

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info("Starting tree analysis")

    # Create configuration dict from arguments
    config = {
        'parser': {
            'format': args.format,
        },
        'matcher': {
            'sequence_format': args.alignment_format,
        },
        'resolver': {
            'random_seed': args.seed,
            'collapse_tolerance': args.collapse_tolerance,
        },
        'metrics': {
            'ultrametric_tolerance': args.ultrametric_tolerance,
            'replicates': args.replicates,
        },
    }

    pipeline = TreeAnalysisPipeline(config=config)

    try:
        if not pipeline.load_tree(args.input):
            return 1

        if args.alignment:
            logger.info("Matching tree to alignment taxa")
            if not pipeline.match_data(alignment_path=args.alignment):
                return 1

        if args.resolve:
            logger.info("Resolving polytomies")
            pipeline.resolve_polytomies()

        if args.ladderize:
            pipeline.ladderize(right_heavy=args.ladderize == "right")

        results = pipeline.compute_metrics()
        for key, value in results.items():
            logger.info(f"{key}: {value}")

        if args.metrics:
            pipeline.write_metrics(args.metrics, results)

        if args.output and not pipeline.write_tree(args.output):
            return 1

        elapsed_time = time.time() - start_time
        logger.info(f"Tree analysis completed in {elapsed_time:.2f} seconds")

    except Exception as e:
        logger.error(f"Error during tree analysis: {str(e)}")
        logger.error("Exception details:", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
