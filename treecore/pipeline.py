#!/usr/bin/env python
"""
Tree Analysis Pipeline - Main orchestration module

This module provides a pipeline that coordinates a complete tree analysis
workflow, from tree parsing and data matching to polytomy resolution,
ladderizing, tree statistics and output.
"""

import os
import json
import logging
import time

import numpy as np

from treecore import editor, metrics, newick
from treecore.data_matcher import TreeDataMatcher
from treecore.exceptions import MissingLengths, NonBinaryTree, TreeError
from treecore.polytomy_finder import PolytomyFinder
from treecore.polytomy_resolver import PolytomyResolver
from treecore.tree_parser import TreeParser


class TreeAnalysisPipeline:
    """Orchestrates the complete tree analysis workflow."""

    def __init__(self, config=None):
        """
        Initialize with optional configuration.

        Args:
            config (dict, optional): Configuration options for the pipeline,
                                     with 'parser', 'matcher', 'resolver' and
                                     'metrics' sections.
        """
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

        # Initialize pipeline state
        self.tree = None
        self.original_tree = None
        # The current tree before polytomy resolution; replicates resolve this one
        self.analysis_tree = None

        # Initialize pipeline components
        self.parser = TreeParser(config=self.config.get('parser', {}))
        self.matcher = TreeDataMatcher(config=self.config.get('matcher', {}))

        resolver_config = self.config.get('resolver', {})
        self.random_seed = resolver_config.get('random_seed', 0)
        self.collapse_tolerance = resolver_config.get('collapse_tolerance')

        metrics_config = self.config.get('metrics', {})
        self.ultrametric_tolerance = metrics_config.get('ultrametric_tolerance', 1e-8)
        self.replicates = metrics_config.get('replicates', 0)

        # Track pipeline execution stats
        self.stats = {
            'start_time': None,
            'end_time': None,
            'elapsed_time': None,
            'tree_size': None,
            'polytomy_count': None,
            'resolved_count': None,
            'added_edges': None,
            'pruned_tips': None,
        }

        self.logger.info("Tree analysis pipeline initialized")

    def load_tree(self, tree_source):
        """
        Load a tree from file or string.

        Args:
            tree_source (str): Path to a tree file or a Newick string.

        Returns:
            bool: True if tree was loaded successfully, False otherwise.
        """
        self.logger.info(f"Loading tree from {tree_source}")

        try:
            # Check if tree_source is a file path
            if os.path.exists(tree_source):
                self.tree = self.parser.parse_from_file(tree_source)
            else:
                # Assume it's a Newick string
                self.tree = self.parser.parse_from_string(tree_source)
        except (TreeError, OSError) as e:
            self.logger.error(f"Failed to load tree: {str(e)}")
            return False

        # Trees are immutable, so the original needs no copy
        self.original_tree = self.tree
        self.analysis_tree = self.tree
        self.stats['tree_size'] = self.tree.tip_count
        self.logger.info(f"Tree loaded with {self.stats['tree_size']} tips")
        return True

    def match_data(self, alignment_path=None, data_labels=None):
        """
        Prune the tree to the tips present in a sequence file or label list.

        Args:
            alignment_path (str, optional): Sequence file whose record IDs are the data labels.
            data_labels (list, optional): Data labels given directly.

        Returns:
            bool: True if the tree was matched, False otherwise.
        """
        if not self.tree:
            self.logger.error("No tree loaded. Call load_tree() first.")
            return False

        if alignment_path is not None:
            data_labels = self.matcher.get_alignment_taxa(alignment_path)
        if data_labels is None:
            self.logger.error("No data labels to match the tree against")
            return False

        self.matcher.analyze_mismatches(self.matcher.get_tree_taxa(self.tree), data_labels)
        try:
            pruned = self.matcher.prune_tree_to_data(self.tree, data_labels)
        except (TreeError, ValueError) as e:
            self.logger.error(f"Failed to match tree and data: {str(e)}")
            return False

        self.stats['pruned_tips'] = self.tree.tip_count - pruned.tip_count
        self.tree = pruned
        self.analysis_tree = pruned
        return True

    def resolve_polytomies(self):
        """
        Collapse near-zero branches (if configured) and resolve all polytomies.

        Returns:
            bool: True if polytomies were resolved successfully, False otherwise.
        """
        if not self.tree:
            self.logger.error("No tree loaded. Call load_tree() first.")
            return False

        self.logger.info("Starting polytomy resolution")
        self.stats['start_time'] = time.time()

        if self.collapse_tolerance is not None:
            self.tree = editor.collapse_short_branches(self.tree, self.collapse_tolerance)
            self.analysis_tree = self.tree

        finder = PolytomyFinder(self.tree)
        self.stats['polytomy_count'] = len(finder.find_all_polytomies())

        resolver = PolytomyResolver(self.tree, random_seed=self.random_seed)
        self.tree = resolver.resolve_all_polytomies()
        self.stats['resolved_count'] = resolver.resolved_count
        self.stats['added_edges'] = resolver.added_edges

        # Calculate elapsed time
        self.stats['end_time'] = time.time()
        self.stats['elapsed_time'] = self.stats['end_time'] - self.stats['start_time']

        self.logger.info(f"Polytomy resolution completed in {self.stats['elapsed_time']:.2f} seconds")
        return True

    def ladderize(self, right_heavy=True):
        """Reorder the current tree so that clades are sorted by size."""
        if not self.tree:
            self.logger.error("No tree loaded. Call load_tree() first.")
            return False

        self.tree = editor.ladderize(self.tree, right_heavy=right_heavy)
        return True

    def compute_metrics(self):
        """
        Compute statistics of the current tree.

        Length-based statistics are None when the tree lacks branch lengths,
        and balance statistics are None when it is not fully bifurcating.

        Returns:
            dict: Tree statistics.
        """
        if not self.tree:
            raise ValueError("No tree loaded. Call load_tree() first.")

        tree = self.tree
        results = {
            'tips': tree.tip_count,
            'internal_nodes': len(tree.internal_nodes),
            'edges': tree.edge_count,
            'is_binary': tree.is_binary(),
            'total_branch_length': None,
            'tree_height': None,
            'is_ultrametric': None,
            'imbalance_index': None,
            'colless_index': None,
        }

        try:
            results['total_branch_length'] = metrics.total_branch_length(tree)
            results['tree_height'] = metrics.tree_height(tree)
            results['is_ultrametric'] = metrics.is_ultrametric(tree, self.ultrametric_tolerance)
        except MissingLengths as e:
            self.logger.warning(f"Skipping branch length statistics: {str(e)}")

        if results['is_binary'] and tree.internal_nodes:
            results['imbalance_index'] = metrics.imbalance_index(tree)
            results['colless_index'] = metrics.colless_index(tree)
        else:
            self.logger.warning("Skipping balance statistics: tree is not fully bifurcating")

        if self.replicates:
            try:
                results['imbalance_replicates'] = self.imbalance_replicates(self.replicates)
            except NonBinaryTree as e:
                self.logger.warning(f"Skipping imbalance replicates: {str(e)}")
                results['imbalance_replicates'] = None

        return results

    def imbalance_replicates(self, replicates, seed=None):
        """
        Compute the imbalance index over independently seeded resolutions.

        Each replicate resolves the tree under analysis (after matching and
        collapsing, before resolution) on its own, so the replicates share
        no state and may be computed in any order.

        Args:
            replicates (int): Number of random resolutions.
            seed (int, optional): Master seed (default: the resolver seed).

        Returns:
            list: One imbalance index per replicate.

        Raises:
            NonBinaryTree: If resolution leaves single-child nodes in the tree.
        """
        if not self.analysis_tree:
            raise ValueError("No tree loaded. Call load_tree() first.")

        seed = self.random_seed if seed is None else seed
        seeds = np.random.SeedSequence(seed).generate_state(replicates)
        self.logger.info(f"Computing imbalance over {replicates} random resolutions")
        return [metrics.imbalance_index(editor.resolve_polytomies(self.analysis_tree, int(s)))
                for s in seeds]

    def write_tree(self, output_path):
        """
        Write the current tree to a Newick file.

        Args:
            output_path (str): Path to output file.

        Returns:
            bool: True if tree was written successfully, False otherwise.
        """
        if not self.tree:
            self.logger.error("No tree available to write")
            return False

        # Ensure output directory exists
        output_dir = os.path.dirname(output_path)
        if output_dir and not os.path.exists(output_dir):
            os.makedirs(output_dir)

        try:
            newick.write_trees(output_path, [self.tree])
        except OSError as e:
            self.logger.error(f"Failed to write tree: {str(e)}")
            return False

        self.logger.info(f"Tree written to {output_path}")
        return True

    def write_metrics(self, output_path, results):
        """Write a metrics dictionary as JSON."""
        with open(output_path, 'w') as handle:
            json.dump(results, handle, indent=2)
        self.logger.info(f"Metrics written to {output_path}")
