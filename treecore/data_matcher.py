#!/usr/bin/env python
"""
Tree-Data Matcher - Matches tree tips to rows of external data

This module lines up tree tip labels with the row labels of a trait table
or sequence file. A match is always reported per tree label, in tree order;
unmatched labels are surfaced rather than silently dropped.
"""

import logging
from typing import List, Optional

from Bio import SeqIO

from treecore.editor import drop_tips
from treecore.exceptions import AmbiguousMatch


def match_labels(tree_labels, data_labels) -> List[Optional[int]]:
    """
    Find the position of each tree label in a list of data labels.

    Args:
        tree_labels: Labels to look up, e.g. tree tips in tip order.
        data_labels: Row labels of the data, in row order.

    Returns:
        One entry per tree label: the 0-based row of its match, or None if
        the label does not occur in the data.

    Raises:
        AmbiguousMatch: If a tree label occurs in more than one data row.
    """
    rows = {}
    for position, label in enumerate(data_labels):
        rows.setdefault(label, []).append(position)

    matches = []
    for label in tree_labels:
        candidates = rows.get(label)
        if candidates is None:
            matches.append(None)
        elif len(candidates) > 1:
            raise AmbiguousMatch(f"Label '{label}' matches data rows {candidates}")
        else:
            matches.append(candidates[0])
    return matches


class TreeDataMatcher:
    """Matches tree taxa to data taxa to ensure compatibility."""

    def __init__(self, config=None):
        """
        Initialize the tree-data matcher with optional configuration.

        Args:
            config (dict, optional): Configuration options. 'sequence_format'
                                     sets the Biopython format used to read
                                     sequence files (default 'fasta').
        """
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

        self.sequence_format = self.config.get('sequence_format', 'fasta')

    def get_tree_taxa(self, tree):
        """Return the tip labels of a tree, in tip order."""
        return [tree.tip_label(tip) for tip in tree.tips]

    def get_alignment_taxa(self, alignment_file, format=None):
        """Extract sequence IDs from a sequence file, in file order."""
        format = format or self.sequence_format
        self.logger.info(f"Reading sequences from: {alignment_file}")
        taxa = [record.id for record in SeqIO.parse(alignment_file, format)]
        self.logger.info(f"Found {len(taxa)} sequences")
        return taxa

    def analyze_mismatches(self, tree_taxa, data_taxa):
        """Analyze and report on mismatches between tree and data."""
        tree_taxa = set(tree_taxa)
        data_taxa = set(data_taxa)
        in_tree_only = tree_taxa - data_taxa
        in_data_only = data_taxa - tree_taxa
        common = tree_taxa.intersection(data_taxa)

        self.logger.info("Analysis of taxa mismatches:")
        self.logger.info(f"- Taxa in common: {len(common)}")
        self.logger.info(f"- Taxa only in tree: {len(in_tree_only)}")
        self.logger.info(f"- Taxa only in data: {len(in_data_only)}")

        return {
            "common": common,
            "tree_only": in_tree_only,
            "data_only": in_data_only
        }

    def match_tree_to_data(self, tree, data_labels):
        """
        Match every tip of a tree to a data row.

        Args:
            tree (Tree): The tree whose tips are matched.
            data_labels (list): Row labels of the data.

        Returns:
            dict: Tip label -> row position, or None when unmatched.
        """
        tree_taxa = self.get_tree_taxa(tree)
        matches = match_labels(tree_taxa, data_labels)
        unmatched = [label for label, row in zip(tree_taxa, matches) if row is None]
        if unmatched:
            self.logger.warning(f"{len(unmatched)} of {len(tree_taxa)} tips have no data row")
        return dict(zip(tree_taxa, matches))

    def prune_tree_to_data(self, tree, data_labels):
        """
        Drop the tips that have no data row.

        Args:
            tree (Tree): The tree to prune.
            data_labels (list): Row labels of the data.

        Returns:
            Tree: The pruned tree (the input tree if every tip matched).

        Raises:
            ValueError: If no tip has a data row.
        """
        matches = self.match_tree_to_data(tree, data_labels)
        unmatched = [label for label, row in matches.items() if row is None]
        if not unmatched:
            return tree
        if len(unmatched) == len(matches):
            raise ValueError("No tree tip matches any data row")

        self.logger.info(f"Filtering tree to keep {len(matches) - len(unmatched)} matched taxa")
        pruned = drop_tips(tree, unmatched)
        self.logger.info(f"Tree filtered: {tree.tip_count} → {pruned.tip_count} tips")
        return pruned
