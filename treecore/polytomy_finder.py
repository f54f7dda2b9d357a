#!/usr/bin/env python
"""
Polytomy Finder Module - Identifies polytomies in phylogenetic trees

This module traverses tree structures and identifies nodes with more than
two child nodes (hard polytomies) as well as internal branches short enough
to make a bifurcation only apparent (soft polytomies).
"""

import logging
from collections import namedtuple

from treecore.topology import TopologyQuery

# Define a named tuple to represent polytomy information
Polytomy = namedtuple('Polytomy', ['node', 'degree', 'depth', 'children', 'is_internal'])


class PolytomyFinder:
    """Traverses tree structure and identifies polytomies."""

    def __init__(self, tree):
        """
        Initialize with a Tree.

        Args:
            tree (Tree): The tree to analyze for polytomies.
        """
        self.tree = tree
        self.query = TopologyQuery(tree)
        self.polytomies = []
        self.searched = False
        self.logger = logging.getLogger(__name__)

    def find_all_polytomies(self):
        """
        Traverse the tree and identify all hard polytomies.

        Returns:
            list: List of Polytomy objects, deepest first.
        """
        self.logger.info("Searching for polytomies in tree")
        self.polytomies = []

        # Use post-order traversal to visit children before parents
        for node in self.query.postorder():
            child_nodes = self.tree.children(node)
            if len(child_nodes) > 2:
                depth = self.query.depth(node)
                is_internal = not any(self.tree.is_tip(child) for child in child_nodes)

                polytomy = Polytomy(
                    node=node,
                    degree=len(child_nodes),
                    depth=depth,
                    children=child_nodes,
                    is_internal=is_internal
                )

                self.polytomies.append(polytomy)
                self.logger.debug(f"Found polytomy with {len(child_nodes)} children at depth {depth}")

        # Sort polytomies by depth (deepest first) for efficient resolution
        self.polytomies.sort(key=lambda p: (-p.depth, -p.degree))
        self.searched = True

        self.logger.info(f"Found {len(self.polytomies)} polytomies in tree")
        return self.polytomies

    def find_soft_polytomies(self, tolerance=1e-8):
        """
        Return internal nodes whose incoming branch is no longer than tolerance.

        Collapsing any of these branches would merge the node into its parent.
        Branches without a length are never reported.

        Args:
            tolerance (float): Largest branch length considered zero.

        Returns:
            list: Node ids, in preorder.
        """
        soft = []
        for node in self.query.preorder():
            if node == self.tree.root or self.tree.is_tip(node):
                continue
            length = self.tree.edge_length(node)
            if length is not None and length <= tolerance:
                soft.append(node)
        self.logger.info(f"Found {len(soft)} internal branches of length <= {tolerance}")
        return soft

    def get_polytomies(self):
        """
        Return list of identified polytomy nodes.

        Returns:
            list: List of Polytomy objects.
        """
        if not self.searched:
            self.find_all_polytomies()

        return self.polytomies

    def get_polytomy_stats(self):
        """
        Return statistics about identified polytomies.

        Returns:
            dict: Statistics about identified polytomies.
        """
        polytomies = self.get_polytomies()

        # Count polytomies by degree
        degree_counts = {}
        for polytomy in polytomies:
            degree_counts[polytomy.degree] = degree_counts.get(polytomy.degree, 0) + 1

        # Count internal vs. terminal polytomies
        internal_count = sum(1 for p in polytomies if p.is_internal)

        return {
            'total_polytomies': len(polytomies),
            'by_degree': degree_counts,
            'internal_polytomies': internal_count,
            'terminal_polytomies': len(polytomies) - internal_count,
            'max_depth': max((p.depth for p in polytomies), default=0),
            'max_degree': max((p.degree for p in polytomies), default=0)
        }
