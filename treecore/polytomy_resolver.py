#!/usr/bin/env python
"""
Polytomy Resolver Module - Resolves polytomies in phylogenetic trees

This module turns every multifurcating node into a cascade of bifurcations
joined by zero-length branches. The branching order is random but driven by
an explicit seed, so the same seed always yields the same resolution.
"""

import itertools
import logging

import numpy as np

from treecore.polytomy_finder import PolytomyFinder
from treecore.tree_store import assemble_tree


class PolytomyResolver:
    """Resolves polytomies into random, reproducible bifurcations."""

    def __init__(self, tree, random_seed=None):
        """
        Initialize with a tree and a seed.

        :param tree: The tree containing polytomies to resolve.
        :param random_seed: Seed for numpy's default_rng. None draws fresh
                            entropy and gives a non-reproducible result.
        """
        self.tree = tree
        self.random_seed = random_seed
        self.resolved_count = 0
        self.added_edges = 0
        self.logger = logging.getLogger(__name__)

    def resolve_all_polytomies(self):
        """
        Resolve every polytomy in the tree.

        :return: A new tree in which no node has more than two children.
                 Single-child nodes are kept. The input tree is unchanged.
        """
        rng = np.random.default_rng(self.random_seed)
        tree = self.tree

        # Trees without any branch lengths stay without them
        has_any_length = any(edge.length is not None for edge in tree.edges)
        new_length = 0.0 if has_any_length else None

        children = {node: list(tree.children(node)) for node in tree.nodes}
        lengths = {node: tree.edge_length(node) for node in tree.nodes if node != tree.root}
        names = {node: tree.label_of(node) for node in tree.nodes}

        self.resolved_count = 0
        self.added_edges = 0
        new_keys = itertools.count()

        finder = PolytomyFinder(tree)
        for polytomy in finder.find_all_polytomies():
            added = self.resolve_polytomy(polytomy.node, children[polytomy.node], rng, new_keys)
            for key, pair in added.items():
                children[key] = pair
                lengths[key] = new_length
            self.resolved_count += 1
            self.added_edges += len(added)

        self.logger.info(f"Resolved {self.resolved_count} polytomies by adding "
                         f"{self.added_edges} internal branches (seed={self.random_seed})")
        return assemble_tree(tree.root, children, lengths, tip_names=names, node_names=names,
                             root_length=tree.root_length)

    def resolve_polytomy(self, node, child_nodes, rng, new_keys):
        """
        Resolve one polytomy by repeatedly joining two random children.

        The list of children of node is reduced in place to two entries.

        :param node: The polytomy node.
        :param child_nodes: Mutable list of the node's children.
        :param rng: numpy Generator that chooses the pairs.
        :param new_keys: Counter for the keys of the new internal nodes.
        :return: Mapping of each new internal node key to its two children.
        """
        added = {}
        while len(child_nodes) > 2:
            i, j = sorted(int(k) for k in rng.choice(len(child_nodes), size=2, replace=False))
            key = ('resolved', node, next(new_keys))
            added[key] = [child_nodes[i], child_nodes[j]]

            # The joined pair takes the place of its left member
            child_nodes[i] = key
            del child_nodes[j]

        self.logger.debug(f"Resolved polytomy at node {node} with {len(added)} new branches")
        return added
