"""File containing functions for computing tree-wide statistics."""

import logging

import numpy as np

from treecore.exceptions import MissingLengths, NonBinaryTree
from treecore.topology import TopologyQuery

logger = logging.getLogger(__name__)


def _require_lengths(tree):
    missing = [edge.child for edge in tree.edges if edge.length is None]
    if missing:
        raise MissingLengths(
            f"{len(missing)} of {tree.edge_count} edges have no length"
            f" (first: edge leading to node {missing[0]})"
        )


def _require_binary(tree, metric):
    if not tree.is_binary():
        raise NonBinaryTree(
            f"{metric} is only defined for fully bifurcating trees;"
            " resolve polytomies first"
        )
    if not tree.internal_nodes:
        raise ValueError(f"{metric} is undefined for a tree without internal nodes")


def total_branch_length(tree) -> float:
    """
    Sums the lengths of all edges of a tree.

    An unset length is never treated as zero: the tree must carry a length
    on every edge. The length above the root is not an edge and is ignored.

    Args:
        tree: The tree to measure

    Returns:
        The total branch length

    Raises:
        MissingLengths if any edge has no length
    """
    _require_lengths(tree)
    lengths = np.fromiter((edge.length for edge in tree.edges), dtype=float, count=tree.edge_count)
    return float(lengths.sum())


def node_distances(tree) -> dict:
    """
    Computes the cumulative branch length from the root to every node.

    Args:
        tree: The tree to measure

    Returns:
        A dictionary mapping node ids to their distance from the root

    Raises:
        MissingLengths if any edge has no length
    """
    _require_lengths(tree)
    distances = {tree.root: 0.0}
    for node in TopologyQuery(tree).preorder():
        for child in tree.children(node):
            distances[child] = distances[node] + tree.edge_length(child)
    return distances


def root_to_tip_distances(tree) -> dict:
    """Maps every tip label to its distance from the root."""
    distances = node_distances(tree)
    return {tree.tip_label(tip): distances[tip] for tip in tree.tips}


def tree_height(tree) -> float:
    """Returns the largest root-to-tip distance."""
    return max(root_to_tip_distances(tree).values())


def is_ultrametric(tree, tolerance: float = 1e-8) -> bool:
    """
    Checks whether all tips are equidistant from the root.

    Args:
        tree: The tree to check
        tolerance: Largest allowed difference between any two root-to-tip
            distances

    Returns:
        True if the largest pairwise deviation is within the tolerance

    Raises:
        MissingLengths if any edge has no length
    """
    distances = np.array(list(root_to_tip_distances(tree).values()))
    deviation = float(distances.max() - distances.min())
    logger.debug(f"Maximum root-to-tip deviation is {deviation}")
    return deviation <= tolerance


def clade_sizes(tree) -> dict:
    """
    Counts the tips below each child of each internal node.

    The counts follow edge-table order, which carries no meaning; sort them
    if a canonical (larger, smaller) pair is needed.

    Args:
        tree: The tree to measure

    Returns:
        A dictionary mapping each internal node to a tuple with one tip count
        per child (a pair for bifurcating nodes)
    """
    tips_below = {}
    sizes = {}
    for node in TopologyQuery(tree).postorder():
        kids = tree.children(node)
        if not kids:
            tips_below[node] = 1
            continue
        sizes[node] = tuple(tips_below[kid] for kid in kids)
        tips_below[node] = sum(sizes[node])
    return sizes


def imbalance_index(tree) -> float:
    """
    Computes the mean per-node imbalance of a bifurcating tree.

    For every internal node the proportion max(l, r) / (l + r) of tips in
    the larger child clade is computed, and the proportions are averaged
    over all internal nodes without weighting by clade size. The value is
    0.5 for a tree that splits evenly at every node and approaches 1 for a
    ladder-like (caterpillar) tree.

    Args:
        tree: A fully bifurcating tree

    Returns:
        The imbalance index

    Raises:
        NonBinaryTree if a node does not have exactly two children
        ValueError if the tree has no internal nodes
    """
    _require_binary(tree, "The imbalance index")
    proportions = np.array([max(pair) / sum(pair) for pair in clade_sizes(tree).values()])
    return float(proportions.mean())


def colless_index(tree) -> int:
    """
    Computes the Colless index, the sum over internal nodes of |l - r|.

    Args:
        tree: A fully bifurcating tree

    Returns:
        The Colless index

    Raises:
        NonBinaryTree if a node does not have exactly two children
    """
    _require_binary(tree, "The Colless index")
    return int(sum(abs(left - right) for left, right in clade_sizes(tree).values()))
