#!/usr/bin/env python
"""
Tree Editor Module - Edits that return new trees

Every function here takes a Tree and returns a new Tree; the input is never
modified, so node ids held elsewhere for the input stay valid. Node ids of
a result are assigned afresh and must be looked up in the result itself.
"""

import logging

from treecore.polytomy_resolver import PolytomyResolver
from treecore.topology import TopologyQuery, rotate
from treecore.tree_store import assemble_tree

__all__ = ['drop_tips', 'keep_tips', 'rotate', 'ladderize', 'resolve_polytomies',
           'collapse_short_branches']

logger = logging.getLogger(__name__)


def _join_lengths(a, b):
    if a is None or b is None:
        return None
    return a + b


def _copy_tables(tree):
    lengths = {node: tree.edge_length(node) for node in tree.nodes if node != tree.root}
    names = {node: tree.label_of(node) for node in tree.nodes}
    return lengths, names


def drop_tips(tree, labels):
    """
    Remove the named tips from a tree.

    Internal nodes left without children are removed. Internal nodes left
    with a single child are spliced out and the two edges around them are
    merged into one whose length is their sum (unset if either is unset), so
    the path length between any two remaining tips is unchanged. A root left
    with a single child is replaced by that child.

    Args:
        tree (Tree): The tree to prune.
        labels (iterable): Labels of the tips to remove.

    Returns:
        Tree: The pruned tree.

    Raises:
        UnknownTip: If a label is not a tip of the tree.
        ValueError: If every tip would be removed.
    """
    dropped = {tree.tip_node(label) for label in labels}
    if len(dropped) == tree.tip_count:
        raise ValueError("Cannot drop every tip from a tree")

    lengths, names = _copy_tables(tree)
    children = {}

    # survivor[n] is the node that stands in for n after pruning, or None
    survivor = {}
    for node in TopologyQuery(tree).postorder():
        if tree.is_tip(node):
            survivor[node] = None if node in dropped else node
            continue

        kept = [survivor[child] for child in tree.children(node) if survivor[child] is not None]
        if not kept:
            survivor[node] = None
        elif len(kept) == 1:
            if node != tree.root:
                lengths[kept[0]] = _join_lengths(lengths[kept[0]], lengths[node])
            survivor[node] = kept[0]
        else:
            children[node] = kept
            survivor[node] = node

    new_root = survivor[tree.root]
    root_length = tree.root_length if new_root == tree.root else None

    logger.info(f"Dropped {len(dropped)} tips, {tree.tip_count - len(dropped)} remain")
    return assemble_tree(new_root, children, lengths, tip_names=names, node_names=names,
                         root_length=root_length)


def keep_tips(tree, labels):
    """Remove every tip whose label is not in labels (see drop_tips)."""
    keep = {tree.tip_node(label) for label in labels}
    return drop_tips(tree, [tree.tip_label(tip) for tip in tree.tips if tip not in keep])


def ladderize(tree, right_heavy=True):
    """
    Reorder each node's children by the number of tips below them.

    The sort is stable, so clades of equal size keep their relative order.
    Like rotation, this changes layout only, never topology.

    Args:
        tree (Tree): The tree to reorder.
        right_heavy (bool): Put larger clades last (True) or first (False).

    Returns:
        Tree: The reordered tree.
    """
    sizes = {}
    children = {}
    for node in TopologyQuery(tree).postorder():
        kids = tree.children(node)
        if not kids:
            sizes[node] = 1
            continue
        sizes[node] = sum(sizes[kid] for kid in kids)
        children[node] = sorted(kids, key=lambda kid: sizes[kid], reverse=not right_heavy)

    lengths, names = _copy_tables(tree)
    return assemble_tree(tree.root, children, lengths, tip_names=names, node_names=names,
                         root_length=tree.root_length)


def resolve_polytomies(tree, random_seed):
    """
    Replace every multifurcation with a random cascade of bifurcations.

    New internal branches have length zero. The same seed always gives the
    same resolution of the same tree.

    Args:
        tree (Tree): The tree to resolve.
        random_seed (int): Seed for the branching order.

    Returns:
        Tree: A tree in which no node has more than two children. Nodes
              with a single child are left as they are.
    """
    return PolytomyResolver(tree, random_seed=random_seed).resolve_all_polytomies()


def collapse_short_branches(tree, tolerance=1e-8):
    """
    Collapse internal branches no longer than tolerance into polytomies.

    The children of a collapsed node are attached to its parent, and the
    collapsed length is added to their branches so that root-to-tip
    distances are preserved. Branches without a length are left alone.

    Args:
        tree (Tree): The tree to edit.
        tolerance (float): Largest branch length considered zero.

    Returns:
        Tree: The tree with soft polytomies made explicit.
    """
    lengths, names = _copy_tables(tree)
    children = {}
    collapsed = 0

    for node in TopologyQuery(tree).postorder():
        kids = tree.children(node)
        if not kids:
            continue
        merged = []
        for kid in kids:
            length = lengths.get(kid)
            if kid in children and length is not None and length <= tolerance:
                for grandchild in children.pop(kid):
                    lengths[grandchild] = _join_lengths(lengths[grandchild], length)
                    merged.append(grandchild)
                collapsed += 1
            else:
                merged.append(kid)
        children[node] = merged

    logger.info(f"Collapsed {collapsed} internal branches of length <= {tolerance}")
    return assemble_tree(tree.root, children, lengths, tip_names=names, node_names=names,
                         root_length=tree.root_length)
