#!/usr/bin/env python
"""
Topology Module - Ancestor, descendant and clade queries on a tree

TopologyQuery answers structural questions about one tree snapshot. Since
trees are immutable, the indices it relies on stay valid for its lifetime.
"""

import logging

from treecore.tree_store import assemble_tree

logger = logging.getLogger(__name__)


class TopologyQuery:
    """Answers ancestor/descendant and subtree membership questions."""

    def __init__(self, tree):
        """
        Initialize with a Tree.

        Args:
            tree (Tree): The tree to query.
        """
        self.tree = tree
        self.logger = logging.getLogger(__name__)

        # Cache for node depths to avoid recalculating
        self._node_depths = {}

    def parent_of(self, node):
        """Return the parent of node, or None for the root."""
        return self.tree.parent(node)

    def children_of(self, node):
        """
        Return the children of node in edge-table order.

        The order only affects layout. No ancestor relation or metric
        depends on it.
        """
        return self.tree.children(node)

    def is_ancestor_of(self, a, b):
        """
        Return True if a lies on the path from b's parent up to the root.

        A node is not its own ancestor. Cost is proportional to the depth of b.
        """
        self.tree.check_node(a)
        node = self.tree.parent(b)
        while node is not None:
            if node == a:
                return True
            node = self.tree.parent(node)
        return False

    def path_to_root(self, node):
        """Return [node, parent, grandparent, ..., root]."""
        path = [node]
        parent = self.tree.parent(node)
        while parent is not None:
            path.append(parent)
            parent = self.tree.parent(parent)
        return path

    def mrca(self, nodes):
        """
        Return the most recent common ancestor of a set of nodes.

        Computed by intersecting the nodes' paths to the root. The MRCA of a
        single node is the node itself.

        Args:
            nodes (iterable): Node ids.

        Returns:
            int: The lowest node that is an ancestor of, or equal to, every member.

        Raises:
            ValueError: If nodes is empty.
        """
        nodes = list(nodes)
        if not nodes:
            raise ValueError("Cannot compute the MRCA of an empty node set")

        candidates = self.path_to_root(nodes[0])
        shared = set(candidates)
        for node in nodes[1:]:
            shared.intersection_update(self.path_to_root(node))

        # The first shared node on the way up is the lowest one
        for node in candidates:
            if node in shared:
                return node

    def mrca_of_labels(self, labels):
        """Return the MRCA of the tips with the given labels."""
        return self.mrca(self.tree.tip_node(label) for label in labels)

    def preorder(self, node=None):
        """Iterate over the subtree at node (default root), parents first."""
        stack = [self.tree.root if node is None else node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.tree.children(current)))

    def postorder(self, node=None):
        """Iterate over the subtree at node (default root), children first."""
        order = []
        stack = [self.tree.root if node is None else node]
        while stack:
            current = stack.pop()
            order.append(current)
            stack.extend(self.tree.children(current))
        return reversed(order)

    def descendants(self, node):
        """Return every node below node, excluding node itself."""
        return [n for n in self.preorder(node) if n != node]

    def tips_of(self, node):
        """Return the tips in the subtree at node, left to right."""
        return [n for n in self.preorder(node) if self.tree.is_tip(n)]

    def tip_labels_of(self, node):
        return [self.tree.tip_label(n) for n in self.tips_of(node)]

    def depth(self, node):
        """Return the number of edges between node and the root."""
        if not self._node_depths:
            self._calculate_node_depths()
        self.tree.check_node(node)
        return self._node_depths[node]

    def subtree(self, node):
        """
        Extract the clade at node as a new Tree.

        The edge above node becomes the root length of the result.
        """
        self.logger.debug(f"Extracting subtree at node {node}")
        children = {n: self.tree.children(n) for n in self.preorder(node)}
        lengths = {n: self.tree.edge_length(n) for n in children if n != node}
        names = {n: self.tree.label_of(n) for n in children}
        return assemble_tree(node, children, lengths, tip_names=names, node_names=names,
                             root_length=self.tree.edge_length(node))

    def _calculate_node_depths(self):
        """Calculate the depth of each node in the tree."""
        self._node_depths = {self.tree.root: 0}
        for node in self.preorder():
            for child in self.tree.children(node):
                self._node_depths[child] = self._node_depths[node] + 1


def rotate(tree, node):
    """
    Return a new tree in which the child order of node is reversed.

    Rotation never changes an ancestor relation. The result is renumbered
    canonically, so node ids in it generally differ from those in the input:
    a sequence of rotations must look up each node in the tree returned by
    the previous rotation, and applying ids from an older tree gives a valid
    tree of the same topology whose layout is not otherwise specified.

    Args:
        tree (Tree): The tree to rotate.
        node (int): An internal node of tree.

    Returns:
        Tree: The rotated tree.

    Raises:
        ValueError: If node is a tip.
    """
    if tree.is_tip(node):
        raise ValueError(f"Cannot rotate tip {node}; it has no children")

    children = {n: tree.children(n) for n in tree.nodes}
    children[node] = tuple(reversed(children[node]))
    lengths = {n: tree.edge_length(n) for n in tree.nodes if n != tree.root}
    names = {n: tree.label_of(n) for n in tree.nodes}
    logger.debug(f"Rotating node {node}")
    return assemble_tree(tree.root, children, lengths, tip_names=names, node_names=names,
                         root_length=tree.root_length)
