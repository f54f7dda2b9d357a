#!/usr/bin/env python
"""
Tree Store Module - Immutable phylogenetic tree values

This module holds the canonical representation of a rooted tree: an edge
table, a mapping from tip node ids to tip labels, optional internal node
labels and an optional root edge length. Trees are never modified after
construction; every parse or edit builds a new value through assemble_tree().
"""

import math
from collections import namedtuple

from treecore.exceptions import MalformedTopology, UnknownNode, UnknownTip

# A directed edge. The length is None when the tree carries no length for it,
# which is not the same thing as a zero-length branch.
Edge = namedtuple('Edge', ['parent', 'child', 'length'])


def _check_length(length, node):
    if length is None:
        return None
    length = float(length)
    if math.isnan(length) or length < 0:
        raise MalformedTopology(f"Edge leading to node {node} has invalid length {length}")
    return length


def _lengths_match(a, b, tolerance):
    if a is None or b is None:
        return a is None and b is None
    return abs(a - b) <= tolerance


class Tree:
    """An immutable rooted tree stored as an edge table with tip labels."""

    def __init__(self, edges, tip_labels, node_labels=None, root_length=None):
        """
        Build and validate a tree.

        Args:
            edges (iterable): (parent, child, length) triples. Length may be None.
            tip_labels (dict): Tip node id -> label. Must label exactly the leaves.
            node_labels (dict, optional): Internal node id -> label.
            root_length (float, optional): Length of the edge above the root.

        Raises:
            MalformedTopology: If the edges do not form a single rooted tree,
                               or the tip labels are missing or not unique.
        """
        self._edges = tuple(
            Edge(int(parent), int(child), _check_length(length, child))
            for parent, child, length in edges
        )
        self._parent = {}
        self._lengths = {}
        children = {}
        for edge in self._edges:
            if edge.parent == edge.child:
                raise MalformedTopology(f"Node {edge.child} is its own parent")
            if edge.child in self._parent:
                raise MalformedTopology(f"Node {edge.child} has more than one incoming edge")
            self._parent[edge.child] = edge.parent
            self._lengths[edge.child] = edge.length
            children.setdefault(edge.parent, []).append(edge.child)
        self._children = {node: tuple(kids) for node, kids in children.items()}

        labels = {int(node): str(label) for node, label in dict(tip_labels).items()}

        if self._edges:
            nodes = set(self._parent) | set(self._children)
            roots = [node for node in self._children if node not in self._parent]
            if not roots:
                raise MalformedTopology("Edge set has no root; the edges form a cycle")
            if len(roots) > 1:
                raise MalformedTopology(f"Edge set implies {len(roots)} roots: {sorted(roots)}")
            self._root = roots[0]

            # Every node has at most one parent, so a walk from the root cannot loop
            reached = {self._root}
            stack = [self._root]
            while stack:
                for child in self._children.get(stack.pop(), ()):
                    reached.add(child)
                    stack.append(child)
            if len(reached) != len(nodes):
                unreached = sorted(nodes - reached)
                raise MalformedTopology(f"Nodes {unreached} have no path to the root")
        else:
            if len(labels) != 1:
                raise MalformedTopology("A tree without edges must consist of exactly one tip")
            self._root = next(iter(labels))
            nodes = {self._root}

        tips = nodes - set(self._children)
        if set(labels) != tips:
            unlabeled = sorted(tips - set(labels))
            extra = sorted(set(labels) - tips)
            raise MalformedTopology(f"Tip labels do not match the leaves "
                                    f"(unlabeled tips: {unlabeled}, labels on non-tips: {extra})")

        self._label_index = {}
        for node, label in labels.items():
            if label in self._label_index:
                raise MalformedTopology(f"Tip label '{label}' is used more than once")
            self._label_index[label] = node
        self._tip_labels = labels

        self._node_labels = {}
        for node, label in (node_labels or {}).items():
            if label is None:
                continue
            if int(node) not in self._children:
                raise MalformedTopology(f"Node label '{label}' is attached to non-internal node {node}")
            self._node_labels[int(node)] = str(label)

        self._root_length = _check_length(root_length, self._root)
        self._tips = tuple(sorted(tips))
        self._internal_nodes = tuple(sorted(self._children))

    def __repr__(self):
        return (f"<Tree: {self.tip_count} tips, {len(self._internal_nodes)} internal nodes, "
                f"{self.edge_count} edges>")

    @property
    def root(self):
        return self._root

    @property
    def root_length(self):
        return self._root_length

    @property
    def edges(self):
        return self._edges

    @property
    def tips(self):
        return self._tips

    @property
    def internal_nodes(self):
        return self._internal_nodes

    @property
    def nodes(self):
        return self._tips + self._internal_nodes

    @property
    def node_count(self):
        return len(self._tips) + len(self._internal_nodes)

    @property
    def tip_count(self):
        return len(self._tips)

    @property
    def edge_count(self):
        return len(self._edges)

    @property
    def tip_labels(self):
        """Tip node id -> label, as a fresh dict."""
        return dict(self._tip_labels)

    @property
    def node_labels(self):
        """Internal node id -> label for labelled internal nodes, as a fresh dict."""
        return dict(self._node_labels)

    @property
    def has_lengths(self):
        """True if every edge carries a length."""
        return all(edge.length is not None for edge in self._edges)

    def check_node(self, node):
        """Raise UnknownNode unless node belongs to this tree."""
        if node not in self._tip_labels and node not in self._children:
            raise UnknownNode(f"Node {node} is not part of this tree")

    def is_tip(self, node):
        self.check_node(node)
        return node in self._tip_labels

    def tip_label(self, node):
        self.check_node(node)
        if node not in self._tip_labels:
            raise UnknownTip(f"Node {node} is not a tip")
        return self._tip_labels[node]

    def tip_node(self, label):
        """Reverse label lookup: return the node id of the tip named label."""
        try:
            return self._label_index[label]
        except KeyError:
            raise UnknownTip(f"Tip '{label}' is not present in the tree") from None

    def node_label(self, node):
        """Return the label of an internal node, or None if it has none."""
        self.check_node(node)
        return self._node_labels.get(node)

    def label_of(self, node):
        """Return the tip label or internal node label of any node."""
        self.check_node(node)
        return self._tip_labels.get(node, self._node_labels.get(node))

    def edge_length(self, node):
        """Return the length of the edge leading to node (the root length for the root)."""
        self.check_node(node)
        if node == self._root:
            return self._root_length
        return self._lengths[node]

    def parent(self, node):
        """Return the parent of node, or None for the root."""
        self.check_node(node)
        return self._parent.get(node)

    def children(self, node):
        """Return the children of node in edge-table order."""
        self.check_node(node)
        return self._children.get(node, ())

    def is_binary(self):
        """True if every internal node has exactly two children."""
        return all(len(kids) == 2 for kids in self._children.values())

    def equals(self, other, tolerance=1e-9):
        """
        Compare two trees node by node from the root.

        Child order is significant, node ids are not. Lengths must both be
        unset or agree within tolerance.
        """
        if not isinstance(other, Tree):
            return False
        if self.node_count != other.node_count or self.tip_count != other.tip_count:
            return False
        if not _lengths_match(self._root_length, other._root_length, tolerance):
            return False

        stack = [(self._root, other._root)]
        while stack:
            mine, theirs = stack.pop()
            if self.label_of(mine) != other.label_of(theirs):
                return False
            my_kids = self.children(mine)
            their_kids = other.children(theirs)
            if len(my_kids) != len(their_kids):
                return False
            for a, b in zip(my_kids, their_kids):
                if not _lengths_match(self._lengths[a], other._lengths[b], tolerance):
                    return False
                stack.append((a, b))
        return True


def assemble_tree(root, children, lengths=None, tip_names=None, node_names=None, root_length=None):
    """
    Build a canonically numbered Tree from a children mapping.

    The keys can be any hashable values. Tips are numbered 1..N from left to
    right, internal nodes N+1.. in preorder (so the root is N+1) and edges
    are listed in preorder.

    Args:
        root: Key of the root node.
        children (dict): Key -> ordered sequence of child keys. Keys that are
                         absent or map to an empty sequence are tips.
        lengths (dict, optional): Key -> length of the edge leading to it.
        tip_names (dict, optional): Tip key -> label.
        node_names (dict, optional): Internal key -> label.
        root_length (float, optional): Length of the edge above the root.

    Returns:
        Tree: The assembled tree.
    """
    lengths = lengths or {}
    tip_names = tip_names or {}
    node_names = node_names or {}

    preorder = []
    parent_of = {}
    seen = set()
    stack = [root]
    while stack:
        key = stack.pop()
        if key in seen:
            raise MalformedTopology(f"Node {key!r} is reachable along more than one path")
        seen.add(key)
        preorder.append(key)
        kids = children.get(key, ())
        for kid in kids:
            parent_of[kid] = key
        stack.extend(reversed(kids))

    tips = [key for key in preorder if not children.get(key)]
    number = {key: i for i, key in enumerate(tips, start=1)}
    next_id = len(tips) + 1
    for key in preorder:
        if children.get(key):
            number[key] = next_id
            next_id += 1

    edges = [Edge(number[parent_of[key]], number[key], lengths.get(key)) for key in preorder[1:]]

    tip_labels = {}
    for key in tips:
        if tip_names.get(key) is None:
            raise MalformedTopology(f"Tip {key!r} has no label")
        tip_labels[number[key]] = tip_names[key]

    node_labels = {number[key]: node_names[key] for key in preorder
                   if children.get(key) and node_names.get(key) is not None}

    return Tree(edges, tip_labels, node_labels=node_labels, root_length=root_length)
