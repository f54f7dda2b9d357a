#!/usr/bin/env python
"""
Unit tests for the tree_store module.

These tests verify that Tree validates its edge table, exposes read-only
lookups, and that assemble_tree numbers nodes canonically.
"""

import logging
import pytest

# Import the module to test
from treecore.tree_store import Edge, Tree, assemble_tree
from treecore.exceptions import MalformedTopology, UnknownNode, UnknownTip

# Set up logging
logging.basicConfig(level=logging.ERROR)


# Fixtures
@pytest.fixture
def three_tip_tree():
    """((A:1,B:1):1,C:2) built directly from an edge table."""
    edges = [(4, 5, 1.0), (5, 1, 1.0), (5, 2, 1.0), (4, 3, 2.0)]
    return Tree(edges, {1: 'A', 2: 'B', 3: 'C'}, node_labels={5: 'AB'})


@pytest.fixture
def star_tree():
    """A root with four tips."""
    edges = [(5, 1, None), (5, 2, None), (5, 3, None), (5, 4, None)]
    return Tree(edges, {1: 'A', 2: 'B', 3: 'C', 4: 'D'})


# Tests
def test_counts(three_tip_tree):
    """Test node, tip and edge counts of a bifurcating tree."""
    assert three_tip_tree.tip_count == 3
    assert three_tip_tree.node_count == 5
    assert three_tip_tree.edge_count == 2 * 3 - 2
    assert three_tip_tree.root == 4
    assert three_tip_tree.tips == (1, 2, 3)
    assert three_tip_tree.internal_nodes == (4, 5)


def test_edges_are_named_tuples(three_tip_tree):
    """Test that edges keep their table order and expose named fields."""
    first = three_tip_tree.edges[0]
    assert first == Edge(4, 5, 1.0)
    assert first.parent == 4
    assert first.child == 5
    assert first.length == 1.0


def test_label_lookups(three_tip_tree):
    """Test lookups by tip id and reverse lookups by label."""
    assert three_tip_tree.tip_label(3) == 'C'
    assert three_tip_tree.tip_node('B') == 2
    assert three_tip_tree.node_label(5) == 'AB'
    assert three_tip_tree.node_label(4) is None
    assert three_tip_tree.label_of(1) == 'A'
    assert three_tip_tree.tip_labels == {1: 'A', 2: 'B', 3: 'C'}


def test_unknown_lookups(three_tip_tree):
    """Test that absent labels and nodes raise typed errors."""
    with pytest.raises(UnknownTip):
        three_tip_tree.tip_node('Z')
    with pytest.raises(UnknownTip):
        three_tip_tree.tip_label(5)
    with pytest.raises(UnknownNode):
        three_tip_tree.children(42)


def test_accessors_return_copies(three_tip_tree):
    """Test that mutating returned mappings does not change the tree."""
    labels = three_tip_tree.tip_labels
    labels[1] = 'Z'
    assert three_tip_tree.tip_label(1) == 'A'


def test_parent_and_children(three_tip_tree):
    """Test the child->parent and parent->children indices."""
    assert three_tip_tree.parent(1) == 5
    assert three_tip_tree.parent(4) is None
    assert three_tip_tree.children(4) == (5, 3)
    assert three_tip_tree.children(1) == ()


def test_is_binary(three_tip_tree, star_tree):
    """Test that is_binary is false exactly when a node has more than two children."""
    assert three_tip_tree.is_binary()
    assert not star_tree.is_binary()


def test_unset_lengths_are_not_zero(star_tree):
    """Test that missing lengths stay None."""
    assert star_tree.edge_length(1) is None
    assert not star_tree.has_lengths


def test_cycle_rejected():
    """Test that a cyclic edge set is rejected."""
    with pytest.raises(MalformedTopology):
        Tree([(1, 2, None), (2, 3, None), (3, 1, None)], {})


def test_disconnected_cycle_rejected():
    """Test that a cycle detached from the root is rejected."""
    edges = [(4, 1, None), (4, 2, None), (5, 6, None), (6, 5, None)]
    with pytest.raises(MalformedTopology):
        Tree(edges, {1: 'A', 2: 'B'})


def test_multiple_roots_rejected():
    """Test that an edge set implying two roots is rejected."""
    edges = [(5, 1, None), (5, 2, None), (6, 3, None), (6, 4, None)]
    with pytest.raises(MalformedTopology):
        Tree(edges, {1: 'A', 2: 'B', 3: 'C', 4: 'D'})


def test_two_parents_rejected():
    """Test that a node with two incoming edges is rejected."""
    edges = [(4, 1, None), (4, 5, None), (5, 1, None), (5, 2, None)]
    with pytest.raises(MalformedTopology):
        Tree(edges, {1: 'A', 2: 'B'})


def test_tip_labels_must_match_leaves():
    """Test that every leaf needs a label and only leaves get one."""
    edges = [(3, 1, None), (3, 2, None)]
    with pytest.raises(MalformedTopology):
        Tree(edges, {1: 'A'})
    with pytest.raises(MalformedTopology):
        Tree(edges, {1: 'A', 2: 'B', 3: 'C'})


def test_duplicate_tip_labels_rejected():
    """Test that tip labels must be unique."""
    with pytest.raises(MalformedTopology):
        Tree([(3, 1, None), (3, 2, None)], {1: 'A', 2: 'A'})


def test_negative_length_rejected():
    """Test that negative branch lengths are rejected."""
    with pytest.raises(MalformedTopology):
        Tree([(3, 1, -1.0), (3, 2, 1.0)], {1: 'A', 2: 'B'})


def test_single_tip_tree():
    """Test a tree made of one tip and no edges."""
    tree = Tree([], {1: 'A'})
    assert tree.root == 1
    assert tree.tip_count == 1
    assert tree.edge_count == 0
    assert tree.is_tip(1)


def test_assemble_tree_numbering():
    """Test that tips are numbered left to right and internal nodes in preorder."""
    tree = assemble_tree(
        'root',
        {'root': ['ab', 'c'], 'ab': ['a', 'b']},
        lengths={'ab': 1.0, 'a': 1.0, 'b': 1.0, 'c': 2.0},
        tip_names={'a': 'A', 'b': 'B', 'c': 'C'},
        node_names={'ab': 'AB'},
    )
    assert tree.root == 4
    assert [(e.parent, e.child) for e in tree.edges] == [(4, 5), (5, 1), (5, 2), (4, 3)]
    assert tree.tip_labels == {1: 'A', 2: 'B', 3: 'C'}
    assert tree.node_label(5) == 'AB'


def test_equals(three_tip_tree):
    """Test structural comparison with a length tolerance."""
    same = assemble_tree(
        'r', {'r': ['x', 'c'], 'x': ['a', 'b']},
        lengths={'x': 1.0, 'a': 1.0 + 1e-12, 'b': 1.0, 'c': 2.0},
        tip_names={'a': 'A', 'b': 'B', 'c': 'C'}, node_names={'x': 'AB'},
    )
    longer = assemble_tree(
        'r', {'r': ['x', 'c'], 'x': ['a', 'b']},
        lengths={'x': 1.0, 'a': 1.5, 'b': 1.0, 'c': 2.0},
        tip_names={'a': 'A', 'b': 'B', 'c': 'C'}, node_names={'x': 'AB'},
    )
    assert three_tip_tree.equals(same)
    assert not three_tip_tree.equals(longer)
    assert not three_tip_tree.equals("not a tree")
