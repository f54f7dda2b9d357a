#!/usr/bin/env python
"""
Unit tests for the polytomy_finder module.

These tests verify that the PolytomyFinder class correctly identifies
polytomies in phylogenetic trees and provides accurate information about them.
"""

import pytest
import logging
from pathlib import Path

# Import the module to test
from treecore import newick
from treecore.polytomy_finder import PolytomyFinder
from treecore.tree_parser import TreeParser

# Set up logging
logging.basicConfig(level=logging.ERROR)


# Fixtures
@pytest.fixture
def data_dir():
    """Path to test data directory."""
    return Path(__file__).parent / "data"


@pytest.fixture
def example_trees(data_dir):
    """Parse all trees of the example tree file."""
    parser = TreeParser()
    return parser.parse_all_from_file(str(data_dir / "example_trees.tre"))


@pytest.fixture
def basic_polytomy_tree():
    """Create a simple tree with known polytomies."""
    return newick.parse("((A,B,C,D)E,(F,G)H,(I,J,K)L)M;")


@pytest.fixture
def nested_polytomy_tree():
    """Create a tree with nested polytomies."""
    return newick.parse("((A,B,C)D,(E,F,G,(H,I,J,K)L)M)N;")


@pytest.fixture
def binary_tree():
    """Create a fully binary tree without polytomies."""
    return newick.parse("(((A,B)C,(D,E)F)G,((H,I)J,(K,L)M)N)O;")


# Tests
def test_find_all_polytomies_basic(basic_polytomy_tree):
    """Test finding polytomies in a simple tree."""
    finder = PolytomyFinder(basic_polytomy_tree)
    polytomies = finder.find_all_polytomies()

    # E, L and the root M are polytomies
    assert len(polytomies) == 3

    degrees = sorted([p.degree for p in polytomies])
    assert degrees == [3, 3, 4]

    labels = {basic_polytomy_tree.node_label(p.node) for p in polytomies}
    assert labels == {'E', 'L', 'M'}


def test_find_all_polytomies_nested(nested_polytomy_tree):
    """Test finding polytomies in a tree with nested polytomies."""
    finder = PolytomyFinder(nested_polytomy_tree)
    polytomies = finder.find_all_polytomies()

    assert len(polytomies) == 3

    degrees = sorted([p.degree for p in polytomies])
    assert degrees == [3, 4, 4]  # 3 children for D, 4 children for L and M


def test_find_all_polytomies_binary(binary_tree):
    """Test finding polytomies in a fully binary tree (should find none)."""
    finder = PolytomyFinder(binary_tree)
    assert finder.find_all_polytomies() == []


def test_find_all_polytomies_file_tree(example_trees):
    """Test finding polytomies in trees read from a file."""
    rosaceae, polytomous, _ = example_trees

    assert PolytomyFinder(rosaceae).find_all_polytomies() == []

    polytomies = PolytomyFinder(polytomous).find_all_polytomies()
    assert len(polytomies) == 3
    for polytomy in polytomies:
        assert polytomy.degree >= 3
        assert isinstance(polytomy.depth, int)
        assert len(polytomy.children) == polytomy.degree


def test_get_polytomies_without_finding(basic_polytomy_tree):
    """Test that get_polytomies() runs find_all_polytomies() if needed."""
    finder = PolytomyFinder(basic_polytomy_tree)
    assert not finder.searched

    polytomies = finder.get_polytomies()

    assert finder.searched
    assert len(polytomies) == 3


def test_get_polytomy_stats_basic(basic_polytomy_tree):
    """Test getting statistics about polytomies in a basic tree."""
    finder = PolytomyFinder(basic_polytomy_tree)
    stats = finder.get_polytomy_stats()

    assert stats['total_polytomies'] == 3
    assert stats['by_degree'] == {3: 2, 4: 1}
    assert stats['max_degree'] == 4
    assert stats['max_depth'] == 1


def test_get_polytomy_stats_empty(binary_tree):
    """Test getting statistics when there are no polytomies."""
    finder = PolytomyFinder(binary_tree)
    stats = finder.get_polytomy_stats()

    assert stats['total_polytomies'] == 0
    assert stats['by_degree'] == {}
    assert stats['max_degree'] == 0
    assert stats['max_depth'] == 0


def test_polytomy_sorting(nested_polytomy_tree):
    """Test that polytomies are sorted by depth (deepest first)."""
    polytomies = PolytomyFinder(nested_polytomy_tree).find_all_polytomies()

    for i in range(1, len(polytomies)):
        assert polytomies[i - 1].depth >= polytomies[i].depth
    assert nested_polytomy_tree.node_label(polytomies[0].node) == 'L'


def test_polytomy_sorting_by_degree(basic_polytomy_tree):
    """Test that polytomies at equal depth are sorted by degree."""
    polytomies = PolytomyFinder(basic_polytomy_tree).find_all_polytomies()
    assert [p.degree for p in polytomies] == [4, 3, 3]
    assert polytomies[-1].node == basic_polytomy_tree.root


def test_internal_vs_terminal_polytomies(basic_polytomy_tree):
    """Test identification of internal vs. terminal polytomies."""
    stats = PolytomyFinder(basic_polytomy_tree).get_polytomy_stats()

    # Only the root has no tip among its children
    assert stats['internal_polytomies'] == 1
    assert stats['terminal_polytomies'] == 2


def test_find_soft_polytomies():
    """Test that zero-length internal branches are reported."""
    tree = newick.parse("((A:1,B:1)AB:0,(C:1,D:0)CD:0.5);")
    soft = PolytomyFinder(tree).find_soft_polytomies()

    assert [tree.node_label(node) for node in soft] == ['AB']
    assert len(PolytomyFinder(tree).find_soft_polytomies(tolerance=0.5)) == 2


def test_find_soft_polytomies_without_lengths(binary_tree):
    """Test that unset lengths are not taken for zero."""
    assert PolytomyFinder(binary_tree).find_soft_polytomies() == []
