#!/usr/bin/env python
"""
Unit tests for the data_matcher module.

These tests verify label matching against data rows, reading taxa from
sequence files with Biopython, and pruning trees to the matched tips.
"""

import logging
import pytest
from pathlib import Path

# Import the module to test
from treecore import metrics
from treecore.data_matcher import TreeDataMatcher, match_labels
from treecore.exceptions import AmbiguousMatch
from treecore.tree_parser import TreeParser

# Set up logging
logging.basicConfig(level=logging.ERROR)


# Fixtures
@pytest.fixture
def data_dir():
    """Path to test data directory."""
    return Path(__file__).parent / "data"


@pytest.fixture
def rosaceae_tree(data_dir):
    """The ultrametric six-tip tree of the example file."""
    return TreeParser().parse_from_file(str(data_dir / "example_trees.tre"))


@pytest.fixture
def matcher():
    """Create a TreeDataMatcher with default settings."""
    return TreeDataMatcher()


# Tests
def test_match_labels():
    """Test that each tree label maps to its row position."""
    assert match_labels(["Fver", "Fpro", "Fudu"], ["Fpro", "Fudu", "Fver"]) == [2, 0, 1]


def test_match_labels_unmatched():
    """Test that labels without a row map to None."""
    assert match_labels(["A", "B", "C"], ["C", "A"]) == [1, None, 0]
    assert match_labels(["A"], []) == [None]


def test_match_labels_ambiguous():
    """Test that a label occurring in two rows is an error."""
    with pytest.raises(AmbiguousMatch):
        match_labels(["A", "B"], ["A", "B", "A"])


def test_match_labels_duplicate_unused_rows():
    """Test that duplicated rows do not matter when no tree label uses them."""
    assert match_labels(["A"], ["A", "B", "B"]) == [0]


def test_get_alignment_taxa(matcher, data_dir):
    """Test that sequence IDs are read in file order."""
    taxa = matcher.get_alignment_taxa(str(data_dir / "sequences.fasta"))
    assert taxa == ["Fver", "Fpro", "Fudu", "Rid", "Potentilla_anserina"]


def test_analyze_mismatches(matcher, rosaceae_tree):
    """Test the split into shared and one-sided taxa."""
    report = matcher.analyze_mismatches(matcher.get_tree_taxa(rosaceae_tree),
                                        ["Fver", "Fpro", "Rubus_sp"])
    assert report["common"] == {"Fver", "Fpro"}
    assert report["tree_only"] == {"Fudu", "Rid", "Rocc", "Potentilla_anserina"}
    assert report["data_only"] == {"Rubus_sp"}


def test_match_tree_to_data(matcher, rosaceae_tree, data_dir):
    """Test per-tip matching against a sequence file."""
    taxa = matcher.get_alignment_taxa(str(data_dir / "sequences.fasta"))
    matches = matcher.match_tree_to_data(rosaceae_tree, taxa)

    assert matches["Fver"] == 0
    assert matches["Potentilla_anserina"] == 4
    assert matches["Rocc"] is None


def test_prune_tree_to_data(matcher, rosaceae_tree, data_dir):
    """Test that tips without sequences are dropped and lengths spliced."""
    taxa = matcher.get_alignment_taxa(str(data_dir / "sequences.fasta"))
    pruned = matcher.prune_tree_to_data(rosaceae_tree, taxa)

    assert pruned.tip_count == 5
    assert "Rocc" not in pruned.tip_labels.values()
    assert pruned.edge_length(pruned.tip_node("Rid")) == 3.0
    assert metrics.is_ultrametric(pruned)


def test_prune_tree_all_matched(matcher, rosaceae_tree):
    """Test that a fully matched tree is returned as is."""
    labels = matcher.get_tree_taxa(rosaceae_tree)
    assert matcher.prune_tree_to_data(rosaceae_tree, labels) is rosaceae_tree


def test_prune_tree_nothing_matched(matcher, rosaceae_tree):
    """Test that a tree with no matching tip cannot be pruned."""
    with pytest.raises(ValueError):
        matcher.prune_tree_to_data(rosaceae_tree, ["X", "Y"])
