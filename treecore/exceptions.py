#!/usr/bin/env python
"""
Exceptions Module - Typed failures raised by the tree core

Every failure here is a structural data problem rather than a transient one,
so none of them is ever retried.
"""


class TreeError(Exception):
    """Parent class for all errors raised by treecore."""
    pass


class MalformedTopology(TreeError, ValueError):
    """Raised when an edge set is cyclic, disconnected or has several roots."""
    pass


class NewickSyntaxError(TreeError, ValueError):
    """Raised when Newick text cannot be parsed."""

    def __init__(self, message, position=None):
        if position is not None:
            message = f"{message} (at character {position})"
        super().__init__(message)
        self.position = position


class UnknownLabel(TreeError, LookupError):
    """Raised when a name is not present in a tree or data table."""
    pass


class UnknownTip(UnknownLabel):
    """Raised when a tip label is not present in a tree."""
    pass


class UnknownNode(TreeError, LookupError):
    """Raised when a node identifier does not belong to a tree."""
    pass


class MissingLengths(TreeError, ValueError):
    """Raised when an operation needs branch lengths that are not set."""
    pass


class AmbiguousMatch(TreeError, ValueError):
    """Raised when name matching finds more than one candidate."""
    pass


class NonBinaryTree(TreeError, ValueError):
    """Raised when an operation requires a fully bifurcating tree."""
    pass
