#!/usr/bin/env python
"""
Tree Parser Module - Parses tree files and strings into Tree values

This module provides a configurable front end over the Newick reader.
Plain Newick is read natively; other formats supported by DendroPy
(NEXUS, NeXML) are read by DendroPy and converted.
"""

import os
import logging

import dendropy

from treecore import newick
from treecore.dendropy_bridge import from_dendropy
from treecore.exceptions import NewickSyntaxError, TreeError


class TreeParser:
    """Parses Newick (or DendroPy-readable) trees into Tree objects."""

    def __init__(self, config=None):
        """
        Initialize the tree parser.

        Args:
            config (dict, optional): Configuration dictionary. Can include
                                    'format' ('newick', 'nexus', ...),
                                    'preserve_underscores' and 'schema',
                                    a dict of extra DendroPy reader options.
        """
        self.config = config or {}
        self.tree = None
        self.logger = logging.getLogger(__name__)

        self.format = self.config.get('format', 'newick').lower()
        self.preserve_underscores = self.config.get('preserve_underscores', True)
        self.logger.debug(f"Tree parser initialized with format={self.format}")

    def parse_from_file(self, filepath):
        """
        Parse the first tree from a file path.

        Args:
            filepath (str): Path to the tree file.

        Returns:
            Tree: The parsed tree object.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            TreeError: If the file cannot be parsed.
        """
        trees = self.parse_all_from_file(filepath)
        if not trees:
            raise NewickSyntaxError(f"No trees found in {filepath}")
        self.tree = trees[0]
        return self.tree

    def parse_all_from_file(self, filepath):
        """
        Parse every tree in a file, in file order.

        Args:
            filepath (str): Path to the tree file.

        Returns:
            list: The parsed Tree objects.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            TreeError: If the file cannot be parsed.
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Tree file not found: {filepath}")

        self.logger.info(f"Parsing trees from file: {filepath}")

        try:
            if self.format == 'newick':
                trees = newick.read_trees(filepath, preserve_underscores=self.preserve_underscores)
            else:
                tree_list = dendropy.TreeList.get(path=filepath, schema=self.format,
                                                  **self._get_schema_kwargs())
                trees = [from_dendropy(dtree) for dtree in tree_list]
        except TreeError as e:
            self.logger.error(f"Failed to parse tree file: {str(e)}")
            raise

        for tree in trees:
            self._log_tree_stats(tree)
        if trees:
            self.tree = trees[0]
        return trees

    def parse_from_string(self, tree_string):
        """
        Parse a single tree from a string.

        Args:
            tree_string (str): Tree text in the configured format.

        Returns:
            Tree: The parsed tree object.

        Raises:
            TreeError: If the string cannot be parsed.
        """
        self.logger.info("Parsing tree from string")

        try:
            if self.format == 'newick':
                self.tree = newick.parse(tree_string, preserve_underscores=self.preserve_underscores)
            else:
                dtree = dendropy.Tree.get(data=tree_string, schema=self.format,
                                          **self._get_schema_kwargs())
                self.tree = from_dendropy(dtree)
        except TreeError as e:
            self.logger.error(f"Failed to parse tree string: {str(e)}")
            raise

        self._log_tree_stats(self.tree)
        return self.tree

    def get_tree(self):
        """
        Return the most recently parsed tree.

        Raises:
            ValueError: If no tree has been parsed yet.
        """
        if self.tree is None:
            raise ValueError("No tree has been parsed yet")

        return self.tree

    def _get_schema_kwargs(self):
        """
        Get keyword arguments for DendroPy readers.

        Returns:
            dict: Schema-specific keyword arguments.
        """
        schema_kwargs = {
            'preserve_underscores': self.preserve_underscores,
            'suppress_internal_node_taxa': True,
            'suppress_leaf_node_taxa': False,
        }

        # Add any schema-specific settings from config
        if 'schema' in self.config:
            schema_kwargs.update(self.config['schema'])

        return schema_kwargs

    def _log_tree_stats(self, tree):
        """Log statistics about a parsed tree."""
        self.logger.info(f"Tree parsed successfully with {tree.tip_count} tips, "
                         f"{len(tree.internal_nodes)} internal nodes, and {tree.edge_count} edges")
