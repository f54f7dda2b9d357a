#!/usr/bin/env python
"""
Newick Module - Reads and writes the Newick bracket notation

Trees are read by a single pass over a token stream, keeping the open
brackets on an explicit stack so that deeply nested (ladder-like) trees do
not hit the interpreter's recursion limit. Absent branch lengths are kept
as None so that undated trees and zero-length branches stay distinguishable.
"""

import itertools
import math
import logging
from collections import namedtuple

from treecore.exceptions import NewickSyntaxError
from treecore.tree_store import assemble_tree

Token = namedtuple('Token', ['kind', 'value', 'position'])

_PUNCTUATION = '(),:;'
_LABEL_BREAKS = frozenset("(),:;[]'")

logger = logging.getLogger(__name__)


def tokenize(text):
    """
    Split Newick text into tokens, dropping whitespace and [bracket comments].

    Args:
        text (str): Newick text, possibly holding several trees.

    Returns:
        list: Token tuples of kind '(', ')', ',', ':', ';', 'WORD' or 'QUOTED'.

    Raises:
        NewickSyntaxError: On an unterminated comment or quoted label.
    """
    tokens = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
        elif ch == '[':
            end = text.find(']', i + 1)
            if end == -1:
                raise NewickSyntaxError("Unterminated comment", i)
            i = end + 1
        elif ch == ']':
            raise NewickSyntaxError("Unexpected ']'", i)
        elif ch in _PUNCTUATION:
            tokens.append(Token(ch, ch, i))
            i += 1
        elif ch == "'":
            # A doubled quote inside a quoted label stands for a literal quote
            start = i
            i += 1
            parts = []
            while True:
                end = text.find("'", i)
                if end == -1:
                    raise NewickSyntaxError("Unterminated quoted label", start)
                parts.append(text[i:end])
                if text.startswith("''", end):
                    parts.append("'")
                    i = end + 2
                else:
                    i = end + 1
                    break
            tokens.append(Token('QUOTED', ''.join(parts), start))
        else:
            start = i
            while i < n and not text[i].isspace() and text[i] not in _LABEL_BREAKS:
                i += 1
            tokens.append(Token('WORD', text[start:i], start))
    return tokens


class _NewickReader:
    """Consumes a token list one tree at a time."""

    def __init__(self, tokens, preserve_underscores=True):
        self.tokens = tokens
        self.pos = 0
        self.preserve_underscores = preserve_underscores

    def at_end(self):
        return self.pos >= len(self.tokens)

    def _peek(self):
        if self.at_end():
            return None
        return self.tokens[self.pos]

    def _next(self, expected):
        if self.at_end():
            raise NewickSyntaxError(f"Unexpected end of input, expected {expected}")
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _label(self, token):
        if token.kind == 'WORD' and not self.preserve_underscores:
            return token.value.replace('_', ' ')
        return token.value

    def _read_label(self):
        token = self._peek()
        if token is not None and token.kind in ('WORD', 'QUOTED'):
            self.pos += 1
            return self._label(token)
        return None

    def _read_length(self):
        token = self._peek()
        if token is None or token.kind != ':':
            return None
        self.pos += 1
        token = self._next("a branch length")
        if token.kind != 'WORD':
            raise NewickSyntaxError(f"Expected a branch length but found '{token.value}'", token.position)
        try:
            length = float(token.value)
        except ValueError:
            raise NewickSyntaxError(f"Invalid branch length '{token.value}'", token.position) from None
        if math.isnan(length) or length < 0:
            raise NewickSyntaxError(f"Branch length must be a non-negative number, got '{token.value}'",
                                    token.position)
        return length

    def read_tree(self):
        """Read tokens up to and including the next ';' and return the tree."""
        children = {}
        names = {}
        lengths = {}
        keys = itertools.count()
        open_groups = []
        root = None

        while True:
            token = self._next("a node")
            if token.kind == '(':
                key = next(keys)
                children[key] = []
                if open_groups:
                    children[open_groups[-1]].append(key)
                else:
                    root = key
                open_groups.append(key)
                continue

            if token.kind not in ('WORD', 'QUOTED'):
                raise NewickSyntaxError(f"Expected a tip label but found '{token.value}'", token.position)
            key = next(keys)
            names[key] = self._label(token)
            if open_groups:
                children[open_groups[-1]].append(key)
            else:
                root = key
            lengths[key] = self._read_length()

            # After a completed node: another sibling, a closing bracket or the end
            while True:
                if self.at_end():
                    if open_groups:
                        raise NewickSyntaxError(f"Unbalanced brackets: {len(open_groups)} unclosed '('")
                    raise NewickSyntaxError("Missing terminating ';'")
                token = self._next("',', ')' or ';'")
                if token.kind == ',':
                    if not open_groups:
                        raise NewickSyntaxError("',' outside of any bracket", token.position)
                    break
                if token.kind == ')':
                    if not open_groups:
                        raise NewickSyntaxError("Unbalanced brackets: unexpected ')'", token.position)
                    key = open_groups.pop()
                    label = self._read_label()
                    if label is not None:
                        names[key] = label
                    lengths[key] = self._read_length()
                    continue
                if token.kind == ';':
                    if open_groups:
                        raise NewickSyntaxError(f"Unbalanced brackets: {len(open_groups)} unclosed '('",
                                                token.position)
                    root_length = lengths.pop(root, None)
                    return assemble_tree(root, children, lengths, tip_names=names,
                                         node_names=names, root_length=root_length)
                raise NewickSyntaxError(f"Unexpected '{token.value}'", token.position)


def parse_many(text, preserve_underscores=True):
    """
    Parse a sequence of ';'-terminated Newick trees.

    Args:
        text (str): Newick text.
        preserve_underscores (bool): Keep underscores in unquoted labels.
                                     If False they become spaces.

    Returns:
        list: The trees, in input order.
    """
    reader = _NewickReader(tokenize(text), preserve_underscores=preserve_underscores)
    trees = []
    while not reader.at_end():
        trees.append(reader.read_tree())
    logger.debug(f"Parsed {len(trees)} Newick trees")
    return trees


def parse(text, preserve_underscores=True):
    """Parse text holding exactly one Newick tree."""
    trees = parse_many(text, preserve_underscores=preserve_underscores)
    if len(trees) != 1:
        raise NewickSyntaxError(f"Expected exactly one tree, found {len(trees)}")
    return trees[0]


def _quote(label):
    if label and not any(ch in _LABEL_BREAKS or ch.isspace() for ch in label):
        return label
    return "'" + label.replace("'", "''") + "'"


def _format_length(length):
    # repr() gives the shortest text that reads back as the same float
    return repr(float(length))


def serialize(tree, include_lengths=True, include_node_labels=True):
    """
    Write a tree as a single ';'-terminated Newick string.

    Args:
        tree (Tree): The tree to write.
        include_lengths (bool): Write branch lengths that are set.
        include_node_labels (bool): Write internal node labels.

    Returns:
        str: Newick text.
    """
    preorder = []
    stack = [tree.root]
    while stack:
        node = stack.pop()
        preorder.append(node)
        stack.extend(tree.children(node))

    parts = {}
    for node in reversed(preorder):
        kids = tree.children(node)
        if kids:
            text = '(' + ','.join(parts.pop(kid) for kid in kids) + ')'
            label = tree.node_label(node)
            if include_node_labels and label is not None:
                text += _quote(label)
        else:
            text = _quote(tree.tip_label(node))
        length = tree.edge_length(node)
        if include_lengths and length is not None:
            text += ':' + _format_length(length)
        parts[node] = text
    return parts[tree.root] + ';'


def read_trees(path, preserve_underscores=True):
    """Read every tree from a Newick file."""
    with open(path, 'r') as handle:
        return parse_many(handle.read(), preserve_underscores=preserve_underscores)


def write_trees(path, trees, **kwargs):
    """Write trees to a Newick file, one per line."""
    with open(path, 'w') as handle:
        for tree in trees:
            handle.write(serialize(tree, **kwargs) + '\n')
    logger.info(f"Wrote {len(trees)} trees to {path}")
