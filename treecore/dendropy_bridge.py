#!/usr/bin/env python
"""
DendroPy Bridge Module - Converts between treecore and DendroPy trees

DendroPy remains the reader for schemas other than plain Newick (NEXUS,
NeXML) and the hand-off point to the wider phylogenetics ecosystem.
"""

import logging

import dendropy

from treecore.tree_store import assemble_tree

logger = logging.getLogger(__name__)


def from_dendropy(dtree):
    """
    Convert a DendroPy tree into a Tree.

    Tip labels come from the leaf taxa, falling back to the node label for
    leaves without a taxon. Internal node labels and edge lengths are kept.

    Args:
        dtree (dendropy.Tree): The tree to convert.

    Returns:
        Tree: The converted tree.
    """
    children = {}
    lengths = {}
    names = {}
    for node in dtree.preorder_node_iter():
        children[node] = node.child_nodes()
        lengths[node] = node.edge.length
        if node.taxon is not None:
            names[node] = node.taxon.label
        else:
            names[node] = node.label

    root = dtree.seed_node
    root_length = lengths.pop(root)
    return assemble_tree(root, children, lengths, tip_names=names, node_names=names,
                         root_length=root_length)


def to_dendropy(tree, taxon_namespace=None):
    """
    Convert a Tree into a rooted DendroPy tree.

    Args:
        tree (Tree): The tree to convert.
        taxon_namespace (dendropy.TaxonNamespace, optional): Namespace to
            register tip taxa in, so that several trees can share it.

    Returns:
        dendropy.Tree: The converted tree.
    """
    if taxon_namespace is None:
        taxon_namespace = dendropy.TaxonNamespace()
    dtree = dendropy.Tree(taxon_namespace=taxon_namespace, is_rooted=True)

    dnodes = {tree.root: dtree.seed_node}
    dtree.seed_node.edge.length = tree.root_length
    if tree.is_tip(tree.root):
        dtree.seed_node.taxon = taxon_namespace.require_taxon(label=tree.tip_label(tree.root))
    else:
        dtree.seed_node.label = tree.node_label(tree.root)

    stack = [tree.root]
    while stack:
        parent = stack.pop()
        for child in tree.children(parent):
            dnode = dendropy.Node(edge_length=tree.edge_length(child))
            if tree.is_tip(child):
                dnode.taxon = taxon_namespace.require_taxon(label=tree.tip_label(child))
            else:
                dnode.label = tree.node_label(child)
            dnodes[parent].add_child(dnode)
            dnodes[child] = dnode
            stack.append(child)

    logger.debug(f"Converted {tree!r} to a DendroPy tree")
    return dtree
