"""Assertion helpers shared by the test modules."""

from penrove.layout import subtree_width
from penrove.traversal import children_index


def subtree_extent(snapshot, node_id, settings):
    """(left, right) of the slot a node's subtree occupies."""
    node = snapshot.node(node_id)
    width = subtree_width(node, children_index(snapshot.nodes), settings)
    return node.center_x - width / 2, node.center_x + width / 2
