"""Parent-child connector derivation."""

from typing import List, Optional, Sequence, Set

from penrove.model import Connector, TreeNode
from penrove.traversal import children_index, descendants_of

HIGHLIGHT_STROKE = "#CBEC80"
HIGHLIGHT_STROKE_WIDTH = 3
DEFAULT_STROKE = "#B0C1C6"
DEFAULT_STROKE_WIDTH = 1


def connector_id(parent_id: int, child_id: int) -> str:
    return f"e-{parent_id}-{child_id}"


def highlighted_targets(nodes: Sequence[TreeNode], anchor_id: Optional[int]) -> Set[int]:
    """The anchor plus all of its descendants; empty if the anchor is absent."""
    if anchor_id is None or not any(n.id == anchor_id for n in nodes):
        return set()
    index = children_index(nodes)
    return {anchor_id, *descendants_of(anchor_id, index)}


def compute_connectors(nodes: Sequence[TreeNode],
                       anchor_id: Optional[int] = None) -> List[Connector]:
    """One connector per non-root node, in node order."""
    emphasised = highlighted_targets(nodes, anchor_id)
    connectors = []
    for node in nodes:
        if node.parent_id is None:
            continue
        highlighted = node.id in emphasised
        connectors.append(Connector(
            id=connector_id(node.parent_id, node.id),
            source=node.parent_id,
            target=node.id,
            visible=node.visible,
            highlighted=highlighted,
            stroke=HIGHLIGHT_STROKE if highlighted else DEFAULT_STROKE,
            stroke_width=HIGHLIGHT_STROKE_WIDTH if highlighted else DEFAULT_STROKE_WIDTH,
        ))
    return connectors
