"""Top-down tree layout.

Each node's subtree gets a slot exactly as wide as the subtree needs; the node
is centred over its slot and children are packed left-to-right beneath it,
separated by a fixed horizontal gap. Rows are a fixed vertical gap apart.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from penrove.config import LayoutSettings
from penrove.model import TreeNode
from penrove.traversal import ChildrenIndex, children_index

logger = logging.getLogger(__name__)


def effective_width(node: TreeNode, settings: LayoutSettings) -> float:
    """Measured width if the renderer reported one, else the default."""
    return node.measured_width or settings.node_width


def subtree_width(node: TreeNode, index: ChildrenIndex, settings: LayoutSettings,
                  memo: Optional[Dict[int, float]] = None) -> float:
    """Horizontal space taken by `node` and all of its descendants."""
    memo = {} if memo is None else memo
    if node.id in memo:
        return memo[node.id]

    # Pre-order walk; reversed, every child comes before its parent
    order: List[TreeNode] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.id in memo:
            continue
        order.append(current)
        stack.extend(index.get(current.id, []))

    for current in reversed(order):
        width = effective_width(current, settings)
        children = index.get(current.id, [])
        if children:
            total = sum(memo[c.id] for c in children)
            total += (len(children) - 1) * settings.horizontal_gap
            width = max(width, total)
        memo[current.id] = width
    return memo[node.id]


def compute_layout(nodes: Sequence[TreeNode],
                   settings: Optional[LayoutSettings] = None) -> List[TreeNode]:
    """Return a laid-out copy of `nodes`, preserving their order.

    The root keeps its current horizontal centre and row. Running this twice
    on the same input yields identical positions.
    """
    settings = settings or LayoutSettings()
    index = children_index(nodes)
    memo: Dict[int, float] = {}
    placed: Dict[int, TreeNode] = {}

    # (node, x_center, y, depth, visible)
    pending = [
        (n, n.x + effective_width(n, settings) / 2, n.y, 0, True)
        for n in nodes if n.parent_id is None
    ]
    while pending:
        node, x_center, y, depth, visible = pending.pop()
        width = effective_width(node, settings)
        placed[node.id] = replace(
            node,
            x=x_center - width / 2,
            y=y,
            width=width,
            depth=depth,
            background=settings.background_for_depth(depth),
            visible=visible,
            draggable=False,
        )

        children = index.get(node.id, [])
        if not children:
            continue

        widths = [subtree_width(c, index, settings, memo) for c in children]
        total = sum(widths) + (len(children) - 1) * settings.horizontal_gap

        current_x = x_center - total / 2
        child_y = y + settings.vertical_gap
        for child, child_width in zip(children, widths):
            pending.append((child, current_x + child_width / 2, child_y, depth + 1, visible))
            current_x += child_width + settings.horizontal_gap

    logger.debug("Laid out %d nodes", len(placed))
    # Nodes unreachable from a root cannot exist in a valid snapshot
    return [placed.get(n.id, n) for n in nodes]
