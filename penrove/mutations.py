"""Structural edits on tree snapshots.

Every operation validates first and only then builds a new snapshot, so a
rejected command leaves the caller's snapshot exactly as it was.
"""

import logging
import math
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional

from penrove.config import LayoutSettings
from penrove.edges import compute_connectors
from penrove.errors import (
    CommandResult, FailureKind, Rejection, invalid_reference, invariant_violation,
)
from penrove.layout import compute_layout
from penrove.model import (
    Category, IdSequence, Snapshot, TreeNode, ROOT_LABEL, default_label,
)
from penrove.traversal import children_index, descendants_of, is_ancestor_of, parent_map

logger = logging.getLogger(__name__)


class MutationService:
    """Add, delete, relink and edit nodes, re-running layout as needed."""

    def __init__(self, settings: Optional[LayoutSettings] = None):
        self.settings = settings or LayoutSettings()

    # ==================== Snapshot Building ====================

    def publish(self, nodes: Iterable[TreeNode]) -> Snapshot:
        """Lay out `nodes`, derive connectors and freeze the result."""
        laid_out = compute_layout(list(nodes), self.settings)
        connectors = compute_connectors(laid_out, self.settings.anchor_id)
        return Snapshot.build(laid_out, connectors)

    def initial_snapshot(self, root_id: int = 1, label: str = ROOT_LABEL,
                         category: Category = Category.SYSTEM) -> Snapshot:
        """A tree holding only the root node."""
        root = TreeNode(
            id=root_id,
            parent_id=None,
            label=label,
            category=category,
            x=self.settings.root_x,
            y=self.settings.root_y,
        )
        return self.publish([root])

    def _reject(self, snapshot: Snapshot, rejection: Rejection) -> CommandResult:
        logger.info("Rejected (%s): %s", rejection.kind.value, rejection.message)
        return CommandResult(snapshot, rejection)

    # ==================== Structural Operations ====================

    def add_child(self, snapshot: Snapshot, parent_id: int, sequence: IdSequence,
                  label: Optional[str] = None,
                  category: Category = Category.COMPONENT) -> CommandResult:
        """Append a new node under `parent_id`."""
        if parent_id not in snapshot:
            return self._reject(snapshot, invalid_reference(parent_id, "Parent"))

        node_id = sequence.allocate()
        new_node = TreeNode(
            id=node_id,
            parent_id=parent_id,
            label=label if label is not None else default_label(node_id),
            category=category,
        )
        result = self.publish([*snapshot.nodes, new_node])
        logger.debug("Added node %d under %d (%d nodes)", node_id, parent_id, len(result))
        return CommandResult(result)

    def delete_subtree(self, snapshot: Snapshot, node_id: int) -> CommandResult:
        """Remove `node_id` and every node beneath it in one step."""
        node = snapshot.get(node_id)
        if node is None:
            return self._reject(snapshot, invalid_reference(node_id))
        if node.is_root:
            return self._reject(
                snapshot, invariant_violation("The root node cannot be deleted", node_id)
            )

        doomed = {node_id, *descendants_of(node_id, children_index(snapshot.nodes))}
        result = self.publish(n for n in snapshot.nodes if n.id not in doomed)
        logger.debug("Deleted %d node(s) rooted at %d", len(doomed), node_id)
        return CommandResult(result)

    def relink_rejection(self, snapshot: Snapshot, node_id: int,
                         new_parent_id: int) -> Optional[Rejection]:
        """First failed relink precondition, or None if the relink is allowed."""
        node = snapshot.get(node_id)
        if node is None:
            return invalid_reference(node_id)
        if node.is_root:
            return invariant_violation("The root node has no parent to change", node_id)
        if new_parent_id not in snapshot:
            return invalid_reference(new_parent_id, "Parent")
        if new_parent_id == node.parent_id:
            return invariant_violation(
                f"Node {node_id} is already a child of {new_parent_id}", node_id
            )
        if new_parent_id == node_id or is_ancestor_of(
            node_id, new_parent_id, parent_map(snapshot.nodes)
        ):
            return invariant_violation(
                f"Node {new_parent_id} is inside the subtree of {node_id}", node_id
            )
        return None

    def relink(self, snapshot: Snapshot, node_id: int, new_parent_id: int) -> CommandResult:
        """Move `node_id` (and its subtree) under `new_parent_id`."""
        rejection = self.relink_rejection(snapshot, node_id, new_parent_id)
        if rejection:
            return self._reject(snapshot, rejection)

        # The node keeps its place in the node order
        nodes = [
            replace(n, parent_id=new_parent_id) if n.id == node_id else n
            for n in snapshot.nodes
        ]
        logger.debug("Relinked node %d under %d", node_id, new_parent_id)
        return CommandResult(self.publish(nodes))

    # ==================== Display Fields ====================

    def edit(self, snapshot: Snapshot, node_id: int, label: Optional[str] = None,
             category=None) -> CommandResult:
        """Update label and/or category without re-running layout."""
        if node_id not in snapshot:
            return self._reject(snapshot, invalid_reference(node_id))

        changes = {}
        if label is not None:
            changes["label"] = label
        if category is not None:
            parsed = Category.parse(category)
            if parsed is None:
                return self._reject(snapshot, Rejection(
                    FailureKind.INVALID_VALUE, f"Unknown category {category!r}", node_id
                ))
            changes["category"] = parsed

        # Geometry is unaffected, so positions and connectors carry over
        nodes = tuple(
            replace(n, **changes) if n.id == node_id else n for n in snapshot.nodes
        )
        return CommandResult(Snapshot(nodes=nodes, connectors=snapshot.connectors))

    def rename(self, snapshot: Snapshot, node_id: int, label: str) -> CommandResult:
        return self.edit(snapshot, node_id, label=label)

    def retype(self, snapshot: Snapshot, node_id: int, category) -> CommandResult:
        return self.edit(snapshot, node_id, category=category)

    # ==================== Measurements ====================

    def apply_measurements(self, snapshot: Snapshot,
                           widths: Mapping[int, float]) -> CommandResult:
        """Record renderer-measured widths and lay the tree out again."""
        for node_id, width in widths.items():
            if node_id not in snapshot:
                return self._reject(snapshot, invalid_reference(node_id))
            if width is None or not (math.isfinite(width) and width > 0):
                return self._reject(snapshot, Rejection(
                    FailureKind.INVALID_VALUE,
                    f"Measured width for node {node_id} must be a positive finite "
                    f"number, got {width!r}",
                    node_id,
                ))

        nodes: List[TreeNode] = [
            replace(n, measured_width=float(widths[n.id])) if n.id in widths else n
            for n in snapshot.nodes
        ]
        return CommandResult(self.publish(nodes))

    def carry_measurements(self, target: Snapshot,
                           known: Mapping[int, float]) -> Snapshot:
        """Apply the known widths to whichever of their nodes exist in `target`."""
        widths: Dict[int, float] = {
            node_id: width for node_id, width in known.items()
            if node_id in target and target.node(node_id).measured_width != width
        }
        if not widths:
            return target
        return self.apply_measurements(target, widths).snapshot
