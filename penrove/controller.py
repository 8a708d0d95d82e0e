"""Editor controller: owns the current snapshot and exposes id-based commands."""

import logging
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional

from penrove.config import EditorConfig
from penrove.errors import CommandResult, FailureKind, Rejection, invalid_reference
from penrove.model import IdSequence, Snapshot
from penrove.mutations import MutationService
from penrove.undo import UndoAction, UndoManager

logger = logging.getLogger(__name__)


class RelinkState(Enum):
    """Selection protocol for re-parenting a node."""
    IDLE = "idle"
    AWAITING_SOURCE = "awaiting_source"
    AWAITING_TARGET = "awaiting_target"


class EditorController:
    """Single owner of the diagram.

    Every command returns a CommandResult. On success the new snapshot has
    already replaced the old one; on rejection nothing changed.
    """

    def __init__(self, config: Optional[EditorConfig] = None, root_id: int = 1,
                 max_undo: int = 100):
        self.config = config or EditorConfig()
        self.mutations = MutationService(self.config.layout)
        self.sequence = IdSequence(start=root_id + 1)
        self.undo_manager = UndoManager(max_undo=max_undo, max_redo=max_undo)

        self._snapshot = self.mutations.initial_snapshot(root_id)
        self._relink_state = RelinkState.IDLE
        self._relink_source: Optional[int] = None
        # Latest renderer-reported width per node id
        self._measurements: Dict[int, float] = {}

        # Callbacks
        self.on_snapshot_changed: Optional[Callable[[Snapshot], None]] = None

    # ==================== State ====================

    def get_snapshot(self) -> Snapshot:
        """Current laid-out nodes and connectors."""
        return self._snapshot

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def relink_state(self) -> RelinkState:
        return self._relink_state

    @property
    def relink_source(self) -> Optional[int]:
        return self._relink_source

    @property
    def layout_settled(self) -> bool:
        """True once every node has a measured width from the renderer."""
        return all(n.measured_width is not None for n in self._snapshot.nodes)

    def _publish(self, snapshot: Snapshot):
        self._snapshot = snapshot
        if self.on_snapshot_changed:
            self.on_snapshot_changed(snapshot)

    def _commit(self, result: CommandResult,
                make_action: Callable[[Snapshot, Snapshot], UndoAction]) -> CommandResult:
        if result.ok:
            before = self._snapshot
            self._publish(result.snapshot)
            self.undo_manager.push(make_action(before, result.snapshot))
        return result

    def _disabled(self, feature: str) -> CommandResult:
        rejection = Rejection(FailureKind.FEATURE_DISABLED, f"{feature} is disabled")
        logger.info("Rejected (%s): %s", rejection.kind.value, rejection.message)
        return CommandResult(self._snapshot, rejection)

    # ==================== Commands ====================

    def add_child(self, parent_id: int, label: Optional[str] = None) -> CommandResult:
        """Create a new node under `parent_id`."""
        node_id = self.sequence.peek
        result = self.mutations.add_child(self._snapshot, parent_id, self.sequence, label)
        return self._commit(
            result,
            lambda before, after: UndoManager.create_node_action(node_id, parent_id, before, after),
        )

    def delete_subtree(self, node_id: int) -> CommandResult:
        """Delete a node and all of its descendants."""
        count = len(self._snapshot)
        result = self.mutations.delete_subtree(self._snapshot, node_id)
        self._commit(
            result,
            lambda before, after: UndoManager.delete_node_action(
                node_id, count - len(after), before, after
            ),
        )
        # A selected source that went with the subtree can no longer be moved
        if result.ok and self._relink_source is not None \
                and self._relink_source not in result.snapshot:
            self._reset_relink()
        return result

    def relink(self, node_id: int, new_parent_id: int) -> CommandResult:
        """Move a node under a different parent."""
        if not self.config.features.relink:
            return self._disabled("Relink")
        result = self.mutations.relink(self._snapshot, node_id, new_parent_id)
        return self._commit(
            result,
            lambda before, after: UndoManager.relink_node_action(
                node_id, new_parent_id, before, after
            ),
        )

    def rename(self, node_id: int, label: str) -> CommandResult:
        """Change a node's display label."""
        result = self.mutations.rename(self._snapshot, node_id, label)
        return self._commit(
            result,
            lambda before, after: UndoManager.rename_node_action(node_id, label, before, after),
        )

    def retype(self, node_id: int, category) -> CommandResult:
        """Change a node's category."""
        if not self.config.features.categories:
            return self._disabled("Categories")
        result = self.mutations.retype(self._snapshot, node_id, category)
        return self._commit(
            result,
            lambda before, after: UndoManager.retype_node_action(
                node_id, after.node(node_id).category.value, before, after
            ),
        )

    def edit_node(self, node_id: int, label: Optional[str] = None,
                  category=None) -> CommandResult:
        """Apply label and category together as one undoable edit."""
        if category is not None and not self.config.features.categories:
            return self._disabled("Categories")
        if node_id not in self._snapshot:
            return CommandResult(self._snapshot, invalid_reference(node_id))
        if label is None:
            if category is None:
                return CommandResult(self._snapshot)
            return self.retype(node_id, category)
        result = self.mutations.edit(self._snapshot, node_id, label=label, category=category)
        return self._commit(
            result,
            lambda before, after: UndoManager.rename_node_action(node_id, label, before, after),
        )

    # ==================== Measurements ====================

    def report_measurement(self, node_id: int, width: float) -> CommandResult:
        """Record the rendered width of one node and re-run layout."""
        return self.report_measurements({node_id: width})

    def report_measurements(self, widths: Mapping[int, float]) -> CommandResult:
        """Record rendered widths for several nodes and re-run layout once."""
        result = self.mutations.apply_measurements(self._snapshot, widths)
        if result.ok:
            self._measurements.update((k, float(v)) for k, v in widths.items())
            self._publish(result.snapshot)
        return result

    # ==================== Undo / Redo ====================

    def undo(self) -> CommandResult:
        """Restore the snapshot from before the last command."""
        action = self.undo_manager.undo()
        if action is None:
            return CommandResult(self._snapshot, Rejection(
                FailureKind.INVARIANT_VIOLATION, "Nothing to undo"
            ))
        return self._restore(action.before, f"Undo: {action.description}")

    def redo(self) -> CommandResult:
        """Re-apply the last undone command."""
        action = self.undo_manager.redo()
        if action is None:
            return CommandResult(self._snapshot, Rejection(
                FailureKind.INVARIANT_VIOLATION, "Nothing to redo"
            ))
        return self._restore(action.after, f"Redo: {action.description}")

    def _restore(self, snapshot: Snapshot, description: str) -> CommandResult:
        # Widths describe the renderer, not the edit, so keep the latest ones
        restored = self.mutations.carry_measurements(snapshot, self._measurements)
        self._reset_relink()
        self._publish(restored)
        logger.debug("%s", description)
        return CommandResult(restored)

    # ==================== Relink Mode ====================

    def _reset_relink(self):
        if self._relink_state is not RelinkState.IDLE:
            logger.debug("Relink: %s -> idle", self._relink_state.value)
        self._relink_state = RelinkState.IDLE
        self._relink_source = None

    def enter_relink_mode(self) -> CommandResult:
        """Start the relink selection protocol."""
        if not self.config.features.relink:
            return self._disabled("Relink")
        if self._relink_state is RelinkState.IDLE:
            self._relink_state = RelinkState.AWAITING_SOURCE
            logger.debug("Relink: idle -> awaiting_source")
        return CommandResult(self._snapshot)

    def exit_relink_mode(self) -> CommandResult:
        """Leave relink mode from any state without touching the tree."""
        self._reset_relink()
        return CommandResult(self._snapshot)

    def toggle_relink_mode(self) -> CommandResult:
        if self._relink_state is RelinkState.IDLE:
            return self.enter_relink_mode()
        return self.exit_relink_mode()

    def cancel_relink_selection(self) -> CommandResult:
        """Abandon the current selection; returns to idle."""
        self._reset_relink()
        return CommandResult(self._snapshot)

    def select_for_relink(self, node_id: int) -> CommandResult:
        """Feed a node click into the relink selection protocol."""
        if self._relink_state is RelinkState.IDLE:
            return CommandResult(self._snapshot, Rejection(
                FailureKind.INVARIANT_VIOLATION, "Relink mode is not active", node_id
            ))

        if self._relink_state is RelinkState.AWAITING_SOURCE:
            node = self._snapshot.get(node_id)
            if node is None:
                return CommandResult(self._snapshot, invalid_reference(node_id))
            if node.is_root:
                return CommandResult(self._snapshot, Rejection(
                    FailureKind.INVARIANT_VIOLATION,
                    "The root node has no parent to change", node_id,
                ))
            self._relink_state = RelinkState.AWAITING_TARGET
            self._relink_source = node_id
            logger.debug("Relink: awaiting_source -> awaiting_target (source %d)", node_id)
            return CommandResult(self._snapshot)

        result = self.relink(self._relink_source, node_id)
        if result.ok:
            self._reset_relink()
        return result

    def valid_relink_targets(self) -> List[int]:
        """Nodes that would be accepted as the new parent of the selected source."""
        if self._relink_state is not RelinkState.AWAITING_TARGET:
            return []
        return [
            n.id for n in self._snapshot.nodes
            if self.mutations.relink_rejection(self._snapshot, self._relink_source, n.id) is None
        ]
