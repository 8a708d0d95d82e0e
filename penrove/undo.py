"""Undo/Redo system for Penrove."""

from typing import Optional, List
from dataclasses import dataclass
from enum import Enum

from penrove.model import Snapshot


class ActionType(Enum):
    """Types of undoable actions."""
    NODE_CREATE = "node_create"
    NODE_DELETE = "node_delete"
    NODE_RELINK = "node_relink"
    NODE_RENAME = "node_rename"
    NODE_RETYPE = "node_retype"


@dataclass(frozen=True)
class UndoAction:
    """Represents an undoable action as the snapshots on either side of it."""
    action_type: ActionType
    description: str
    before: Snapshot
    after: Snapshot


class UndoManager:
    """Bounded before/after history of accepted commands."""

    def __init__(self, max_undo: int = 100, max_redo: int = 100):
        self.max_undo = max_undo
        self.max_redo = max_redo
        self._undo_stack: List[UndoAction] = []
        self._redo_stack: List[UndoAction] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_description(self) -> str:
        return self._undo_stack[-1].description if self._undo_stack else ""

    @property
    def redo_description(self) -> str:
        return self._redo_stack[-1].description if self._redo_stack else ""

    @staticmethod
    def _bounded_append(stack: List[UndoAction], action: UndoAction, limit: int):
        stack.append(action)
        # Oldest entries fall off the bottom
        del stack[:max(0, len(stack) - limit)]

    def push(self, action: UndoAction):
        """Record an accepted command; any redo history is discarded."""
        self._redo_stack.clear()
        self._bounded_append(self._undo_stack, action, self.max_undo)

    def undo(self) -> Optional[UndoAction]:
        """Move the newest action to the redo stack and return it."""
        if not self._undo_stack:
            return None
        action = self._undo_stack.pop()
        self._bounded_append(self._redo_stack, action, self.max_redo)
        return action

    def redo(self) -> Optional[UndoAction]:
        if not self._redo_stack:
            return None
        action = self._redo_stack.pop()
        self._bounded_append(self._undo_stack, action, self.max_undo)
        return action

    # ==================== Action Factories ====================

    @staticmethod
    def create_node_action(node_id: int, parent_id: int,
                           before: Snapshot, after: Snapshot) -> UndoAction:
        """Create action for node creation."""
        return UndoAction(
            action_type=ActionType.NODE_CREATE,
            description=f"Add node {node_id} under {parent_id}",
            before=before,
            after=after,
        )

    @staticmethod
    def delete_node_action(node_id: int, removed: int,
                           before: Snapshot, after: Snapshot) -> UndoAction:
        """Create action for subtree deletion."""
        suffix = f" and {removed - 1} descendant(s)" if removed > 1 else ""
        return UndoAction(
            action_type=ActionType.NODE_DELETE,
            description=f"Delete node {node_id}{suffix}",
            before=before,
            after=after,
        )

    @staticmethod
    def relink_node_action(node_id: int, new_parent_id: int,
                           before: Snapshot, after: Snapshot) -> UndoAction:
        """Create action for re-parenting."""
        return UndoAction(
            action_type=ActionType.NODE_RELINK,
            description=f"Move node {node_id} under {new_parent_id}",
            before=before,
            after=after,
        )

    @staticmethod
    def rename_node_action(node_id: int, new_label: str,
                           before: Snapshot, after: Snapshot) -> UndoAction:
        """Create action for node label edit."""
        text = f"{new_label[:20]}..." if len(new_label) > 20 else new_label
        return UndoAction(
            action_type=ActionType.NODE_RENAME,
            description=f"Rename node {node_id} to '{text}'",
            before=before,
            after=after,
        )

    @staticmethod
    def retype_node_action(node_id: int, category: str,
                           before: Snapshot, after: Snapshot) -> UndoAction:
        """Create action for node category change."""
        return UndoAction(
            action_type=ActionType.NODE_RETYPE,
            description=f"Change node {node_id} to {category}",
            before=before,
            after=after,
        )
