"""Penrove - tree diagram editing core."""

__version__ = "1.0.0"
__app_id__ = "io.github.penrove.Penrove"

from penrove.config import EditorConfig, EditorFeatures, LayoutSettings
from penrove.controller import EditorController, RelinkState
from penrove.errors import CommandResult, FailureKind, Rejection
from penrove.model import Category, Connector, Snapshot, TreeNode, TreeIntegrityError

__all__ = [
    "Category",
    "CommandResult",
    "Connector",
    "EditorConfig",
    "EditorController",
    "EditorFeatures",
    "FailureKind",
    "LayoutSettings",
    "Rejection",
    "RelinkState",
    "Snapshot",
    "TreeIntegrityError",
    "TreeNode",
]
