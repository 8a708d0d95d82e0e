"""Command outcomes.

Rejected commands are reported as values. The tree is never touched when a
command is rejected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from penrove.model import Snapshot


class FailureKind(Enum):
    """Why a command was rejected."""
    INVALID_REFERENCE = "invalid_reference"
    INVARIANT_VIOLATION = "invariant_violation"
    FEATURE_DISABLED = "feature_disabled"
    INVALID_VALUE = "invalid_value"


@dataclass(frozen=True)
class Rejection:
    kind: FailureKind
    message: str
    node_id: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class CommandResult:
    """The snapshot after a command, plus the rejection if there was one."""
    snapshot: Snapshot
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @property
    def kind(self) -> Optional[FailureKind]:
        return self.rejection.kind if self.rejection else None


def invalid_reference(node_id: Optional[int], what: str = "Node") -> Rejection:
    return Rejection(FailureKind.INVALID_REFERENCE, f"{what} {node_id} does not exist", node_id)


def invariant_violation(message: str, node_id: Optional[int] = None) -> Rejection:
    return Rejection(FailureKind.INVARIANT_VIOLATION, message, node_id)
