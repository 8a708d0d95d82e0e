"""Tree data model for Penrove diagrams."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Tuple, Iterable, Any


class TreeIntegrityError(ValueError):
    """Raised when a node set does not describe a single rooted tree."""


class Category(Enum):
    """Display kinds for nodes. Purely cosmetic, never structural."""
    SYSTEM = "System"
    SUBSYSTEM = "Subsystem"
    COMPONENT = "Component"
    PART = "Part"

    @classmethod
    def parse(cls, value: Any) -> Optional["Category"]:
        """Accept a Category, its value or its name. Returns None if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for category in cls:
                if value == category.value or value.upper() == category.name:
                    return category
        return None


ROOT_LABEL = "Main System"
DEFAULT_LABEL = "Component #{id}"


def default_label(node_id: int) -> str:
    """Placeholder label for a freshly created node."""
    return DEFAULT_LABEL.format(id=node_id)


@dataclass(frozen=True)
class TreeNode:
    """A node in the diagram.

    `parent_id`, `label`, `category` and `measured_width` are authoritative.
    Everything else is derived by the layout pass and overwritten each time.
    """
    id: int
    parent_id: Optional[int] = None
    label: str = ""
    category: Category = Category.COMPONENT
    measured_width: Optional[float] = None

    # Derived by layout
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    depth: int = 0
    background: Optional[str] = None
    visible: bool = True
    draggable: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def position(self) -> Tuple[float, float]:
        """Top-left corner."""
        return (self.x, self.y)

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    def to_dict(self) -> dict:
        data = asdict(self)
        data["category"] = self.category.value
        return data


@dataclass(frozen=True)
class Connector:
    """Derived parent -> child edge."""
    id: str
    source: int
    target: int
    visible: bool = True
    highlighted: bool = False
    stroke: str = "#B0C1C6"
    stroke_width: int = 1
    animation_direction: str = "reverse"

    @property
    def animated(self) -> bool:
        return self.highlighted

    def to_dict(self) -> dict:
        data = asdict(self)
        data["animated"] = self.animated
        return data


class IdSequence:
    """Monotonic identifier allocator. Identifiers are never handed out twice."""

    def __init__(self, start: int = 2):
        self._next = start

    @property
    def peek(self) -> int:
        """The identifier the next call to `allocate` will return."""
        return self._next

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value


def check_invariants(nodes: Iterable[TreeNode]):
    """Validate the four tree invariants, raising TreeIntegrityError."""
    by_id: Dict[int, TreeNode] = {}
    for node in nodes:
        if node.id in by_id:
            raise TreeIntegrityError(f"Duplicate node id {node.id}")
        by_id[node.id] = node

    roots = [n.id for n in by_id.values() if n.parent_id is None]
    if len(roots) != 1:
        raise TreeIntegrityError(f"Expected exactly one root, found {len(roots)}")

    for node in by_id.values():
        if node.parent_id is not None and node.parent_id not in by_id:
            raise TreeIntegrityError(
                f"Node {node.id} references missing parent {node.parent_id}"
            )

    # Walk up until a node already known to reach the root
    rooted = {roots[0]}
    for node in by_id.values():
        path: List[int] = []
        on_path = set()
        current = node.id
        while current not in rooted:
            if current in on_path:
                raise TreeIntegrityError(f"Cycle through node {node.id}")
            path.append(current)
            on_path.add(current)
            current = by_id[current].parent_id
        rooted.update(path)


@dataclass(frozen=True)
class Snapshot:
    """Complete, immutable node + connector state handed to the renderer."""
    nodes: Tuple[TreeNode, ...] = ()
    connectors: Tuple[Connector, ...] = ()
    _by_id: Dict[int, TreeNode] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, "_by_id", {n.id: n for n in self.nodes})

    @classmethod
    def build(cls, nodes: Iterable[TreeNode],
              connectors: Iterable[Connector] = ()) -> "Snapshot":
        """Create a snapshot, validating the tree invariants first."""
        nodes = tuple(nodes)
        check_invariants(nodes)
        return cls(nodes=nodes, connectors=tuple(connectors))

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def get(self, node_id: int) -> Optional[TreeNode]:
        """Get a node by ID."""
        return self._by_id.get(node_id)

    def node(self, node_id: int) -> TreeNode:
        return self._by_id[node_id]

    @property
    def root(self) -> Optional[TreeNode]:
        for node in self.nodes:
            if node.parent_id is None:
                return node
        return None

    @property
    def ids(self) -> List[int]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "connectors": [c.to_dict() for c in self.connectors],
        }
