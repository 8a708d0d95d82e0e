"""Children index and the shared ancestor/descendant walks.

Delete, relink cycle checks and connector highlighting all go through these
helpers so there is exactly one definition of "descendant".
"""

from typing import Dict, List, Iterable, Optional, Set

from penrove.model import TreeNode

ChildrenIndex = Dict[int, List[TreeNode]]


def children_index(nodes: Iterable[TreeNode]) -> ChildrenIndex:
    """Map each parent id to its direct children, in input order."""
    index: ChildrenIndex = {}
    for node in nodes:
        if node.parent_id is not None:
            index.setdefault(node.parent_id, []).append(node)
    return index


def descendants_of(node_id: int, index: ChildrenIndex) -> List[int]:
    """All transitive descendants of `node_id` (excluding itself), pre-order."""
    ordered: List[int] = []
    # Reversed pushes so children pop left-to-right
    stack = [c.id for c in reversed(index.get(node_id, []))]
    while stack:
        current = stack.pop()
        ordered.append(current)
        stack.extend(c.id for c in reversed(index.get(current, [])))
    return ordered


def ancestors_of(node_id: int, parents: Dict[int, Optional[int]]) -> List[int]:
    """Parent chain of `node_id`, nearest first, ending at the root."""
    chain: List[int] = []
    seen: Set[int] = {node_id}
    current = parents.get(node_id)
    while current is not None and current not in seen:
        chain.append(current)
        seen.add(current)
        current = parents.get(current)
    return chain


def is_ancestor_of(ancestor_id: int, node_id: int,
                   parents: Dict[int, Optional[int]]) -> bool:
    """True if `ancestor_id` lies on the parent chain of `node_id`."""
    return ancestor_id in ancestors_of(node_id, parents)


def parent_map(nodes: Iterable[TreeNode]) -> Dict[int, Optional[int]]:
    return {n.id: n.parent_id for n in nodes}
