from __future__ import annotations
from typing import Dict, Iterator, List, Set, Tuple
from ..errors import MalformedHierarchyError
from ..models.schemas import CodeHierarchy


def hierarchy_depth(hierarchy: CodeHierarchy) -> int:
    """Maximum depth of the code tree; a lone root has depth 1, no roots gives 0.

    Iterative depth-first walk. `done` memoises the height of every finished
    subtree so children shared by several parents are measured once; the
    current ancestor path raises MalformedHierarchyError as soon as a node
    reappears on it.
    """
    relationships = hierarchy.relationships
    done: Dict[str, int] = {}

    for root in hierarchy.root_codes:
        if root in done:
            continue
        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(relationships.get(root) or []))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.pop()
                on_path.discard(node)
                kids = relationships.get(node) or []
                done[node] = 1 + max((done[c] for c in kids), default=0)
                continue
            if child in on_path:
                raise MalformedHierarchyError(path[path.index(child):] + [child])
            if child in done:
                continue
            path.append(child)
            on_path.add(child)
            stack.append((child, iter(relationships.get(child) or [])))

    return max((done[r] for r in hierarchy.root_codes), default=0)
