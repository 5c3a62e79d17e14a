"""Graph helpers shared by workflow and handoff checks.

Both walks use explicit stacks/queues so user-authored graphs of any depth
never hit the interpreter recursion limit.
"""

from collections import deque
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


def find_cycles(
    graph: Dict[Hashable, Sequence[Hashable]],
    roots: Optional[Iterable[Hashable]] = None,
    limit: Optional[int] = None,
) -> List[List[Hashable]]:
    """Find cycles with a three-color depth-first search.

    Every node is used as a DFS root at most once, in `roots` order (graph
    order when omitted), so cycles in disconnected components are found.
    A back edge to an in-progress node yields one cycle, rendered from the
    back-edge target round to itself, e.g. ["A", "B", "A"].

    Args:
        graph: Adjacency mapping node -> successors
        roots: Optional root order
        limit: Stop after this many distinct cycles

    Returns:
        Distinct cycles in discovery order
    """
    color: Dict[Hashable, int] = {}
    cycles: List[List[Hashable]] = []
    seen = set()

    for root in (graph.keys() if roots is None else roots):
        if color.get(root, _UNVISITED) != _UNVISITED:
            continue

        color[root] = _IN_PROGRESS
        path = [root]
        stack = [(root, iter(graph.get(root, ())))]

        while stack:
            node, successors = stack[-1]
            descended = False
            for nxt in successors:
                state = color.get(nxt, _UNVISITED)
                if state == _IN_PROGRESS:
                    cycle = path[path.index(nxt):] + [nxt]
                    key = _canonical(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                        if limit is not None and len(cycles) >= limit:
                            return cycles
                elif state == _UNVISITED:
                    color[nxt] = _IN_PROGRESS
                    path.append(nxt)
                    stack.append((nxt, iter(graph.get(nxt, ()))))
                    descended = True
                    break
            if not descended:
                stack.pop()
                path.pop()
                color[node] = _DONE

    return cycles


def _canonical(cycle: List[Hashable]) -> Tuple[Hashable, ...]:
    """Rotation-independent key for a closed cycle."""
    ring = cycle[:-1]
    start = min(range(len(ring)), key=lambda i: str(ring[i]))
    return tuple(ring[start:] + ring[:start])


def find_shortest_path(
    edges: Iterable[Tuple[Hashable, Hashable, Any]],
    source: Hashable,
    target: Hashable,
) -> Optional[List[Any]]:
    """Breadth-first search for the shortest edge path from source to target.

    Edges are (from, to, payload) triples; the payloads along the first
    shortest path found are returned. A path from a node to itself must
    contain at least one edge.

    Returns:
        List of edge payloads, or None when target is unreachable
    """
    adjacency: Dict[Hashable, List[Tuple[Hashable, Hashable, Any]]] = {}
    for edge in edges:
        adjacency.setdefault(edge[0], []).append(edge)

    queue = deque([(source, [])])
    visited = set()
    while queue:
        node, path = queue.popleft()
        if node == target and path:
            return path
        if node in visited:
            continue
        visited.add(node)
        for _, nxt, payload in adjacency.get(node, []):
            queue.append((nxt, path + [payload]))

    return None
