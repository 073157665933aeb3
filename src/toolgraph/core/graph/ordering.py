"""Dependency ordering for execution graphs.

Two views of the same dependency relation:
- topological_order(): total order for sequential runs. Dependencies
  always come first; among ready nodes the lowest priority wins.
- group_by_level(): level barriers for parallel runs. A node's level is
  0 without dependencies, else 1 + the max level of its dependencies.

Both check for cycles with a depth-first walk before doing anything else,
so a cyclic graph fails before a single capability is invoked.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator, Sequence

from toolgraph.core.errors import DependencyCycleError
from toolgraph.core.graph.node import ToolNode


_WHITE, _GREY, _BLACK = 0, 1, 2


def find_cycle(nodes: Sequence[ToolNode]) -> list[str] | None:
    """Find a dependency cycle using depth-first traversal.

    The walk keeps an explicit stack, so graph depth is not bounded by the
    interpreter's recursion limit. A dependency that is still on the
    traversal path (grey) closes a cycle. Dependencies on ids outside
    ``nodes`` are ignored.

    Args:
        nodes: Nodes to inspect.

    Returns:
        The cycle as a list of ids (first id repeated at the end),
        or None if the graph is acyclic.
    """
    by_id = {node.id: node for node in nodes}
    color = dict.fromkeys(by_id, _WHITE)

    def deps_of(node_id: str) -> Iterator[str]:
        return iter(sorted(d for d in by_id[node_id].depends_on if d in by_id))

    for node in nodes:
        if color[node.id] != _WHITE:
            continue

        color[node.id] = _GREY
        path = [node.id]
        stack = [deps_of(node.id)]
        while stack:
            dep_id = next(stack[-1], None)
            if dep_id is None:
                stack.pop()
                color[path.pop()] = _BLACK
            elif color[dep_id] == _GREY:
                start = path.index(dep_id)
                return path[start:] + [dep_id]
            elif color[dep_id] == _WHITE:
                color[dep_id] = _GREY
                path.append(dep_id)
                stack.append(deps_of(dep_id))
    return None


def check_acyclic(nodes: Sequence[ToolNode]) -> None:
    """Raise if the nodes contain a dependency cycle.

    Raises:
        DependencyCycleError: If a cycle exists.
    """
    cycle = find_cycle(nodes)
    if cycle:
        raise DependencyCycleError(cycle)


def topological_order(nodes: Sequence[ToolNode]) -> list[ToolNode]:
    """Order nodes for sequential execution.

    Args:
        nodes: Nodes in insertion order.

    Returns:
        Nodes with every dependency before its dependents. Among nodes
        whose dependencies are satisfied, ascending priority, then
        insertion order.

    Raises:
        DependencyCycleError: If the graph has a cycle.
    """
    check_acyclic(nodes)

    by_id = {node.id: node for node in nodes}
    index = {node.id: i for i, node in enumerate(nodes)}
    remaining = {node.id: sum(1 for d in node.depends_on if d in by_id) for node in nodes}
    dependents: dict[str, list[str]] = {node.id: [] for node in nodes}
    for node in nodes:
        for dep_id in node.depends_on:
            if dep_id in by_id:
                dependents[dep_id].append(node.id)

    ready = [(by_id[nid].priority, index[nid], nid) for nid, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    order: list[ToolNode] = []
    while ready:
        _, _, node_id = heapq.heappop(ready)
        order.append(by_id[node_id])
        for child_id in dependents[node_id]:
            remaining[child_id] -= 1
            if remaining[child_id] == 0:
                heapq.heappush(ready, (by_id[child_id].priority, index[child_id], child_id))

    return order


def dependency_levels(nodes: Sequence[ToolNode]) -> dict[str, int]:
    """Assign each node its dependency level.

    Levels are filled in topological order, so every dependency's level
    is known by the time its dependents are reached.

    Args:
        nodes: Nodes to inspect.

    Returns:
        Mapping of node id to level.

    Raises:
        DependencyCycleError: If the graph has a cycle.
    """
    levels: dict[str, int] = {}
    for node in topological_order(nodes):
        deps = [levels[d] for d in node.depends_on if d in levels]
        levels[node.id] = 1 + max(deps) if deps else 0
    return levels


def group_by_level(nodes: Sequence[ToolNode]) -> list[list[ToolNode]]:
    """Group nodes into level barriers for parallel execution.

    Args:
        nodes: Nodes in insertion order.

    Returns:
        One list per level, ascending. Each list is sorted by priority
        (stable, so equal priorities keep insertion order).

    Raises:
        DependencyCycleError: If the graph has a cycle.
    """
    levels = dependency_levels(nodes)

    groups: dict[int, list[ToolNode]] = {}
    for node in nodes:
        groups.setdefault(levels[node.id], []).append(node)

    return [sorted(groups[level], key=lambda n: n.priority) for level in sorted(groups)]
