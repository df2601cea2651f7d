"""Impact queries over the usage graph."""

from __future__ import annotations

from collections import deque
from pathlib import Path

from diffuse.graph.builder import UsageGraph


def blast_radius(graph: UsageGraph, file_path: str | Path) -> int:
    """Transitive impact of changing `file_path`.

    Breadth-first over dependents; each file is expanded once and contributes
    the number of its direct dependents. Diamonds are therefore counted once
    per incoming edge, not once per distinct file.
    """
    start = graph.index_of(file_path)
    if start is None:
        return 0

    visited = {start}
    queue = deque([start])
    total = 0
    while queue:
        current = queue.popleft()
        dependents = list(graph.graph.predecessors(current))
        total += len(dependents)
        for dep in dependents:
            if dep not in visited:
                visited.add(dep)
                queue.append(dep)
    return total


def subsystem_spread(graph: UsageGraph, file_path: str | Path) -> int:
    """Number of distinct subsystems importing `file_path` directly."""
    node = graph.node(file_path)
    return len(node.subsystems) if node else 0


def transitive_dependents(graph: UsageGraph, file_path: str | Path) -> list[str]:
    """Every file that depends on `file_path`, nearest first."""
    start = graph.index_of(file_path)
    if start is None:
        return []

    visited = {start}
    queue = deque([start])
    result = []
    while queue:
        current = queue.popleft()
        for dep in graph.graph.predecessors(current):
            if dep not in visited:
                visited.add(dep)
                queue.append(dep)
                result.append(graph.path_of(dep))
    return result


def max_dependency_depth(graph: UsageGraph, file_path: str | Path) -> int:
    """Number of breadth-first levels of dependents above `file_path`.

    Each file is visited once, at the level where it is first reached.
    """
    start = graph.index_of(file_path)
    if start is None:
        return 0

    depth = 0
    visited = {start}
    frontier = [start]
    while frontier:
        next_frontier = []
        for current in frontier:
            for dep in graph.graph.predecessors(current):
                if dep not in visited:
                    visited.add(dep)
                    next_frontier.append(dep)
        if next_frontier:
            depth += 1
        frontier = next_frontier
    return depth
