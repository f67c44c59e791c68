from __future__ import annotations

from collections.abc import Mapping, Sequence

import networkx as nx

from maven_pin.exceptions import DependencyCycle


def build_graph(edges: Mapping[str, Sequence[str]]) -> nx.DiGraph:
    """Build a directed graph where A -> B means A depends on B.

    Args:
        edges: `group:artifact` to the `group:artifact` keys it depends on.
    """
    g = nx.DiGraph()
    for a, deps in edges.items():
        g.add_node(a)
        for b in deps:
            g.add_node(b)
            g.add_edge(a, b)
    return g


def reverse_dependencies(g: nx.DiGraph, target: str) -> list[str]:
    """Return predecessors of target (who depends on it)."""
    if target not in g:
        return []
    return sorted(g.predecessors(target))


def transitive_dependents(g: nx.DiGraph, target: str) -> list[str]:
    """Return every node that reaches target, directly or through others."""
    if target not in g:
        return []
    return sorted(nx.ancestors(g, target))


def check_acyclic(g: nx.DiGraph) -> None:
    """Raise DependencyCycle describing one cycle, if the graph has any."""
    try:
        cycle = nx.find_cycle(g)
    except nx.NetworkXNoCycle:
        return
    path = " -> ".join([u for u, _ in cycle] + [cycle[0][0]])
    raise DependencyCycle(f"Dependency cycle between pinned artifacts: {path}")


def leaf_first_order(g: nx.DiGraph) -> list[str]:
    """Nodes ordered so every dependency comes before its dependents.

    Ties are broken alphabetically so the order is stable across runs.
    """
    return list(nx.lexicographical_topological_sort(g.reverse(copy=False)))
