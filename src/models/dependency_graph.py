"""Ordering-hint graph between resource declarations.

Edges come from explicit ``DependsOn`` hints and from implicit references
(``Ref``/``Fn::GetAtt``/``Fn::Sub``) between resources. The graph is used
to reject cyclic documents before they are handed to the orchestration
service; creation order itself is left to that service.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Literal, NamedTuple

import networkx as nx

if TYPE_CHECKING:
    from .cfn_template import ResourceDeclaration

EdgeKind = Literal["DependsOn", "Ref", "GetAtt"]


class DependencyEdge(NamedTuple):
    """``source`` depends on ``target`` existing first."""

    source: str
    target: str
    kind: EdgeKind


def build_dependency_edges(resources: Iterable[ResourceDeclaration]) -> list[DependencyEdge]:
    """Build dependency edges between declared resources.

    References to parameters, pseudo parameters and undeclared names are
    ignored. An explicit hint wins over an implicit reference to the same
    target.
    """
    resources = list(resources)
    names = {r.name for r in resources}
    edges: list[DependencyEdge] = []

    for resource in resources:
        seen: set[str] = set()
        for target in resource.depends_on:
            if target in names and target not in seen:
                edges.append(DependencyEdge(resource.name, target, "DependsOn"))
                seen.add(target)
        for reference in resource.references():
            if reference.target in names and reference.target not in seen:
                edges.append(
                    DependencyEdge(resource.name, reference.target, reference.kind.value)
                )
                seen.add(reference.target)

    return edges


def dependency_graph(edges: Iterable[DependencyEdge], nodes: Iterable[str] = ()) -> nx.DiGraph:
    """Directed graph (source -> target) with every node present."""
    graph = nx.DiGraph()
    graph.add_nodes_from(nodes)
    for edge in edges:
        graph.add_edge(edge.source, edge.target, kind=edge.kind)
    return graph


def find_cycle(graph: nx.DiGraph) -> list[str] | None:
    """Find a dependency cycle, if any.

    The shortest cycle is reported, rotated to start at its smallest name,
    so the result is stable for a given document.

    Returns:
        Cycle path with the first node repeated at the end
        (``["A", "B", "A"]``), or None when the graph is acyclic
    """
    if nx.is_directed_acyclic_graph(graph):
        return None

    best: list[str] | None = None
    for cycle in nx.simple_cycles(graph):
        start = cycle.index(min(cycle))
        rotated = cycle[start:] + cycle[:start]
        if best is None or (len(rotated), rotated) < (len(best), best):
            best = rotated
    if best is None:
        return None
    return best + [best[0]]
