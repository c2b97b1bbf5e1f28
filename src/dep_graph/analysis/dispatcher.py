"""Single sink receiving dependency events from every reader."""

from __future__ import annotations

from typing import Protocol

from dep_graph.analysis.filters import NodeFilter
from dep_graph.analysis.graph_builder import GraphBuilder
from dep_graph.analysis.graph_model import GraphEdge, GraphNode, Relation


class DependenciesListener(Protocol):
    """Capability handed to readers: report that ``parent`` depends on ``child``."""

    def new_dep(self, parent: GraphNode, child: GraphNode, relation: Relation) -> None:
        ...


class DependenciesDispatcher:
    """
    Canonicalise, filter and record dependency events.

    The filter is evaluated on the child only. Readers emit in containment
    order, so a whole subtree below an admitted parent survives while
    peripheral references outside the whitelist are pruned. A rejected child
    is not inserted by the event that rejected it.
    """

    def __init__(self, element_filter: NodeFilter, builder: GraphBuilder) -> None:
        self.element_filter = element_filter
        self.builder = builder
        self.accepted = 0
        self.rejected = 0

    def new_dep(self, parent: GraphNode, child: GraphNode, relation: Relation) -> None:
        tail = self.builder.map_node(parent)
        if not self.element_filter.admit(child):
            self.rejected += 1
            return
        head = self.builder.map_node(child)
        self.builder.add_edge(GraphEdge(tail, head, relation))
        self.accepted += 1


__all__ = ["DependenciesDispatcher", "DependenciesListener"]
