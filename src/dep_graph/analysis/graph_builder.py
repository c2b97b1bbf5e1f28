"""Mutating facade used to assemble a :class:`GraphModel`."""

from __future__ import annotations

import logging
from typing import Iterable

from dep_graph.analysis.graph_model import GraphEdge, GraphModel, GraphNode

LOGGER = logging.getLogger(__name__)


class GraphBuilder:
    """Collect nodes and edges for a single model.

    The builder is spent once :meth:`create_graph_model` has returned; any
    further call raises :class:`RuntimeError`. It is not thread-safe.
    """

    def __init__(self) -> None:
        self._model: GraphModel | None = GraphModel()

    def _require_model(self) -> GraphModel:
        if self._model is None:
            raise RuntimeError("GraphBuilder used after create_graph_model().")
        return self._model

    def map_node(self, node: GraphNode) -> GraphNode:
        """Return the stored instance for ``node.key``, inserting ``node`` if it is new."""

        model = self._require_model()
        existing = model.find_node(node.key)
        if existing is not None:
            return existing
        model._insert_node(node)
        return node

    def find_node(self, key: str) -> GraphNode | None:
        return self._require_model().find_node(key)

    def add_edge(self, edge: GraphEdge) -> None:
        model = self._require_model()
        for endpoint in (edge.tail, edge.head):
            if model.find_node(endpoint.key) is not endpoint:
                raise RuntimeError(f"Edge endpoint was not mapped through the builder: {endpoint.key}")
        model._insert_edge(edge)

    def create_graph_model(self) -> GraphModel:
        model = self._require_model()
        self._model = None
        LOGGER.debug("Sealed graph model with %d nodes and %d edges", model.node_count, model.edge_count)
        return model


def create_graph_builder() -> GraphBuilder:
    return GraphBuilder()


def build_from_edges(master: GraphModel, source_edges: Iterable[GraphEdge]) -> GraphModel:
    """
    Build a model holding exactly ``source_edges`` and the nodes they touch.

    Endpoints are resolved against ``master`` so the new model shares the
    master's node instances wherever the master knows the key.
    """

    builder = create_graph_builder()

    def canonical(node: GraphNode) -> GraphNode:
        return builder.map_node(master.find_node(node.key) or node)

    for edge in source_edges:
        tail = canonical(edge.tail)
        head = canonical(edge.head)
        builder.add_edge(GraphEdge(tail, head, edge.relation))

    return builder.create_graph_model()


__all__ = ["GraphBuilder", "build_from_edges", "create_graph_builder"]
