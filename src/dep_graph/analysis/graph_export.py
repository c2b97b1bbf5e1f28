"""Utilities for persisting and converting graph documents."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import networkx as nx

from dep_graph.analysis.graph_builder import create_graph_builder
from dep_graph.analysis.graph_model import ElementKind, GraphEdge, GraphModel, GraphNode, relation_from_value

try:
    import igraph as ig
except ImportError:  # pragma: no cover - igraph optional
    ig = None

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


@dataclass
class GraphDocument:
    """A built model plus the ids of the plugins whose element kinds it holds."""

    model: GraphModel
    plugin_ids: list[str] = field(default_factory=list)


def _jsonable(value: object) -> object:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def document_payload(document: GraphDocument) -> dict:
    model = document.model
    nodes = sorted(model.get_nodes())
    edges = sorted(model.get_edges(), key=lambda edge: edge.identity)
    return {
        "schema_version": SCHEMA_VERSION,
        "plugins": list(document.plugin_ids),
        "node_count": len(nodes),
        "edge_count": len(edges),
        "nodes": [
            {
                "id": node.key,
                "kind": node.kind.value,
                "name": node.name,
                **{key: _jsonable(value) for key, value in node.payload.items()},
            }
            for node in nodes
        ],
        "edges": [
            {"source": edge.tail.key, "target": edge.head.key, "relation": edge.relation.value} for edge in edges
        ],
    }


def export_graph_document(document: GraphDocument, destination: Path) -> None:
    """Persist a graph document to JSON."""

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("w", encoding="utf-8") as handle:
        json.dump(document_payload(document), handle, indent=2)
    LOGGER.info("Wrote %d nodes and %d edges to %s", document.model.node_count, document.model.edge_count, destination)


def load_graph_document(path: Path) -> GraphDocument:
    """Load a JSON document written by :func:`export_graph_document`."""

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    builder = create_graph_builder()
    for entry in payload.get("nodes", []):
        attributes = {k: v for k, v in entry.items() if k not in ("id", "kind", "name")}
        if isinstance(attributes.get("modifiers"), list):
            attributes["modifiers"] = tuple(attributes["modifiers"])
        builder.map_node(GraphNode(ElementKind(entry["kind"]), entry["name"], attributes))

    for entry in payload.get("edges", []):
        tail = builder.find_node(entry["source"])
        head = builder.find_node(entry["target"])
        if tail is None or head is None:
            raise ValueError(f"Edge references unknown node: {entry['source']} -> {entry['target']}")
        builder.add_edge(GraphEdge(tail, head, relation_from_value(entry["relation"])))

    return GraphDocument(builder.create_graph_model(), list(payload.get("plugins", [])))


def _sanitize_for_graphml(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Rewrite attributes in place so GraphML can store them."""

    def sanitize(mapping):
        for key in list(mapping.keys()):
            value = mapping[key]
            if value is None:
                del mapping[key]
            elif isinstance(value, (list, tuple, set)):
                mapping[key] = ",".join(str(item) for item in value)
            elif isinstance(value, dict):
                mapping[key] = json.dumps(value)

    for _, data in graph.nodes(data=True):
        sanitize(data)
    for _, _, data in graph.edges(data=True):
        sanitize(data)
    return graph


def write_graphml(document: GraphDocument, destination: Path) -> None:
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    graph = _sanitize_for_graphml(document.model.to_networkx())
    graph.graph["plugins"] = ",".join(document.plugin_ids)
    nx.write_graphml(graph, destination)


def to_igraph(model: GraphModel) -> "ig.Graph":
    """Convert a graph model into an igraph.Graph."""

    if ig is None:  # pragma: no cover - import guard
        raise ImportError("igraph is not installed. Install optional dependency `pip install igraph`.")

    nodes = sorted(model.get_nodes())
    index_map = {node.key: idx for idx, node in enumerate(nodes)}
    ig_graph = ig.Graph(directed=True)
    ig_graph.add_vertices(len(nodes))
    ig_graph.vs["name"] = [node.key for node in nodes]
    ig_graph.vs["kind"] = [node.kind.value for node in nodes]
    ig_graph.vs["label"] = [node.name for node in nodes]

    edges = model.get_edges()
    if edges:
        ig_graph.add_edges([(index_map[edge.tail.key], index_map[edge.head.key]) for edge in edges])
        ig_graph.es["relation"] = [edge.relation.value for edge in edges]
    return ig_graph


class FileDocumentSink:
    """Output collaborator writing each saved document to a fixed path."""

    formats = ("json", "graphml")

    def __init__(self, destination: Path, *, fmt: str = "json") -> None:
        fmt = fmt.lower()
        if fmt not in self.formats:
            raise ValueError(f"Unsupported format: {fmt}")
        self.destination = Path(destination)
        self.fmt = fmt

    def save(self, document: GraphDocument) -> None:
        if self.fmt == "graphml":
            write_graphml(document, self.destination)
        else:
            export_graph_document(document, self.destination)


__all__ = [
    "GraphDocument",
    "FileDocumentSink",
    "document_payload",
    "export_graph_document",
    "load_graph_document",
    "to_igraph",
    "write_graphml",
]
