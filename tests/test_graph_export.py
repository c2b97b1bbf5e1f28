"""Tests for graph document persistence and conversion."""

from __future__ import annotations

import json
from pathlib import Path

import networkx as nx
import pytest

from dep_graph.analysis.elements import java_method, java_package, java_type
from dep_graph.analysis.graph_builder import create_graph_builder
from dep_graph.analysis.graph_export import (
    FileDocumentSink,
    GraphDocument,
    export_graph_document,
    load_graph_document,
    to_igraph,
    write_graphml,
)
from dep_graph.analysis.graph_model import GraphEdge, JavaRelation


def _sample_document() -> GraphDocument:
    builder = create_graph_builder()
    pkg = builder.map_node(java_package("demo"))
    main = builder.map_node(java_type("demo.Main", access=0x21, modifiers=("public",)))
    util = builder.map_node(java_type("demo.Util"))
    run = builder.map_node(java_method("demo.Main", "run", "()V", access=1))
    builder.add_edge(GraphEdge(pkg, main, JavaRelation.PACKAGE_MEMBER))
    builder.add_edge(GraphEdge(pkg, util, JavaRelation.PACKAGE_MEMBER))
    builder.add_edge(GraphEdge(main, run, JavaRelation.MEMBER_METHOD))
    builder.add_edge(GraphEdge(run, util, JavaRelation.REFERENCES))
    return GraphDocument(builder.create_graph_model(), ["dep_graph.java"])


def test_export_graph_document(tmp_path: Path) -> None:
    document = _sample_document()
    destination = tmp_path / "nested" / "graph.json"

    export_graph_document(document, destination)

    with destination.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    assert payload["node_count"] == document.model.node_count
    assert payload["edge_count"] == document.model.edge_count
    assert payload["plugins"] == ["dep_graph.java"]
    main = next(node for node in payload["nodes"] if node["id"] == "Type:demo.Main")
    assert main["modifiers"] == ["public"]


def test_load_graph_document(tmp_path: Path) -> None:
    document = _sample_document()
    destination = tmp_path / "graph.json"
    export_graph_document(document, destination)

    loaded = load_graph_document(destination)

    assert loaded.plugin_ids == ["dep_graph.java"]
    assert set(loaded.model.get_edges()) == set(document.model.get_edges())
    assert loaded.model.find_node("Type:demo.Main").payload["modifiers"] == ("public",)


def test_load_rejects_dangling_edge(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(
        json.dumps({"nodes": [], "edges": [{"source": "Type:a", "target": "Type:b", "relation": "java.extends"}]}),
        encoding="utf-8",
    )

    with pytest.raises(ValueError):
        load_graph_document(path)


def test_write_graphml(tmp_path: Path) -> None:
    destination = tmp_path / "graph.graphml"

    write_graphml(_sample_document(), destination)

    graph = nx.read_graphml(destination)
    assert graph.number_of_nodes() == 4
    assert graph.nodes["Type:demo.Main"]["modifiers"] == "public"


def test_file_document_sink(tmp_path: Path) -> None:
    FileDocumentSink(tmp_path / "graph.graphml", fmt="GraphML").save(_sample_document())
    assert (tmp_path / "graph.graphml").exists()

    with pytest.raises(ValueError):
        FileDocumentSink(tmp_path / "graph.dot", fmt="dot")


def test_to_igraph() -> None:
    pytest.importorskip("igraph")

    document = _sample_document()
    ig_graph = to_igraph(document.model)

    assert ig_graph.vcount() == document.model.node_count
    assert ig_graph.ecount() == document.model.edge_count
    assert set(ig_graph.vs["kind"]) == {"Package", "Type", "Method"}
