"""Tests for the dependency dispatcher."""

from __future__ import annotations

from dep_graph.analysis.dispatcher import DependenciesDispatcher
from dep_graph.analysis.elements import java_package, java_type
from dep_graph.analysis.filters import ElementFilter
from dep_graph.analysis.graph_builder import create_graph_builder
from dep_graph.analysis.graph_model import ElementKind, GraphNode, JavaRelation


def _dispatcher(filter_text: str = ""):
    builder = create_graph_builder()
    return DependenciesDispatcher(ElementFilter.from_text(filter_text), builder), builder


def test_admitted_event_adds_both_nodes_and_edge() -> None:
    dispatcher, builder = _dispatcher()

    dispatcher.new_dep(java_package("com.example"), java_type("com.example.A"), JavaRelation.PACKAGE_MEMBER)

    model = builder.create_graph_model()
    assert model.node_count == 2
    assert model.edge_count == 1
    edge = model.get_edges()[0]
    assert edge.tail.key == "Package:com.example"
    assert edge.head.key == "Type:com.example.A"
    assert dispatcher.accepted == 1


def test_rejected_child_is_not_added() -> None:
    dispatcher, builder = _dispatcher("com.example")
    a = java_type("com.example.A")

    dispatcher.new_dep(java_package("com.example"), a, JavaRelation.PACKAGE_MEMBER)
    dispatcher.new_dep(a, java_type("java.lang.Object"), JavaRelation.EXTENDS)

    model = builder.create_graph_model()
    assert model.find_node("Type:java.lang.Object") is None
    assert model.edge_count == 1
    assert dispatcher.rejected == 1


def test_rejected_child_present_when_emitted_elsewhere() -> None:
    dispatcher, builder = _dispatcher("com.example")
    a = java_type("com.example.A")
    outside = java_type("org.other.Helper")

    dispatcher.new_dep(a, outside, JavaRelation.REFERENCES)
    dispatcher.new_dep(outside, a, JavaRelation.REFERENCES)

    model = builder.create_graph_model()
    assert model.find_node("Type:org.other.Helper") is not None
    assert model.edge_count == 1


def test_edges_use_canonical_instances() -> None:
    dispatcher, builder = _dispatcher()
    first = GraphNode(ElementKind.TYPE, "a.X", {"access": 1})

    dispatcher.new_dep(java_package("a"), first, JavaRelation.PACKAGE_MEMBER)
    dispatcher.new_dep(java_type("a.X"), java_type("a.Y"), JavaRelation.EXTENDS)

    model = builder.create_graph_model()
    stored = model.find_node("Type:a.X")
    assert stored is first
    for edge in model.iter_edges():
        assert model.find_node(edge.tail.key) is edge.tail
        assert model.find_node(edge.head.key) is edge.head


def test_repeated_events_are_idempotent() -> None:
    dispatcher, builder = _dispatcher()
    for _ in range(3):
        dispatcher.new_dep(java_type("a.X"), java_type("a.Y"), JavaRelation.EXTENDS)

    model = builder.create_graph_model()
    assert model.node_count == 2
    assert model.edge_count == 1
