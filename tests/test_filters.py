"""Tests for whitelist filters."""

from __future__ import annotations

from dep_graph.analysis.elements import directory, file_node, java_package, java_type
from dep_graph.analysis.filters import ElementFilter, SourceElementFilter, split_filter


def test_split_filter_on_any_whitespace() -> None:
    assert split_filter("com.example  org.acme\tnet.demo\n") == ["com.example", "org.acme", "net.demo"]
    assert split_filter("com.a com.b com.c") == ["com.a", "com.b", "com.c"]


def test_blank_filter_admits_everything() -> None:
    assert split_filter("   ") == [""]
    assert split_filter("") == [""]
    assert split_filter(None) == [""]

    element_filter = ElementFilter.from_text("   ")
    assert element_filter.whitelist == ("",)
    assert element_filter.admit(java_type("anything.at.All"))


def test_empty_whitelist_is_normalised() -> None:
    assert ElementFilter(()).whitelist == ("",)
    assert ElementFilter(()).admit(java_package("x"))


def test_prefix_match() -> None:
    element_filter = ElementFilter.from_text("com.example org.acme")

    assert element_filter.admit(java_type("com.example.A"))
    assert element_filter.admit(java_type("org.acme.util.B"))
    assert not element_filter.admit(java_type("java.lang.Object"))
    # Plain string prefix: no segment boundary is required.
    assert element_filter.admit(java_type("com.examples.C"))


def test_source_filter_routes_by_kind() -> None:
    source_filter = SourceElementFilter.from_text("com.example", "classes/com")

    assert source_filter.admit(java_type("com.example.A"))
    assert not source_filter.admit(java_type("java.lang.Object"))
    assert source_filter.admit(directory("classes/com/example"))
    assert source_filter.admit(file_node("classes/com/example/A.class"))
    assert not source_filter.admit(directory("classes/org"))


def test_source_filter_defaults_admit_everything() -> None:
    source_filter = SourceElementFilter.from_text("", "")

    assert source_filter.admit(java_type("java.lang.Object"))
    assert source_filter.admit(directory("anywhere"))
