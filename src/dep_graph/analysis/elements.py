"""Factories for the node kinds emitted by the readers."""

from __future__ import annotations

from pathlib import PurePosixPath

from dep_graph.analysis.graph_model import ElementKind, GraphNode


def internal_to_dotted(internal_name: str) -> str:
    """``java/lang/String`` -> ``java.lang.String``."""

    return internal_name.replace("/", ".")


def package_of(type_name: str) -> str:
    head, sep, _ = type_name.rpartition(".")
    return head if sep else ""


def java_package(name: str) -> GraphNode:
    return GraphNode(ElementKind.PACKAGE, name)


def java_type(
    name: str,
    *,
    access: int | None = None,
    modifiers: tuple[str, ...] = (),
    major_version: int | None = None,
) -> GraphNode:
    payload: dict[str, object] = {}
    if access is not None:
        payload["access"] = access
    if modifiers:
        payload["modifiers"] = modifiers
    if major_version:
        payload["major_version"] = major_version
    return GraphNode(ElementKind.TYPE, name, payload)


def java_field(owner: str, name: str, descriptor: str, *, access: int | None = None) -> GraphNode:
    payload: dict[str, object] = {"descriptor": descriptor}
    if access is not None:
        payload["access"] = access
    return GraphNode(ElementKind.FIELD, f"{owner}.{name}", payload)


def java_method(owner: str, name: str, descriptor: str, *, access: int | None = None) -> GraphNode:
    payload: dict[str, object] = {"signature": descriptor}
    if access is not None:
        payload["access"] = access
    return GraphNode(ElementKind.METHOD, f"{owner}.{name}{descriptor}", payload)


def directory(path: PurePosixPath | str) -> GraphNode:
    return GraphNode(ElementKind.DIRECTORY, str(PurePosixPath(path)))


def file_node(path: PurePosixPath | str) -> GraphNode:
    return GraphNode(ElementKind.FILE, str(PurePosixPath(path)))


def build_artifact(group_id: str, artifact_id: str, version: str, *, packaging: str | None = None) -> GraphNode:
    payload: dict[str, object] = {}
    if packaging:
        payload["packaging"] = packaging
    return GraphNode(ElementKind.BUILD_ARTIFACT, f"{group_id}:{artifact_id}:{version}", payload)
