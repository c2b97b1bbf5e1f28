"""Read effective-POM documents into build-artifact dependencies."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterator, Optional

from dep_graph.analysis.dispatcher import DependenciesListener
from dep_graph.analysis.elements import build_artifact
from dep_graph.analysis.graph_model import GraphNode, MavenRelation

LOGGER = logging.getLogger(__name__)

DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"

SCOPE_RELATIONS = {
    "compile": MavenRelation.COMPILE,
    "provided": MavenRelation.PROVIDED,
    "runtime": MavenRelation.RUNTIME,
    "test": MavenRelation.TEST,
    "system": MavenRelation.SYSTEM,
    "import": MavenRelation.IMPORT,
}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: Optional[ET.Element], name: str) -> Iterator[ET.Element]:
    if element is None:
        return
    for child in element:
        if _local(child.tag) == name:
            yield child


def _text(element: Optional[ET.Element], name: str) -> Optional[str]:
    if element is None:
        return None
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


@dataclass(slots=True)
class Coordinates:
    group_id: str
    artifact_id: str
    version: str

    def node(self, packaging: str | None = None) -> GraphNode:
        return build_artifact(self.group_id, self.artifact_id, self.version, packaging=packaging)


def _coordinates(element: ET.Element, *, default_group: str = "", default_version: str = "") -> Coordinates:
    return Coordinates(
        group_id=_text(element, "groupId") or default_group,
        artifact_id=_text(element, "artifactId") or "",
        version=_text(element, "version") or default_version,
    )


class EffectivePomReader:
    """Emit artifact dependencies for every project in an effective POM."""

    def __init__(self, listener: DependenciesListener) -> None:
        self.listener = listener
        self.projects: list[GraphNode] = []

    def read_text(self, text: str) -> list[GraphNode]:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ValueError(f"Malformed effective POM: {exc}") from exc
        return self.read_element(root)

    def read_element(self, root: ET.Element) -> list[GraphNode]:
        tag = _local(root.tag)
        if tag == "projects":
            projects = list(_children(root, "project"))
        elif tag == "project":
            projects = [root]
        else:
            raise ValueError(f"Unexpected effective POM root element <{tag}>")

        for project in projects:
            self.projects.append(self._read_project(project))
        LOGGER.info("Read %d project(s) from effective POM", len(projects))
        return self.projects

    def _read_project(self, project: ET.Element) -> GraphNode:
        parent = _child(project, "parent")
        parent_coords = _coordinates(parent) if parent is not None else None
        coords = _coordinates(
            project,
            default_group=parent_coords.group_id if parent_coords else "",
            default_version=parent_coords.version if parent_coords else "",
        )
        project_node = coords.node(packaging=_text(project, "packaging") or "jar")

        if parent_coords is not None:
            self.listener.new_dep(project_node, parent_coords.node(packaging="pom"), MavenRelation.PARENT)

        for dependency in _children(_child(project, "dependencies"), "dependency"):
            scope = (_text(dependency, "scope") or "compile").lower()
            relation = SCOPE_RELATIONS.get(scope)
            if relation is None:
                LOGGER.warning("Unknown dependency scope %r in %s", scope, project_node.name)
                relation = MavenRelation.COMPILE
            self.listener.new_dep(project_node, _coordinates(dependency).node(), relation)

        management = _child(project, "dependencyManagement")
        for dependency in _children(_child(management, "dependencies") if management is not None else None, "dependency"):
            self.listener.new_dep(project_node, _coordinates(dependency).node(), MavenRelation.MANAGED)

        build = _child(project, "build")
        for plugin in _children(_child(build, "plugins") if build is not None else None, "plugin"):
            plugin_coords = _coordinates(plugin, default_group=DEFAULT_PLUGIN_GROUP)
            self.listener.new_dep(project_node, plugin_coords.node(packaging="maven-plugin"), MavenRelation.PLUGIN)

        return project_node


__all__ = ["EffectivePomReader", "SCOPE_RELATIONS"]
