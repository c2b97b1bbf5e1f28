"""In-memory typed dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Union

import networkx as nx


class ElementKind(str, Enum):
    """Closed set of node kinds produced by the readers."""

    TYPE = "Type"
    PACKAGE = "Package"
    METHOD = "Method"
    FIELD = "Field"
    DIRECTORY = "Directory"
    FILE = "File"
    BUILD_ARTIFACT = "BuildArtifact"


class JavaRelation(str, Enum):
    PACKAGE_MEMBER = "java.package-member"
    CLASS_FILE = "java.class-file"
    EXTENDS = "java.extends"
    IMPLEMENTS = "java.implements"
    MEMBER_FIELD = "java.member-field"
    MEMBER_METHOD = "java.member-method"
    CALLS = "java.calls"
    READS = "java.reads"
    WRITES = "java.writes"
    REFERENCES = "java.references"


class FileSystemRelation(str, Enum):
    CONTAINS_DIR = "filesystem.contains-dir"
    CONTAINS_FILE = "filesystem.contains-file"


class MavenRelation(str, Enum):
    PARENT = "maven.parent"
    COMPILE = "maven.compile"
    PROVIDED = "maven.provided"
    RUNTIME = "maven.runtime"
    TEST = "maven.test"
    SYSTEM = "maven.system"
    IMPORT = "maven.import"
    MANAGED = "maven.managed"
    PLUGIN = "maven.plugin"


Relation = Union[JavaRelation, FileSystemRelation, MavenRelation]

RELATION_TYPES: tuple[type[Enum], ...] = (JavaRelation, FileSystemRelation, MavenRelation)


def relation_from_value(value: str) -> Relation:
    """Resolve a namespaced relation tag such as ``java.calls``."""

    for relation_type in RELATION_TYPES:
        try:
            return relation_type(value)  # type: ignore[return-value]
        except ValueError:
            continue
    raise ValueError(f"Unknown relation: {value}")


@dataclass(frozen=True, eq=False)
class GraphNode:
    """A program entity identified by ``kind:name``.

    Equality and hashing use the key only, so two discoveries of the same
    entity compare equal even when their payloads differ.
    """

    kind: ElementKind
    name: str
    payload: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.name}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphNode):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __lt__(self, other: "GraphNode") -> bool:
        return self.key < other.key

    def __repr__(self) -> str:
        return f"GraphNode({self.key!r})"


@dataclass(frozen=True, eq=False)
class GraphEdge:
    """Directed relation ``tail -> head``: the tail depends on the head."""

    tail: GraphNode
    head: GraphNode
    relation: Relation

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.tail.key, self.head.key, self.relation.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphEdge):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __repr__(self) -> str:
        return f"GraphEdge({self.tail.key!r} -[{self.relation.value}]-> {self.head.key!r})"


class GraphModel:
    """Directed multigraph of :class:`GraphNode` linked by :class:`GraphEdge`.

    Nodes are stored under their key, edges under ``(tail, head, relation)``,
    so parallel edges are allowed only when their relations differ. Mutation
    goes through :class:`~dep_graph.analysis.graph_builder.GraphBuilder`.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()

    def _insert_node(self, node: GraphNode) -> None:
        self._graph.add_node(node.key, element=node)

    def _insert_edge(self, edge: GraphEdge) -> None:
        self._graph.add_edge(edge.tail.key, edge.head.key, key=edge.relation.value, element=edge)

    def find_node(self, key: str) -> GraphNode | None:
        data = self._graph.nodes.get(key)
        if data is None:
            return None
        return data["element"]

    def has_node(self, node: GraphNode) -> bool:
        return node.key in self._graph

    def has_edge(self, edge: GraphEdge) -> bool:
        return self._graph.has_edge(edge.tail.key, edge.head.key, key=edge.relation.value)

    def get_nodes(self) -> list[GraphNode]:
        return [data["element"] for _, data in self._graph.nodes(data=True)]

    def get_edges(self) -> list[GraphEdge]:
        return [data["element"] for _, _, data in self._graph.edges(data=True)]

    def iter_edges(self) -> Iterator[GraphEdge]:
        for _, _, data in self._graph.edges(data=True):
            yield data["element"]

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def __contains__(self, node: object) -> bool:
        return isinstance(node, GraphNode) and self.has_node(node)

    def to_networkx(self) -> nx.MultiDiGraph:
        """Return a detached copy with plain attributes, suitable for networkx algorithms."""

        graph = nx.MultiDiGraph()
        for node in self.get_nodes():
            graph.add_node(node.key, kind=node.kind.value, name=node.name, **dict(node.payload))
        for edge in self.iter_edges():
            graph.add_edge(edge.tail.key, edge.head.key, key=edge.relation.value, relation=edge.relation.value)
        return graph


__all__ = [
    "ElementKind",
    "FileSystemRelation",
    "GraphEdge",
    "GraphModel",
    "GraphNode",
    "JavaRelation",
    "MavenRelation",
    "Relation",
    "relation_from_value",
]
