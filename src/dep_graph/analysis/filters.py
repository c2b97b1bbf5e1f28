"""Whitelist filters deciding which discovered nodes enter the graph."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from dep_graph.analysis.graph_model import ElementKind, GraphNode

_WHITESPACE = re.compile(r"\s+")

FILESYSTEM_KINDS = frozenset({ElementKind.DIRECTORY, ElementKind.FILE})


class NodeFilter(Protocol):
    def admit(self, node: GraphNode) -> bool:
        ...


def split_filter(text: str | None) -> list[str]:
    """
    Split a free-text filter into whitelist patterns.

    Tokens are separated by any Unicode whitespace. An input without tokens
    yields ``[""]``, which admits everything.
    """

    patterns = [token for token in _WHITESPACE.split(text or "") if token]
    return patterns or [""]


def _normalise(patterns: Iterable[str]) -> tuple[str, ...]:
    cleaned = tuple(patterns)
    return cleaned or ("",)


@dataclass(frozen=True)
class ElementFilter:
    """Admit nodes whose name starts with one of the whitelist prefixes."""

    whitelist: tuple[str, ...] = ("",)

    def __post_init__(self) -> None:
        object.__setattr__(self, "whitelist", _normalise(self.whitelist))

    @classmethod
    def from_text(cls, text: str | None) -> "ElementFilter":
        return cls(tuple(split_filter(text)))

    def admit(self, node: GraphNode) -> bool:
        return node.name.startswith(self.whitelist)


@dataclass(frozen=True)
class SourceElementFilter:
    """Route filesystem nodes to the directory whitelist, everything else to the package one."""

    package_filter: ElementFilter = field(default_factory=ElementFilter)
    directory_filter: ElementFilter = field(default_factory=ElementFilter)

    @classmethod
    def from_text(cls, package_text: str | None, directory_text: str | None) -> "SourceElementFilter":
        return cls(ElementFilter.from_text(package_text), ElementFilter.from_text(directory_text))

    def admit(self, node: GraphNode) -> bool:
        if node.kind in FILESYSTEM_KINDS:
            return self.directory_filter.admit(node)
        return self.package_filter.admit(node)


__all__ = ["ElementFilter", "NodeFilter", "SourceElementFilter", "split_filter"]
