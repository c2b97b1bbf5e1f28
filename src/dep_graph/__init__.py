"""Core package for building typed dependency graphs from software artefacts."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dep-graph")
except PackageNotFoundError:  # pragma: no cover - package metadata absent in dev mode
    __version__ = "0.0.0"

__all__ = ["__version__"]
