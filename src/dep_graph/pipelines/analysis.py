"""Shared state machine for analysis drivers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from dep_graph.analysis.graph_export import GraphDocument
from dep_graph.config import AnalysisConfig
from dep_graph.progress import ProgressMonitor
from dep_graph.readers.classfile import ClassAnalysisStats

LOGGER = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AnalysisCancelled(Exception):
    """Raised inside a run when the monitor asks to stop; never escapes the driver."""


class DocumentSink(Protocol):
    """Output collaborator receiving the finished document."""

    def save(self, document: GraphDocument) -> None:
        ...


@dataclass(slots=True)
class AnalysisResult:
    state: AnalysisState
    document: Optional[GraphDocument] = None
    stats: Optional[ClassAnalysisStats] = None

    @property
    def succeeded(self) -> bool:
        return self.state is AnalysisState.SUCCEEDED


class AnalysisDriver:
    """
    Base class running an analysis as a sequence of steps.

    Subclasses implement :meth:`_configure` and :meth:`_run`. Cancellation
    is polled through :meth:`checkpoint` between steps. Failures are logged
    and re-raised with the driver left in ``FAILED``.
    """

    name = "analysis"

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()
        self.state = AnalysisState.IDLE
        self.monitor: ProgressMonitor | None = None

    def checkpoint(self) -> None:
        if self.monitor is not None and self.monitor.is_cancelled():
            raise AnalysisCancelled()

    def execute(
        self,
        monitor: ProgressMonitor,
        configure: Callable[[], None],
        run: Callable[[], GraphDocument],
        sink: DocumentSink | None = None,
    ) -> AnalysisResult:
        self.monitor = monitor
        self.state = AnalysisState.CONFIGURING
        try:
            configure()
            self.checkpoint()
            self.state = AnalysisState.RUNNING
            document = run()
            self.checkpoint()
            if sink is not None:
                sink.save(document)
        except AnalysisCancelled:
            self.state = AnalysisState.CANCELLED
            LOGGER.info("%s cancelled", self.name)
            return AnalysisResult(self.state, stats=self.result_stats())
        except Exception as exc:
            self.state = AnalysisState.FAILED
            LOGGER.error("%s failed: %s", self.name, exc)
            raise
        self.state = AnalysisState.SUCCEEDED
        return AnalysisResult(self.state, document=document, stats=self.result_stats())

    def result_stats(self) -> ClassAnalysisStats | None:
        return None


__all__ = [
    "AnalysisCancelled",
    "AnalysisDriver",
    "AnalysisResult",
    "AnalysisState",
    "DocumentSink",
]
