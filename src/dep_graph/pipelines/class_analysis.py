"""Build a dependency graph from compiled Java classes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dep_graph.analysis.dispatcher import DependenciesDispatcher
from dep_graph.analysis.filters import SourceElementFilter
from dep_graph.analysis.graph_builder import GraphBuilder, create_graph_builder
from dep_graph.analysis.graph_export import GraphDocument
from dep_graph.config import AnalysisConfig
from dep_graph.pipelines.analysis import AnalysisDriver, AnalysisResult, DocumentSink
from dep_graph.progress import MonitorProgressListener, ProgressMonitor, QuickProgressListener
from dep_graph.readers.classfile import ClassAnalysisStats, ClassFileReader
from dep_graph.readers.walkers import read_tree, read_zip_file

LOGGER = logging.getLogger(__name__)

JAVA_PLUGIN_ID = "dep_graph.java"
FILESYSTEM_PLUGIN_ID = "dep_graph.filesystem"
RESOURCES_PLUGIN_ID = "dep_graph.resources"
CLASS_PLUGIN_IDS = (JAVA_PLUGIN_ID, FILESYSTEM_PLUGIN_ID, RESOURCES_PLUGIN_ID)

ARCHIVE_SUFFIXES = (".jar", ".zip")


def is_archive_path(class_path: str) -> bool:
    """Archive detection is a case-sensitive suffix test on the raw string."""

    return class_path.endswith(ARCHIVE_SUFFIXES)


@dataclass(slots=True)
class ClassAnalysisRequest:
    class_path: str
    directory_filter: str = ""
    package_filter: str = ""


class ClassAnalysisDriver(AnalysisDriver):
    """Read a jar, zip or class tree and return its dependency graph document."""

    name = "Class analysis"

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        super().__init__(config)
        self.analysis_stats = ClassAnalysisStats()
        self.builder: GraphBuilder | None = None
        self.dispatcher: DependenciesDispatcher | None = None

    def result_stats(self) -> ClassAnalysisStats:
        return self.analysis_stats

    def generate_analysis_document(
        self,
        request: ClassAnalysisRequest,
        monitor: ProgressMonitor,
        sink: DocumentSink | None = None,
    ) -> AnalysisResult:
        return self.execute(
            monitor,
            configure=lambda: self._configure(request),
            run=lambda: self._run(request, monitor),
            sink=sink,
        )

    def _configure(self, request: ClassAnalysisRequest) -> None:
        self.analysis_stats.reset()
        element_filter = SourceElementFilter.from_text(request.package_filter, request.directory_filter)
        self.builder = create_graph_builder()
        self.dispatcher = DependenciesDispatcher(element_filter, self.builder)

    def _run(self, request: ClassAnalysisRequest, monitor: ProgressMonitor) -> GraphDocument:
        if self.builder is None or self.dispatcher is None:
            raise RuntimeError("Class analysis was not configured.")
        monitor.worked(1)
        self.checkpoint()

        monitor.set_task_name("Load Classes...")
        progress = QuickProgressListener(MonitorProgressListener(monitor), self.config.rate_limit_ms)
        reader = ClassFileReader(self.analysis_stats)
        class_path = request.class_path
        if is_archive_path(class_path):
            if not Path(class_path).is_file():
                raise FileNotFoundError(f"Archive not found: {class_path}")
            read_zip_file(class_path, self.dispatcher, reader, progress)
        else:
            if not Path(class_path).exists():
                raise FileNotFoundError(f"Class tree not found: {class_path}")
            read_tree(class_path, self.dispatcher, reader, progress)

        LOGGER.info(self.analysis_stats.summary())
        LOGGER.debug("Dispatcher accepted %d and rejected %d events", self.dispatcher.accepted, self.dispatcher.rejected)
        self.checkpoint()
        monitor.worked(1)

        return GraphDocument(self.builder.create_graph_model(), list(CLASS_PLUGIN_IDS))


__all__ = [
    "CLASS_PLUGIN_IDS",
    "ClassAnalysisDriver",
    "ClassAnalysisRequest",
    "is_archive_path",
]
