"""Build an artifact graph from the effective POM of a Maven project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dep_graph.analysis.dispatcher import DependenciesDispatcher
from dep_graph.analysis.filters import ElementFilter
from dep_graph.analysis.graph_builder import create_graph_builder
from dep_graph.analysis.graph_export import GraphDocument
from dep_graph.config import AnalysisConfig
from dep_graph.io.maven import EffectivePomResult, MavenExecutor
from dep_graph.pipelines.analysis import AnalysisCancelled, AnalysisDriver, AnalysisResult, DocumentSink
from dep_graph.progress import ProgressMonitor
from dep_graph.readers.pom import EffectivePomReader

LOGGER = logging.getLogger(__name__)

MAVEN_PLUGIN_ID = "dep_graph.maven"


@dataclass(slots=True)
class MavenAnalysisRequest:
    pom_file: Path
    artifact_filter: str = ""


class MavenAnalysisDriver(AnalysisDriver):
    """Run Maven for the effective POM, then read it into a graph document."""

    name = "Maven analysis"

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        super().__init__(config)
        self.executor: MavenExecutor | None = None
        self.effective_pom: EffectivePomResult | None = None

    def generate_analysis_document(
        self,
        request: MavenAnalysisRequest,
        monitor: ProgressMonitor,
        sink: DocumentSink | None = None,
    ) -> AnalysisResult:
        return self.execute(
            monitor,
            configure=lambda: self._configure(request),
            run=lambda: self._run(request, monitor),
            sink=sink,
        )

    def _configure(self, request: MavenAnalysisRequest) -> None:
        self.executor = MavenExecutor.build(request.pom_file)
        self.effective_pom = None

    def _run(self, request: MavenAnalysisRequest, monitor: ProgressMonitor) -> GraphDocument:
        if self.executor is None:
            raise RuntimeError("Maven analysis was not configured.")

        monitor.set_task_name(f"Compute effective POM for {self.executor.project_label}...")
        result = self.executor.eval_effective_pom(self.config, cancel_check=monitor.is_cancelled)
        self.effective_pom = result
        if result.cancelled:
            raise AnalysisCancelled()
        if not result.text.strip():
            raise RuntimeError(
                f"Maven produced no effective POM for {self.executor.project_label} (exit code {result.exit_code})"
            )
        if result.exit_code != 0:
            LOGGER.warning("Maven exited with %s; using its partial output", result.exit_code)
        monitor.worked(1)
        self.checkpoint()

        monitor.set_task_name("Load effective POM...")
        builder = create_graph_builder()
        dispatcher = DependenciesDispatcher(ElementFilter.from_text(request.artifact_filter), builder)
        EffectivePomReader(dispatcher).read_text(result.text)
        monitor.worked(1)

        return GraphDocument(builder.create_graph_model(), [MAVEN_PLUGIN_ID])


__all__ = ["MAVEN_PLUGIN_ID", "MavenAnalysisDriver", "MavenAnalysisRequest"]
