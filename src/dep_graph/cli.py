"""Command line entry points for the project."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Optional

import typer

from dep_graph import __version__
from dep_graph.analysis.graph_export import FileDocumentSink
from dep_graph.config import AnalysisConfig
from dep_graph.pipelines.analysis import AnalysisResult
from dep_graph.pipelines.class_analysis import ClassAnalysisDriver, ClassAnalysisRequest
from dep_graph.pipelines.maven_analysis import MavenAnalysisDriver, MavenAnalysisRequest


class EchoProgressMonitor:
    """Progress monitor printing task names to the terminal."""

    def __init__(self) -> None:
        self.total_worked = 0

    def set_task_name(self, name: str) -> None:
        typer.echo(name)

    def worked(self, amount: int) -> None:
        self.total_worked += amount

    def is_cancelled(self) -> bool:
        return False


def _make_sink(output: Path, export_format: str) -> FileDocumentSink:
    try:
        return FileDocumentSink(output.expanduser().resolve(), fmt=export_format)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _report(result: AnalysisResult, output: Path) -> None:
    if not result.succeeded or result.document is None:
        typer.secho(f"Analysis {result.state.value}.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    model = result.document.model
    typer.echo(f"Nodes: {model.node_count}  Edges: {model.edge_count}")
    typer.secho(f"Graph written to {output}", fg=typer.colors.GREEN)


app = typer.Typer(help="Build dependency graphs from compiled Java classes and Maven projects.")


@app.callback(invoke_without_command=True)
def main(
    display_version: bool = typer.Option(False, "--version", "-V", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging and print the package version when requested."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if display_version:
        typer.echo(__version__)
        raise typer.Exit()


@app.command("classes")
def classes(
    class_path: str = typer.Argument(..., help="A .jar/.zip archive or the root of a class tree."),
    output: Path = typer.Option(Path("dependencies.json"), "--output", "-o", help="Destination graph file."),
    directory_filter: str = typer.Option("", help="Whitespace-separated directory prefixes to keep."),
    package_filter: str = typer.Option("", help="Whitespace-separated package prefixes to keep."),
    export_format: str = typer.Option("json", "--format", "-f", help="Output format: json or graphml."),
    rate_limit_ms: Optional[int] = typer.Option(None, help="Minimum milliseconds between progress updates."),
) -> None:
    """Analyse compiled classes and write their dependency graph."""

    if not Path(class_path).expanduser().exists():
        raise typer.BadParameter(f"Class path not found: {class_path}")

    config = AnalysisConfig.from_env()
    if rate_limit_ms is not None:
        config.rate_limit_ms = rate_limit_ms
    sink = _make_sink(output, export_format)

    driver = ClassAnalysisDriver(config)
    request = ClassAnalysisRequest(
        class_path=str(Path(class_path).expanduser()),
        directory_filter=directory_filter,
        package_filter=package_filter,
    )
    try:
        result = driver.generate_analysis_document(request, EchoProgressMonitor(), sink=sink)
    except (OSError, ValueError, zipfile.BadZipFile) as exc:
        typer.secho(f"Class analysis failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    typer.echo(driver.analysis_stats.summary())
    _report(result, sink.destination)


@app.command("maven")
def maven(
    pom: Path = typer.Argument(..., help="POM file whose effective POM is analysed."),
    output: Path = typer.Option(Path("maven-dependencies.json"), "--output", "-o", help="Destination graph file."),
    artifact_filter: str = typer.Option("", "--filter", help="Whitespace-separated groupId prefixes to keep."),
    export_format: str = typer.Option("json", "--format", "-f", help="Output format: json or graphml."),
    mvn: Optional[str] = typer.Option(None, help="Maven executable (defaults to DEP_GRAPH_MVN or 'mvn')."),
    effective_pom_command: Optional[str] = typer.Option(None, help="Goal producing the effective POM."),
    java_home: Optional[Path] = typer.Option(None, help="JAVA_HOME for Maven instead of the inherited one."),
) -> None:
    """Compute the effective POM of a Maven project and write its artifact graph."""

    pom = pom.expanduser().resolve()
    if not pom.is_file():
        raise typer.BadParameter(f"POM file not found: {pom}")

    config = AnalysisConfig.from_env()
    if mvn:
        config.maven_executable = mvn
    if effective_pom_command:
        config.effective_pom_command = effective_pom_command
    if java_home is not None:
        config.use_system_java = False
        config.java_home = java_home.expanduser().resolve()
    sink = _make_sink(output, export_format)

    driver = MavenAnalysisDriver(config)
    try:
        result = driver.generate_analysis_document(
            MavenAnalysisRequest(pom_file=pom, artifact_filter=artifact_filter), EchoProgressMonitor(), sink=sink
        )
    except (OSError, ValueError, RuntimeError) as exc:
        typer.secho(f"Maven analysis failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    _report(result, sink.destination)


def run() -> None:
    """Entry point used by ``python -m dep_graph.cli``."""

    app()


if __name__ == "__main__":
    run()
