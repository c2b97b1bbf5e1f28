"""Adapters for computing effective POMs with an external Maven install."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dep_graph.config import AnalysisConfig
from dep_graph.io.process import ProcessExecutor

LOGGER = logging.getLogger(__name__)

JAVA_HOME = "JAVA_HOME"
POM_XML = "pom.xml"
EFFECTIVE_POM_ENCODING = "utf-8"


@dataclass(slots=True)
class EffectivePomResult:
    text: str
    exit_code: int
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.cancelled


def build_project_label(project_pom: str, project_dir: Path) -> str:
    if project_pom == POM_XML:
        return project_dir.name
    return str(Path(project_dir.name) / project_pom)


class MavenExecutor(ProcessExecutor):
    """Run ``mvn help:effective-pom`` (or the configured command) for one POM file."""

    def __init__(self, project_pom: str, project_dir: Path, project_label: str) -> None:
        super().__init__()
        self.project_pom = project_pom
        self.project_dir = project_dir
        self.project_label = project_label
        self.output_path: Path | None = None
        self.effective_pom: str | None = None

    @classmethod
    def build(cls, pom_file: Path) -> "MavenExecutor":
        pom_file = Path(pom_file).expanduser().resolve()
        if not pom_file.is_file():
            raise FileNotFoundError(f"POM file not found: {pom_file}")
        project_dir = pom_file.parent
        return cls(pom_file.name, project_dir, build_project_label(pom_file.name, project_dir))

    def thread_name(self, stream: str) -> str:
        return f"mvn [{stream}] {self.project_label}"

    def build_command(self, config: AnalysisConfig, output_path: Path) -> list[str]:
        return [
            config.maven_executable,
            "-f",
            self.project_pom,
            config.effective_pom_command,
            f"-Doutput={output_path}",
        ]

    def build_environment(self, config: AnalysisConfig) -> dict[str, str]:
        env = dict(os.environ)
        java_home = config.resolve_java_home()
        if java_home:
            env[JAVA_HOME] = java_home
        return env

    def eval_effective_pom(
        self,
        config: AnalysisConfig,
        *,
        cancel_check: Callable[[], bool] | None = None,
    ) -> EffectivePomResult:
        """
        Compute the effective POM for the project.

        The output file is created before Maven starts and removed on every
        exit path. A non-zero exit still reads whatever Maven left in the
        file, which may be empty.
        """

        handle, name = tempfile.mkstemp(prefix="dep-graph-effpom", suffix=".xml")
        os.close(handle)
        self.output_path = Path(name)
        try:
            self.exec_process(
                self.build_command(config, self.output_path),
                cwd=self.project_dir,
                env=self.build_environment(config),
                cancel_check=cancel_check,
            )
            self.effective_pom = self.output_path.read_bytes().decode(EFFECTIVE_POM_ENCODING, errors="replace")
        finally:
            try:
                self.output_path.unlink()
            except FileNotFoundError:
                pass

        if self.stderr:
            LOGGER.debug("Maven stderr for %s:\n%s", self.project_label, self.stderr)
        exit_code = self.exit_code if self.exit_code is not None else -1
        return EffectivePomResult(text=self.effective_pom, exit_code=exit_code, cancelled=self.cancelled)


__all__ = ["EffectivePomResult", "MavenExecutor", "build_project_label"]
