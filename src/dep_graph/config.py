"""Configuration primitives for the project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

MVN_ANALYSIS_EXECUTABLE = "analysis.executable"
MVN_ANALYSIS_EFFECTIVEPOM = "analysis.effectivepom"
MVN_ANALYSIS_SYSTEMJAVA = "analysis.systemjava"
MVN_ANALYSIS_JAVAHOME = "analysis.javahome"
ANALYSIS_RATE_LIMIT = "analysis.ratelimit"

ENV_PREFIX = "DEP_GRAPH_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _as_bool(value: str | bool | None, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return value.strip().lower() in _TRUE_VALUES


@dataclass(slots=True)
class AnalysisConfig:
    """Settings consumed by the analysis drivers and the Maven executor."""

    maven_executable: str = "mvn"
    effective_pom_command: str = "help:effective-pom"
    use_system_java: bool = True
    java_home: Path | None = None
    rate_limit_ms: int = 300

    @classmethod
    def from_preferences(cls, prefs: Mapping[str, object]) -> "AnalysisConfig":
        """Build a configuration from a preference lookup keyed by ``analysis.*`` ids."""

        defaults = cls()
        java_home = prefs.get(MVN_ANALYSIS_JAVAHOME)
        rate_limit = prefs.get(ANALYSIS_RATE_LIMIT)
        return cls(
            maven_executable=str(prefs.get(MVN_ANALYSIS_EXECUTABLE) or defaults.maven_executable),
            effective_pom_command=str(prefs.get(MVN_ANALYSIS_EFFECTIVEPOM) or defaults.effective_pom_command),
            use_system_java=_as_bool(prefs.get(MVN_ANALYSIS_SYSTEMJAVA), defaults.use_system_java),  # type: ignore[arg-type]
            java_home=Path(str(java_home)) if java_home else None,
            rate_limit_ms=int(rate_limit) if rate_limit is not None else defaults.rate_limit_ms,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnalysisConfig":
        """Read ``DEP_GRAPH_*`` variables, falling back to defaults."""

        env = os.environ if environ is None else environ
        prefs = {
            MVN_ANALYSIS_EXECUTABLE: env.get(f"{ENV_PREFIX}MVN"),
            MVN_ANALYSIS_EFFECTIVEPOM: env.get(f"{ENV_PREFIX}EFFECTIVE_POM"),
            MVN_ANALYSIS_SYSTEMJAVA: env.get(f"{ENV_PREFIX}SYSTEM_JAVA"),
            MVN_ANALYSIS_JAVAHOME: env.get(f"{ENV_PREFIX}JAVA_HOME"),
            ANALYSIS_RATE_LIMIT: env.get(f"{ENV_PREFIX}RATE_LIMIT_MS"),
        }
        return cls.from_preferences(prefs)

    def resolve_java_home(self, environ: Mapping[str, str] | None = None) -> str | None:
        """Return the ``JAVA_HOME`` handed to external build tools."""

        if self.use_system_java:
            env = os.environ if environ is None else environ
            return env.get("JAVA_HOME")
        if self.java_home is None:
            return None
        return str(self.java_home)
