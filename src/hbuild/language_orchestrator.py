"""
Multi-language build orchestration for hbuild projects.

This module dispatches each declared language of a project to its build
strategy and aggregates the per-language outcomes:
- c / c++ go through the native incremental engine (or CMake as a fallback)
- other known languages run their canonical toolchain command
- unknown languages are skipped with a warning

A failing language never stops the remaining languages from building. The one
exception is a failed header dependency scan, which aborts the run of the
project it happened in; a dependency project aborting that way is reported as
failed and its dependents still build.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from .build import (
    BuildError,
    DependencyScanError,
    NativeBuildOrchestrator,
    NativeBuildResult,
    ProcessSupervisor,
    ToolchainError,
    UnsupportedLanguageError,
    get_supervisor,
)
from .config import ProjectConfig, ProjectConfigError, find_config_file, load_project_config

NATIVE_LANGUAGES = {"c", "c++"}

LANGUAGE_ALIASES = {
    "cpp": "c++",
    "cxx": "c++",
    "golang": "go",
}

# Canonical build command per language, run from the project directory
EXTERNAL_COMMANDS: Dict[str, List[List[str]]] = {
    "rust": [["cargo", "build"]],
    "go": [["go", "build"]],
    "odin": [["odin", "build", "."]],
    "python": [["pip", "install", "-r", "requirements.txt"]],
    "crystal": [["crystal", "build", "main.cr"]],
    "vala": [["valac", "--pkg", "gio-2.0", "main.vala"]],
}

CMAKE_COMMANDS = [["cmake", "."], ["make"]]


class LanguageState(Enum):
    """Per-language build state."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class LanguageOutcome:
    """Outcome of building one declared language.

    Attributes:
        language: Normalized language name
        state: Final state
        reason: Failure or skip reason
        native_result: Native build details for c/c++ (when built natively)
    """

    language: str
    state: LanguageState = LanguageState.PENDING
    reason: str = ""
    native_result: Optional[NativeBuildResult] = None


@dataclass
class BuildReport:
    """Outcomes of a multi-language build, in declaration order."""

    project_dir: Path
    outcomes: List[LanguageOutcome] = field(default_factory=list)
    dependencies: List["BuildReport"] = field(default_factory=list)
    build_time: float = 0.0

    def _with_state(self, state: LanguageState) -> List[LanguageOutcome]:
        return [outcome for outcome in self.outcomes if outcome.state is state]

    @property
    def succeeded(self) -> List[LanguageOutcome]:
        return self._with_state(LanguageState.SUCCEEDED)

    @property
    def failed(self) -> List[LanguageOutcome]:
        return self._with_state(LanguageState.FAILED)

    @property
    def skipped(self) -> List[LanguageOutcome]:
        return self._with_state(LanguageState.SKIPPED)

    @property
    def has_failures(self) -> bool:
        """Whether this project or any dependency had a failed language."""
        return bool(self.failed) or any(dep.has_failures for dep in self.dependencies)


def normalize_language(language: str) -> str:
    """Lowercase a language name and resolve aliases."""
    name = language.strip().lower()
    return LANGUAGE_ALIASES.get(name, name)


class MultiLanguageOrchestrator:
    """
    Builds every declared language of a project.

    Example usage:
        orchestrator = MultiLanguageOrchestrator(verbose=True)
        report = orchestrator.make(Path("."))
        for outcome in report.outcomes:
            print(outcome.language, outcome.state.value)
    """

    def __init__(
        self,
        supervisor: Optional[ProcessSupervisor] = None,
        jobs: Optional[int] = None,
        verbose: bool = False
    ):
        """
        Initialize multi-language orchestrator.

        Args:
            supervisor: Process supervisor (defaults to the process-wide one)
            jobs: Parallel compilation jobs for native builds
            verbose: Enable verbose output
        """
        self.supervisor = supervisor or get_supervisor()
        self.jobs = jobs
        self.verbose = verbose

    def make(self, project_dir: Path, _visited: Optional[Set[Path]] = None) -> BuildReport:
        """
        Build a project and its local dependencies.

        Args:
            project_dir: Project root directory

        Returns:
            BuildReport with one outcome per declared language

        Raises:
            ProjectConfigError: If the project's configuration is missing or invalid
            DependencyScanError: If native dependency discovery fails; the
                partial BuildReport is attached as its `report`
        """
        config = load_project_config(project_dir)
        visited = _visited if _visited is not None else set()
        visited.add(config.project_dir)

        dependency_reports = self._build_dependencies(config, visited)
        try:
            report = self.build(config)
        except DependencyScanError as e:
            if e.report is not None:
                e.report.dependencies = dependency_reports
            raise
        report.dependencies = dependency_reports
        return report

    def build(self, config: ProjectConfig) -> BuildReport:
        """
        Build every declared language of an already-loaded configuration.

        Args:
            config: Project configuration

        Returns:
            BuildReport with one outcome per declared language

        Raises:
            DependencyScanError: With the outcomes so far attached as `report`
        """
        start_time = time.time()
        print(f"Building project: {config.name}")

        report = BuildReport(project_dir=config.project_dir)
        for language in config.languages:
            try:
                report.outcomes.append(self.build_language(language, config))
            except DependencyScanError as e:
                report.outcomes.append(
                    LanguageOutcome(normalize_language(language), LanguageState.FAILED, str(e))
                )
                report.build_time = time.time() - start_time
                e.report = report
                raise

        report.build_time = time.time() - start_time
        return report

    def build_language(self, language: str, config: ProjectConfig) -> LanguageOutcome:
        """
        Build one language, converting errors into an outcome.

        Args:
            language: Declared language name
            config: Project configuration

        Returns:
            LanguageOutcome in a terminal state (succeeded, failed or skipped)

        Raises:
            DependencyScanError: If native dependency discovery fails
        """
        outcome = LanguageOutcome(language=normalize_language(language))
        outcome.state = LanguageState.RUNNING
        print(f"Building for {outcome.language}...")

        try:
            if outcome.language in NATIVE_LANGUAGES:
                outcome.native_result = self._build_native(config)
            elif outcome.language in EXTERNAL_COMMANDS:
                self._build_external(outcome.language, config.project_dir)
            else:
                raise UnsupportedLanguageError(f"Unsupported language: {language}")
            outcome.state = LanguageState.SUCCEEDED
        except DependencyScanError:
            raise
        except UnsupportedLanguageError as e:
            outcome.state = LanguageState.SKIPPED
            outcome.reason = str(e)
            logging.warning(f"{e}, skipping")
            print(f"{e}, skipping")
        except (BuildError, OSError) as e:
            outcome.state = LanguageState.FAILED
            outcome.reason = str(e)
            logging.error(f"Build failed for {outcome.language}: {e}")
            print(f"Build failed for {outcome.language}")

        return outcome

    def _build_native(self, config: ProjectConfig) -> Optional[NativeBuildResult]:
        if config.build is not None:
            orchestrator = NativeBuildOrchestrator(self.supervisor, jobs=self.jobs, verbose=self.verbose)
            return orchestrator.build(config.build)

        if (config.project_dir / "CMakeLists.txt").exists():
            for cmd in CMAKE_COMMANDS:
                self._run_tool(cmd, config.project_dir)
            return None

        raise BuildError("No [build] section and no CMakeLists.txt for native build")

    def _build_external(self, language: str, project_dir: Path) -> None:
        if language == "python" and not (project_dir / "requirements.txt").exists():
            if self.verbose:
                print("      No requirements.txt, nothing to install")
            return

        for cmd in EXTERNAL_COMMANDS[language]:
            self._run_tool(cmd, project_dir)

    def _run_tool(self, cmd: List[str], cwd: Path) -> None:
        if self.verbose:
            print(f"      $ {' '.join(cmd)}")

        result = self.supervisor.run_tracked(cmd, cwd=cwd)
        if self.verbose and result.stdout:
            print(result.stdout)
        if not result.success:
            raise ToolchainError(
                f"{' '.join(cmd)} exited with status {result.returncode}\n"
                f"stderr: {result.stderr}"
            )

    def _build_dependencies(self, config: ProjectConfig, visited: Set[Path]) -> List[BuildReport]:
        """Recursively build local dependencies that are already fetched."""
        reports = []
        for name, relative_path in config.dependencies.items():
            dep_dir = (config.project_dir / relative_path).resolve()
            if dep_dir in visited:
                continue
            if not dep_dir.is_dir() or find_config_file(dep_dir) is None:
                logging.warning(f"Dependency '{name}' not found at {dep_dir}, skipping")
                print(f"Dependency '{name}' is not available locally, skipping")
                continue

            print(f"Building dependency: {name}")
            try:
                reports.append(self.make(dep_dir, visited))
            except ProjectConfigError as e:
                logging.error(f"Dependency '{name}' has an invalid config: {e}")
                print(f"Build failed for dependency {name}")
            except DependencyScanError as e:
                # Ends the dependency's own run only
                logging.error(f"Dependency '{name}' aborted: {e}")
                print(f"Build aborted for dependency {name}")
                if e.report is not None:
                    reports.append(e.report)
        return reports

    def clean(self, project_dir: Path) -> bool:
        """
        Remove build artifacts of a project.

        Removes native objects and the target artifact when a [build] section
        exists, and runs `cargo clean` / `make clean` when the project has a
        Cargo.toml / Makefile.

        Args:
            project_dir: Project root directory

        Returns:
            True if every clean step succeeded
        """
        project_dir = Path(project_dir).resolve()
        ok = True

        try:
            config: Optional[ProjectConfig] = load_project_config(project_dir)
        except ProjectConfigError as e:
            logging.info(f"No usable config for clean: {e}")
            config = None

        if config is not None and config.build is not None:
            try:
                NativeBuildOrchestrator(self.supervisor).clean(config.build)
            except OSError as e:
                print(f"Failed to remove native build artifacts: {e}")
                ok = False

        tool_cleans = [
            ("Cargo.toml", ["cargo", "clean"], "Cargo clean failed"),
            ("Makefile", ["make", "clean"], "Make clean failed"),
        ]
        for marker, cmd, failure_message in tool_cleans:
            if not (project_dir / marker).exists():
                continue
            try:
                self._run_tool(cmd, project_dir)
            except BuildError as e:
                logging.error(f"{failure_message}: {e}")
                print(failure_message)
                ok = False

        return ok

