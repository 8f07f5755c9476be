"""Header Dependency Graph.

This module builds the include graph used by incremental builds by asking the
compiler which files each source (and each discovered header) includes.

Design:
    - Runs `<compiler> -MM <include flags> <file>` through the process supervisor
    - Parses Make-style rules (line continuations, escaped spaces)
    - Canonicalizes paths and drops files that do not exist on disk
    - Queries every unique file at most once per build
    - A failing dependency query aborts the whole build
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .errors import DependencyScanError, ToolchainError
from .process_supervisor import ProcessSupervisor, get_supervisor

DependencyGraph = Dict[Path, Set[Path]]

# Target separator: a colon followed by whitespace or end of text, so that
# drive letters such as C:\ are not mistaken for it
_RULE_SEPARATOR = re.compile(r":(?:\s|$)")


def parse_make_rule(output: str) -> List[str]:
    """Extract prerequisite names from a Make rule emitted by `-MM`.

    Args:
        output: Compiler output, e.g. "main.o: main.c util.h \\\n  common.h"

    Returns:
        Prerequisite file names in order of appearance
    """
    text = output.replace("\\\r\n", " ").replace("\\\n", " ")
    match = _RULE_SEPARATOR.search(text)
    if match is None:
        return []
    text = text[match.end():]

    names: List[str] = []
    current: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] in " #":
            current.append(text[i + 1])
            i += 2
            continue
        if char == "$" and i + 1 < len(text) and text[i + 1] == "$":
            current.append("$")
            i += 2
            continue
        if char.isspace():
            if current:
                names.append("".join(current))
                current = []
        else:
            current.append(char)
        i += 1
    if current:
        names.append("".join(current))
    return names


class DependencyScanner:
    """Builds a DependencyGraph by querying the compiler.

    Example usage:
        scanner = DependencyScanner("gcc", ["-Iinclude"], project_dir)
        graph = scanner.build_graph([Path("src/main.c")])
    """

    def __init__(
        self,
        compiler: str,
        include_flags: List[str],
        project_dir: Path,
        supervisor: Optional[ProcessSupervisor] = None,
        verbose: bool = False
    ):
        """Initialize dependency scanner.

        Args:
            compiler: Compiler invocation name
            include_flags: -I flags passed to every query
            project_dir: Working directory for queries; relative paths in the
                compiler output are resolved against it
            supervisor: Process supervisor (defaults to the process-wide one)
            verbose: Print each queried file
        """
        self.compiler = compiler
        self.include_flags = list(include_flags)
        self.project_dir = Path(project_dir)
        self.supervisor = supervisor or get_supervisor()
        self.verbose = verbose

    def build_graph(self, sources: Iterable[Path]) -> DependencyGraph:
        """Build the include graph for all sources and their headers.

        Every source is queried; every header reported for it that is not yet
        a key in the graph is queried as well, so header-to-header edges are
        available when staleness is evaluated from any entry point.

        Args:
            sources: Source files to scan

        Returns:
            Mapping of file -> set of files it includes

        Raises:
            DependencyScanError: If any dependency query fails
        """
        graph: DependencyGraph = {}
        pending = [Path(source).resolve() for source in sources]

        while pending:
            path = pending.pop()
            if path in graph:
                continue
            dependencies = self.scan_file(path)
            graph[path] = dependencies
            pending.extend(dep for dep in dependencies if dep not in graph)

        logging.info(f"Dependency graph built: {len(graph)} files")
        return graph

    def scan_file(self, path: Path) -> Set[Path]:
        """Query the compiler for the files one source or header includes.

        Args:
            path: File to scan

        Returns:
            Set of existing, canonical paths included by the file (excluding itself)

        Raises:
            DependencyScanError: If the compiler is missing or exits non-zero
        """
        if self.verbose:
            print(f"      [deps] {path.name}")

        cmd = [self.compiler, "-MM", *self.include_flags, str(path)]
        try:
            result = self.supervisor.run_tracked(cmd, cwd=self.project_dir)
        except ToolchainError as e:
            raise DependencyScanError(f"Dependency scan failed for {path.name}: {e}") from e
        if not result.success:
            raise DependencyScanError(
                f"Dependency scan failed for {path.name}\n"
                f"stderr: {result.stderr}"
            )

        dependencies: Set[Path] = set()
        for name in parse_make_rule(result.stdout):
            candidate = Path(name)
            if not candidate.is_absolute():
                candidate = self.project_dir / candidate
            if not candidate.exists():
                logging.debug(f"Ignoring missing dependency {candidate} of {path}")
                continue
            candidate = candidate.resolve()
            if candidate != path:
                dependencies.add(candidate)
        return dependencies


def build_graph(
    sources: Iterable[Path],
    compiler: str,
    include_flags: List[str],
    project_dir: Path,
    supervisor: Optional[ProcessSupervisor] = None
) -> DependencyGraph:
    """Build a DependencyGraph for the given sources.

    Convenience wrapper around DependencyScanner.build_graph().
    """
    scanner = DependencyScanner(compiler, include_flags, project_dir, supervisor)
    return scanner.build_graph(sources)
