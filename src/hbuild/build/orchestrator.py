"""
Native build orchestration for hbuild projects.

This module coordinates one incremental C/C++ build, from source discovery to
the final artifact. It integrates all native build components:
- Source discovery (glob expansion)
- Header dependency graph (compiler dependency scan)
- Staleness decisions (timestamps + include graph)
- Parallel compilation (worker pool, process supervision)
- Linking or archiving
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .build_spec import BuildSpec
from .build_utils import safe_rmtree
from .compilation_executor import CompilationExecutor
from .dependency_graph import DependencyScanner
from .errors import BuildError
from .flag_builder import FlagBuilder
from .linker import Linker
from .process_supervisor import ProcessSupervisor, get_supervisor
from .source_compilation_orchestrator import SourceCompilationOrchestrator
from .source_scanner import SourceScanner
from .staleness import find_stale_sources


@dataclass
class NativeBuildResult:
    """Result of a native build."""

    target_path: Path
    sources: List[Path]
    compiled: List[Path] = field(default_factory=list)
    relinked: bool = False
    build_time: float = 0.0


class NativeBuildOrchestrator:
    """
    Orchestrates an incremental native build.

    This class coordinates all phases of the build:
    1. Expand source patterns into the source set
    2. Resolve compile flags (includes, pkg-config, build kind)
    3. Build the header dependency graph
    4. Select stale sources
    5. Compile stale sources in parallel
    6. Link or archive the target when out of date

    Example usage:
        orchestrator = NativeBuildOrchestrator(verbose=True)
        result = orchestrator.build(spec)
        print(f"Recompiled {len(result.compiled)} of {len(result.sources)} sources")
    """

    def __init__(
        self,
        supervisor: Optional[ProcessSupervisor] = None,
        jobs: Optional[int] = None,
        verbose: bool = False
    ):
        """
        Initialize native build orchestrator.

        Args:
            supervisor: Process supervisor (defaults to the process-wide one)
            jobs: Parallel compilation jobs (defaults to CPU core count)
            verbose: Enable verbose output
        """
        self.supervisor = supervisor or get_supervisor()
        self.jobs = jobs
        self.verbose = verbose

    def build(self, spec: BuildSpec) -> NativeBuildResult:
        """
        Execute an incremental build.

        Args:
            spec: Build specification

        Returns:
            NativeBuildResult with the target path and what was rebuilt

        Raises:
            BuildError: If any phase fails
            OSError: If an include directory or source cannot be accessed
        """
        start_time = time.time()

        # Phase 1: Sources
        if self.verbose:
            print("[1/5] Scanning sources...")

        sources = SourceScanner(spec.project_dir).scan(spec.sources)
        if not sources:
            raise BuildError(f"No sources matched {', '.join(spec.sources)}")

        if self.verbose:
            print(f"      Found {len(sources)} source(s)")

        # Phase 2: Flags
        flag_builder = FlagBuilder(spec, self.supervisor)
        compile_flags = flag_builder.compile_flags()

        # Phase 3: Dependency graph
        if self.verbose:
            print("[2/5] Scanning header dependencies...")

        scan_flags = flag_builder.pkg_config_cflags() + flag_builder.include_flags()
        scanner = DependencyScanner(
            spec.compiler, scan_flags, spec.project_dir, self.supervisor, self.verbose
        )
        graph = scanner.build_graph(sources)

        # Phase 4: Staleness
        if self.verbose:
            print("[3/5] Checking for stale sources...")

        stale = find_stale_sources(sources, graph, spec.object_path)

        if self.verbose:
            print(f"      {len(stale)} of {len(sources)} source(s) need recompilation")

        # Phase 5: Compilation
        if self.verbose:
            print("[4/5] Compiling...")

        executor = CompilationExecutor(self.supervisor, show_progress=True)
        compiler = SourceCompilationOrchestrator(executor, jobs=self.jobs, verbose=self.verbose)
        compiled = compiler.compile_all(stale, spec, compile_flags)

        # Phase 6: Link/archive
        if self.verbose:
            print("[5/5] Linking...")

        linker = Linker(self.supervisor, show_progress=True)
        link_result = linker.link_or_archive(spec, sources, bool(compiled), flag_builder)

        return NativeBuildResult(
            target_path=link_result.target_path,
            sources=sources,
            compiled=compiled,
            relinked=link_result.relinked,
            build_time=time.time() - start_time
        )

    def clean(self, spec: BuildSpec) -> None:
        """Remove object files and the target artifact."""
        safe_rmtree(spec.build_dir)
        spec.target_path().unlink(missing_ok=True)
