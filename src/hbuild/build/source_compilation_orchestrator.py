"""
Parallel source compilation for hbuild.

This module compiles the stale set of a native build across a bounded worker
pool. It provides a higher-level interface over CompilationExecutor, handling:
- Worker pool sizing (one compilation per CPU core by default)
- Fail-fast scheduling: no new compilation starts after the first failure
- Collecting and reporting every failure that did happen
"""

import logging
import os
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..interrupt_utils import forwards_interrupts
from .build_spec import BuildSpec
from .compilation_executor import CompilationExecutor
from .errors import BuildError, CompileError
from .flag_builder import FlagBuilder


def default_jobs() -> int:
    """Number of parallel compilations: one per available CPU core."""
    if hasattr(os, "sched_getaffinity"):
        return max(1, len(os.sched_getaffinity(0)))
    return max(1, os.cpu_count() or 1)


class SourceCompilationOrchestrator:
    """
    Orchestrates parallel compilation of stale sources.

    Tasks already running when a failure is observed run to completion; tasks
    not yet started are cancelled. Compilation order is unspecified.

    Example usage:
        orchestrator = SourceCompilationOrchestrator(executor, jobs=8)
        compiled = orchestrator.compile_all(stale_sources, spec)
    """

    def __init__(
        self,
        executor: CompilationExecutor,
        jobs: Optional[int] = None,
        verbose: bool = False
    ):
        """
        Initialize source compilation orchestrator.

        Args:
            executor: Executor used to run each compilation
            jobs: Worker pool size (defaults to the number of CPU cores)
            verbose: Enable verbose output
        """
        self.executor = executor
        self.jobs = jobs if jobs and jobs > 0 else default_jobs()
        self.verbose = verbose

    def compile_all(
        self,
        stale_sources: List[Path],
        spec: BuildSpec,
        compile_flags: Optional[List[str]] = None
    ) -> List[Path]:
        """
        Compile every stale source to its object file.

        Args:
            stale_sources: Sources that need recompilation
            spec: Build specification
            compile_flags: Precomputed compile flags (built from spec if omitted)

        Returns:
            Sources that were compiled successfully

        Raises:
            CompileError: If any compilation failed
            BuildError: If a compiler could not be executed at all
        """
        if not stale_sources:
            return []

        if compile_flags is None:
            compile_flags = FlagBuilder(spec, self.executor.supervisor).compile_flags()

        spec.build_dir.mkdir(parents=True, exist_ok=True)
        workers = min(self.jobs, len(stale_sources))
        failed = threading.Event()

        @forwards_interrupts
        def compile_one(source: Path) -> Optional[Path]:
            if failed.is_set():
                return None
            try:
                return self.executor.compile_source(
                    spec.compiler, source, spec.object_path(source), compile_flags,
                    cwd=spec.project_dir,
                )
            except BuildError:
                failed.set()
                raise

        if self.verbose:
            print(f"      Compiling {len(stale_sources)} source(s) with {workers} worker(s)")

        compiled: List[Path] = []
        failures: List[Tuple[Path, str]] = []
        fatal: Optional[BuildError] = None

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hbuild-compile")
        try:
            futures: Dict[Future, Path] = {pool.submit(compile_one, source): source for source in stale_sources}
            for future in as_completed(futures):
                source = futures[future]
                try:
                    if future.result() is not None:
                        compiled.append(source)
                except CancelledError:
                    continue
                except CompileError as e:
                    failures.extend(e.failures)
                    print(str(e))
                    self._cancel_pending(futures)
                except BuildError as e:
                    logging.error(f"Could not compile {source.name}: {e}")
                    if fatal is None:
                        fatal = e
                    self._cancel_pending(futures)
        except BaseException:
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)

        if fatal is not None:
            raise fatal
        if failures:
            names = ", ".join(source.name for source, _ in failures)
            raise CompileError(
                f"{len(failures)} source(s) failed to compile: {names}", failures, compiled
            )

        return compiled

    @staticmethod
    def _cancel_pending(futures: Dict[Future, Path]) -> None:
        for future in futures:
            future.cancel()
