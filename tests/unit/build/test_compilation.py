"""Tests for single-file compilation and the parallel compile scheduler."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from hbuild.build.build_spec import BuildSpec
from hbuild.build.compilation_executor import CompilationExecutor
from hbuild.build.errors import CompileError, ToolchainError
from hbuild.build.process_supervisor import ProcessResult
from hbuild.build.source_compilation_orchestrator import (
    SourceCompilationOrchestrator,
    default_jobs,
)


class TestCompilationExecutor:
    """Test CompilationExecutor."""

    def test_build_command(self, tmp_path):
        cmd = CompilationExecutor.build_command(
            "gcc", tmp_path / "a.c", tmp_path / "build" / "a.o", ["-O2", "-Iinclude"]
        )
        assert cmd == [
            "gcc", "-O2", "-Iinclude",
            "-c", str(tmp_path / "a.c"),
            "-o", str(tmp_path / "build" / "a.o"),
        ]

    def test_compile_source_success(self, tmp_path):
        supervisor = MagicMock()
        supervisor.run_tracked.return_value = ProcessResult(args=[], returncode=0, stdout="", stderr="")
        executor = CompilationExecutor(supervisor, show_progress=False)
        output = tmp_path / "build" / "a.o"

        assert executor.compile_source("gcc", tmp_path / "a.c", output, []) == output
        assert output.parent.is_dir()
        supervisor.run_tracked.assert_called_once()

    def test_compile_source_failure(self, tmp_path):
        """Test compiler stderr is carried by the CompileError."""
        supervisor = MagicMock()
        supervisor.run_tracked.return_value = ProcessResult(
            args=[], returncode=1, stdout="", stderr="a.c:3: error: expected ';'"
        )
        executor = CompilationExecutor(supervisor, show_progress=False)
        source = tmp_path / "a.c"

        with pytest.raises(CompileError) as exc_info:
            executor.compile_source("gcc", source, tmp_path / "build" / "a.o", [])

        assert exc_info.value.failures == [(source, "a.c:3: error: expected ';'")]
        assert "a.c" in str(exc_info.value)

    def test_compile_source_runs_in_working_directory(self, tmp_path):
        """Test relative flags such as -Ivendor resolve against the given directory."""
        supervisor = MagicMock()
        supervisor.run_tracked.return_value = ProcessResult(args=[], returncode=0, stdout="", stderr="")
        executor = CompilationExecutor(supervisor, show_progress=False)

        executor.compile_source("gcc", tmp_path / "a.c", tmp_path / "build" / "a.o", ["-Ivendor"], cwd=tmp_path)

        assert supervisor.run_tracked.call_args.kwargs["cwd"] == tmp_path


class TestSourceCompilationOrchestrator:
    """Test parallel compilation scheduling."""

    @pytest.fixture
    def spec(self, tmp_path):
        return BuildSpec(project_dir=tmp_path, target="app", compiler="gcc")

    @pytest.fixture
    def sources(self, tmp_path):
        return [tmp_path / f"{name}.c" for name in ["a", "b", "c", "d"]]

    @staticmethod
    def make_executor(failing=None, error=None):
        """Fake executor recording which sources it was asked to compile."""
        executor = MagicMock()
        called = []
        lock = threading.Lock()

        def compile_source(compiler, source, output, flags, cwd=None):
            with lock:
                called.append(source)
            if failing is not None and source.name == failing:
                raise error or CompileError(f"Compilation failed for {source.name}", [(source, "boom")])
            return output

        executor.compile_source.side_effect = compile_source
        return executor, called

    def test_compiles_all_sources(self, spec, sources):
        executor, called = self.make_executor()
        orchestrator = SourceCompilationOrchestrator(executor, jobs=4)

        compiled = orchestrator.compile_all(sources, spec, [])

        assert sorted(compiled) == sorted(sources)
        assert sorted(called) == sorted(sources)
        assert spec.build_dir.is_dir()

    def test_object_paths(self, spec, sources):
        executor, _ = self.make_executor()
        SourceCompilationOrchestrator(executor, jobs=2).compile_all(sources[:1], spec, ["-O2"])

        executor.compile_source.assert_called_once_with(
            "gcc", sources[0], spec.build_dir / "a.o", ["-O2"], cwd=spec.project_dir
        )

    def test_empty_stale_set(self, spec):
        executor, called = self.make_executor()
        assert SourceCompilationOrchestrator(executor).compile_all([], spec, []) == []
        assert called == []

    def test_fail_fast(self, spec, sources):
        """Test no compilation starts after the first failure."""
        executor, called = self.make_executor(failing="a.c")
        orchestrator = SourceCompilationOrchestrator(executor, jobs=1)

        with pytest.raises(CompileError) as exc_info:
            orchestrator.compile_all(sources, spec, [])

        assert called == [sources[0]]
        assert exc_info.value.failures == [(sources[0], "boom")]

    def test_running_sibling_completes_after_failure(self, spec, sources):
        """Test a compile already running on another worker finishes and is counted."""
        b_started = threading.Event()
        a_failed = threading.Event()
        called = []
        finished = []
        lock = threading.Lock()

        def compile_source(compiler, source, output, flags, cwd=None):
            with lock:
                called.append(source)
            if source.name == "a.c":
                assert b_started.wait(timeout=10)
                a_failed.set()
                raise CompileError("Compilation failed for a.c", [(source, "boom")])
            if source.name == "b.c":
                b_started.set()
                assert a_failed.wait(timeout=10)
                time.sleep(0.2)
                with lock:
                    finished.append(source)
            return output

        executor = MagicMock()
        executor.compile_source.side_effect = compile_source
        orchestrator = SourceCompilationOrchestrator(executor, jobs=2)

        with pytest.raises(CompileError) as exc_info:
            orchestrator.compile_all(sources, spec, [])

        assert finished == [sources[1]]
        assert exc_info.value.compiled == [sources[1]]
        assert exc_info.value.failures == [(sources[0], "boom")]
        assert sorted(called) == sorted(sources[:2])

    def test_failure_reports_every_failed_source(self, spec, sources):
        """Test the aggregated error lists the failed sources."""
        executor, _ = self.make_executor(failing="c.c")
        orchestrator = SourceCompilationOrchestrator(executor, jobs=1)

        with pytest.raises(CompileError) as exc_info:
            orchestrator.compile_all(sources, spec, [])

        assert [source for source, _ in exc_info.value.failures] == [sources[2]]
        assert "c.c" in str(exc_info.value)

    def test_toolchain_error_is_raised_as_is(self, spec, sources):
        """Test a compiler that cannot run is not reported as a compile failure."""
        executor, _ = self.make_executor(failing="a.c", error=ToolchainError("Tool not found: gcc"))
        orchestrator = SourceCompilationOrchestrator(executor, jobs=1)

        with pytest.raises(ToolchainError):
            orchestrator.compile_all(sources, spec, [])

    def test_jobs_default(self):
        executor, _ = self.make_executor()
        assert SourceCompilationOrchestrator(executor).jobs == default_jobs()
        assert SourceCompilationOrchestrator(executor, jobs=0).jobs == default_jobs()
        assert default_jobs() >= 1
