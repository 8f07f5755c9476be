"""Tests for the header dependency graph."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from hbuild.build.dependency_graph import DependencyScanner, build_graph, parse_make_rule
from hbuild.build.errors import DependencyScanError, ToolchainError
from hbuild.build.process_supervisor import ProcessResult


class TestParseMakeRule:
    """Test parsing of `-MM` output."""

    def test_single_line(self):
        assert parse_make_rule("main.o: main.c util.h\n") == ["main.c", "util.h"]

    def test_line_continuations(self):
        output = "main.o: main.c util.h \\\n  include/common.h \\\n  include/other.h\n"
        assert parse_make_rule(output) == [
            "main.c",
            "util.h",
            "include/common.h",
            "include/other.h",
        ]

    def test_crlf_continuations(self):
        output = "main.o: main.c \\\r\n  util.h\r\n"
        assert parse_make_rule(output) == ["main.c", "util.h"]

    def test_escaped_spaces(self):
        output = "a.o: my\\ project/a.c other\\ dir/b.h\n"
        assert parse_make_rule(output) == ["my project/a.c", "other dir/b.h"]

    def test_escaped_dollar(self):
        assert parse_make_rule("a.o: cost$$.h\n") == ["cost$.h"]

    def test_windows_drive_letter(self):
        output = "a.o: C:\\src\\a.c C:\\src\\a.h\n"
        assert parse_make_rule(output) == ["C:\\src\\a.c", "C:\\src\\a.h"]

    def test_no_rule(self):
        assert parse_make_rule("") == []
        assert parse_make_rule("no rule here") == []


class TestDependencyScanner:
    """Test DependencyScanner with a simulated compiler."""

    @pytest.fixture
    def project(self, tmp_path):
        """Create a.c -> common.h -> util.h and b.c -> common.h."""
        root = tmp_path.resolve()
        for name in ["a.c", "b.c", "common.h", "util.h"]:
            (root / name).write_text("")
        return root

    @pytest.fixture
    def supervisor(self, project):
        """Supervisor whose -MM answers come from a table keyed by file name."""
        rules = {
            "a.c": f"a.o: {project / 'a.c'} {project / 'common.h'}\n",
            "b.c": "b.o: b.c common.h\n",
            "common.h": "common.o: common.h \\\n util.h\n",
            "util.h": "util.o: util.h missing.h\n",
        }

        def run_tracked(cmd, cwd=None, timeout=None):
            return ProcessResult(args=cmd, returncode=0, stdout=rules[Path(cmd[-1]).name], stderr="")

        mock = MagicMock()
        mock.run_tracked.side_effect = run_tracked
        return mock

    def test_build_graph(self, project, supervisor):
        """Test sources and transitively included headers all get entries."""
        scanner = DependencyScanner("gcc", [], project, supervisor)
        graph = scanner.build_graph([project / "a.c"])

        assert graph == {
            project / "a.c": {project / "common.h"},
            project / "common.h": {project / "util.h"},
            project / "util.h": set(),
        }

    def test_each_file_queried_once(self, project, supervisor):
        """Test a header shared by two sources is only scanned once."""
        scanner = DependencyScanner("gcc", [], project, supervisor)
        graph = scanner.build_graph([project / "a.c", project / "b.c"])

        assert len(graph) == 4
        scanned = [Path(call.args[0][-1]).name for call in supervisor.run_tracked.call_args_list]
        assert sorted(scanned) == ["a.c", "b.c", "common.h", "util.h"]

    def test_command_line(self, project, supervisor):
        """Test the query is `<compiler> -MM <include flags> <file>` run from the project dir."""
        scanner = DependencyScanner("clang", ["-Iinclude", "-DX"], project, supervisor)
        scanner.scan_file(project / "util.h")

        supervisor.run_tracked.assert_called_once_with(
            ["clang", "-MM", "-Iinclude", "-DX", str(project / "util.h")], cwd=project
        )

    def test_missing_dependencies_are_dropped(self, project, supervisor):
        """Test files reported by the compiler but absent on disk are ignored."""
        scanner = DependencyScanner("gcc", [], project, supervisor)
        assert scanner.scan_file(project / "util.h") == set()

    def test_nonzero_exit_raises(self, project):
        """Test a failing query aborts the scan."""
        supervisor = MagicMock()
        supervisor.run_tracked.return_value = ProcessResult(
            args=["gcc"], returncode=1, stdout="", stderr="a.c:1: fatal error"
        )
        scanner = DependencyScanner("gcc", [], project, supervisor)

        with pytest.raises(DependencyScanError) as exc_info:
            scanner.build_graph([project / "a.c"])
        assert "fatal error" in str(exc_info.value)

    def test_missing_compiler_raises_scan_error(self, project):
        """Test a missing compiler surfaces as a DependencyScanError."""
        supervisor = MagicMock()
        supervisor.run_tracked.side_effect = ToolchainError("Tool not found: gcc")
        scanner = DependencyScanner("gcc", [], project, supervisor)

        with pytest.raises(DependencyScanError) as exc_info:
            scanner.scan_file(project / "a.c")
        assert isinstance(exc_info.value, ToolchainError)

    def test_module_build_graph(self, project, supervisor):
        """Test the module-level convenience wrapper."""
        graph = build_graph([project / "b.c"], "gcc", [], project, supervisor)
        assert graph[project / "b.c"] == {project / "common.h"}
