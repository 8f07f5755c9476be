"""
Integration tests for interrupt handling.

A fake compiler that never finishes is configured, the CLI is started, and
SIGINT is delivered once the compiler (and its own child) are running.
"""

import signal
import subprocess
import sys
import time

import psutil
import pytest

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals and shell scripts required"),
]


def descendants(pid):
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.NoSuchProcess:
        return []


def wait_for(predicate, timeout=30.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.1)
    return False


@pytest.fixture
def hanging_project(make_project):
    project = make_project({"src/main.c": "int main(void) { return 0; }\n"})
    compiler = project / "slowcc"
    # Not exec'd, so the compiler has a child of its own
    compiler.write_text("#!/bin/sh\nsleep 60\n")
    compiler.chmod(0o755)
    (project / "hbuild.ini").write_text(
        "[metadata]\nname = slow\n\n"
        "[specs]\nlanguages = c\n\n"
        f"[build]\nsources = src/*.c\ncompiler = {compiler}\n"
    )
    return project


def test_sigint_kills_every_child(hanging_project):
    """
    Test that an interrupt leaves no compiler processes behind.

    Validates:
    - The CLI exits with status 130
    - The compiler process and its descendants are all gone
    """
    proc = subprocess.Popen(
        [sys.executable, "-m", "hbuild.cli", "make", str(hanging_project)],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    try:
        assert wait_for(lambda: any(p.name() == "sleep" for p in descendants(proc.pid))), \
            "fake compiler never started"
        children = descendants(proc.pid)

        proc.send_signal(signal.SIGINT)
        proc.communicate(timeout=30)

        assert proc.returncode == 130
        _, alive = psutil.wait_procs(children, timeout=10)
        assert alive == []
    finally:
        if proc.poll() is None:
            for child in descendants(proc.pid):
                child.kill()
            proc.kill()
            proc.communicate()
