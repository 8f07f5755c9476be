"""
Process Supervision Module

This module tracks every compiler, linker, archiver and toolchain process
spawned by a build so that an interrupt never leaves orphaned children behind.

Key features:
- Registry of live child processes keyed by PID, guarded by a single lock
- Lock held only for insert/remove, never across the blocking wait
- Interrupt handler that kills every tracked process tree and exits
- Scope context manager that guarantees teardown on exit
- Termination through native Popen handles, so a reaped PID is never signalled
"""

import logging
import signal
import subprocess
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

import psutil

from .errors import BuildInterruptedError, ToolchainError

INTERRUPT_EXIT_CODE = 130  # Standard exit code for SIGINT


@dataclass
class ProcessResult:
    """Outcome of a supervised process.

    Attributes:
        args: Command line that was executed
        returncode: Exit status (negative for signal termination on POSIX)
        stdout: Captured standard output
        stderr: Captured standard error
    """

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessSupervisor:
    """Thread-safe registry of live child processes.

    A PID is present in the registry if and only if its process has been
    spawned and not yet reaped. The interrupt handler only reads a snapshot
    and kills; entries are removed by the thread that spawned the process.
    """

    def __init__(self) -> None:
        # Reentrant so the signal handler can run while the main thread holds it
        self.lock = threading.RLock()
        self._registry: dict[int, subprocess.Popen] = {}
        self._interrupted = False

    @property
    def interrupted(self) -> bool:
        """Whether an interrupt has been received."""
        with self.lock:
            return self._interrupted

    def run_tracked(
        self,
        cmd: Sequence[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run a command to completion while tracking its PID.

        Args:
            cmd: Command and arguments
            cwd: Working directory (optional)
            timeout: Seconds to wait before killing the process (optional)

        Returns:
            ProcessResult with exit status and captured output

        Raises:
            ToolchainError: If the executable cannot be found or the timeout expires
            BuildInterruptedError: If an interrupt was received before spawning
        """
        args = [str(arg) for arg in cmd]

        if self.interrupted:
            raise BuildInterruptedError(f"Build interrupted, not starting {args[0]}")

        proc: subprocess.Popen | None = None
        try:
            # Spawn and insert share one guard: an interrupt that lands before
            # the insert still kills proc on the way out
            proc = self._spawn(args, cwd)
            self._register(proc)
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            self._kill_process(proc)
            proc.communicate()
            raise ToolchainError(f"Timed out after {timeout}s: {' '.join(args)}") from e
        except BaseException:
            if proc is not None:
                self._kill_process(proc)
                proc.wait()
            raise
        finally:
            if proc is not None:
                self._unregister(proc.pid)

        return ProcessResult(args=args, returncode=proc.returncode, stdout=stdout, stderr=stderr)

    @staticmethod
    def _spawn(args: list[str], cwd: Path | None) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise ToolchainError(f"Tool not found: {args[0]}") from e
        except PermissionError as e:
            raise ToolchainError(f"Tool is not executable: {args[0]}") from e

    def _register(self, proc: subprocess.Popen) -> None:
        with self.lock:
            if self._interrupted:
                # Spawned while the interrupt handler was running
                self._kill_process(proc)
                proc.wait()
                raise BuildInterruptedError(f"Build interrupted, killed {proc.args[0]}")
            self._registry[proc.pid] = proc
        logging.debug(f"Tracking process {proc.pid}: {proc.args[0]}")

    def _unregister(self, pid: int) -> None:
        with self.lock:
            self._registry.pop(pid, None)
        logging.debug(f"Released process {pid}")

    def active_pids(self) -> list[int]:
        """Get PIDs of all currently tracked processes, in spawn order."""
        with self.lock:
            return list(self._registry.keys())

    def terminate_all(self) -> int:
        """Force-kill every tracked process and its descendants.

        Entries are left in the registry; each spawning thread removes its own
        entry once it observes the exit.

        Returns:
            Number of tracked processes that were signalled
        """
        with self.lock:
            snapshot = list(self._registry.values())

        killed_count = 0
        for proc in snapshot:
            if self._kill_process(proc):
                killed_count += 1
        return killed_count

    def _kill_process(self, proc: subprocess.Popen) -> bool:
        """Kill a process tree (descendants first, then the root).

        Returns:
            True if the root process was still running and got signalled
        """
        if proc.poll() is not None:
            return False

        # Unreaped, so the PID cannot have been reused yet
        try:
            children = psutil.Process(proc.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            children = []

        for child in reversed(children):
            try:
                child.kill()
                logging.debug(f"Killed child process {child.pid}")
            except psutil.NoSuchProcess:
                pass  # Already dead
            except psutil.AccessDenied as e:
                logging.warning(f"Failed to kill child process {child.pid}: {e}")

        try:
            proc.kill()
        except ProcessLookupError:
            return False
        logging.info(f"Killed process {proc.pid} ({proc.args[0]})")
        return True

    def handle_interrupt(self, signum: int, frame: Any) -> None:
        """Signal handler: stop new spawns, kill all tracked children, exit."""
        with self.lock:
            self._interrupted = True
            pids = list(self._registry.keys())

        logging.warning(f"Received signal {signum}, terminating {len(pids)} child process(es)")
        self.terminate_all()
        sys.exit(INTERRUPT_EXIT_CODE)

    @contextmanager
    def scope(self) -> Iterator["ProcessSupervisor"]:
        """Supervise a build: install interrupt handlers, tear down on exit.

        Handlers are only installed from the main thread (a Python
        restriction); previous handlers are restored on exit. Any process
        still tracked when the scope exits is killed.
        """
        previous: dict[int, Any] = {}
        if threading.current_thread() is threading.main_thread():
            for signum in _supervised_signals():
                previous[signum] = signal.signal(signum, self.handle_interrupt)

        try:
            yield self
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
            remaining = self.terminate_all()
            if remaining:
                logging.warning(f"Killed {remaining} process(es) left running at scope exit")


def _supervised_signals() -> list[int]:
    signals = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signals.append(signal.SIGTERM)
    return signals


_default_supervisor: ProcessSupervisor | None = None
_default_lock = threading.Lock()


def get_supervisor() -> ProcessSupervisor:
    """Get the process-wide supervisor instance."""
    global _default_supervisor
    with _default_lock:
        if _default_supervisor is None:
            _default_supervisor = ProcessSupervisor()
        return _default_supervisor
