"""Exception taxonomy for the native build engine.

Every error raised by the compile/link pipeline derives from BuildError so the
language orchestrator can catch it at the per-language boundary. Filesystem
problems (missing include directory, unreadable source) are not wrapped and
surface as the underlying OSError.
"""

from pathlib import Path
from typing import Any, List, Optional, Tuple


class BuildError(Exception):
    """Base exception for build engine errors."""
    pass


class ToolchainError(BuildError):
    """Raised when an external tool is missing or a dependency scan fails."""
    pass


class CompileError(BuildError):
    """Raised when one or more stale sources failed to compile.

    Attributes:
        failures: (source, stderr) pairs for every source that failed
        compiled: Sources whose compilation finished successfully anyway
            (already running on another worker when the failure was seen)
    """

    def __init__(
        self,
        message: str,
        failures: List[Tuple[Path, str]],
        compiled: Optional[List[Path]] = None
    ):
        super().__init__(message)
        self.failures = failures
        self.compiled = compiled or []


class LinkError(BuildError):
    """Raised when linking the final artifact fails."""
    pass


class ArchiveError(BuildError):
    """Raised when creating a static archive fails."""
    pass


class UnsupportedLanguageError(BuildError):
    """Raised when no build strategy exists for a declared language."""
    pass


class BuildInterruptedError(BuildError):
    """Raised when a process spawn is attempted after an interrupt."""
    pass


class DependencyScanError(ToolchainError):
    """Raised when header dependency discovery fails; aborts the whole run.

    Attributes:
        report: Outcomes gathered before the abort, attached by the language
            orchestrator on the way out (None when raised by the engine)
    """

    def __init__(self, message: str, report: Optional[Any] = None):
        super().__init__(message)
        self.report = report
