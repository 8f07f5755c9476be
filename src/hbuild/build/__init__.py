"""
Native build engine for hbuild.

This module provides the incremental C/C++ build implementation including:
- Source file discovery
- Header dependency graph and staleness decisions
- Parallel compilation under process supervision
- Linking and archiving
- Build orchestration
"""

from .build_spec import BuildKind, BuildSpec
from .errors import (
    ArchiveError,
    BuildError,
    BuildInterruptedError,
    CompileError,
    DependencyScanError,
    LinkError,
    ToolchainError,
    UnsupportedLanguageError,
)
from .orchestrator import NativeBuildOrchestrator, NativeBuildResult
from .process_supervisor import ProcessResult, ProcessSupervisor, get_supervisor
from .source_scanner import SourceScanner

__all__ = [
    'BuildKind',
    'BuildSpec',
    'ArchiveError',
    'BuildError',
    'BuildInterruptedError',
    'CompileError',
    'DependencyScanError',
    'LinkError',
    'ToolchainError',
    'UnsupportedLanguageError',
    'NativeBuildOrchestrator',
    'NativeBuildResult',
    'ProcessResult',
    'ProcessSupervisor',
    'get_supervisor',
    'SourceScanner',
]
