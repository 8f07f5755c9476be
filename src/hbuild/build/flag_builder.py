"""Compilation Flag Builder.

This module builds compiler and linker command-line flags from a BuildSpec.

Design:
    - Parses flag strings with proper handling of quoted values
    - Resolves include directories and fails early when one is missing
    - Queries pkg-config once per build for package cflags/libs
    - Adds position-independent code and shared-object flags by build kind
"""

import shlex
from typing import List, Optional

from .build_spec import BuildKind, BuildSpec
from .errors import ToolchainError
from .process_supervisor import ProcessSupervisor


class FlagBuilder:
    """Builds compilation and link flags from a BuildSpec.

    This class handles:
    - Standard, optimization and CPU tuning flags
    - Include search path flags
    - pkg-config derived flags
    - Build-kind specific flags (-fPIC, -shared)
    """

    def __init__(self, spec: BuildSpec, supervisor: ProcessSupervisor):
        """Initialize flag builder.

        Args:
            spec: Build specification
            supervisor: Process supervisor used to run pkg-config
        """
        self.spec = spec
        self.supervisor = supervisor
        self._pkg_cflags: Optional[List[str]] = None
        self._pkg_libs: Optional[List[str]] = None

    @staticmethod
    def parse_flag_string(flag_string: str) -> List[str]:
        """Parse a flag string that may contain quoted values.

        Args:
            flag_string: String containing compiler flags

        Returns:
            List of individual flags

        Example:
            >>> FlagBuilder.parse_flag_string('-DFOO="bar baz" -DTEST')
            ['-DFOO=bar baz', '-DTEST']
        """
        try:
            return shlex.split(flag_string)
        except ValueError:
            return flag_string.split()

    def include_flags(self) -> List[str]:
        """Get -I flags for every configured include directory.

        Raises:
            FileNotFoundError: If an include directory does not exist
        """
        flags = []
        for include_path in self.spec.include_paths():
            if not include_path.is_dir():
                raise FileNotFoundError(f"Include directory not found: {include_path}")
            flags.append(f"-I{include_path}")
        return flags

    def compile_flags(self) -> List[str]:
        """Get all flags needed to compile one translation unit.

        Returns:
            Flags to place between the compiler name and `-c <source>`
        """
        flags = []
        if self.spec.standard:
            flags.append(f"-std={self.spec.standard}")
        flags.append(f"-O{self.spec.optimization}")
        if self.spec.native:
            flags.append("-march=native")
        if self.spec.kind is BuildKind.SHARED:
            flags.append("-fPIC")
        flags.extend(self.pkg_config_cflags())
        flags.extend(self.include_flags())
        flags.extend(self.spec.cflags)
        return flags

    def link_flags(self) -> List[str]:
        """Get flags placed after the object files on the link line."""
        flags = [f"-L{(self.spec.project_dir / lib_dir).resolve()}" for lib_dir in self.spec.lib_dirs]
        flags.extend(f"-l{lib}" for lib in self.spec.libs)
        flags.extend(self.pkg_config_libs())
        flags.extend(self.spec.ldflags)
        return flags

    def pkg_config_cflags(self) -> List[str]:
        if self._pkg_cflags is None:
            self._pkg_cflags = self._query_pkg_config("--cflags")
        return self._pkg_cflags

    def pkg_config_libs(self) -> List[str]:
        if self._pkg_libs is None:
            self._pkg_libs = self._query_pkg_config("--libs")
        return self._pkg_libs

    def _query_pkg_config(self, mode: str) -> List[str]:
        if not self.spec.pkg_config:
            return []

        result = self.supervisor.run_tracked(
            ["pkg-config", mode, *self.spec.pkg_config], cwd=self.spec.project_dir
        )
        if not result.success:
            raise ToolchainError(
                f"pkg-config {mode} {' '.join(self.spec.pkg_config)} failed\n"
                f"stderr: {result.stderr}"
            )
        return self.parse_flag_string(result.stdout)
