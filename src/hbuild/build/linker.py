"""
Link/archive stage for native builds.

This module decides whether the final artifact is out of date and produces it:
- Executables and shared libraries are linked with the compiler driver
- Static libraries are produced with the archiver
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .archive_creator import ArchiveCreator
from .build_spec import BuildKind, BuildSpec
from .errors import LinkError
from .flag_builder import FlagBuilder
from .process_supervisor import ProcessSupervisor
from .staleness import object_mtime


@dataclass
class LinkResult:
    """Result of the link/archive stage."""

    target_path: Path
    relinked: bool
    stdout: str = ""
    stderr: str = ""


def needs_relink(target_path: Path, object_files: List[Path], recompiled: bool) -> bool:
    """
    Decide whether the target artifact must be produced again.

    Args:
        target_path: Final artifact path
        object_files: All object files that make up the target
        recompiled: Whether any source was recompiled this run

    Returns:
        True if the target is missing, anything was recompiled, or any
        object file is newer than the target
    """
    target_mtime = object_mtime(target_path)
    if target_mtime is None or recompiled:
        return True
    for obj in object_files:
        obj_mtime = object_mtime(obj)
        if obj_mtime is not None and obj_mtime > target_mtime:
            return True
    return False


class Linker:
    """
    Produces the final artifact of a native build.

    Links object files with the compiler driver for executables and shared
    libraries, or archives them for static libraries.
    """

    def __init__(self, supervisor: ProcessSupervisor, show_progress: bool = True):
        """
        Initialize linker.

        Args:
            supervisor: Process supervisor that tracks linker/archiver processes
            show_progress: Whether to show link progress
        """
        self.supervisor = supervisor
        self.show_progress = show_progress

    def build_link_command(
        self,
        spec: BuildSpec,
        object_files: List[Path],
        link_flags: List[str]
    ) -> List[str]:
        """
        Build the linker invocation for an executable or shared library.

        Args:
            spec: Build specification
            object_files: Object files to link
            link_flags: Library search paths, libraries and extra flags

        Returns:
            Command as a list of arguments
        """
        cmd = [spec.compiler, f"-O{spec.optimization}"]
        if spec.kind is BuildKind.SHARED:
            cmd.append("-shared")
        cmd.extend(['-o', str(spec.target_path())])
        cmd.extend(str(obj) for obj in object_files)
        cmd.extend(link_flags)
        return cmd

    def link_or_archive(
        self,
        spec: BuildSpec,
        sources: List[Path],
        recompiled: bool,
        flag_builder: Optional[FlagBuilder] = None
    ) -> LinkResult:
        """
        Link or archive the target if it is out of date.

        Args:
            spec: Build specification
            sources: All sources of the target (their objects are linked)
            recompiled: Whether any source was recompiled this run
            flag_builder: Flag builder to reuse (created from spec if omitted)

        Returns:
            LinkResult describing the target and whether it was rebuilt

        Raises:
            LinkError: If linking fails
            ArchiveError: If archiving fails
        """
        target_path = spec.target_path()
        object_files = [spec.object_path(source) for source in sources]

        if not needs_relink(target_path, object_files, recompiled):
            if self.show_progress:
                print(f"{target_path.name} is up to date")
            return LinkResult(target_path=target_path, relinked=False)

        if spec.kind is BuildKind.STATIC:
            ArchiveCreator(self.supervisor, self.show_progress).create_archive(
                spec.archiver, target_path, object_files, cwd=spec.project_dir
            )
            return LinkResult(target_path=target_path, relinked=True)

        if not object_files:
            raise LinkError(f"No object files to link into {target_path.name}")

        flag_builder = flag_builder or FlagBuilder(spec, self.supervisor)
        cmd = self.build_link_command(spec, object_files, flag_builder.link_flags())

        if self.show_progress:
            print(f"Linking {target_path.name}...")

        result = self.supervisor.run_tracked(cmd, cwd=spec.project_dir)

        if not result.success:
            error_msg = f"Linking failed for {target_path.name}\n"
            error_msg += f"stderr: {result.stderr}\n"
            error_msg += f"stdout: {result.stdout}"
            raise LinkError(error_msg)

        return LinkResult(
            target_path=target_path,
            relinked=True,
            stdout=result.stdout,
            stderr=result.stderr
        )
