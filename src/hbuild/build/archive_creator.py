"""Static library archiving.

Static builds skip the link step; their object files are bundled into a `.a`
with the configured archiver. The archive is always rebuilt from an empty
file so that objects of deleted sources do not linger as stale members.
"""

from pathlib import Path
from typing import List, Optional

from .errors import ArchiveError
from .process_supervisor import ProcessSupervisor

# r = insert/replace members, c = create quietly, s = write the symbol index
ARCHIVE_FLAGS = "rcs"


class ArchiveCreator:
    """Bundles object files into a static archive under process supervision."""

    def __init__(self, supervisor: ProcessSupervisor, show_progress: bool = True):
        """
        Args:
            supervisor: Supervisor that tracks the archiver process
            show_progress: Print a line before and after archiving
        """
        self.supervisor = supervisor
        self.show_progress = show_progress

    @staticmethod
    def build_command(archiver: str, archive_path: Path, object_files: List[Path]) -> List[str]:
        """Return `<archiver> rcs <archive> <objects...>`."""
        return [archiver, ARCHIVE_FLAGS, str(archive_path), *(str(obj) for obj in object_files)]

    def create_archive(
        self,
        archiver: str,
        archive_path: Path,
        object_files: List[Path],
        cwd: Optional[Path] = None
    ) -> Path:
        """Replace archive_path with a new archive holding exactly object_files.

        Args:
            archiver: Archiver invocation name (ar, llvm-ar, gcc-ar, ...)
            archive_path: Output `.a` path
            object_files: Members of the archive
            cwd: Working directory for the archiver

        Returns:
            archive_path

        Raises:
            ArchiveError: If there is nothing to archive, the archiver fails,
                or it exits cleanly without producing the file
            ToolchainError: If the archiver cannot be executed
        """
        if not object_files:
            raise ArchiveError(f"Nothing to archive into {archive_path.name}")

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        archive_path.unlink(missing_ok=True)

        if self.show_progress:
            print(f"Archiving {len(object_files)} object(s) into {archive_path.name}...")

        result = self.supervisor.run_tracked(
            self.build_command(archiver, archive_path, object_files), cwd=cwd
        )
        if not result.success:
            raise ArchiveError(
                f"{archiver} failed for {archive_path.name} (exit {result.returncode})\n"
                f"stderr: {result.stderr}\n"
                f"stdout: {result.stdout}"
            )
        if not archive_path.exists():
            raise ArchiveError(f"{archiver} reported success but {archive_path} is missing")

        if self.show_progress:
            print(f"✓ {archive_path.name}: {archive_path.stat().st_size:,} bytes")
        return archive_path
