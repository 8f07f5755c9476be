"""
Source file discovery for native builds.

This module handles:
- Expanding source glob patterns against the project root
- Deduplicating and canonicalizing the matched paths
- Rejecting sources that would map onto the same object file
"""

from pathlib import Path
from typing import Dict, Iterable, List

from .errors import BuildError


class SourceScannerError(BuildError):
    """Raised when source scanning fails."""
    pass


class SourceScanner:
    """
    Expands source glob patterns into a concrete source set.

    The scanner:
    1. Expands each pattern relative to the project directory
    2. Keeps regular files only
    3. Resolves every match to an absolute path
    4. Drops duplicates matched by more than one pattern
    5. Verifies that no two sources share an object file name
    """

    # Directories never scanned, even when a recursive pattern reaches them
    EXCLUDED_DIRS = {'build', '.git', '__pycache__', 'node_modules', 'target'}

    def __init__(self, project_dir: Path):
        """
        Initialize source scanner.

        Args:
            project_dir: Root project directory
        """
        self.project_dir = Path(project_dir)

    def scan(self, patterns: Iterable[str]) -> List[Path]:
        """
        Expand glob patterns into a sorted, deduplicated list of sources.

        Args:
            patterns: Glob patterns relative to the project directory
                (absolute paths to existing files are accepted as-is)

        Returns:
            List of absolute source paths

        Raises:
            SourceScannerError: If two sources map to the same object file
        """
        sources: set[Path] = set()

        for pattern in patterns:
            pattern = pattern.strip()
            if not pattern:
                continue

            candidate = Path(pattern)
            if candidate.is_absolute():
                if candidate.is_file():
                    sources.add(candidate.resolve())
                continue

            for match in self.project_dir.glob(pattern):
                if match.is_file() and not self._is_excluded(match):
                    sources.add(match.resolve())

        ordered = sorted(sources)
        self._check_object_names(ordered)
        return ordered

    def _is_excluded(self, path: Path) -> bool:
        try:
            relative = path.relative_to(self.project_dir)
        except ValueError:
            return False
        return any(part in self.EXCLUDED_DIRS for part in relative.parts[:-1])

    @staticmethod
    def _check_object_names(sources: List[Path]) -> None:
        seen: Dict[str, Path] = {}
        for source in sources:
            previous = seen.get(source.stem)
            if previous is not None:
                raise SourceScannerError(
                    f"Sources {previous} and {source} would both compile to {source.stem}.o"
                )
            seen[source.stem] = source
