"""Incremental rebuild decisions.

A source must be recompiled when its object file is missing, or when the
source or anything it transitively includes has a modification time strictly
newer than the object file. Nothing is persisted between builds; every
invocation recomputes staleness from filesystem timestamps.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .dependency_graph import DependencyGraph

StalenessCache = Dict[Path, bool]


def is_stale(
    file: Path,
    object_mtime: Optional[float],
    graph: DependencyGraph,
    cache: StalenessCache
) -> bool:
    """Decide whether a file makes its object out of date.

    Args:
        file: Source or header being evaluated
        object_mtime: Modification time of the object file, None if missing
        graph: Include graph; files without an entry are leaves
        cache: Memo of answers for this query; updated in place

    Returns:
        True if the file or any file it includes is newer than the object
    """
    if file in cache:
        return cache[file]

    try:
        mtime = file.stat().st_mtime
    except OSError:
        # Let the compiler report the real error
        cache[file] = True
        return True

    if object_mtime is None or mtime > object_mtime:
        cache[file] = True
        return True

    # Provisional answer while dependents are visited; a cycle back to this
    # file contributes nothing beyond what this file's own mtime already did
    cache[file] = False
    stale = any(
        is_stale(dependency, object_mtime, graph, cache)
        for dependency in sorted(graph.get(file, ()))
    )
    cache[file] = stale
    return stale


def object_mtime(object_file: Path) -> Optional[float]:
    """Get an object file's modification time, or None if it does not exist."""
    try:
        return object_file.stat().st_mtime
    except FileNotFoundError:
        return None


def find_stale_sources(
    sources: Iterable[Path],
    graph: DependencyGraph,
    object_path: Callable[[Path], Path]
) -> List[Path]:
    """Select the sources that need recompilation.

    Each source is evaluated with a fresh cache.

    Args:
        sources: Candidate sources
        graph: Include graph
        object_path: Maps a source to its object file

    Returns:
        Stale sources, in input order
    """
    stale = []
    for source in sources:
        if is_stale(source, object_mtime(object_path(source)), graph, {}):
            stale.append(source)
    return stale
