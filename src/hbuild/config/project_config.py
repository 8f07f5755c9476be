"""
hbuild project configuration parser.

This module locates and parses a project's configuration file and produces the
normalized ProjectConfig (metadata, declared languages, local dependencies and
the native BuildSpec) consumed by the build orchestrators.

Supported files, checked in order:
    hbuild.ini   INI syntax (configparser)
    hbuild.json  JSON with the same sections as objects

Example hbuild.ini:
    [metadata]
    name = hello
    version = 0.1.0

    [specs]
    languages = c, rust

    [build]
    type = executable
    sources = src/*.c
    include_dirs = include
    compiler = gcc
    standard = c11
    libs = m
"""

import configparser
import json
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..build.build_spec import BuildKind, BuildSpec

CONFIG_FILES = [
    ("hbuild.ini", "ini"),
    ("hbuild.json", "json"),
]

DEFAULT_CONFIG = """\
; Example hbuild.ini
[metadata]
name = {name}
version = 0.1.0

[description]
summary = A new hbuild project

[specs]
languages = c

[build]
type = executable
sources = src/*.c
include_dirs =
compiler = cc
standard = c11
optimization = 2
"""


class ProjectConfigError(Exception):
    """Exception raised for project configuration errors."""

    pass


@dataclass
class ProjectConfig:
    """Normalized project configuration.

    Attributes:
        project_dir: Project root directory
        name: Project name
        version: Project version
        authors: Authors (optional)
        license: License identifier (optional)
        summary: One-line description (optional)
        languages: Declared languages, in build order
        dependencies: Dependency name -> path relative to project_dir
        build: Native build specification, None without a [build] section
    """

    project_dir: Path
    name: str
    version: str = ""
    authors: Optional[str] = None
    license: Optional[str] = None
    summary: Optional[str] = None
    languages: List[str] = field(default_factory=list)
    dependencies: Dict[str, str] = field(default_factory=dict)
    build: Optional[BuildSpec] = None


def find_config_file(project_dir: Path) -> Optional[Path]:
    """
    Find the project's configuration file.

    Args:
        project_dir: Project root directory

    Returns:
        Path of the first configuration file found, or None
    """
    for filename, _ in CONFIG_FILES:
        config_path = Path(project_dir) / filename
        if config_path.exists():
            return config_path
    return None


def load_project_config(project_dir: Path) -> ProjectConfig:
    """
    Load and normalize a project's configuration.

    Args:
        project_dir: Project root directory

    Returns:
        ProjectConfig for the project

    Raises:
        ProjectConfigError: If no config file exists or it is invalid
    """
    project_dir = Path(project_dir).resolve()
    config_path = find_config_file(project_dir)
    if config_path is None:
        names = ", ".join(filename for filename, _ in CONFIG_FILES)
        raise ProjectConfigError(f"No config file found in {project_dir} (expected one of: {names})")

    if config_path.suffix == ".json":
        sections = _read_json(config_path)
    else:
        sections = _read_ini(config_path)

    return _from_sections(project_dir, sections, config_path)


def write_default_config(project_dir: Path) -> Optional[Path]:
    """
    Write an example hbuild.ini unless a config file already exists.

    Args:
        project_dir: Project root directory

    Returns:
        Path of the written file, or None if a config already existed
    """
    project_dir = Path(project_dir).resolve()
    if find_config_file(project_dir) is not None:
        return None

    config_path = project_dir / CONFIG_FILES[0][0]
    config_path.write_text(DEFAULT_CONFIG.format(name=project_dir.name or "project"), encoding="utf-8")
    return config_path


def _read_ini(config_path: Path) -> Dict[str, Dict[str, Any]]:
    parser = configparser.ConfigParser(
        allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
    )
    try:
        parser.read(config_path, encoding="utf-8")
        return {section: dict(parser[section]) for section in parser.sections()}
    except configparser.Error as e:
        raise ProjectConfigError(f"Failed to parse {config_path}: {e}") from e


def _read_json(config_path: Path) -> Dict[str, Dict[str, Any]]:
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ProjectConfigError(f"Failed to parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ProjectConfigError(f"{config_path}: top level must be an object")
    for section, values in data.items():
        if not isinstance(values, dict):
            raise ProjectConfigError(f"{config_path}: section '{section}' must be an object")
    return data


def _from_sections(
    project_dir: Path,
    sections: Dict[str, Dict[str, Any]],
    config_path: Path
) -> ProjectConfig:
    metadata = sections.get("metadata", {})
    name = _as_str(metadata.get("name"))
    if not name:
        raise ProjectConfigError(f"{config_path}: [metadata] name is required")

    description = sections.get("description", {})
    specs = sections.get("specs", {})
    dependencies = {
        dep_name: _as_str(path) for dep_name, path in sections.get("dependencies", {}).items()
    }

    build = None
    if "build" in sections:
        build = _build_spec(project_dir, name, sections["build"], config_path)

    return ProjectConfig(
        project_dir=project_dir,
        name=name,
        version=_as_str(metadata.get("version")),
        authors=_as_str(metadata.get("authors")) or None,
        license=_as_str(metadata.get("license")) or None,
        summary=_as_str(description.get("summary")) or None,
        languages=[lang.lower() for lang in _as_names(specs.get("languages"))],
        dependencies=dependencies,
        build=build,
    )


def _build_spec(
    project_dir: Path,
    project_name: str,
    section: Dict[str, Any],
    config_path: Path
) -> BuildSpec:
    kind_name = _as_str(section.get("type")) or BuildKind.EXECUTABLE.value
    try:
        kind = BuildKind.from_string(kind_name)
    except ValueError as e:
        valid = ", ".join(kind.value for kind in BuildKind)
        raise ProjectConfigError(
            f"{config_path}: invalid build type '{kind_name}' (expected one of: {valid})"
        ) from e

    sources = _as_list(section.get("sources")) or ["src/*.c"]

    return BuildSpec(
        project_dir=project_dir,
        target=_as_str(section.get("target")) or project_name,
        kind=kind,
        sources=tuple(sources),
        include_dirs=tuple(_as_list(section.get("include_dirs"))),
        compiler=_as_str(section.get("compiler")) or "cc",
        archiver=_as_str(section.get("archiver")) or "ar",
        standard=_as_str(section.get("standard")),
        optimization=_as_str(section.get("optimization")) or "2",
        cflags=tuple(_as_flags(section.get("cflags"))),
        ldflags=tuple(_as_flags(section.get("ldflags"))),
        lib_dirs=tuple(_as_list(section.get("lib_dirs"))),
        libs=tuple(_as_names(section.get("libs"))),
        pkg_config=tuple(_as_names(section.get("pkg_config"))),
        native=_as_bool(section.get("native")),
    )


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_list(value: Any) -> List[str]:
    """Normalize a list value: JSON array, or INI text split on newlines and commas."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]

    items = []
    for line in str(value).split("\n"):
        for item in line.split(","):
            item = item.strip()
            if item:
                items.append(item)
    return items


def _as_names(value: Any) -> List[str]:
    """Like _as_list, but whitespace also separates items (names never contain spaces)."""
    return [name for item in _as_list(value) for name in re.split(r"[,\s]+", item) if name]


def _as_flags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    try:
        return shlex.split(str(value))
    except ValueError:
        return str(value).split()


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _as_str(value).lower() in ("1", "true", "yes", "on")
