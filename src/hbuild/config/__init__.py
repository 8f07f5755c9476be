"""Configuration parsing modules for hbuild."""

from .project_config import (
    ProjectConfig,
    ProjectConfigError,
    find_config_file,
    load_project_config,
    write_default_config,
)

__all__ = [
    "ProjectConfig",
    "ProjectConfigError",
    "find_config_file",
    "load_project_config",
    "write_default_config",
]
