"""hbuild - incremental C/C++ builds and multi-language project orchestration."""

__version__ = "0.1.0"
