"""
Command-line interface for hbuild.

This module provides the `hbuild` CLI tool for building multi-language projects.
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from hbuild import __version__
from hbuild.build import DependencyScanError, get_supervisor
from hbuild.cli_utils import ErrorFormatter, PathValidator, ReportPrinter, setup_logging
from hbuild.config import ProjectConfigError, write_default_config
from hbuild.language_orchestrator import MultiLanguageOrchestrator


@dataclass
class MakeArgs:
    """Arguments for the make, clean and remake commands."""

    project_dir: Path
    jobs: Optional[int] = None
    verbose: bool = False
    strict: bool = False


def make_command(args: MakeArgs, clean_first: bool = False) -> None:
    """Build every declared language of a project.

    Examples:
        hbuild make                    # Build the current directory
        hbuild make examples/hello     # Build a specific project
        hbuild make -j 4               # Limit parallel compilation
        hbuild make --strict           # Exit 1 if any language failed
        hbuild remake                  # Clean, then build
    """
    print(f"hbuild v{__version__}")
    print()

    try:
        orchestrator = MultiLanguageOrchestrator(jobs=args.jobs, verbose=args.verbose)

        with get_supervisor().scope():
            if clean_first:
                orchestrator.clean(args.project_dir)
            report = orchestrator.make(args.project_dir)

        ReportPrinter.print_report(report, args.verbose)

        if report.has_failures:
            ErrorFormatter.print_warning("Build finished with failures")
            print(f"Build time: {report.build_time:.2f}s")
            sys.exit(1 if args.strict else 0)

        ErrorFormatter.print_success("Build successful!")
        print(f"Build time: {report.build_time:.2f}s")
        sys.exit(0)

    except ProjectConfigError as e:
        ErrorFormatter.print_error("Config error", str(e))
        sys.exit(1)
    except DependencyScanError as e:
        if e.report is not None:
            ReportPrinter.print_report(e.report, args.verbose)
        ErrorFormatter.print_error("Build aborted", str(e))
        sys.exit(1)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(args: MakeArgs) -> None:
    """Remove build artifacts of a project.

    Examples:
        hbuild clean                   # Clean the current directory
        hbuild clean examples/hello    # Clean a specific project
    """
    try:
        with get_supervisor().scope():
            ok = MultiLanguageOrchestrator(verbose=args.verbose).clean(args.project_dir)

        if ok:
            ErrorFormatter.print_success("Clean successful!")
            sys.exit(0)
        ErrorFormatter.print_warning("Clean finished with failures")
        sys.exit(1 if args.strict else 0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def setup_command(project_dir: Path) -> None:
    """Write an example hbuild.ini into a project.

    Examples:
        hbuild setup                   # Create ./hbuild.ini
    """
    config_path = write_default_config(project_dir)
    if config_path is None:
        print(f"A config file already exists in {project_dir}, leaving it unchanged")
        sys.exit(0)

    ErrorFormatter.print_success(f"Created {config_path}")
    sys.exit(0)


def main() -> None:
    """hbuild - incremental native builds and multi-language orchestration."""
    parser = argparse.ArgumentParser(
        prog="hbuild",
        description="hbuild - Incremental build tool for multi-language projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    command_help = {
        "make": "Build every declared language of the project",
        "clean": "Remove build artifacts",
        "remake": "Clean, then build",
        "setup": "Write an example hbuild.ini",
    }
    for name, help_text in command_help.items():
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "project_dir",
            nargs="?",
            type=Path,
            default=Path.cwd(),
            help="Project directory (default: current directory)",
        )
        if name == "setup":
            continue
        sub.add_argument(
            "-j",
            "--jobs",
            default=None,
            type=int,
            help="Parallel compilation jobs (default: number of CPU cores)",
        )
        sub.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Show verbose build output",
        )
        sub.add_argument(
            "--strict",
            action="store_true",
            help="Exit with status 1 if any language failed",
        )

    # Parse arguments
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "setup":
        setup_command(parsed_args.project_dir)
        return

    setup_logging(parsed_args.verbose)
    make_args = MakeArgs(
        project_dir=parsed_args.project_dir,
        jobs=parsed_args.jobs,
        verbose=parsed_args.verbose,
        strict=parsed_args.strict,
    )

    if parsed_args.command == "make":
        make_command(make_args)
    elif parsed_args.command == "remake":
        make_command(make_args, clean_first=True)
    elif parsed_args.command == "clean":
        clean_command(make_args)


if __name__ == "__main__":
    main()
