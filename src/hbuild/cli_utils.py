"""CLI helpers for hbuild.

- setup_logging: root logger configuration for the CLI process
- ErrorFormatter: coloured status lines and the standard error exits
- ReportPrinter: per-language summary of a BuildReport
- PathValidator: project directory checks before any command runs
"""

import logging
import sys
from pathlib import Path

from hbuild.language_orchestrator import BuildReport, LanguageState

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr; WARNING and up, or INFO and up when verbose."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.INFO if verbose else logging.WARNING)
    root.addHandler(handler)


class ErrorFormatter:
    """Coloured terminal output for command results."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @classmethod
    def colored(cls, color: str, text: str) -> str:
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def print_error(cls, title: str, message: str) -> None:
        """Print a red title followed by the error details.

        Args:
            title: Short headline, e.g. "Config error"
            message: Full error text
        """
        print(f"\n{cls.colored(cls.RED, '✗ ' + title)}\n\n{message}\n")

    @classmethod
    def print_success(cls, message: str) -> None:
        print()
        print(cls.colored(cls.GREEN, f"✓ {message}"))

    @classmethod
    def print_warning(cls, message: str) -> None:
        print()
        print(cls.colored(cls.YELLOW, f"! {message}"))

    @classmethod
    def handle_permission_error(cls, error: PermissionError) -> None:
        cls.print_error("Permission denied", str(error))
        sys.exit(1)

    @classmethod
    def handle_keyboard_interrupt(cls) -> None:
        cls.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @classmethod
    def handle_unexpected_error(cls, error: Exception, verbose: bool = False) -> None:
        """Report an error no command handler anticipated and exit 1.

        Args:
            error: The exception
            verbose: Also print the traceback
        """
        cls.print_error("Unexpected error", f"{type(error).__name__}: {error}")

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class ReportPrinter:
    """Prints per-language build summaries."""

    SYMBOLS = {
        LanguageState.SUCCEEDED: ErrorFormatter.colored(ErrorFormatter.GREEN, "✓"),
        LanguageState.FAILED: ErrorFormatter.colored(ErrorFormatter.RED, "✗"),
        LanguageState.SKIPPED: ErrorFormatter.colored(ErrorFormatter.YELLOW, "-"),
    }

    @staticmethod
    def print_report(report: BuildReport, verbose: bool = False) -> None:
        """Print one line per language, dependencies first.

        Failure reasons are always shown; skip reasons only when verbose.
        """
        for dependency in report.dependencies:
            ReportPrinter.print_report(dependency, verbose)

        print()
        print(f"Summary for {report.project_dir.name}:")
        for outcome in report.outcomes:
            symbol = ReportPrinter.SYMBOLS.get(outcome.state, "?")
            line = f"  {symbol} {outcome.language}: {outcome.state.value}"
            result = outcome.native_result
            if result is not None:
                line += f" ({len(result.compiled)}/{len(result.sources)} compiled"
                line += ", relinked)" if result.relinked else ", up to date)"
            print(line)
            if outcome.reason and (verbose or outcome.state is LanguageState.FAILED):
                for reason_line in outcome.reason.strip().splitlines():
                    print(f"      {reason_line}")


class PathValidator:
    """Project directory checks."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Exit with status 2 unless project_dir is an existing directory."""
        if not project_dir.exists():
            problem = "Path does not exist"
        elif not project_dir.is_dir():
            problem = "Path is not a directory"
        else:
            return
        print(ErrorFormatter.colored(ErrorFormatter.RED, f"✗ Error: {problem}: {project_dir}"))
        sys.exit(2)
