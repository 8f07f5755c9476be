"""Single translation unit compilation.

Runs `<compiler> <flags> -c <source> -o <object>` through the process
supervisor. A non-zero exit becomes a CompileError carrying the compiler's
stderr; failed compilations are never retried. The same path serves C and
C++, the configured driver decides the language.
"""

from pathlib import Path
from typing import List, Optional

from .errors import CompileError
from .process_supervisor import ProcessSupervisor


class CompilationExecutor:
    """Compiles one source file to one object file.

    Safe to share between worker threads; it holds no per-compilation state.
    """

    def __init__(self, supervisor: ProcessSupervisor, show_progress: bool = True):
        """
        Args:
            supervisor: Tracks the compiler process so an interrupt can kill it
            show_progress: Print each file as it starts, and any warnings
        """
        self.supervisor = supervisor
        self.show_progress = show_progress

    @staticmethod
    def build_command(
        compiler: str,
        source_path: Path,
        output_path: Path,
        compile_flags: List[str]
    ) -> List[str]:
        """Assemble the compiler invocation; flags go before `-c`."""
        return [compiler, *compile_flags, '-c', str(source_path), '-o', str(output_path)]

    def compile_source(
        self,
        compiler: str,
        source_path: Path,
        output_path: Path,
        compile_flags: List[str],
        cwd: Optional[Path] = None
    ) -> Path:
        """Compile source_path into output_path.

        Args:
            compiler: Compiler driver (cc, gcc, clang++, ...)
            source_path: Translation unit to compile
            output_path: Object file to write; its directory is created
            compile_flags: Flags from FlagBuilder.compile_flags()
            cwd: Working directory for the compiler (the project root), so
                relative paths in the flags resolve against it

        Returns:
            output_path

        Raises:
            CompileError: If the compiler exits non-zero
            ToolchainError: If the compiler cannot be executed
            BuildInterruptedError: If the build was interrupted before spawning
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if self.show_progress:
            print(f"Compiling {source_path.name}...")

        result = self.supervisor.run_tracked(
            self.build_command(compiler, source_path, output_path, compile_flags), cwd=cwd
        )

        if not result.success:
            raise CompileError(
                f"Compilation failed for {source_path.name} (exit {result.returncode})\n"
                f"stderr: {result.stderr}\n"
                f"stdout: {result.stdout}",
                [(source_path, result.stderr)],
            )

        # Warnings only
        if self.show_progress and result.stderr:
            print(result.stderr)

        return output_path
