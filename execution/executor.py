"""
Process Executor
----------------
Runs one resolved command as an OS process and reports its outcome.

Rules:
- No retries, no default timeout
- Output is fully buffered and decoded as UTF-8 (lossy)
- A non-zero exit is a normal result, not an error
- A process that cannot start raises SpawnError
- The registry is never touched here
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional
import os
import platform
import subprocess

from core.errors import InvalidWorkingDirectoryError, SpawnError
from infra.logging import get_logger

from .launch import LaunchStrategy, select_strategy

# Directories GUI-launched processes on macOS usually lack
MACOS_EXTRA_PATHS = [
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin",
]


@dataclass
class ProcessOutput:
    """Raw outcome from a launcher."""
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""


# (argv, cwd, env) -> ProcessOutput; raises OSError when the process cannot start
ProcessLauncher = Callable[[List[str], Optional[str], Dict[str, str]], ProcessOutput]


def subprocess_launcher(
    argv: List[str],
    cwd: Optional[str],
    env: Dict[str, str],
) -> ProcessOutput:
    """Default launcher: subprocess.run without shell=True."""
    completed = subprocess.run(
        argv,
        cwd=cwd,
        env=env,
        capture_output=True,
        stdin=subprocess.DEVNULL,
        shell=False,
    )
    return ProcessOutput(
        returncode=completed.returncode,
        stdout=completed.stdout or b"",
        stderr=completed.stderr or b"",
    )


@dataclass
class ExecutionResult:
    """Result of running a command."""
    stdout: str
    stderr: str
    exit_code: int
    success: bool
    execution_time_ms: float = 0.0
    argv: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "success": self.success,
            "execution_time_ms": self.execution_time_ms,
        }

    def __repr__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"ExecutionResult({status} exit={self.exit_code})"


@dataclass
class ExecutionRequest:
    """Everything the executor needs for one run."""
    command: str
    args: List[str] = field(default_factory=list)
    working_directory: Optional[str] = None
    environment: Mapping[str, str] = field(default_factory=dict)
    use_shell: bool = False
    mise_enabled: bool = False


class ProcessExecutor:
    """
    Spawns processes for resolved commands.

    The launcher is injectable so tests can check argv, cwd and env
    without starting anything.
    """

    def __init__(
        self,
        launcher: Optional[ProcessLauncher] = None,
        mise_executable: str = "mise",
        system: Optional[str] = None,
        base_environment: Optional[Mapping[str, str]] = None,
    ):
        self._launcher = launcher or subprocess_launcher
        self._mise_executable = mise_executable
        self._system = system or platform.system()
        self._base_environment = base_environment
        self._logger = get_logger("execution.executor")

    def strategy_for(self, request: ExecutionRequest) -> LaunchStrategy:
        return select_strategy(
            use_shell=request.use_shell,
            mise_enabled=request.mise_enabled,
            mise_executable=self._mise_executable,
            system=self._system,
        )

    def build_environment(self, overrides: Mapping[str, str]) -> Dict[str, str]:
        """Inherited environment with the command's variables overlaid."""
        base = self._base_environment if self._base_environment is not None else os.environ
        env = dict(base)

        if self._system == "Darwin":
            env["PATH"] = self._augment_path(env.get("PATH", ""))

        env.update(overrides)
        return env

    @staticmethod
    def _augment_path(path_env: str) -> str:
        entries = [entry for entry in path_env.split(":") if entry]
        for extra in MACOS_EXTRA_PATHS:
            if extra not in entries:
                entries.append(extra)
        return ":".join(entries)

    def _check_working_directory(self, working_directory: Optional[str]) -> Optional[str]:
        if not working_directory:
            return None
        path = Path(working_directory).expanduser()
        if not path.is_dir():
            raise InvalidWorkingDirectoryError(working_directory)
        return str(path)

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Run the command to completion.

        Raises SpawnError when the process cannot be started.
        """
        cwd = self._check_working_directory(request.working_directory)
        env = self.build_environment(request.environment)
        strategy = self.strategy_for(request)
        argv = strategy.build_argv(request.command, request.args)

        self._logger.info(f"Launching ({strategy.name}): {argv[0]}")
        start_time = datetime.now(timezone.utc)

        try:
            output = self._launcher(argv, cwd, env)
        except OSError as e:
            reason = f"{argv[0]}: {e.strerror or e}"
            self._logger.error(f"Spawn failed for {argv[0]}: {reason}")
            raise SpawnError(reason, {"argv": argv, "errno": e.errno})

        execution_time = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
        result = ExecutionResult(
            stdout=output.stdout.decode("utf-8", errors="replace"),
            stderr=output.stderr.decode("utf-8", errors="replace"),
            exit_code=output.returncode,
            success=output.returncode == 0,
            execution_time_ms=execution_time,
            argv=list(argv),
        )

        self._logger.info(
            f"Finished {argv[0]}: exit={result.exit_code} in {execution_time:.0f}ms",
            extra={"success": result.success, "execution_time_ms": execution_time},
        )
        return result
