"""
Launch Strategies
-----------------
Turn a resolved command into the argv handed to the OS.

- DirectLaunch: executable + args, no shell tokenization
- ShellLaunch: one command line run by the platform interpreter
- VersionManagerShim: wraps another strategy with `mise exec --`

Strategies never spawn anything, so they are testable on any host.
"""

from dataclasses import dataclass
from typing import List, Optional
import platform


class LaunchStrategy:
    """Base class for launch strategies."""

    name = "base"

    def build_argv(self, command: str, args: List[str]) -> List[str]:
        raise NotImplementedError


@dataclass
class DirectLaunch(LaunchStrategy):
    name = "direct"

    def build_argv(self, command: str, args: List[str]) -> List[str]:
        return [command, *args]


@dataclass
class ShellLaunch(LaunchStrategy):
    """Runs `sh -c` on POSIX and `cmd /C` on Windows."""

    system: Optional[str] = None
    name = "shell"

    @property
    def is_windows(self) -> bool:
        return (self.system or platform.system()) == "Windows"

    def build_argv(self, command: str, args: List[str]) -> List[str]:
        # The interpreter does its own tokenization and quoting
        line = " ".join([command, *args])
        if self.is_windows:
            return ["cmd", "/C", line]
        return ["sh", "-c", line]


@dataclass
class VersionManagerShim(LaunchStrategy):
    """Launches through mise so runtime versions come from the working directory."""

    inner: LaunchStrategy
    executable: str = "mise"
    name = "mise"

    def build_argv(self, command: str, args: List[str]) -> List[str]:
        return [self.executable, "exec", "--", *self.inner.build_argv(command, args)]


def select_strategy(
    use_shell: bool,
    mise_enabled: bool,
    mise_executable: str = "mise",
    system: Optional[str] = None,
) -> LaunchStrategy:
    """Pick the strategy for a pair of execution flags."""
    strategy: LaunchStrategy = ShellLaunch(system=system) if use_shell else DirectLaunch()
    if mise_enabled:
        strategy = VersionManagerShim(inner=strategy, executable=mise_executable)
    return strategy
