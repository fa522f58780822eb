# Execution module - Launch strategies and process executor
# Spawns processes only; never reads or writes the registry

from .launch import LaunchStrategy, DirectLaunch, ShellLaunch, VersionManagerShim, select_strategy
from .executor import (
    ProcessExecutor, ExecutionRequest, ExecutionResult,
    ProcessOutput, subprocess_launcher
)

__all__ = [
    "LaunchStrategy",
    "DirectLaunch",
    "ShellLaunch",
    "VersionManagerShim",
    "select_strategy",
    "ProcessExecutor",
    "ExecutionRequest",
    "ExecutionResult",
    "ProcessOutput",
    "subprocess_launcher",
]
