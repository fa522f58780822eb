"""
Command Service
---------------
The boundary every surface (REST bus, CLI, GUI) calls.
All registry and execution operations go through here.

Execution flow:
    registry.get -> resolver -> executor -> usage tracker
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Union

from commands.model import Command, CommandParameter, CreateCommandRequest, UpdateCommandRequest
from commands.registry import CommandRegistry
from commands.resolver import required_prompts, resolve_command
from commands.usage import UsageTracker
from core.errors import NotFoundError, StorageError
from execution.executor import ExecutionRequest, ExecutionResult, ProcessExecutor
from infra.config import ArgusConfig
from infra.logging import RunContext, get_logger


@dataclass
class ServiceConfig:
    """Configuration for the command service."""
    storage_path: Optional[Union[str, Path]] = None
    default_use_shell: bool = False
    mise_executable: str = "mise"

    @classmethod
    def from_argus_config(cls, config: ArgusConfig) -> "ServiceConfig":
        return cls(
            storage_path=config.storage_path,
            default_use_shell=config.default_use_shell,
            mise_executable=config.mise_executable,
        )


class CommandService:
    """
    Boundary operations over the registry and executor.

    Each call is a short, independent unit of work; callers that need
    concurrency run execute_command on their own threads.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: Optional[CommandRegistry] = None,
        executor: Optional[ProcessExecutor] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or ServiceConfig()
        self.registry = registry or CommandRegistry(self.config.storage_path, clock=clock)
        self.executor = executor or ProcessExecutor(mise_executable=self.config.mise_executable)
        self.usage = UsageTracker(self.registry, clock=clock)
        self._logger = get_logger("core.service")

    # Registry operations

    def list_commands(self) -> List[Command]:
        return self.registry.list()

    def get_command(self, command_id: str) -> Command:
        return self.registry.get(command_id)

    def create_command(self, request: CreateCommandRequest) -> Command:
        return self.registry.create(request)

    def update_command(self, command_id: str, request: UpdateCommandRequest) -> Command:
        return self.registry.update(command_id, request)

    def delete_command(self, command_id: str) -> None:
        self.registry.delete(command_id)

    def search_commands_by_name(self, query: str) -> List[Command]:
        return self.registry.search_by_name(query)

    def search_commands_by_tags(self, tags: List[str]) -> List[Command]:
        return self.registry.search_by_tags(tags)

    def required_parameters(self, command_id: str) -> List[CommandParameter]:
        """Parameters a collaborator has to prompt for before executing."""
        return required_prompts(self.registry.get(command_id))

    # Execution

    def execute_command(
        self,
        command_id: str,
        use_shell: Optional[bool] = None,
        parameters: Optional[Mapping[str, str]] = None,
    ) -> ExecutionResult:
        """
        Resolve, run and record one execution.

        Raises NotFoundError, MissingRequiredParameterError,
        InvalidParameterValueError or SpawnError. None of these count
        as a use; any returned result does. A failure to record the use
        is logged and does not discard the result.
        """
        if use_shell is None:
            use_shell = self.config.default_use_shell

        with RunContext() as run_id:
            command = self.registry.get(command_id)
            resolved = resolve_command(command, parameters)

            self._logger.info(
                f"Executing {command.name} ({command_id}) run={run_id} shell={use_shell}",
                extra={"command_id": command_id},
            )

            result = self.executor.execute(ExecutionRequest(
                command=resolved.command,
                args=resolved.args,
                working_directory=command.working_directory,
                environment=command.effective_environment(),
                use_shell=use_shell,
                mise_enabled=command.mise_enabled,
            ))

            try:
                self.usage.on_executed(command_id)
            except (NotFoundError, StorageError) as e:
                # The process already ran; its result still goes back
                self._logger.warning(
                    f"Could not record use of {command_id}: {e.message}",
                    extra={"command_id": command_id},
                )
            return result
