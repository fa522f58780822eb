"""
FastAPI Service Bus
-------------------
Local REST API exposing the command service to a presentation layer.

This is NOT an external-facing API - bind it to localhost only.
Handlers are plain `def` so FastAPI runs them in its threadpool and a
long-running execution does not block listing or editing.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from commands.model import (
    Command,
    CommandParameter,
    CreateCommandRequest,
    EnvironmentVariable,
    UpdateCommandRequest,
)
from core.errors import ArgusError, ErrorCategory, ErrorHandler, SpawnError
from core.service import CommandService
from infra.logging import get_logger

API_VERSION = "0.1.0"

# Sentinel exit code for processes that never started
SPAWN_FAILURE_EXIT_CODE = -1


# Request/Response Models

class EnvironmentVariableModel(BaseModel):
    key: str
    value: str


class CommandParameterModel(BaseModel):
    name: str
    placeholder: str = ""
    parameter_type: str = "text"
    required: bool = False
    default_value: Optional[str] = None
    options: Optional[List[str]] = None


class CommandModel(BaseModel):
    """A stored command as seen by the presentation layer."""
    id: str
    name: str
    command: str
    args: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: List[EnvironmentVariableModel] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
    last_used_at: Optional[str] = None
    use_count: int = 0
    parameters: List[CommandParameterModel] = Field(default_factory=list)
    mise_enabled: bool = False


class CreateCommandBody(BaseModel):
    name: str
    command: str
    args: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: List[EnvironmentVariableModel] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    parameters: List[CommandParameterModel] = Field(default_factory=list)
    mise_enabled: bool = False


class UpdateCommandBody(BaseModel):
    name: Optional[str] = None
    command: Optional[str] = None
    args: Optional[List[str]] = None
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: Optional[List[EnvironmentVariableModel]] = None
    tags: Optional[List[str]] = None
    parameters: Optional[List[CommandParameterModel]] = None
    mise_enabled: Optional[bool] = None


class ExecuteBody(BaseModel):
    use_shell: Optional[bool] = None
    parameters: Dict[str, str] = Field(default_factory=dict)


class ExecutionResultModel(BaseModel):
    stdout: str
    stderr: str
    exit_code: int
    success: bool
    execution_time_ms: float = 0.0


class HealthResponse(BaseModel):
    status: str
    version: str = API_VERSION
    commands_loaded: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# Conversions

def command_to_model(command: Command) -> CommandModel:
    return CommandModel(**command.to_dict())


def _env_from_models(models: List[EnvironmentVariableModel]) -> List[EnvironmentVariable]:
    return [EnvironmentVariable(key=m.key, value=m.value) for m in models]


def _params_from_models(models: List[CommandParameterModel]) -> List[CommandParameter]:
    return [CommandParameter.from_dict(m.model_dump()) for m in models]


def create_request_from_body(body: CreateCommandBody) -> CreateCommandRequest:
    return CreateCommandRequest(
        name=body.name,
        command=body.command,
        args=list(body.args),
        description=body.description,
        working_directory=body.working_directory,
        environment_variables=_env_from_models(body.environment_variables),
        tags=list(body.tags),
        parameters=_params_from_models(body.parameters),
        mise_enabled=body.mise_enabled,
    )


def update_request_from_body(body: UpdateCommandBody) -> UpdateCommandRequest:
    return UpdateCommandRequest(
        name=body.name,
        command=body.command,
        args=body.args,
        description=body.description,
        working_directory=body.working_directory,
        environment_variables=(
            _env_from_models(body.environment_variables)
            if body.environment_variables is not None else None
        ),
        tags=body.tags,
        parameters=(
            _params_from_models(body.parameters)
            if body.parameters is not None else None
        ),
        mise_enabled=body.mise_enabled,
    )


STATUS_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.PARAMETER: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.SPAWN: 400,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.CORRUPT_DATA: 500,
}


# Service Bus

class ServiceBus:
    """
    REST surface over a CommandService.

    Provides endpoints for:
    - Listing, searching and editing commands
    - Executing commands with parameter values
    """

    def __init__(self, service: CommandService):
        self._service = service
        self._errors = ErrorHandler()
        self._logger = get_logger("infra.service_bus")

    def create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self._logger.info("Service bus starting...")
            yield
            self._logger.info("Service bus shutting down...")

        app = FastAPI(
            title="Command Argus API",
            description="Saved command registry and executor",
            version=API_VERSION,
            lifespan=lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost", "http://127.0.0.1"],
            allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.exception_handler(ArgusError)
        async def handle_argus_error(request: Request, exc: ArgusError):
            message = self._errors.handle(exc)
            body = {
                "error": type(exc).__name__,
                "category": exc.category.name,
                "message": message,
                "details": exc.details,
            }
            if isinstance(exc, SpawnError):
                # The caller still gets a displayable result
                body["result"] = ExecutionResultModel(
                    stdout="",
                    stderr=exc.message,
                    exit_code=SPAWN_FAILURE_EXIT_CODE,
                    success=False,
                ).model_dump()
            return JSONResponse(
                status_code=STATUS_CODES.get(exc.category, 500),
                content=body,
            )

        self._register_routes(app)

        return app

    def _register_routes(self, app: FastAPI) -> None:
        """Register all API routes."""

        @app.get("/health", response_model=HealthResponse, tags=["System"])
        def health_check():
            service = self._service
            return HealthResponse(
                status="healthy",
                commands_loaded=len(service.registry),
            )

        @app.get("/commands", response_model=List[CommandModel], tags=["Commands"])
        def list_commands(q: Optional[str] = None):
            """List all commands, or those whose name contains q."""
            service = self._service
            if q:
                commands = service.search_commands_by_name(q)
            else:
                commands = service.list_commands()
            return [command_to_model(cmd) for cmd in commands]

        @app.get("/commands/search/tags", response_model=List[CommandModel], tags=["Commands"])
        def search_by_tags(tag: List[str] = Query(default=[])):
            service = self._service
            return [command_to_model(cmd) for cmd in service.search_commands_by_tags(tag)]

        @app.get("/commands/{command_id}", response_model=CommandModel, tags=["Commands"])
        def get_command(command_id: str):
            service = self._service
            return command_to_model(service.get_command(command_id))

        @app.get(
            "/commands/{command_id}/parameters",
            response_model=List[CommandParameterModel],
            tags=["Commands"],
        )
        def required_parameters(command_id: str):
            """Parameters that must be prompted for before execution."""
            service = self._service
            return [
                CommandParameterModel(**param.to_dict())
                for param in service.required_parameters(command_id)
            ]

        @app.post("/commands", response_model=CommandModel, status_code=201, tags=["Commands"])
        def create_command(body: CreateCommandBody):
            service = self._service
            return command_to_model(service.create_command(create_request_from_body(body)))

        @app.patch("/commands/{command_id}", response_model=CommandModel, tags=["Commands"])
        def update_command(command_id: str, body: UpdateCommandBody):
            service = self._service
            return command_to_model(
                service.update_command(command_id, update_request_from_body(body))
            )

        @app.delete("/commands/{command_id}", status_code=204, tags=["Commands"])
        def delete_command(command_id: str):
            service = self._service
            service.delete_command(command_id)
            return Response(status_code=204)

        @app.post(
            "/commands/{command_id}/execute",
            response_model=ExecutionResultModel,
            tags=["Execution"],
        )
        def execute_command(command_id: str, body: Optional[ExecuteBody] = None):
            """Resolve parameters, run the command and record the use."""
            service = self._service
            body = body or ExecuteBody()
            result = service.execute_command(
                command_id,
                use_shell=body.use_shell,
                parameters=body.parameters,
            )
            return ExecutionResultModel(**result.to_dict())


def create_app(service: CommandService) -> FastAPI:
    """Create the FastAPI application."""
    bus = ServiceBus(service)
    return bus.create_app()
