"""
Argus Test Configuration
------------------------
Shared fixtures and configuration for all tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from commands.model import CommandParameter, CreateCommandRequest, ParameterType
from commands.registry import CommandRegistry
from core.service import CommandService, ServiceConfig
from execution.executor import ProcessExecutor, ProcessOutput


# =============================================================================
# Test Isolation: Keep the real registry untouched
# =============================================================================

@pytest.fixture(autouse=True)
def isolate_user_data(tmp_path, monkeypatch):
    """
    Point every default path at the test's temp directory.

    No test may read or write the user's real commands.json.
    """
    monkeypatch.setenv("ARGUS_STORAGE_PATH", str(tmp_path / "default" / "commands.json"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


class FakeLauncher:
    """Records launches instead of spawning processes."""

    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"",
                 error: Optional[OSError] = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls: List[Dict] = []

    def __call__(self, argv, cwd, env) -> ProcessOutput:
        self.calls.append({"argv": list(argv), "cwd": cwd, "env": dict(env)})
        if self.error is not None:
            raise self.error
        return ProcessOutput(returncode=self.returncode, stdout=self.stdout, stderr=self.stderr)

    @property
    def last(self) -> Dict:
        return self.calls[-1]


@pytest.fixture
def storage_path(tmp_path) -> Path:
    return tmp_path / "data" / "commands.json"


@pytest.fixture
def registry(storage_path) -> CommandRegistry:
    return CommandRegistry(storage_path)


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def service(storage_path, fake_launcher) -> CommandService:
    """Service wired to a fake launcher on a POSIX-like host."""
    executor = ProcessExecutor(launcher=fake_launcher, system="Linux", base_environment={"PATH": "/usr/bin"})
    return CommandService(ServiceConfig(storage_path=storage_path), executor=executor)


@pytest.fixture
def deploy_request() -> CreateCommandRequest:
    """A command with one required parameter."""
    return CreateCommandRequest(
        name="Deploy",
        command="deploy",
        args=["deploy", "{target}"],
        tags=["ops"],
        parameters=[
            CommandParameter(
                name="target",
                placeholder="Target environment",
                parameter_type=ParameterType.TEXT,
                required=True,
            )
        ],
    )
