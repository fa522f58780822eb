"""
Argus Centralized Logging
-------------------------
Structured logging with run_id propagation so every line written while
a command executes can be traced back to that execution.

Design:
- Every execution gets a unique run_id
- run_id propagates through: Service -> Resolver -> Executor -> Registry
- Console output via Rich, file output as JSON lines
- Clear severity discipline: INFO=state, WARNING=recoverable, ERROR=abort

Usage:
    from infra.logging import get_logger, RunContext

    logger = get_logger("core.service")

    with RunContext() as run_id:
        logger.info("Executing command")
"""

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "argus"

# Context variable for run_id - thread-safe and async-safe
_run_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "run_id", default=None
)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    return f"run_{uuid.uuid4().hex[:12]}"


def get_run_id() -> Optional[str]:
    """Get the current run ID from context."""
    return _run_id_var.get()


class RunContext:
    """
    Context manager for execution scoping.

    Usage:
        with RunContext() as run_id:
            # All logs within this block carry run_id
            logger.info("Launching...")
    """

    def __init__(self, run_id: Optional[str] = None):
        self._run_id = run_id or generate_run_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _run_id_var.set(self._run_id)
        return self._run_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _run_id_var.reset(self._token)


class RunIdFilter(logging.Filter):
    """Logging filter that adds run_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = get_run_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_KEYS = ("command_id", "execution_time_ms", "success", "details")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


_logging_initialized = False


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = True,
    force: bool = False,
) -> None:
    """
    Configure the Argus logging system.

    Args:
        level: Console log level name (default INFO)
        log_dir: Directory for log files (default: ./logs)
        console: Enable Rich console output
        file: Enable JSON file output
        force: Reconfigure even if already configured
    """
    global _logging_initialized

    if _logging_initialized and not force:
        return

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if file else numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    run_filter = RunIdFilter()

    if console:
        console_handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        console_handler.setLevel(numeric_level)
        console_handler.addFilter(run_filter)
        root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            str(log_path / "argus.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets everything
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(run_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the Argus namespace.

    Args:
        name: Logger name (prefixed with 'argus.' if not already)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
