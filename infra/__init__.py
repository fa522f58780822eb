# Infrastructure module - Logging, configuration, REST service bus
# service_bus/server are imported directly: they depend on core.service

from .logging import (
    get_logger, configure_logging, RunContext,
    get_run_id, generate_run_id
)
from .config import (
    ConfigManager, ArgusConfig, load_config,
    default_data_dir, default_storage_path
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "RunContext",
    "get_run_id",
    "generate_run_id",
    # Config
    "ConfigManager",
    "ArgusConfig",
    "load_config",
    "default_data_dir",
    "default_storage_path",
]
