"""
Configuration
-------------
YAML configuration with environment variable overrides, plus the
per-user location of the registry file.

Environment variables win over the file:
    ARGUS_STORAGE_PATH      -> storage.path
    ARGUS_LOGGING_LEVEL     -> logging.level
    ARGUS_EXECUTION_MISE    -> execution.mise
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import logging
import os
import platform

import yaml

APP_QUALIFIER = "com"
APP_ORGANIZATION = "command-argus"
APP_NAME = "command-argus"
STORAGE_FILENAME = "commands.json"
ENV_PREFIX = "ARGUS"


def default_data_dir(
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Platform-appropriate per-user application data directory."""
    system = system or platform.system()
    environ = os.environ if environ is None else environ
    home = home or Path.home()

    if system == "Darwin":
        return home / "Library" / "Application Support" / f"{APP_QUALIFIER}.{APP_ORGANIZATION}.{APP_NAME}"
    if system == "Windows":
        appdata = environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / APP_ORGANIZATION / APP_NAME / "data"

    xdg = environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else home / ".local" / "share"
    return base / APP_NAME


def default_storage_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Registry file path; ARGUS_STORAGE_PATH overrides the default."""
    environ = os.environ if environ is None else environ
    override = environ.get(f"{ENV_PREFIX}_STORAGE_PATH")
    if override:
        return Path(override).expanduser()
    return default_data_dir(environ=environ) / STORAGE_FILENAME


class ConfigManager:
    """
    Centralized configuration management.
    Loads configuration from YAML with environment variable overrides.
    """

    def __init__(
        self,
        config_path: str = "config.yaml",
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._environ = os.environ if environ is None else environ
        self._logger = logging.getLogger("argus.infra.config")

        self._load_config()

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path.exists():
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}
            self._logger.info(f"Loaded config from {self._config_path}")
        else:
            self._logger.debug(f"Config file not found: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Supports dot notation: 'section.key'
        Environment variables override file config.
        """
        env_key = f"{ENV_PREFIX}_{key.upper().replace('.', '_')}"
        env_value = self._environ.get(env_key)
        if env_value is not None:
            return env_value

        value: Any = self._config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ArgusConfig:
    """Typed view over the configuration."""
    storage_path: Path
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    default_use_shell: bool = False
    mise_executable: str = "mise"
    host: str = "127.0.0.1"
    port: int = 8765

    @classmethod
    def from_manager(cls, manager: ConfigManager) -> "ArgusConfig":
        storage = manager.get("storage.path")
        return cls(
            storage_path=(
                Path(storage).expanduser() if storage
                else default_data_dir(environ=manager.environ) / STORAGE_FILENAME
            ),
            log_level=str(manager.get("logging.level", "INFO")).upper(),
            log_dir=manager.get("logging.dir"),
            default_use_shell=_as_bool(manager.get("execution.use_shell", False)),
            mise_executable=str(manager.get("execution.mise", "mise")),
            host=str(manager.get("server.host", "127.0.0.1")),
            port=int(manager.get("server.port", 8765)),
        )


def load_config(
    config_path: str = "config.yaml",
    environ: Optional[Mapping[str, str]] = None,
) -> ArgusConfig:
    """Load the typed configuration."""
    return ArgusConfig.from_manager(ConfigManager(config_path, environ=environ))
