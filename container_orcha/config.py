"""
Configuration for the Container Orchestration System.

Settings are resolved in three layers: built-in defaults, an optional YAML
file, then CONTAINER_ORCHA_* environment variables.
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

from container_orcha.core.errors import ConfigurationError
from container_orcha.models.enums import RuntimeBackend


ENV_PREFIX = "CONTAINER_ORCHA"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class Settings:
    """Runtime settings for the orchestrator and its API server."""
    state_dir: str = "./container_states"
    state_file: str = "orchestrator-state.json"
    runtime: str = RuntimeBackend.PODMAN.value
    runtime_binary: Optional[str] = None
    command_timeout: float = 60
    reconcile_interval: float = 10
    logs_tail: int = 100
    host: str = "0.0.0.0"
    port: int = 8080
    docker_base_url: Optional[str] = None
    log_level: str = "INFO"

    @property
    def state_path(self) -> str:
        return os.path.join(self.state_dir, self.state_file)


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _number(convert):
    def checked(value: Any):
        if isinstance(value, bool):
            raise TypeError("expected a number, got bool")
        return convert(value)
    return checked


# Field -> converter applied to file and environment values
_CONVERTERS = {
    "state_dir": _text,
    "state_file": _text,
    "runtime": _text,
    "runtime_binary": _text,
    "command_timeout": _number(float),
    "reconcile_interval": _number(float),
    "logs_tail": _number(int),
    "host": _text,
    "port": _number(int),
    "docker_base_url": _text,
    "log_level": _text,
}

# Fields that may be left unset
_OPTIONAL_FIELDS = ("runtime_binary", "docker_base_url")

# Environment variable suffix -> field
_ENV_OVERRIDES = {
    "STATE_DIR": "state_dir",
    "RUNTIME": "runtime",
    "RUNTIME_BINARY": "runtime_binary",
    "COMMAND_TIMEOUT": "command_timeout",
    "RECONCILE_INTERVAL": "reconcile_interval",
    "LOGS_TAIL": "logs_tail",
    "HOST": "host",
    "PORT": "port",
    "DOCKER_BASE_URL": "docker_base_url",
    "LOG_LEVEL": "log_level",
}


def _convert(field_name: str, value: Any, source: str) -> Any:
    if value is None and field_name in _OPTIONAL_FIELDS:
        return None
    try:
        return _CONVERTERS[field_name](value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {source}: {value!r}")


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _validate(settings: Settings) -> Settings:
    try:
        RuntimeBackend(settings.runtime)
    except ValueError:
        choices = ", ".join(b.value for b in RuntimeBackend)
        raise ConfigurationError(f"Unknown runtime '{settings.runtime}' (expected one of: {choices})")

    if settings.command_timeout is not None and settings.command_timeout <= 0:
        raise ConfigurationError("command_timeout must be positive")
    if settings.reconcile_interval <= 0:
        raise ConfigurationError("reconcile_interval must be positive")
    if settings.logs_tail <= 0:
        raise ConfigurationError("logs_tail must be positive")
    if logging.getLevelName(settings.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
        raise ConfigurationError(f"Unknown log level '{settings.log_level}'")
    return settings


def load_settings(config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Load settings from defaults, a YAML file and the environment.

    Args:
        config_path: YAML file to read; falls back to CONTAINER_ORCHA_CONFIG
        environ: Environment mapping, os.environ when omitted

    Returns:
        Settings: The resolved settings
    """
    if environ is None:
        environ = dict(os.environ)

    settings = Settings()
    known = {f.name for f in fields(Settings)}

    config_path = config_path or environ.get(f"{ENV_PREFIX}_CONFIG")
    if config_path:
        file_values = _read_config_file(config_path)
        unknown = sorted(set(file_values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")
        settings = replace(settings, **{
            key: _convert(key, value, f"{key} in {config_path}") for key, value in file_values.items()
        })

    overrides = {}
    for suffix, field_name in _ENV_OVERRIDES.items():
        raw = environ.get(f"{ENV_PREFIX}_{suffix}")
        if raw is None or raw.strip() == "":
            continue
        overrides[field_name] = _convert(field_name, raw.strip(), f"{ENV_PREFIX}_{suffix}")
    settings = replace(settings, **overrides)

    return _validate(settings)


def configure_logging(level: str = "INFO"):
    """Configure root logging for the entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
