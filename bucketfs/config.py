"""
bucketfs - Configuration Management

Handles settings from environment variables and YAML files, and builds the
backend and dispatcher they describe.
"""

import importlib
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

import yaml

from bucketfs.client.backend import Backend, DEFAULT_MAX_CHUNK_SIZE
from bucketfs.client.exceptions import ConfigurationError
from bucketfs.client.memory import MemoryBackend
from bucketfs.client.retry import RetryingBackend
from bucketfs.fs.buffer import DEFAULT_SPOOL_MAX_SIZE
from bucketfs.fs.dispatcher import DEFAULT_CONTAINER_POLICY, DEFAULT_REQUEST_TIMEOUT, Dispatcher

ENV_PREFIX = "BUCKETFS_"

MEMORY_BACKEND = "memory"

# YAML section -> {key in section: Settings field}
_SECTIONS = {
    "connection": {
        "request_timeout": "request_timeout",
        "connect_timeout": "connect_timeout",
    },
    "container": {
        "policy": "container_policy",
    },
    "backend": {
        "type": "backend",
        "owner_id": "owner_id",
        "max_chunk_size": "max_chunk_size",
        "options": "backend_options",
    },
    "retry": {
        "max_attempts": "retry_max_attempts",
        "initial_backoff": "retry_initial_backoff",
        "max_backoff": "retry_max_backoff",
    },
    "staging": {
        "spool_max_size": "spool_max_size",
    },
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off", "")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid boolean value: {value!r}")


@dataclass
class Settings:
    """Adapter, backend and logging settings."""

    # Gateway behaviour
    read_only: bool = False
    debug_stderr: bool = False
    debug_level: str = "ERROR"

    # Connection
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    connect_timeout: float = 30.0

    # New buckets
    container_policy: str = DEFAULT_CONTAINER_POLICY

    # Backend
    backend: str = MEMORY_BACKEND  # "memory" or "package.module:factory"
    owner_id: str = "bucketfs"
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    backend_options: Dict[str, Any] = field(default_factory=dict)

    # Retry policy for backend calls
    retry_max_attempts: int = 5
    retry_initial_backoff: float = 0.1
    retry_max_backoff: float = 5.0

    # Write staging
    spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE

    @classmethod
    def _coerce(cls, name: str, value: Any) -> Any:
        default = getattr(cls, name, None) if name != "backend_options" else {}
        if isinstance(default, bool):
            return _parse_bool(value)
        try:
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid value for {name}: {value!r}") from None
        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise ConfigurationError(f"{name} must be a mapping")
            return dict(value)
        return str(value)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load configuration from environment variables.

        Every scalar field is read from BUCKETFS_<FIELD>, e.g.
        BUCKETFS_READ_ONLY, BUCKETFS_CONTAINER_POLICY, BUCKETFS_REQUEST_TIMEOUT.
        """
        values = {}
        for f in fields(cls):
            if f.name == "backend_options":
                continue
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None:
                values[f.name] = cls._coerce(f.name, raw)
        return cls(**values)

    @classmethod
    def file_values(cls, path: str) -> Dict[str, Any]:
        """
        Read the settings explicitly present in a YAML file.

        ${VAR} references are expanded from the environment before parsing.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file is not a mapping or has unknown keys
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            expanded = os.path.expandvars(f.read())
        try:
            data = yaml.safe_load(expanded) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key in _SECTIONS:
                if not isinstance(value, dict):
                    raise ConfigurationError(f"Section {key} must be a mapping")
                for sub_key, sub_value in value.items():
                    name = _SECTIONS[key].get(sub_key)
                    if name is None:
                        raise ConfigurationError(f"Unknown setting {key}.{sub_key}")
                    values[name] = cls._coerce(name, sub_value)
            elif key in known:
                values[key] = cls._coerce(key, value)
            else:
                raise ConfigurationError(f"Unknown setting {key}")
        return values

    @classmethod
    def from_file(cls, path: str) -> "Settings":
        """Load configuration from a YAML file on top of the defaults."""
        return cls(**cls.file_values(path))

    @classmethod
    def load(cls, config_file: Optional[str] = None) -> "Settings":
        """
        Load configuration with priority: file > env > defaults.
        """
        config = cls.from_env()
        if config_file:
            config = replace(config, **cls.file_values(config_file))
        return config

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")
        if self.max_chunk_size <= 0:
            raise ConfigurationError("max_chunk_size must be positive")
        if self.spool_max_size < 0:
            raise ConfigurationError("spool_max_size must not be negative")
        if self.retry_max_attempts < 1:
            raise ConfigurationError("retry_max_attempts must be at least 1")
        if not self.container_policy:
            raise ConfigurationError("container_policy is required")
        if self.backend != MEMORY_BACKEND and ":" not in self.backend:
            raise ConfigurationError(f"backend must be '{MEMORY_BACKEND}' or 'module:factory', got {self.backend!r}")
        if not isinstance(logging.getLevelName(self.debug_level.upper()), int):
            raise ConfigurationError(f"Unknown debug level: {self.debug_level}")


def _load_factory(target: str):
    module_name, _, attr = target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import backend module {module_name}: {e}") from e
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigurationError(f"Backend factory {target} is not callable")
    return factory


def build_backend(settings: Settings, logger: logging.Logger) -> Backend:
    """
    Create the configured backend.

    The memory backend is built directly; any other backend is created by
    calling its `module:factory` with backend_options, connect_timeout and
    a logger. Backends are wrapped in RetryingBackend unless retries are off.
    """
    if settings.backend == MEMORY_BACKEND:
        backend = MemoryBackend(owner_id=settings.owner_id, max_chunk_size=settings.max_chunk_size,
                                logger=logger.getChild("memory"))
    else:
        factory = _load_factory(settings.backend)
        try:
            backend = factory(connect_timeout=settings.connect_timeout, logger=logger.getChild("backend"),
                              **settings.backend_options)
        except TypeError as e:
            raise ConfigurationError(f"Invalid options for backend {settings.backend}: {e}") from e
        if not isinstance(backend, Backend):
            raise ConfigurationError(f"Backend factory {settings.backend} returned {type(backend).__name__}")
        logger.info(f"Using backend {settings.backend}")

    if settings.retry_max_attempts > 1:
        backend = RetryingBackend(
            backend,
            logger=logger.getChild("retry"),
            max_attempts=settings.retry_max_attempts,
            initial_backoff=settings.retry_initial_backoff,
            max_backoff=settings.retry_max_backoff,
        )
    return backend


def build_dispatcher(settings: Settings, backend: Backend, logger: logging.Logger) -> Dispatcher:
    return Dispatcher(
        backend,
        read_only=settings.read_only,
        container_policy=settings.container_policy,
        request_timeout=settings.request_timeout,
        spool_max_size=settings.spool_max_size,
        logger=logger.getChild("dispatcher"),
    )
