"""
Configuration management for the health checker.
"""

import os
import json
import threading
from typing import Dict, Any, Optional, Callable
from dataclasses import dataclass, field, asdict
from pathlib import Path

from jsonschema import validate, ValidationError as SchemaValidationError

from ollama_checker.utils.errors import ConfigurationError
from ollama_checker.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class ProbeConfig:
    """Per-endpoint probe settings."""
    request_timeout: float = 5.0
    max_retries: int = 3
    retry_backoff: float = 0.5
    user_agent: str = "Ollama-Checker/2.2"
    require_digest: bool = False
    body_preview_bytes: int = 1024


@dataclass
class PoolSettings:
    """Worker pool sizing settings."""
    strategy: str = "dynamic"  # "dynamic" or "fixed"
    min_workers: int = 3
    max_workers: int = 20
    fixed_workers: int = 10
    queue_poll_interval: float = 0.2
    shutdown_grace: float = 30.0


@dataclass
class RunConfig:
    """Run-wide settings."""
    deadline_seconds: Optional[float] = None
    show_progress: bool = True


@dataclass
class OutputConfig:
    """Export settings."""
    csv_path: str = "healthy_endpoints.csv"


@dataclass
class CheckerConfig:
    """Main checker configuration."""
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    pool: PoolSettings = field(default_factory=PoolSettings)
    run: RunConfig = field(default_factory=RunConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_retention_days: int = 7


# Configuration schema for validation
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "probe": {
            "type": "object",
            "properties": {
                "request_timeout": {"type": "number", "exclusiveMinimum": 0, "maximum": 300},
                "max_retries": {"type": "integer", "minimum": 0, "maximum": 10},
                "retry_backoff": {"type": "number", "minimum": 0, "maximum": 60},
                "user_agent": {"type": "string", "minLength": 1},
                "require_digest": {"type": "boolean"},
                "body_preview_bytes": {"type": "integer", "minimum": 0, "maximum": 65536}
            },
            "additionalProperties": False
        },
        "pool": {
            "type": "object",
            "properties": {
                "strategy": {"type": "string", "enum": ["dynamic", "fixed"]},
                "min_workers": {"type": "integer", "minimum": 1, "maximum": 200},
                "max_workers": {"type": "integer", "minimum": 1, "maximum": 200},
                "fixed_workers": {"type": "integer", "minimum": 1, "maximum": 200},
                "queue_poll_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 10},
                "shutdown_grace": {"type": "number", "minimum": 0, "maximum": 600}
            },
            "additionalProperties": False
        },
        "run": {
            "type": "object",
            "properties": {
                "deadline_seconds": {"type": ["number", "null"], "exclusiveMinimum": 0},
                "show_progress": {"type": "boolean"}
            },
            "additionalProperties": False
        },
        "output": {
            "type": "object",
            "properties": {
                "csv_path": {"type": "string", "minLength": 1}
            },
            "additionalProperties": False
        },
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        },
        "log_dir": {"type": "string", "minLength": 1},
        "log_retention_days": {"type": "integer", "minimum": 1, "maximum": 3650}
    },
    "additionalProperties": False
}


# Environment variable -> (section, key, converter)
ENV_OVERRIDES: Dict[str, tuple] = {
    "CHECKER_REQUEST_TIMEOUT": ("probe", "request_timeout", float),
    "CHECKER_MAX_RETRIES": ("probe", "max_retries", int),
    "CHECKER_RETRY_BACKOFF": ("probe", "retry_backoff", float),
    "CHECKER_MAX_WORKERS": ("pool", "max_workers", int),
    "CHECKER_DEADLINE": ("run", "deadline_seconds", float),
    "CHECKER_LOG_LEVEL": (None, "log_level", str.upper),
}


class ConfigManager:
    """Configuration manager with schema validation and environment overrides."""

    def __init__(self, config_path: str = "checker.json", env_file: str = ".env"):
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self._config: Optional[CheckerConfig] = None
        self._lock = threading.RLock()

    def validate_config(self, config_data: Dict[str, Any]) -> None:
        """Validate configuration data against schema."""
        try:
            validate(instance=config_data, schema=CONFIG_SCHEMA)
        except SchemaValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e.message}",
                                     {"path": list(e.absolute_path)})

        pool = config_data.get("pool", {})
        min_workers = pool.get("min_workers", PoolSettings.min_workers)
        max_workers = pool.get("max_workers", PoolSettings.max_workers)
        if min_workers > max_workers:
            raise ConfigurationError("Configuration validation failed: pool.min_workers exceeds pool.max_workers")

    def load_config(self) -> CheckerConfig:
        """Load configuration from file (if present) and environment variables."""
        with self._lock:
            if self._config is None:
                if self.config_path.exists():
                    self._config = self._load_from_file()
                else:
                    self._config = CheckerConfig()

                self._override_with_env_vars(self._config)

            return self._config

    def _load_from_file(self) -> CheckerConfig:
        """Load configuration from JSON file with validation."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}, using defaults")
            return CheckerConfig()

        self.validate_config(config_data)
        config = self._dict_to_config(config_data)
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def _load_env_file(self) -> None:
        """Load KEY=VALUE pairs from the env file without overriding the real environment."""
        if not self.env_file.exists():
            return

        try:
            with open(self.env_file, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        os.environ.setdefault(key.strip(), value.strip())
            logger.info(f"Loaded environment variables from {self.env_file}")
        except OSError as e:
            logger.warning(f"Failed to load {self.env_file}: {e}")

    def _override_with_env_vars(self, config: CheckerConfig) -> None:
        """Override configuration with environment variables."""
        self._load_env_file()

        for env_name, (section, key, convert) in ENV_OVERRIDES.items():
            raw_value = os.getenv(env_name)
            if raw_value is None or raw_value == "":
                continue

            try:
                value = convert(raw_value)
            except ValueError:
                raise ConfigurationError(f"Invalid value for {env_name}: {raw_value!r}")

            target = getattr(config, section) if section else config
            setattr(target, key, value)
            logger.debug(f"Configuration override from {env_name}: {key}={value!r}")

        overridden = self.export_config(config)
        self.validate_config(overridden)

    def _dict_to_config(self, data: Dict[str, Any]) -> CheckerConfig:
        """Convert dictionary to CheckerConfig object."""
        config = CheckerConfig()

        if "probe" in data:
            config.probe = ProbeConfig(**data["probe"])

        if "pool" in data:
            config.pool = PoolSettings(**data["pool"])

        if "run" in data:
            config.run = RunConfig(**data["run"])

        if "output" in data:
            config.output = OutputConfig(**data["output"])

        config.log_level = data.get("log_level", config.log_level)
        config.log_dir = data.get("log_dir", config.log_dir)
        config.log_retention_days = data.get("log_retention_days", config.log_retention_days)

        return config

    def export_config(self, config: Optional[CheckerConfig] = None) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        with self._lock:
            config = config or self._config
            if not config:
                return {}
            return asdict(config)

    def update(self, mutate: Callable[[CheckerConfig], None]) -> CheckerConfig:
        """Apply an in-place change (e.g. CLI flags) and re-validate the result."""
        with self._lock:
            config = self.load_config()
            mutate(config)
            self.validate_config(self.export_config(config))
            return config


def load_config(config_path: Optional[str] = None) -> CheckerConfig:
    """Load configuration from ``config_path`` (default ``checker.json``)."""
    manager = ConfigManager(config_path) if config_path else ConfigManager()
    return manager.load_config()
