"""Configuration manager for loading and validating .retryflow.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml
from pydantic import ValidationError

from retryflow.domain.config import AppConfig, CommandConfig, RetryConfiguration

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".retryflow.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# Environment variable -> (retry field, parser)
ENV_OVERRIDES: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "RETRYFLOW_RETRIES": ("retries", int),
    "RETRYFLOW_DELAY": ("delay", float),
    "RETRYFLOW_BACKOFF": ("backoff", _parse_bool),
    "RETRYFLOW_JITTER": ("jitter", _parse_bool),
    "RETRYFLOW_MAX_DELAY": ("max_delay", float),
    "RETRYFLOW_TIMEOUT": ("timeout", float),
}


class ConfigManager:
    """Manages configuration from .retryflow.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .retryflow.yml file (searched from current directory)
    3. Environment variables (RETRYFLOW_*)
    4. CLI arguments (handled by CLI layer)
    """

    DEFAULT_CONFIG = {
        "retry": {
            "retries": 3,
            "delay": 1000,
            "backoff": False,
            "jitter": False,
            "max_delay": None,
            "timeout": None,
        },
        "command": {
            "retry_exit_codes": None,
            "kill_grace_period": 5.0,
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .retryflow.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .retryflow.yml file starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILENAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILENAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Returns:
            Validated AppConfig instance

        Raises:
            ValidationError: If configuration is invalid
            ConfigurationError: If the file cannot be parsed
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"{self.config_path} must contain a mapping")
            if isinstance(file_config.get("retry"), dict):
                file_config["retry"] = self._normalize_retry_keys(file_config["retry"])
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)

        return AppConfig(**config_dict)

    def _normalize_retry_keys(self, section: Dict[str, Any]) -> Dict[str, Any]:
        """Rename camelCase retry keys (maxDelay) to field names (max_delay)"""
        aliases = {field.alias: name for name, field in RetryConfiguration.model_fields.items()}
        return {aliases.get(key, key): value for key, value in section.items()}

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries

        Args:
            base: Base configuration
            override: Override configuration

        Returns:
            Merged configuration
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides

        Args:
            config: Configuration dictionary

        Returns:
            Configuration with env overrides applied

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        retry_section = config.setdefault("retry", {})
        for env_name, (field, parse) in ENV_OVERRIDES.items():
            raw_value = os.getenv(env_name)
            if not raw_value:
                continue
            try:
                retry_section[field] = parse(raw_value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_name}: {e}") from e
            logger.debug(f"Applied {env_name}={raw_value}")
        return config

    def get_retry_config(self) -> RetryConfiguration:
        """Get retry configuration

        Returns:
            Retry configuration model
        """
        return self.config.retry

    def get_command_config(self) -> CommandConfig:
        """Get command runner configuration

        Returns:
            Command configuration model
        """
        return self.config.command

    def as_dict(self) -> Dict[str, Any]:
        """Get the configuration as plain data (hooks excluded)

        Returns:
            Configuration dictionary
        """
        return self.config.model_dump(exclude={"retry": {"on_retry", "should_retry"}})
