"""
Configuration management for Drift.

This module handles loading, validation, and access to configuration settings
from config files and environment variables. Repositories and services take
explicit settings at construction; this configuration only supplies defaults
to the factories and the CLI.
"""
import os
import json
from typing import Dict, Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from drift.constants import (
    DEFAULT_AUTO_SAVE_DELAY_MS,
    DEFAULT_PATTERN_TTL_MS,
    DEFAULT_QUERY_TTL_MS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_STATUS_CACHE_TTL_MS,
    DEFAULT_EXAMPLE_CONTEXT_LINES,
    DEFAULT_MAX_EXAMPLES,
    DEFAULT_MAX_RELATED_PATTERNS,
    DEFAULT_PAGE_SIZE,
)
from drift.utils.errors import ConfigurationError
from drift.utils.logging import logger

# Default configuration file paths
DEFAULT_CONFIG_PATHS = [
    "./drift.yaml",
    "./drift.yml",
    "./drift.json",
    "~/.config/drift/config.yaml",
]

ENV_PREFIX = "DRIFT_"

# Global configuration instance
_config = None


class StorageConfig(BaseModel):
    """Pattern storage settings."""

    root_dir: str = Field(".", description="Project root containing the .drift directory")
    format: str = Field("auto", description="Storage format (auto, unified, legacy, memory)")
    auto_migrate: bool = Field(True, description="Migrate legacy files on initialize")
    keep_legacy_files: bool = Field(False, description="Keep legacy files after migration")
    auto_save: bool = Field(False, description="Persist automatically after mutations")
    auto_save_delay_ms: int = Field(DEFAULT_AUTO_SAVE_DELAY_MS, description="Auto-save debounce delay")
    use_format_marker: bool = Field(True, description="Write and honour the format marker file")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        """Validate storage format."""
        allowed = ["auto", "unified", "legacy", "memory"]
        if v.lower() not in allowed:
            raise ValueError(f"Storage format must be one of {allowed}")
        return v.lower()


class CacheConfig(BaseModel):
    """Repository cache settings."""

    enabled: bool = Field(True, description="Wrap repositories in the caching decorator")
    pattern_ttl_ms: int = Field(DEFAULT_PATTERN_TTL_MS, description="TTL for per-id lookups")
    query_ttl_ms: int = Field(DEFAULT_QUERY_TTL_MS, description="TTL for query results")
    max_entries: int = Field(DEFAULT_CACHE_MAX_ENTRIES, description="Maximum entries per cache")


class ServiceConfig(BaseModel):
    """Pattern service settings."""

    status_cache_ttl_ms: int = Field(DEFAULT_STATUS_CACHE_TTL_MS, description="TTL for aggregate status")
    example_context_lines: int = Field(DEFAULT_EXAMPLE_CONTEXT_LINES, description="Context lines around examples")
    max_examples: int = Field(DEFAULT_MAX_EXAMPLES, description="Maximum code examples per pattern")
    max_related_patterns: int = Field(DEFAULT_MAX_RELATED_PATTERNS, description="Maximum related patterns")
    default_page_size: int = Field(DEFAULT_PAGE_SIZE, description="Default listing page size")


class DriftConfig(BaseModel):
    """Main Drift configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    log_level: str = Field("info", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["debug", "info", "warning", "error", "critical"]
        if v.lower() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.lower()


def expand_path(path: str) -> str:
    """Expand user and variables in path."""
    return os.path.expandvars(os.path.expanduser(path))


def find_config_file() -> Optional[str]:
    """Find the first available configuration file from default paths.

    Returns:
        Path to config file or None if not found
    """
    for path in DEFAULT_CONFIG_PATHS:
        expanded_path = expand_path(path)
        if os.path.isfile(expanded_path):
            return expanded_path
    return None


def load_config_from_file(path: str) -> Dict[str, Any]:
    """Load configuration from a YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If file does not exist
        ConfigurationError: If file format is invalid
    """
    path = expand_path(path)

    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.debug(f"Loading configuration from {path}", component="config", operation="load_config")

    with open(path, "r") as f:
        if path.endswith((".yaml", ".yml")):
            try:
                return yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration file: {e}", {"path": path})
        elif path.endswith(".json"):
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in configuration file: {e}", {"path": path})
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {path}", {"path": path})


def load_config_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Load configuration from environment variables.

    Environment variables are prefixed with DRIFT_ and nested keys are
    separated by a double underscore, e.g. DRIFT_CACHE__QUERY_TTL_MS=500.

    Returns:
        Configuration dictionary
    """
    config: Dict[str, Any] = {}
    environ = os.environ if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        key_parts = key[len(ENV_PREFIX):].lower().split("__")

        if value.lower() == "true":
            value = True
        elif value.lower() == "false":
            value = False
        elif value.isdigit():
            value = int(value)
        elif value.replace(".", "", 1).isdigit() and value.count(".") == 1:
            value = float(value)

        current = config
        for part in key_parts[:-1]:
            current = current.setdefault(part, {})
        current[key_parts[-1]] = value

    return config


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_file: Optional[str] = None,
    env_override: bool = True,
    defaults: Optional[Dict[str, Any]] = None,
) -> DriftConfig:
    """Load and initialize the configuration.

    Args:
        config_file: Optional path to configuration file
        env_override: Whether environment variables override file config
        defaults: Optional default values

    Returns:
        Validated DriftConfig instance

    Raises:
        FileNotFoundError: If the specified config file is not found
        ConfigurationError: If configuration validation fails
    """
    global _config

    config_data = defaults or {}

    if config_file:
        config_data = merge_configs(config_data, load_config_from_file(config_file))
    else:
        default_file = find_config_file()
        if default_file:
            try:
                config_data = merge_configs(config_data, load_config_from_file(default_file))
            except (ConfigurationError, FileNotFoundError) as e:
                logger.warning(
                    f"Error loading default config file: {e}",
                    component="config",
                    operation="load_config",
                )

    if env_override:
        env_config = load_config_from_env()
        if env_config:
            config_data = merge_configs(config_data, env_config)

    try:
        _config = DriftConfig(**config_data)
    except ValidationError as e:
        logger.error("Failed to load configuration", component="config", operation="load_config", exception=e)
        raise ConfigurationError(f"Configuration validation failed: {e}")

    logger.set_level(_config.log_level)
    logger.debug("Configuration loaded", component="config", operation="load_config")
    return _config


def get_config() -> DriftConfig:
    """Get the current configuration, loading defaults on first use."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Forget the loaded configuration (next get_config() reloads)."""
    global _config
    _config = None


def save_config(path: str) -> None:
    """Save the current configuration to a YAML or JSON file."""
    config = get_config().model_dump()
    path = expand_path(path)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

    if path.endswith((".yaml", ".yml")):
        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False)
    elif path.endswith(".json"):
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
    else:
        raise ConfigurationError(f"Unsupported file format for saving configuration: {path}")

    logger.success(f"Configuration saved to {path}", component="config", operation="save_config")
