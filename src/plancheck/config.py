"""
Configuration system for plancheck.

Environment variables are the primary config source, with an optional
JSON or YAML file for local development.

Usage:
    from plancheck.config import get_config

    config = get_config()

    threshold = config.default_row_threshold

    if config.is_rule_enabled("ROW_COUNT"):
        ...

Environment variables:
    PLANCHECK_CONFIG_FILE=plancheck.yaml
    PLANCHECK_ROW_THRESHOLD=5000
    PLANCHECK_LOG_LEVEL=DEBUG
    PLANCHECK_RULE_EXPENSIVE_OPERATIONS_ENABLED=false
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plancheck.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLANCHECK_"
RULE_PREFIX = f"{ENV_PREFIX}RULE_"


class RuleSettings(BaseModel):
    """Configuration for a single rule."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether the rule may run")


class Config(BaseModel):
    """
    plancheck configuration.

    Loaded from environment variables and optional config file. Unknown
    keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_row_threshold: int = Field(
        default=1_000,
        ge=1,
        description="Row threshold used by ROW_COUNT when none is given",
    )

    rules: dict[str, RuleSettings] = Field(
        default_factory=dict,
        description="Per-rule settings keyed by rule id",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI",
    )

    @field_validator("rules", mode="before")
    @classmethod
    def _upper_rule_ids(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k).upper(): v for k, v in value.items()}
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if a rule is enabled (rules are enabled by default)."""
        settings = self.rules.get(rule_id.upper())
        if settings is None:
            return True
        return settings.enabled


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer from %r, using %d", value, default)
        return default


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Raises:
        ConfigurationError: If the resulting values do not validate
    """
    env = os.environ
    config_kwargs: dict[str, Any] = {
        "default_row_threshold": _parse_env_int(env.get(f"{ENV_PREFIX}ROW_THRESHOLD"), 1_000),
        "log_level": env.get(f"{ENV_PREFIX}LOG_LEVEL", "WARNING"),
    }

    rules: dict[str, RuleSettings] = {}
    for key, value in env.items():
        if not key.startswith(RULE_PREFIX) or not key.endswith("_ENABLED"):
            continue
        rule_id = key[len(RULE_PREFIX):-len("_ENABLED")]
        if rule_id:
            rules[rule_id] = RuleSettings(enabled=_parse_env_bool(value, True))
    config_kwargs["rules"] = rules

    try:
        return Config(**config_kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid plancheck environment configuration: {e}") from e


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be parsed or does not validate
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to read config from {path}: {e}",
            config_key=str(path),
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            config_key=str(path),
        )

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}", config_key=str(path)) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. PLANCHECK_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
