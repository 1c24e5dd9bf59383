"""Configuration utilities for CLI."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ....domain.aggregation.exceptions import InvalidConfigError
from ....domain.aggregation.value_objects.aggregation_config import AggregationConfig

CONFIG_SECTIONS = ("database", "logging", "aggregation")


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from file.

    Args:
        config_path: Path to a YAML configuration file

    Returns:
        Configuration dictionary with ``${VAR}`` references expanded

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    # Expand environment variables
    return _expand_env_vars(config)


def load_data_file(data_path: str) -> Any:
    """Load a JSON or YAML document, chosen by file extension."""
    data_file = Path(data_path)

    with open(data_file, "r", encoding="utf-8") as f:
        if data_file.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate configuration structure.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid
    """
    if not isinstance(config, dict):
        return False

    for section in CONFIG_SECTIONS:
        if section in config and not isinstance(config[section], dict):
            return False

    if "aggregation" in config:
        try:
            AggregationConfig.from_dict(config["aggregation"])
        except (InvalidConfigError, TypeError, ValueError):
            return False

    return True


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """Get configuration value using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'database.url')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    current = config

    for key in key_path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current


def load_aggregation_config(
    config: Dict[str, Any], rubric_path: Optional[str] = None
) -> AggregationConfig:
    """Aggregation config from a rubric file, else the ``aggregation`` section."""
    if rubric_path:
        data = load_data_file(rubric_path)
        # A full CLI config file is accepted as a rubric too
        if isinstance(data, dict) and isinstance(data.get("aggregation"), dict):
            data = data["aggregation"]
        return AggregationConfig.from_dict(_expand_env_vars(data))

    section = config.get("aggregation")
    if not section:
        raise InvalidConfigError(
            "No aggregation config given; pass --rubric or add an 'aggregation' section"
        )
    return AggregationConfig.from_dict(section)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
