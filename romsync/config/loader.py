"""Configuration loading and parsing."""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse configuration file.

    Args:
        config_path: Path to config.yaml file. If None, searches current directory.

    Returns:
        Parsed configuration dictionary

    Raises:
        ConfigError: If config file cannot be loaded or parsed
    """
    if config_path is None:
        config_path = Path.cwd() / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}\n"
            f"Copy config.yaml.example to config.yaml and configure it."
        )

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if not isinstance(config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    # Sections are optional in the file; consumers read them with .get()
    for section in ('paths', 'pipeline', 'batch', 'logging'):
        if config.get(section) is None:
            config[section] = {}

    # Relative paths are anchored at the config file's directory
    base = config['paths'].get('base')
    if base is None:
        config['paths']['base'] = str(config_path.resolve().parent)
    elif not Path(base).expanduser().is_absolute():
        config['paths']['base'] = str((config_path.resolve().parent / base).resolve())

    return config


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., 'batch.max_batch_size')
        default: Default value if path not found

    Returns:
        Configuration value or default

    Example:
        >>> get_config_value(config, 'batch.error_handling')
        'continue_on_error'
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
