"""Configuration loading and parsing."""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


DEFAULT_CONFIG: Dict[str, Any] = {
    'paths': {
        'roms': '.',
        'consoles': None,
    },
    'scraping': {
        'images_folder': 'Imgs',
        'guides_folder': 'Guides',
        'box_art_width': 250,
        'refresh': False,
        'metadata_providers': ['screenscraper', 'thegamesdb'],
        'guide_providers': ['gamefaqs'],
    },
    'providers': {
        'screenscraper': {
            'softname': 'romshelf',
            'box_art_type': 'box-2D',
            'region_preferences': ['us', 'wor', 'eu', 'jp', 'ss'],
        },
        'thegamesdb': {},
        'gamefaqs': {
            'host': 'gopher.endangeredsoft.org',
            'port': 70,
        },
    },
    'api': {
        'request_timeout': 30,
        'max_connections': 4,
    },
    'backoff': {
        'initial_interval': 1.0,
        'multiplier': 2.0,
        'max_interval': 300.0,
    },
    'events': {
        'queue_size': 100,
    },
    'logging': {
        'level': 'INFO',
        'console': True,
        'file': None,
    },
    'runtime': {
        'ui': 'rich',
    },
}


def merge_dicts(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge overrides into a copy of base.

    Nested dictionaries are merged; any other value in overrides replaces
    the value in base.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse configuration file.

    Args:
        config_path: Path to config.yaml file. If None, searches current directory.

    Returns:
        Parsed configuration dictionary, merged over the built-in defaults

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

    # An empty file means "all defaults"
    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    return merge_dicts(DEFAULT_CONFIG, config)


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., 'scraping.box_art_width')
        default: Default value if path not found

    Returns:
        Configuration value or default

    Example:
        >>> get_config_value(config, 'scraping.metadata_providers')
        ['screenscraper', 'thegamesdb']
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
