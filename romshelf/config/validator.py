"""Configuration validation."""

import logging
from typing import Dict, Any, List

from romshelf.providers.registry import GUIDE_PROVIDERS, METADATA_PROVIDERS

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: If configuration is invalid
    """
    errors = []

    errors.extend(_validate_paths(config.get('paths', {})))

    scraping = config.get('scraping', {})
    errors.extend(_validate_scraping(scraping))
    errors.extend(_validate_providers(scraping, config.get('providers', {})))

    errors.extend(_validate_api(config.get('api', {})))
    errors.extend(_validate_backoff(config.get('backoff', {})))
    errors.extend(_validate_events(config.get('events', {})))
    errors.extend(_validate_logging(config.get('logging', {})))
    errors.extend(_validate_runtime(config.get('runtime', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def _validate_paths(section: Dict[str, Any]) -> List[str]:
    """Validate paths section."""
    errors = []

    if not section.get('roms'):
        errors.append("paths.roms is required")
    elif not isinstance(section['roms'], str):
        errors.append("paths.roms must be a string path")

    consoles = section.get('consoles')
    if consoles is not None and not isinstance(consoles, str):
        errors.append("paths.consoles must be a string path or null")

    return errors


def _validate_scraping(section: Dict[str, Any]) -> List[str]:
    """Validate scraping options section."""
    errors = []

    for key in ('images_folder', 'guides_folder'):
        value = section.get(key)
        if not isinstance(value, str) or not value or '/' in value or '\\' in value:
            errors.append(f"scraping.{key} must be a plain folder name")

    width = section.get('box_art_width')
    if width is not None and (not isinstance(width, int) or isinstance(width, bool) or width < 1):
        errors.append("scraping.box_art_width must be a positive integer or null")

    if not isinstance(section.get('refresh', False), bool):
        errors.append("scraping.refresh must be a boolean")

    metadata = section.get('metadata_providers', [])
    guides = section.get('guide_providers', [])

    if not isinstance(metadata, list):
        errors.append("scraping.metadata_providers must be a list")
    else:
        for name in metadata:
            if name not in METADATA_PROVIDERS:
                errors.append(
                    f"Unknown metadata provider '{name}' (valid: {', '.join(METADATA_PROVIDERS)})"
                )

    if not isinstance(guides, list):
        errors.append("scraping.guide_providers must be a list")
    else:
        for name in guides:
            if name not in GUIDE_PROVIDERS:
                errors.append(
                    f"Unknown guide provider '{name}' (valid: {', '.join(GUIDE_PROVIDERS)})"
                )

    if isinstance(metadata, list) and isinstance(guides, list) and not metadata and not guides:
        errors.append("At least one metadata or guide provider must be enabled")

    return errors


def _validate_providers(scraping: Dict[str, Any], section: Dict[str, Any]) -> List[str]:
    """Validate credentials for the providers that are enabled."""
    errors = []
    enabled = set(scraping.get('metadata_providers') or []) | set(scraping.get('guide_providers') or [])

    if 'screenscraper' in enabled:
        screenscraper = section.get('screenscraper') or {}
        if not screenscraper.get('devid'):
            errors.append("providers.screenscraper.devid is required")
        if not screenscraper.get('devpassword'):
            errors.append("providers.screenscraper.devpassword is required")
        if bool(screenscraper.get('username')) != bool(screenscraper.get('password')):
            errors.append("providers.screenscraper.username and password must be set together")
        regions = screenscraper.get('region_preferences', [])
        if not isinstance(regions, list):
            errors.append("providers.screenscraper.region_preferences must be a list")

    if 'thegamesdb' in enabled:
        thegamesdb = section.get('thegamesdb') or {}
        if not thegamesdb.get('api_key'):
            errors.append("providers.thegamesdb.api_key is required")

    if 'gamefaqs' in enabled:
        gamefaqs = section.get('gamefaqs') or {}
        port = gamefaqs.get('port', 70)
        if not isinstance(port, int) or not (1 <= port <= 65535):
            errors.append("providers.gamefaqs.port must be between 1 and 65535")

    return errors


def _validate_api(section: Dict[str, Any]) -> List[str]:
    """Validate API options section."""
    errors = []

    timeout = section.get('request_timeout', 30)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append("api.request_timeout must be a positive number")

    connections = section.get('max_connections', 4)
    if not isinstance(connections, int) or not (1 <= connections <= 32):
        errors.append("api.max_connections must be between 1 and 32")

    return errors


def _validate_backoff(section: Dict[str, Any]) -> List[str]:
    errors = []

    initial = section.get('initial_interval', 1.0)
    if not isinstance(initial, (int, float)) or initial <= 0:
        errors.append("backoff.initial_interval must be a positive number")

    multiplier = section.get('multiplier', 2.0)
    if not isinstance(multiplier, (int, float)) or multiplier < 1:
        errors.append("backoff.multiplier must be at least 1")

    maximum = section.get('max_interval', 300.0)
    if not isinstance(maximum, (int, float)) or maximum <= 0:
        errors.append("backoff.max_interval must be a positive number")

    return errors


def _validate_events(section: Dict[str, Any]) -> List[str]:
    errors = []
    queue_size = section.get('queue_size', 100)
    if not isinstance(queue_size, int) or queue_size < 1:
        errors.append("events.queue_size must be a positive integer")
    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    """Validate logging options section."""
    errors = []

    level = section.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR']
    if level not in valid_levels:
        errors.append(f"logging.level must be one of: {', '.join(valid_levels)}")

    console = section.get('console', True)
    if not isinstance(console, bool):
        errors.append("logging.console must be a boolean")

    if 'file' in section and section['file'] is not None:
        if not isinstance(section['file'], str):
            errors.append("logging.file must be a string path or null")

    return errors


def _validate_runtime(section: Dict[str, Any]) -> List[str]:
    """Validate runtime options section."""
    errors = []

    ui = section.get('ui', 'rich')
    valid_uis = ['rich', 'headless']
    if ui not in valid_uis:
        errors.append(f"runtime.ui must be one of: {', '.join(valid_uis)}")

    return errors
