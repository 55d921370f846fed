"""
Configuration management module for the envelope budget.

Loads and saves config.yaml, merging user values over built-in defaults.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    'database': {
        'data_dir': 'data',
        'path': 'budget.db',
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
    'budget': {
        # a month counts as "complete" once it has at least this many rows
        'complete_month_threshold': 10,
        'cc_payment_group_name': 'Credit Card Payments',
        # milliunits; 10 == 0.01 currency units
        'reconcile_tolerance': 10,
    },
}

CONFIG_FILE = 'config.yaml'


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` onto a copy of ``defaults``."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file (defaults to config.yaml)

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file exists but is not valid YAML or not a mapping
    """
    path = Path(config_path or CONFIG_FILE)
    if not path.exists():
        logger.debug("Config file %s not found; using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading configuration: {e}")
        raise ConfigError("Failed to load configuration", details={"path": str(path)}, original_error=e) from e

    if not isinstance(loaded, dict):
        raise ConfigError("Configuration root must be a mapping", details={"path": str(path)})

    logger.info("Configuration loaded from %s", path)
    return _merge(DEFAULT_CONFIG, loaded)


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to a YAML file, preserving keys not present in ``config``.

    Args:
        config: Configuration dictionary to save
        config_path: Destination path (defaults to config.yaml)

    Returns:
        True if successful, False otherwise
    """
    path = Path(config_path or CONFIG_FILE)
    try:
        existing_config: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                existing_config = yaml.safe_load(f) or {}

        merged = _merge(existing_config, config)

        with open(path, 'w') as f:
            yaml.dump(merged, f, default_flow_style=False)

        logger.info("Configuration saved to %s", path)
        return True

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error saving configuration: {e}", exc_info=True)
        return False


def get_budget_setting(config: Optional[Dict[str, Any]], key: str) -> Any:
    """
    Read a key from the ``budget`` section, falling back to the default.

    Args:
        config: Loaded configuration (or None for defaults)
        key: Setting name within the budget section

    Returns:
        Configured value
    """
    section = (config or {}).get('budget') or {}
    return section.get(key, DEFAULT_CONFIG['budget'][key])
