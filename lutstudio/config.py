"""
Configuration management for LutStudio

Settings live in a YAML file (the bundled ``config.yaml`` by default).
String values may reference environment variables as ``${NAME}`` or
``${NAME:-fallback}``; keys missing from the file take their defaults.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

_ENV_REFERENCE = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}')


def _expand_env_vars(obj: Any) -> Any:
    """Expand ``${NAME}`` references in every string of a loaded YAML tree."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    if not isinstance(obj, str):
        return obj

    def substitute(match: re.Match) -> str:
        name, fallback = match.groups()
        if name in os.environ:
            return os.environ[name]
        # Unset variables stay literal unless a fallback is given
        return fallback if fallback is not None else match.group(0)

    return _ENV_REFERENCE.sub(substitute, obj)


def _merge_defaults(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge user settings over the defaults."""
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    A missing or unreadable file is logged and the defaults are returned,
    so callers always get a complete configuration.

    Args:
        config_path: Path to config file. If None, uses the bundled config.yaml
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning(f"Config file not found: {path}. Using defaults.")
        return get_default_config()

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {path}: {e}")
        return get_default_config()

    if not isinstance(loaded, dict):
        logger.error(f"Ignoring {path}: top-level YAML value must be a mapping")
        return get_default_config()

    logger.info(f"Loaded configuration from {path}")
    return _merge_defaults(get_default_config(), _expand_env_vars(loaded))


def get_default_config() -> Dict[str, Any]:
    """Built-in settings, mirroring the bundled config.yaml."""
    return {
        'preview': {
            'max_worker_threads': 4,
            'chunk_pixels': 262144,
            'debounce_interval': 0.05,
            'buffer_pool_size': 8,
        },
        'style_analysis': {
            'enabled': True,
            'api_key': None,  # Falls back to GEMINI_API_KEY
            'model': 'gemini-2.0-flash',
            'max_retries': 3,
            'backoff_base': 1.0,
            'temperature': 0.4,
            'max_output_tokens': 1024,
            'safety_settings': 'medium',
        },
        'export': {
            'jpeg_quality': 90,
            'cube_title': 'LutStudio Grade',
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'file': None,
        },
    }


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> bool:
    """
    Write a configuration to YAML, creating the parent directory.

    Returns:
        True if successful, False otherwise
    """
    path = Path(config_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save config to {path}: {e}")
        return False

    logger.info(f"Saved configuration to {path}")
    return True


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Look up a nested value by dotted path, e.g. ``'preview.chunk_pixels'``.

    Returns ``default`` when any step of the path is missing or is not a
    mapping.
    """
    node = config
    for key in key_path.split('.'):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """Set a nested value by dotted path, creating intermediate sections."""
    *parents, leaf = key_path.split('.')
    section = config
    for key in parents:
        section = section.setdefault(key, {})
    section[leaf] = value
