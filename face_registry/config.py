"""
Configuration Module

Loads the YAML configuration and merges it over built-in defaults, one
section at a time.
"""

import copy
import logging
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/config.yaml'

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': {
        'backend': 'file',
        'data_dir': 'data',
    },
    'registry': {
        'storage_key': 'face_recognition_known_faces',
        'raise_on_write_error': False,
    },
    'recognition': {
        'match_threshold': 0.45,
        'strict_dimensions': False,
    },
    'face_analysis': {
        'model_name': 'Facenet',
        'detector_backend': 'opencv',
        'min_confidence': 0.5,
        'analyze_attributes': True,
        'align': True,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}


def get_default_config() -> Dict[str, Any]:
    """Get a fresh copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge ``overrides`` over ``base``.

    Dict sections are merged key by key; any other value replaces the
    default outright.
    """
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    A missing or unreadable file falls back to the defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Complete configuration dictionary
    """
    if not config_path:
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError("top level must be a mapping")
        logger.info(f"Configuration loaded from {config_path}")
        return merge_config(DEFAULT_CONFIG, user_config)
    except FileNotFoundError:
        logger.info(f"No configuration at {config_path}, using defaults")
    except Exception as e:
        logger.error(f"Failed to load config: {e}")

    return get_default_config()
