#!/usr/bin/env python3
"""
Tool-level settings for grit.

These are the user's preferences for how grit runs (which git binary, log
level, colour). The per-workspace repository list lives in the workspace
document handled by :mod:`grit.registry`.
"""

import os
import json
from pathlib import Path

import logging
import sys

import yaml

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr)  # Default to stderr
    ]
)
logger = logging.getLogger("grit")

SETTINGS_FILENAMES = ['settings.yaml', 'settings.yml', 'settings.json']


def get_settings_path():
    """Get the path to the settings file.

    Checks in order:
    1. GRIT_SETTINGS environment variable
    2. ~/.grit/ directory
    """
    if 'GRIT_SETTINGS' in os.environ:
        path = Path(os.environ['GRIT_SETTINGS']).expanduser()
        if path.exists():
            return path

    grit_dir = Path.home() / '.grit'
    for filename in SETTINGS_FILENAMES:
        path = grit_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return grit_dir / 'settings.yaml'


def get_default_settings():
    """Get default settings."""
    return {
        "git": {
            "executable": "git",
        },
        "workspace": {
            "metadata_dir": ".grit",
            "config_file": "config.yml",
        },
        "logging": {
            "level": "WARNING",
        },
        "output": {
            "color": True,
        },
    }


def load_settings():
    """Load settings from file, merged over defaults with env overrides."""
    settings_path = get_settings_path()

    settings = get_default_settings()

    if settings_path.exists():
        try:
            with open(settings_path, 'r') as f:
                if settings_path.suffix.lower() in ['.yaml', '.yml']:
                    file_settings = yaml.safe_load(f) or {}
                else:
                    file_settings = json.load(f)

            if isinstance(file_settings, dict):
                settings = merge_configs(settings, file_settings)
            else:
                logger.error(f"Ignoring settings in {settings_path}: top level is not a mapping")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Error loading settings from {settings_path}: {e}")

    return apply_env_overrides(settings)


def configure_logging(settings, verbose=False):
    """Apply the configured log level to the grit logger."""
    if verbose:
        level = logging.DEBUG
    else:
        level_name = str(settings.get("logging", {}).get("level", "WARNING")).upper()
        level = getattr(logging, level_name, logging.WARNING)
    logger.setLevel(level)
    return level


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


ENV_OVERRIDES = {
    'GRIT_GIT_EXECUTABLE': ('git', 'executable'),
    'GRIT_WORKSPACE_METADATA_DIR': ('workspace', 'metadata_dir'),
    'GRIT_WORKSPACE_CONFIG_FILE': ('workspace', 'config_file'),
    'GRIT_LOGGING_LEVEL': ('logging', 'level'),
    'GRIT_OUTPUT_COLOR': ('output', 'color'),
}

BOOLEAN_SETTINGS = {('output', 'color')}


def apply_env_overrides(config):
    """
    Apply environment variable overrides to settings.

    Only the variables in ``ENV_OVERRIDES`` are read,
    e.g. GRIT_GIT_EXECUTABLE=/usr/local/bin/git.
    """
    for env_key, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        if (section, key) in BOOLEAN_SETTINGS:
            value = value.strip().lower() in ('1', 'true', 'yes', 'on')
        config.setdefault(section, {})[key] = value
        logger.debug(f"Setting {section}.{key} from {env_key}")

    return config
