# utils.py
"""
Utility functions for the particle morph application.

This module provides helpers that are used across different parts of the
application but do not belong to a specific domain like sampling or
rendering: logging setup, configuration loading, viewport density
profiles and color parsing.
"""
import copy
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, Tuple

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Side Effects: Configures the root Python logger with a console
#     handler and a rotating file handler. Creates the log directory.
#
# load_config(path: str) -> Dict[str, Any]:
#   - Outputs: The parsed JSON document.
#   - Side Effects: Logs and re-raises on missing file or invalid JSON.
#
# resolve_profile(config, width, height) -> Dict[str, Any]:
#   - Outputs: A deep copy of config with the overrides of the first
#     profile whose "max_viewport" is >= min(width, height) merged in.
#   - Invariants: The input config is never mutated.

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/morph.log')

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication on re-initialization
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}, file {log_file_path}.")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Returns a copy of base with overrides merged in, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged

def resolve_profile(config: Dict[str, Any], width: int, height: int) -> Dict[str, Any]:
    """
    Applies the density profile matching the viewport.

    Profiles are checked in ascending "max_viewport" order, so smaller
    screens pick the tightest profile that still covers them.
    """
    profiles = config.get('profiles', {})
    shortest_side = min(width, height)
    ordered = sorted(
        profiles.items(),
        key=lambda item: item[1].get('max_viewport', float('inf'))
    )
    for name, profile in ordered:
        if shortest_side <= profile.get('max_viewport', float('inf')):
            logging.info(
                f"Viewport {width}x{height} uses density profile '{name}'."
            )
            return deep_merge(config, profile.get('overrides', {}))
    return copy.deepcopy(config)

def parse_color(value: Any) -> Tuple[int, int, int]:
    """
    Parses "#rrggbb" strings or [r, g, b] lists into an RGB tuple.

    Raises ValueError for anything else.
    """
    if isinstance(value, str):
        text = value.lstrip('#')
        if len(text) != 6:
            raise ValueError(f"Invalid hex color '{value}'.")
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    try:
        r, g, b = (int(c) for c in value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid color {value!r}: {e}") from e
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ValueError(f"Color channel out of range in {value!r}.")
    return (r, g, b)
