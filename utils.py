# utils.py
"""
Utility functions for the belief tracker.

This module provides helpers that are used across the application but do
not belong to the belief engine or rendering: logging setup, loading the
JSON configuration and loading world layouts.
"""
import logging
import logging.handlers
import json
import os
import numpy as np
from typing import Dict, Any

from constants import WORLD_CODES

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary with an optional "logging" key holding
#       "level", "format" and "log_file" sub-keys. A null/empty
#       "log_file" disables the file handler.
#   - Side Effects: Configures the root Python logger with a console
#     handler and, if requested, a rotating file handler. Creates the log
#     directory if it doesn't exist.
#
# load_world(path: str, name: str) -> np.ndarray:
#   - Inputs: a worlds JSON file mapping names to
#     [[height, width], [[col, row, code], ...]].
#   - Outputs: int64 array of shape (height, width) of world codes.
#     Cells not listed are empty (code 0).

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/belief.log')

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        # Rotates when the log reaches 1MB, keeps 5 backup logs.
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path or '(console only)'}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def load_world(path: str, name: str) -> np.ndarray:
    """Reads one named world layout into a grid of world codes."""
    worlds = load_config(path)
    if name not in worlds:
        msg = f"World '{name}' not found in {path}. Available: {sorted(worlds)}."
        logging.error(msg)
        raise KeyError(msg)

    shape, triples = worlds[name]
    height, width = int(shape[0]), int(shape[1])
    if height < 1 or width < 1:
        raise ValueError(f"World '{name}' has invalid shape {shape}.")

    grid = np.zeros((height, width), dtype=np.int64)
    for col, row, code in triples:
        if not (0 <= row < height and 0 <= col < width):
            raise ValueError(f"World '{name}' places code {code} outside the grid at ({row}, {col}).")
        if code not in WORLD_CODES:
            raise ValueError(f"World '{name}' uses unknown code {code} at ({row}, {col}).")
        grid[row, col] = code
    logging.info(f"World '{name}' loaded: {height}x{width} cells.")
    return grid
