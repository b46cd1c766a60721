"""Centralized logging configuration for Tonal Tuner.

This module provides a consistent way to configure logging across the application.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "tonal_tuner": logging.INFO,
    "tonal_tuner.note_utils": logging.INFO,
    "tonal_tuner.tunings": logging.INFO,
    "tonal_tuner.audio": logging.INFO,  # Per-buffer DEBUG output is very chatty
    "tonal_tuner.detection": logging.INFO,
    "tonal_tuner.core": logging.INFO,
    "tonal_tuner.services": logging.INFO,
    "tonal_tuner.cli": logging.INFO,
    # Libraries/third-party
    "soundfile": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'tonal_tuner' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    # Create a single, shared console handler if it doesn't exist
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    # Determine log levels
    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("tonal_tuner"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Apply module-specific levels. Only the package root and the root logger
    # get the handler; submodules propagate up to "tonal_tuner".
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        if module_name in ("tonal_tuner", ""):
            for handler in logger.handlers[:]:
                logger.removeHandler(handler)
            logger.addHandler(_console_handler)

    logging.getLogger("tonal_tuner").propagate = False

    # Confirm setup complete
    logging.getLogger("tonal_tuner").debug("Logging configuration complete")
