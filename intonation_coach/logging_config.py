"""Centralized logging configuration for Intonation Coach.

This module provides a consistent way to configure logging across the application.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "intonation_coach": logging.INFO,
    "intonation_coach.session": logging.INFO,
    "intonation_coach.cli": logging.INFO,
    "intonation_coach.core": logging.INFO,
    # Analysis engine, DEBUG logs every dropped sample
    "intonation_coach.detection": logging.INFO,
    # Capture pipeline, DEBUG logs every frame
    "intonation_coach.audio": logging.INFO,
    "intonation_coach.logger": logging.WARNING,
    # Libraries/third-party
    "sounddevice": logging.ERROR,
    "aubio": logging.ERROR,
    "asyncio": logging.WARNING,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'intonation_coach' log levels with this level (e.g., "DEBUG").
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
                if module_name.startswith("intonation_coach"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Apply module-specific levels
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name if module_name else "")
        logger.setLevel(module_level)

        # Clear existing handlers and add the shared one
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(_console_handler)
        logger.propagate = False

    logging.getLogger("intonation_coach").info("Logging configuration complete")
