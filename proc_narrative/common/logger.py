"""Console logging for the command line tools."""

import logging

from rich.console import Console
from rich.logging import RichHandler

from observability.logging_config import VERBOSITY_THRESHOLDS


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Configures and returns a logger with Rich formatting."""
    logger = logging.getLogger(name)

    if logger.handlers:
        logger.setLevel(level.upper())
        return logger

    logger.setLevel(level.upper())

    console = Console(stderr=True)
    handler = RichHandler(console=console, show_time=False, show_path=False)

    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    # Keep CLI output on the Rich handler only.
    logger.propagate = False
    return logger


def level_for_verbosity(verbosity: str) -> str:
    """Map an off/simple/verbose setting to a stdlib level name."""
    return logging.getLevelName(VERBOSITY_THRESHOLDS[verbosity])
