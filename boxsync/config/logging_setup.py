"""Process-wide logging configuration."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def config_configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the current process.

    Worker processes call this again after start because they do not inherit
    handlers under the `spawn` start method.

    Args:
        level: Logging level name.
    """

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
