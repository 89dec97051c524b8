"""Logging configuration for vaultkit.

This module provides consistent logging across the codebase.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

The log level can be configured via the VAULTKIT_LOG_LEVEL environment variable:
    - DEBUG: Detailed debugging information (skipped files, collisions)
    - INFO: General operational messages (default)
    - WARNING: Unexpected but handled situations (invalid filters)
    - ERROR: Errors that prevented an operation

All output goes to stderr: stdout belongs to the MCP stdio transport.
"""

import logging
import os
import sys

PACKAGE_LOGGER = "vaultkit"


def configure_logging() -> None:
    """Configure logging for the vaultkit package.

    Call this once at application startup (cli.py or server.py).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger(PACKAGE_LOGGER)

    if root_logger.handlers:
        return

    level_name = os.environ.get("VAULTKIT_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="[%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False


def set_quiet_mode(quiet: bool) -> None:
    """Only let errors through when quiet, restore the configured level otherwise."""
    root_logger = logging.getLogger(PACKAGE_LOGGER)
    if quiet:
        level = logging.ERROR
    else:
        level_name = os.environ.get("VAULTKIT_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
