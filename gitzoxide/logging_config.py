"""
Logging configuration for git-zoxide.

Stdout carries paths for the shell wrapper to ``cd`` into, so diagnostics
stay off it: quiet by default, debug output to stderr on request, and a
persistent operations log in the data directory.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "gitzoxide"
OPS_LOG_FILENAME = "gz-ops.log"


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library chatter off the terminal.

    Args:
        quiet: If True, only warnings and errors reach stderr.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger(LOGGER_NAME).setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)


def configure_ops_log(data_dir):
    """Configure a persistent operations log in the data directory.

    Writes to {data_dir}/gz-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so callers can remove it again.
    """
    log_path = Path(data_dir) / OPS_LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    gz_logger = logging.getLogger(LOGGER_NAME)
    gz_logger.addHandler(handler)
    # Let INFO through to the file even in quiet mode
    if gz_logger.level == logging.NOTSET or gz_logger.level > logging.INFO:
        gz_logger.setLevel(logging.INFO)

    return handler
