"""
Logging configuration for printpolicy.

Library code only ever calls ``get_logger(__name__)``; nothing is emitted
unless the embedding application (or the CLI) calls ``setup_logging``.
Rule decisions are additionally reported to the host's own log through
HostActions.log_debug / log_error, so the print server's job log stays the
primary audit trail.

Log Format:
    2026-10-18 10:15:30 [DEBUG   ] printpolicy.rules.site_restrict - ug-250 alice@10.0.0.5 - ...
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "printpolicy"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def setup_logging(
    log_level: int = logging.INFO,
    rich_output: bool = True,
) -> logging.Logger:
    """
    Configure the printpolicy logger.

    Args:
        log_level: Minimum log level (default: INFO)
        rich_output: Use Rich formatting on stderr; plain text otherwise

    Returns:
        The configured printpolicy logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs to root logger

    # Remove any existing handlers (allows re-configuration)
    logger.handlers.clear()

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-8s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    handler.setLevel(log_level)
    logger.addHandler(handler)

    logger.debug("Logging configured at level %s", logging.getLevelName(log_level))
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the printpolicy namespace.

    Example:
        logger = get_logger(__name__)
        # inside printpolicy.rules.discount -> "printpolicy.rules.discount"
        # anywhere else "foo" -> "printpolicy.foo"
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
