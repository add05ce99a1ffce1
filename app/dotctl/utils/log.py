"""Logging configuration for the dotctl CLI.

Modules log through ``logging.getLogger(__name__)``; this installs a
single Rich handler on the ``dotctl`` logger that writes to stderr.
"""

import logging

from rich.logging import RichHandler

from dotctl.utils.formatting import err_console

LOGGER_NAME = "dotctl"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Configure the dotctl logger.

    Args:
        verbose: Log DEBUG and above.
        quiet: Log ERROR and above only. Ignored when verbose is set.

    Returns:
        The configured package logger.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = RichHandler(
        console=err_console,
        show_time=verbose,
        show_path=verbose,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
