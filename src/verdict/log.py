"""
Logging setup for Verdict.

Library modules log through ``logging.getLogger(__name__)`` under the
"verdict" namespace and never configure handlers themselves. The CLI calls
configure_logging() to route those records to stderr through rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "verdict"


def configure_logging(level: int | str = logging.WARNING) -> logging.Logger:
    """
    Attach a RichHandler to the "verdict" logger.

    Calling this twice replaces the previous handler rather than stacking.

    Args:
        level: Logging level name or number

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger
