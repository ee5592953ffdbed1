"""
Logging for the incremental engine.

Everything logs under the ``code_insight`` logger. Recoverable degradations
(no repository, unreadable cache entries) are reported at WARNING, so the
default ``normal`` verbosity shows them and ``quiet`` hides them.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "code_insight"

LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach rich console output (and optionally a log file) to the engine's logger.

    Safe to call repeatedly: handlers from an earlier call are replaced.
    The host application's root logger is left alone.

    Args:
        verbosity: One of "quiet", "normal" or "verbose" (see IncrementalConfig)
        log_file: Optional file path to append plain-text logs to

    Returns:
        The configured ``code_insight`` logger
    """
    level = LEVELS[verbosity]
    verbose = verbosity == "verbose"

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_path=verbose,
    )
    console.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under ``code_insight``; module names outside the package are prefixed."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
