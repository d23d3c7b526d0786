"""Logging configuration for dovpn.

Library modules log through ``logging.getLogger(__name__)``; the CLI calls
:func:`setup_logging` once to attach a handler to the root logger.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = ("paramiko", "urllib3", "requests")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging for CLI usage.

    Args:
        verbose: Enable DEBUG output (including third-party libraries)
        quiet: Only show warnings and errors
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )

    third_party_level = logging.DEBUG if verbose else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger.

    Args:
        name: Logger name, normally ``__name__``

    Returns:
        Standard library logger instance
    """
    return logging.getLogger(name)
