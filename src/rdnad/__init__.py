"""
rdnad maps the applicability domain of a classification model with the Reliability-Density
Neighbourhood method. It builds a coverage map around training instances whose radius reflects
local density, local bias and local precision, then scans increasingly wide neighbourhoods to
profile in-domain accuracy against the number of external predictions left outside the domain.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__", "config", "core", "domain", "exceptions", "log"]

import logging

from . import config, core, domain, exceptions

logging.getLogger(__name__).addHandler(logging.NullHandler())


def log(level: int = logging.DEBUG, handler: logging.Handler | None = None) -> None:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for debugging.

    Parameters
    ----------
    level : int, default logging.DEBUG(10)
        Set the logging level for the logger.
    handler : logging.Handler, optional
        Sets the logging handler for the logger if provided, otherwise logger will be
        provided with a StreamHandler.
    """
    logger = logging.getLogger(__name__)
    if handler is None:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s.%(filename)s:%(lineno)s - %(funcName)10s() | %(message)s"
            )
        )
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug(f"Added logging handler {handler} to logger: {__name__}")
