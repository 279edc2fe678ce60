"""Shared logging configuration.

Library modules only call ``logging.getLogger(__name__)``; applications
embedding the resolver call ``setup()`` once at start-up to get
ISO-8601 timestamps on every log line.
"""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def setup(*, verbose: bool = False, quiet_warnings: bool = False) -> None:
    """Configure the root logger with timestamped output.

    Args:
        verbose: If True, set level to DEBUG; otherwise INFO.
        quiet_warnings: If True, raise the ``retiremint`` logger to ERROR so
            per-trial data warnings (already returned as values) do not
            flood the output of a long Monte Carlo run.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
    )
    if quiet_warnings:
        logging.getLogger("retiremint").setLevel(logging.ERROR)
