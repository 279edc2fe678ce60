"""Structured warnings accumulated during resolution.

Data inconsistencies that lose information but do not stop resolution are
collected as :class:`ResolutionWarning` values and returned alongside the
best-effort result, so callers can assert on them. Each one is also logged
at WARNING level by the module that produced it.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum


class WarningKind(Enum):
    """Categories of recoverable resolution problems."""

    UNKNOWN_INVESTMENT = "unknown_investment"
    ORPHANED_ALLOCATION = "orphaned_allocation"
    TAX_STATUS_MISMATCH = "tax_status_mismatch"
    EMPTY_STATUS_BUCKET = "empty_status_bucket"
    NEGATIVE_STATUS_TOTAL = "negative_status_total"
    DURATION_CLAMPED = "duration_clamped"
    START_CLAMPED = "start_clamped"
    MISSING_ALLOCATION = "missing_allocation"
    GLIDE_PATH_WITHOUT_FINAL = "glide_path_without_final"


@dataclass(frozen=True)
class ResolutionWarning:
    """A single recoverable problem.

    Attributes:
        kind: Warning category.
        message: Human readable explanation.
        subject: The investment or event name the warning is about.

    """

    kind: WarningKind
    message: str
    subject: str = ""


def record(
    warnings: list[ResolutionWarning],
    logger: logging.Logger,
    kind: WarningKind,
    message: str,
    subject: str = "",
) -> None:
    """Append a warning to ``warnings`` and log it through ``logger``."""
    logger.warning("%s: %s", kind.value, message)
    warnings.append(ResolutionWarning(kind=kind, message=message, subject=subject))
