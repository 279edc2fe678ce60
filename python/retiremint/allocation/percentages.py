"""Percentage map primitives: sum checks, renormalisation, rounding.

Internal percentages are rounded to 2 decimal places after every derived
computation; flat fractions to 4 decimal places.

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TypeVar

K = TypeVar("K")

PERCENT_DECIMALS = 2
FRACTION_DECIMALS = 4


@dataclass(frozen=True)
class SumMismatch:
    """A percentage map whose total differs from what was expected."""

    actual: float
    expected: float

    @property
    def difference(self) -> float:
        """Signed distance from the expected total."""
        return self.actual - self.expected


def round_percent(value: float, decimals: int = PERCENT_DECIMALS) -> float:
    """Round an internal percentage."""
    return round(value, decimals)


def round_fraction(value: float, decimals: int = FRACTION_DECIMALS) -> float:
    """Round a flat (exchange) fraction."""
    return round(value, decimals)


def validate_sum(
    values: Mapping[K, float],
    expected_total: float = 100.0,
    epsilon: float = 1e-6,
) -> SumMismatch | None:
    """Check that a map's values add up to ``expected_total``.

    Args:
        values: Percentage (or fraction) map.
        expected_total: Required total.
        epsilon: Allowed absolute deviation.

    Returns:
        None when the sum is within ``epsilon``, otherwise a
        :class:`SumMismatch` describing the actual total.

    """
    actual = float(sum(values.values()))
    if abs(actual - expected_total) <= epsilon:
        return None
    return SumMismatch(actual=actual, expected=expected_total)


def renormalize(values: Mapping[K, float], total: float = 100.0) -> dict[K, float]:
    """Scale every entry so the map sums to ``total``.

    A map whose sum is not positive is returned unchanged (as a copy);
    the caller decides whether that is an error.

    """
    current = float(sum(values.values()))
    if current <= 0:
        return dict(values)
    factor = total / current
    return {key: value * factor for key, value in values.items()}


def round_map(values: Mapping[K, float], decimals: int = PERCENT_DECIMALS) -> dict[K, float]:
    """Round every value in a percentage map."""
    return {key: round(value, decimals) for key, value in values.items()}


def absorb_residual(
    values: Mapping[K, float],
    total: float = 100.0,
    decimals: int = PERCENT_DECIMALS,
) -> dict[K, float]:
    """Move the rounding residual onto the largest entry.

    After rounding, a map of shares that should total ``total`` can be off
    by a few hundredths (three shares of 33.33). The difference is added to
    the largest entry so the rounded map sums to ``total`` again. Only a
    residual within rounding noise (one unit in the last place per entry)
    is absorbed; a larger gap is a real sum error and is left in place for
    the sum checks to report. Empty and non-positive maps are returned
    unchanged.

    """
    result = dict(values)
    if not result or sum(result.values()) <= 0:
        return result
    residual = round(total - sum(result.values()), decimals)
    if residual and abs(residual) <= len(result) * 10**-decimals + 1e-9:
        largest = max(result, key=result.__getitem__)
        result[largest] = round(result[largest] + residual, decimals)
    return result
