"""Glide-path interpolation between two nested allocations.

A glide path drifts linearly from an initial allocation to a final one over
an event's duration. For year offset ``t`` of ``D`` every cell moves to
``initial + (final - initial) * t / D``; the tax-status map and each
within-status map are then renormalised so rounding cannot break the 100%
invariant.

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeVar

from retiremint.allocation.percentages import absorb_residual, renormalize, round_map
from retiremint.config import DEFAULT_CONFIG, ResolutionConfig
from retiremint.errors import InvalidDurationError
from retiremint.model import NestedAllocation, TaxStatus

K = TypeVar("K")


def resolve(
    initial: NestedAllocation,
    final: NestedAllocation,
    year_offset: int,
    total_duration: int,
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> NestedAllocation:
    """Allocation ``year_offset`` years into a glide path of ``total_duration``.

    Args:
        initial: Allocation at offset 0.
        final: Allocation at offset ``total_duration``.
        year_offset: Years since the glide path started.
        total_duration: Length of the glide path in years.
        config: Rounding settings.

    Returns:
        ``initial`` itself at offset 0, ``final`` itself at the last
        offset, otherwise a new interpolated allocation.

    Raises:
        InvalidDurationError: If ``total_duration`` is not positive.
        ValueError: If ``year_offset`` is outside ``[0, total_duration]``.

    """
    if total_duration <= 0:
        raise InvalidDurationError(total_duration, "glide path")
    if not 0 <= year_offset <= total_duration:
        msg = f"year_offset must be within [0, {total_duration}], got {year_offset}"
        raise ValueError(msg)

    # Boundaries are returned as-is so no rounding drift can creep in
    if year_offset == 0:
        return initial
    if year_offset == total_duration:
        return final

    fraction = year_offset / total_duration
    decimals = config.percent_decimals

    tax_status = _interpolate(initial.tax_status, final.tax_status, fraction)
    within_status: dict[TaxStatus, dict[str, float]] = {}
    for status in TaxStatus:
        if status not in initial.within_status and status not in final.within_status:
            continue
        cells = _interpolate(initial.within(status), final.within(status), fraction)
        within_status[status] = absorb_residual(
            round_map(renormalize(cells), decimals), decimals=decimals
        )

    return NestedAllocation(
        tax_status=absorb_residual(
            round_map(renormalize(tax_status), decimals), decimals=decimals
        ),
        within_status=within_status,
    )


def _interpolate(
    start: Mapping[K, float],
    end: Mapping[K, float],
    fraction: float,
) -> dict[K, float]:
    """Cellwise linear interpolation; a missing cell counts as 0."""
    keys = list(start) + [key for key in end if key not in start]
    return {
        key: start.get(key, 0.0) + (end.get(key, 0.0) - start.get(key, 0.0)) * fraction
        for key in keys
    }
