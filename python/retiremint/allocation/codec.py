"""Conversion between flat and nested allocations.

The exchange file format stores an allocation as a flat map of investment
name -> fraction of total capital. Internally an allocation is split first
by tax status, then by investment within that status
(:class:`~retiremint.model.NestedAllocation`). ``flatten`` multiplies the two
levels out; ``build`` inverts the multiplication using each investment's
known tax status.

Entries that cannot be placed (unknown investment, wrong bucket, empty
bucket) are dropped with a :class:`~retiremint.diagnostics.ResolutionWarning`
rather than failing the whole conversion.

"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import NamedTuple

from retiremint.allocation.percentages import (
    absorb_residual,
    renormalize,
    round_fraction,
    round_map,
    round_percent,
)
from retiremint.config import DEFAULT_CONFIG, ResolutionConfig
from retiremint.diagnostics import ResolutionWarning, WarningKind, record
from retiremint.model import FlatAllocation, Investment, NestedAllocation, TaxStatus

logger = logging.getLogger(__name__)


class FlattenResult(NamedTuple):
    """Flat allocation plus the warnings raised while producing it."""

    allocation: FlatAllocation
    warnings: list[ResolutionWarning]


class BuildResult(NamedTuple):
    """Nested allocation plus the warnings raised while producing it."""

    allocation: NestedAllocation
    warnings: list[ResolutionWarning]


def flatten(
    nested: NestedAllocation,
    investments_by_id: Mapping[str, Investment],
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> FlattenResult:
    """Multiply a nested allocation out into a flat name -> fraction map.

    For every investment with a positive within-status percentage, the
    flat fraction is ``(within / 100) * (status / 100)`` rounded to
    ``config.fraction_decimals``.

    Args:
        nested: Nested allocation keyed by investment id.
        investments_by_id: Lookup from investment id to investment.
        config: Rounding settings.

    Returns:
        FlattenResult with the flat map (zero and skipped entries omitted)
        and any warnings.

    """
    flat: FlatAllocation = {}
    warnings: list[ResolutionWarning] = []

    for status in TaxStatus:
        status_pct = nested.status_percent(status)
        for investment_id, within_pct in nested.within(status).items():
            if within_pct is None or within_pct <= 0:
                continue

            investment = investments_by_id.get(investment_id)
            if investment is None:
                record(
                    warnings,
                    logger,
                    WarningKind.UNKNOWN_INVESTMENT,
                    f"Investment id '{investment_id}' in {status.value} "
                    "allocation is not in the scenario; skipped",
                    subject=investment_id,
                )
                continue

            if investment.tax_status is not status:
                record(
                    warnings,
                    logger,
                    WarningKind.TAX_STATUS_MISMATCH,
                    f"Investment '{investment.name}' is {investment.tax_status.value} "
                    f"but was allocated under {status.value}; skipped",
                    subject=investment.name,
                )
                continue

            if status_pct <= 0:
                record(
                    warnings,
                    logger,
                    WarningKind.ORPHANED_ALLOCATION,
                    f"Investment '{investment.name}' has {within_pct}% within "
                    f"{status.value} but {status.value} has 0% overall; skipped",
                    subject=investment.name,
                )
                continue

            fraction = (within_pct / 100.0) * (status_pct / 100.0)
            flat[investment.name] = round_fraction(fraction, config.fraction_decimals)

    return FlattenResult(allocation=flat, warnings=warnings)


def build(
    flat: Mapping[str, float],
    investments_by_name: Mapping[str, Investment],
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> BuildResult:
    """Reconstruct a nested allocation from a flat name -> fraction map.

    Pass 1 totals the percentage per tax status; pass 2 expresses each
    investment as a percentage of its status total. When any entry had to
    be dropped, the surviving top-level percentages are renormalised so
    the capital is still fully allocated.

    Args:
        flat: Flat allocation, fractions in [0, 1] keyed by investment name.
        investments_by_name: Lookup from investment name to investment.
        config: Rounding settings.

    Returns:
        BuildResult with the nested allocation (keyed by investment id) and
        any warnings.

    """
    warnings: list[ResolutionWarning] = []
    status_totals: dict[TaxStatus, float] = {status: 0.0 for status in TaxStatus}
    placed: list[tuple[Investment, float]] = []
    dropped = False

    # Pass 1: totals per tax status
    for name, fraction in flat.items():
        investment = investments_by_name.get(name)
        if investment is None:
            record(
                warnings,
                logger,
                WarningKind.UNKNOWN_INVESTMENT,
                f"Investment '{name}' in allocation is not in the scenario; skipped",
                subject=name,
            )
            dropped = True
            continue
        pct = float(fraction or 0.0) * 100.0
        status_totals[investment.tax_status] += pct
        placed.append((investment, pct))

    # Pass 2: share of each investment within its status
    within_status: dict[TaxStatus, dict[str, float]] = {}
    for investment, pct in placed:
        status = investment.tax_status
        total = status_totals[status]
        if total > 0:
            if pct == 0:
                continue
            within_status.setdefault(status, {})[investment.id] = round_percent(
                pct / total * 100.0, config.percent_decimals
            )
        elif total == 0 and pct != 0:
            record(
                warnings,
                logger,
                WarningKind.EMPTY_STATUS_BUCKET,
                f"Investment '{investment.name}' has {pct:.2f}% but the "
                f"{status.value} total is zero; dropped",
                subject=investment.name,
            )
            dropped = True
        elif total < 0:
            record(
                warnings,
                logger,
                WarningKind.NEGATIVE_STATUS_TOTAL,
                f"Investment '{investment.name}' contributes to a negative "
                f"{status.value} total ({total}); dropped",
                subject=investment.name,
            )
            dropped = True

    within_status = {
        status: absorb_residual(cells, decimals=config.percent_decimals)
        for status, cells in within_status.items()
    }
    tax_status = round_map(
        {status: max(total, 0.0) for status, total in status_totals.items()},
        config.percent_decimals,
    )
    if dropped:
        tax_status = absorb_residual(
            round_map(renormalize(tax_status), config.percent_decimals),
            decimals=config.percent_decimals,
        )

    return BuildResult(
        allocation=NestedAllocation(tax_status=tax_status, within_status=within_status),
        warnings=warnings,
    )
