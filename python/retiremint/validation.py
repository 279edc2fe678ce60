"""Validation at the editing and import boundary.

These checks report problems to a user (form or import pipeline) instead of
raising: each returns a list of :class:`ValidationIssue`, empty when the
input is valid. Partial allocations are legal while a scenario is being
edited; the resolver enforces the 100% invariants only when a plan is built.

"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass

from retiremint.allocation.percentages import SumMismatch, validate_sum
from retiremint.config import DEFAULT_CONFIG
from retiremint.errors import ResolutionError
from retiremint.events.graph import topological_order
from retiremint.events.sampling import distribution_problem
from retiremint.model import (
    AllocationPayload,
    EventSeries,
    Fixed,
    Investment,
    NestedAllocation,
    Normal,
    Scenario,
    TaxStatus,
    Uniform,
)

logger = logging.getLogger(__name__)

# Flat fractions are stored to 4 dp, so a few entries can drift by ~1e-4
_FLAT_SUM_TOLERANCE = 1e-3


@dataclass(frozen=True)
class ValidationIssue:
    """A user-facing validation failure.

    Attributes:
        field: Which part of the input failed, e.g. ``"taxStatusAllocation"``
            or ``"eventSeries[2].assetAllocation"``.
        message: Human readable explanation.
        subject: Event or investment name the issue concerns.
        mismatch: The offending total, for sum checks.

    """

    field: str
    message: str
    subject: str = ""
    mismatch: SumMismatch | None = None


def validate_nested_allocation(
    nested: NestedAllocation,
    investments_by_id: Mapping[str, Investment] | None = None,
    tolerance: float = DEFAULT_CONFIG.sum_tolerance,
    subject: str = "",
) -> list[ValidationIssue]:
    """Check the 100% invariants of a nested allocation.

    The tax-status map must sum to 100, and so must the within-status map
    of every status with a positive top-level share. When
    ``investments_by_id`` is given, investments filed under a bucket that
    does not match their own tax status are reported too.

    Args:
        nested: Allocation to check.
        investments_by_id: Optional lookup for the bucket consistency check.
        tolerance: Allowed deviation from 100.
        subject: Event name for the issues.

    Returns:
        List of issues, empty when valid.

    """
    issues: list[ValidationIssue] = []

    mismatch = validate_sum(nested.tax_status, 100.0, tolerance)
    if mismatch is not None:
        issues.append(
            ValidationIssue(
                field="taxStatusAllocation",
                message=f"Tax status allocation totals {mismatch.actual:.2f}% "
                "(must equal 100%)",
                subject=subject,
                mismatch=mismatch,
            )
        )

    for status in TaxStatus:
        within = nested.within(status)
        if nested.status_percent(status) > 0:
            mismatch = validate_sum(within, 100.0, tolerance)
            if mismatch is not None:
                issues.append(
                    ValidationIssue(
                        field=f"{status.value} allocation",
                        message=f"{status.value} allocation totals "
                        f"{mismatch.actual:.2f}% (must equal 100%)",
                        subject=subject,
                        mismatch=mismatch,
                    )
                )

        if investments_by_id is None:
            continue
        for investment_id in within:
            investment = investments_by_id.get(investment_id)
            if investment is not None and investment.tax_status is not status:
                issues.append(
                    ValidationIssue(
                        field=f"{status.value} allocation",
                        message=f"Investment '{investment.name}' is "
                        f"{investment.tax_status.value}, not {status.value}",
                        subject=subject,
                    )
                )

    return issues


def validate_flat_allocation(
    flat: Mapping[str, float],
    investments_by_name: Mapping[str, Investment] | None = None,
    subject: str = "",
    field: str = "assetAllocation",
) -> list[ValidationIssue]:
    """Check an exchange-format allocation.

    Every fraction must lie in [0, 1] and the fractions must sum to 1.
    When ``investments_by_name`` is given, unknown names are reported.

    Args:
        flat: Investment name -> fraction map.
        investments_by_name: Optional lookup for the unknown-name check.
        subject: Event name for the issues.
        field: Field name for the issues.

    Returns:
        List of issues, empty when valid.

    """
    issues: list[ValidationIssue] = []

    for name, fraction in flat.items():
        if not 0.0 <= fraction <= 1.0:
            issues.append(
                ValidationIssue(
                    field=field,
                    message=f"Fraction for '{name}' is {fraction} (must be in [0, 1])",
                    subject=subject,
                )
            )
        if investments_by_name is not None and name not in investments_by_name:
            issues.append(
                ValidationIssue(
                    field=field,
                    message=f"Unknown investment '{name}'",
                    subject=subject,
                )
            )

    mismatch = validate_sum(flat, 1.0, _FLAT_SUM_TOLERANCE)
    if mismatch is not None:
        issues.append(
            ValidationIssue(
                field=field,
                message=f"Allocation totals {mismatch.actual:.4f} (must equal 1.0)",
                subject=subject,
                mismatch=mismatch,
            )
        )

    return issues


def validate_scenario(scenario: Scenario) -> list[ValidationIssue]:
    """Check a scenario before it is saved or simulated.

    Covers duplicate investment names, the event reference graph
    (duplicate names, unknown references, cycles), start and duration
    distributions, and every invest or rebalance allocation.

    Args:
        scenario: Scenario to check.

    Returns:
        List of issues, empty when the scenario is valid.

    """
    issues: list[ValidationIssue] = []

    name_counts = Counter(inv.name for inv in scenario.investments)
    for name, count in name_counts.items():
        if count > 1:
            issues.append(
                ValidationIssue(
                    field="investments",
                    message=f"Investment name '{name}' is used {count} times",
                    subject=name,
                )
            )

    try:
        topological_order(scenario.events)
    except ResolutionError as exc:
        issues.append(ValidationIssue(field="eventSeries", message=str(exc)))

    by_name = scenario.investments_by_name()
    for index, event in enumerate(scenario.events):
        issues.extend(_timing_issues(event, index))
        payload = event.payload
        if not event.event_type.has_allocation:
            continue
        if not isinstance(payload, AllocationPayload) or not payload.allocation:
            issues.append(
                ValidationIssue(
                    field=f"eventSeries[{index}].assetAllocation",
                    message=f"{event.event_type.value} event has no allocation",
                    subject=event.name,
                )
            )
            continue
        issues.extend(
            validate_flat_allocation(
                payload.allocation,
                by_name,
                subject=event.name,
                field=f"eventSeries[{index}].assetAllocation",
            )
        )
        if payload.glide_path and payload.final_allocation:
            issues.extend(
                validate_flat_allocation(
                    payload.final_allocation,
                    by_name,
                    subject=event.name,
                    field=f"eventSeries[{index}].assetAllocation2",
                )
            )

    if issues:
        logger.info(
            "Scenario '%s' has %d validation issue(s)", scenario.name, len(issues)
        )
    return issues


def _timing_issues(event: EventSeries, index: int) -> list[ValidationIssue]:
    """Malformed start or duration parameters of one event."""
    issues: list[ValidationIssue] = []
    specs = {"start": event.start, "duration": event.duration}
    for key, spec in specs.items():
        if not isinstance(spec, Fixed | Normal | Uniform):
            continue
        problem = distribution_problem(spec)
        if problem is not None:
            issues.append(
                ValidationIssue(
                    field=f"eventSeries[{index}].{key}",
                    message=f"Invalid {key} distribution: {problem}",
                    subject=event.name,
                )
            )

    duration = event.duration
    never_positive = (isinstance(duration, Fixed) and duration.value <= 0) or (
        isinstance(duration, Uniform) and duration.high <= 0
    )
    if never_positive:
        issues.append(
            ValidationIssue(
                field=f"eventSeries[{index}].duration",
                message="Duration can never be at least one year",
                subject=event.name,
            )
        )
    return issues
