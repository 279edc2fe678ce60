"""Export of scenarios to the exchange format.

The inverse of :mod:`retiremint.exchange.scenario_import`. Keys and value
shapes match what the importer (and other tools reading the format)
expect, so ``parse_scenario(scenario_to_exchange(s))`` reproduces ``s``.

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from retiremint.allocation import codec
from retiremint.config import DEFAULT_CONFIG, ResolutionConfig
from retiremint.exchange.scenario_import import CASH_INVESTMENT_TYPE
from retiremint.model import (
    AllocationPayload,
    CashFlowPayload,
    Distribution,
    DurationSpec,
    EventSeries,
    EventType,
    Fixed,
    Investment,
    NestedAllocation,
    Normal,
    SameYearAs,
    Scenario,
    StartSpec,
    TaxStatus,
    Uniform,
    YearAfterEnd,
)


def _number(value: float) -> int | float:
    """Write whole numbers without a trailing ``.0``."""
    return int(value) if float(value).is_integer() else value


def export_allocation(
    nested: NestedAllocation,
    investments_by_id: Mapping[str, Investment],
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> codec.FlattenResult:
    """Flatten a nested allocation for export.

    Entries that cannot be placed are dropped; see
    :func:`retiremint.allocation.codec.flatten`.

    Returns:
        FlattenResult with the name -> fraction map and a warning for
        every dropped entry.

    """
    return codec.flatten(nested, investments_by_id, config)


def format_distribution(dist: Distribution) -> dict[str, Any]:
    """Exchange form of a fixed, normal or uniform distribution.

    Raises:
        TypeError: If ``dist`` is not a distribution.

    """
    if isinstance(dist, Fixed):
        return {"type": "fixed", "value": _number(dist.value)}
    if isinstance(dist, Normal):
        return {"type": "normal", "mean": _number(dist.mean), "stdev": _number(dist.sd)}
    if isinstance(dist, Uniform):
        return {"type": "uniform", "lower": _number(dist.low), "upper": _number(dist.high)}
    msg = f"Not a distribution: {dist!r}"
    raise TypeError(msg)


def format_start(start: StartSpec) -> dict[str, Any]:
    """Exchange form of a start-year specification."""
    if isinstance(start, SameYearAs):
        return {"type": "startWith", "eventSeries": start.event}
    if isinstance(start, YearAfterEnd):
        return {"type": "startAfter", "eventSeries": start.event}
    return format_distribution(start)


def format_duration(duration: DurationSpec) -> dict[str, Any]:
    """Exchange form of a duration specification."""
    return format_distribution(duration)


def format_investment(investment: Investment) -> dict[str, Any]:
    """Exchange form of an investment; the name is written as ``id``."""
    return {
        "id": investment.name,
        "investmentType": investment.investment_type,
        "value": _number(investment.value),
        "taxStatus": investment.tax_status.value,
    }


def format_event(event: EventSeries) -> dict[str, Any]:
    """Exchange form of an event series.

    Args:
        event: Event to export.

    Returns:
        Mapping with ``name``, ``start``, ``duration``, ``type`` and the
        type-specific keys.

    """
    data: dict[str, Any] = {
        "name": event.name,
        "start": format_start(event.start),
        "duration": format_duration(event.duration),
        "type": event.event_type.value,
    }
    if event.description:
        data["description"] = event.description

    payload = event.payload
    if isinstance(payload, CashFlowPayload):
        data["initialAmount"] = _number(payload.initial_amount)
        if payload.change_distribution is not None:
            data["changeDistribution"] = format_distribution(payload.change_distribution)
        data["changeAmtOrPct"] = "percent" if payload.change_is_percent else "amount"
        data["inflationAdjusted"] = payload.inflation_adjusted
        data["userFraction"] = payload.user_fraction
        if event.event_type is EventType.INCOME:
            data["socialSecurity"] = payload.social_security
        else:
            data["discretionary"] = payload.discretionary
    elif isinstance(payload, AllocationPayload):
        data["assetAllocation"] = dict(payload.allocation)
        data["glidePath"] = payload.glide_path
        if payload.glide_path and payload.final_allocation:
            data["assetAllocation2"] = dict(payload.final_allocation)
        if event.event_type is EventType.INVEST:
            data["maxCash"] = payload.max_cash

    return data


def scenario_to_exchange(scenario: Scenario) -> dict[str, Any]:
    """Exchange document for a scenario.

    Initial cash is written back as a ``cash`` holding.

    """
    investments = [format_investment(inv) for inv in scenario.investments]
    if scenario.initial_cash > 0:
        investments.append(
            {
                "id": CASH_INVESTMENT_TYPE,
                "investmentType": CASH_INVESTMENT_TYPE,
                "value": _number(scenario.initial_cash),
                "taxStatus": TaxStatus.NON_RETIREMENT.value,
            }
        )

    data: dict[str, Any] = {
        "name": scenario.name,
        "investments": investments,
        "eventSeries": [format_event(event) for event in scenario.events],
    }
    if scenario.seed is not None:
        data["seed"] = scenario.seed
    return data
