"""Import of exchange-format scenario documents.

Maps an already-parsed exchange document (a YAML or JSON mapping) to a
:class:`~retiremint.model.Scenario`. The expected shape::

    name: Retirement plan
    investments:
      - {id: S&P 500 pre-tax, investmentType: S&P 500, value: 10000,
         taxStatus: pre-tax}
      - {id: cash, investmentType: cash, value: 500, taxStatus: non-retirement}
    eventSeries:
      - name: salary
        type: income
        start: {type: fixed, value: 2025}
        duration: {type: uniform, lower: 5, upper: 10}
        initialAmount: 80000
        changeAmtOrPct: percent
        changeDistribution: {type: normal, mean: 0.03, stdev: 0.01}
      - name: invest
        type: invest
        start: {type: startAfter, eventSeries: salary}
        duration: {type: fixed, value: 20}
        assetAllocation: {S&P 500 pre-tax: 1.0}
        glidePath: false

Investment ``id`` doubles as the display name. Holdings whose
``investmentType`` is ``cash`` are added to the scenario's initial cash
instead of becoming investments.

"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from retiremint.model import (
    AllocationPayload,
    CashFlowPayload,
    Distribution,
    DurationSpec,
    EventSeries,
    EventType,
    FlatAllocation,
    Fixed,
    Investment,
    Normal,
    SameYearAs,
    Scenario,
    StartSpec,
    TaxStatus,
    Uniform,
    YearAfterEnd,
)

logger = logging.getLogger(__name__)

CASH_INVESTMENT_TYPE = "cash"


def _require(data: Mapping[str, Any], key: str, context: str) -> Any:
    """Fetch a mandatory key.

    Raises:
        ValueError: If the key is missing or null.

    """
    value = data.get(key)
    if value is None:
        msg = f"{context}: missing required key '{key}'"
        raise ValueError(msg)
    return value


def parse_distribution(data: Mapping[str, Any], context: str = "distribution") -> Distribution:
    """Parse a ``fixed``, ``normal`` or ``uniform`` distribution.

    Normal distributions accept either ``stdev`` or ``sd``.

    Args:
        data: Mapping with a ``type`` key and the type's parameters.
        context: Label used in error messages.

    Returns:
        Fixed, Normal or Uniform.

    Raises:
        ValueError: On an unknown type or a missing parameter.

    """
    kind = data.get("type")
    if kind == "fixed":
        return Fixed(float(_require(data, "value", context)))
    if kind == "normal":
        sd = data.get("stdev", data.get("sd"))
        if sd is None:
            msg = f"{context}: normal distribution needs 'stdev' or 'sd'"
            raise ValueError(msg)
        return Normal(float(_require(data, "mean", context)), float(sd))
    if kind == "uniform":
        return Uniform(
            float(_require(data, "lower", context)),
            float(_require(data, "upper", context)),
        )
    msg = f"{context}: unsupported distribution type {kind!r}"
    raise ValueError(msg)


def parse_start(data: Mapping[str, Any], event_name: str = "") -> StartSpec:
    """Parse an event's ``start`` block.

    Raises:
        ValueError: On an unsupported start type or a missing parameter.

    """
    context = f"Event '{event_name}' start"
    kind = data.get("type")
    if kind == "startWith":
        return SameYearAs(str(_require(data, "eventSeries", context)))
    if kind == "startAfter":
        return YearAfterEnd(str(_require(data, "eventSeries", context)))
    if kind not in ("fixed", "normal", "uniform"):
        msg = f"{context}: unsupported start type {kind!r}"
        raise ValueError(msg)
    return parse_distribution(data, context)


def parse_duration(data: Mapping[str, Any], event_name: str = "") -> DurationSpec:
    """Parse an event's ``duration`` block.

    Raises:
        ValueError: On an unsupported duration type or a missing parameter.

    """
    context = f"Event '{event_name}' duration"
    if data.get("type") not in ("fixed", "normal", "uniform"):
        msg = f"{context}: unsupported duration type {data.get('type')!r}"
        raise ValueError(msg)
    return parse_distribution(data, context)


def parse_investments(items: Iterable[Mapping[str, Any]]) -> tuple[tuple[Investment, ...], float]:
    """Parse the ``investments`` list.

    Args:
        items: Investment mappings with ``id``, ``investmentType``,
            ``value`` and ``taxStatus``.

    Returns:
        Tuple of (investments, initial cash).

    Raises:
        ValueError: On an unknown tax status or a negative value.

    """
    investments: list[Investment] = []
    initial_cash = 0.0

    for item in items:
        investment_type = str(item.get("investmentType", ""))
        value = float(item.get("value") or 0.0)
        if investment_type.lower() == CASH_INVESTMENT_TYPE:
            initial_cash += value
            continue

        name = item.get("id")
        if not name:
            logger.warning("Skipping investment without an 'id': %s", dict(item))
            continue

        investments.append(
            Investment(
                id=str(name),
                name=str(name),
                tax_status=TaxStatus(item.get("taxStatus")),
                value=value,
                investment_type=investment_type,
            )
        )

    return tuple(investments), initial_cash


def _parse_flat(data: Mapping[str, Any] | None) -> FlatAllocation:
    if not data:
        return {}
    return {str(name): float(fraction) for name, fraction in data.items()}


def parse_event(data: Mapping[str, Any]) -> EventSeries:
    """Parse one ``eventSeries`` entry.

    Args:
        data: Event mapping.

    Returns:
        EventSeries with a payload matching its type.

    Raises:
        ValueError: On an unknown event type or a malformed start/duration.

    """
    name = str(_require(data, "name", "Event series"))
    event_type = EventType(_require(data, "type", f"Event '{name}'"))
    start = parse_start(_require(data, "start", f"Event '{name}'"), name)
    duration = parse_duration(_require(data, "duration", f"Event '{name}'"), name)

    payload: CashFlowPayload | AllocationPayload
    if event_type.has_allocation:
        final = data.get("assetAllocation2")
        max_cash = data.get("maxCash")
        payload = AllocationPayload(
            allocation=_parse_flat(data.get("assetAllocation")),
            final_allocation=_parse_flat(final) if final else None,
            glide_path=bool(data.get("glidePath", False)),
            max_cash=float(max_cash) if max_cash is not None else None,
        )
    else:
        change = data.get("changeDistribution")
        payload = CashFlowPayload(
            initial_amount=float(data.get("initialAmount") or 0.0),
            change_distribution=(
                parse_distribution(change, f"Event '{name}' changeDistribution")
                if change
                else None
            ),
            change_is_percent=data.get("changeAmtOrPct", "percent") != "amount",
            inflation_adjusted=bool(data.get("inflationAdjusted", False)),
            user_fraction=float(data.get("userFraction", 1.0)),
            social_security=bool(data.get("socialSecurity", False)),
            discretionary=bool(data.get("discretionary", False)),
        )

    return EventSeries(
        name=name,
        event_type=event_type,
        start=start,
        duration=duration,
        payload=payload,
        description=str(data.get("description") or ""),
    )


def parse_scenario(data: Mapping[str, Any]) -> Scenario:
    """Build a scenario from an exchange document.

    Only structure is checked here; run
    :func:`retiremint.validation.validate_scenario` to report allocation or
    reference problems to the user.

    Args:
        data: Parsed exchange document.

    Returns:
        The scenario.

    Raises:
        ValueError: If the document is malformed.

    """
    investments, initial_cash = parse_investments(data.get("investments") or [])
    events = tuple(parse_event(item) for item in data.get("eventSeries") or [])
    seed = data.get("seed")

    scenario = Scenario(
        name=str(data.get("name") or ""),
        investments=investments,
        events=events,
        initial_cash=initial_cash,
        seed=int(seed) if seed is not None else None,
    )
    logger.info(
        "Imported scenario '%s': %d investments, %d event series, cash %.2f",
        scenario.name,
        len(investments),
        len(events),
        initial_cash,
    )
    return scenario
