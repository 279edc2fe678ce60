"""Per-trial resolution of event start years and durations.

Events are resolved in dependency order (see :mod:`retiremint.events.graph`).
For each event the start year is resolved first, then the duration, both
drawn from the trial's random stream; the same seed therefore always
yields the same timings.

An event that starts in year ``S`` and lasts ``D`` years ends in year
``S + D``; an event starting ``YearAfterEnd`` of it starts in ``S + D + 1``.

"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from retiremint.config import DEFAULT_CONFIG, BoundPolicy, ResolutionConfig
from retiremint.diagnostics import ResolutionWarning, WarningKind, record
from retiremint.errors import InvalidDurationError, UnresolvedReferenceError
from retiremint.events.graph import topological_order
from retiremint.events.sampling import check_distribution, sample_integer
from retiremint.model import EventSeries, Fixed, Normal, SameYearAs, Uniform, YearAfterEnd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventTiming:
    """Concrete timing of one event in one trial."""

    start_year: int
    duration: int

    @property
    def end_year(self) -> int:
        """Last year of the event (``start_year + duration``)."""
        return self.start_year + self.duration


class SampledValue(NamedTuple):
    """A resolved integer plus the warnings raised resolving it."""

    value: int
    warnings: list[ResolutionWarning]


class TimingResult(NamedTuple):
    """Timings for every event, their evaluation order, and warnings."""

    timings: dict[str, EventTiming]
    order: list[str]
    warnings: list[ResolutionWarning]


def resolve_start(
    event: EventSeries,
    resolved: Mapping[str, EventTiming],
    rng: np.random.Generator,
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> SampledValue:
    """Resolve the start year of ``event``.

    Args:
        event: Event to resolve.
        resolved: Timings of events already resolved in this trial.
        rng: Random source for this trial.
        config: Resolution settings.

    Returns:
        SampledValue with the start year.

    Raises:
        UnresolvedReferenceError: If the referenced event has no timing yet.
        InvalidDistributionError: If the start distribution is malformed.

    """
    warnings: list[ResolutionWarning] = []
    start = event.start

    if isinstance(start, SameYearAs | YearAfterEnd):
        reference = resolved.get(start.event)
        if reference is None:
            raise UnresolvedReferenceError(event.name, start.event)
        if isinstance(start, SameYearAs):
            year = reference.start_year
        else:
            year = reference.end_year + 1
    else:
        year = sample_integer(start, rng, event.name)

    earliest = config.earliest_start_year
    if earliest is not None and year < earliest:
        record(
            warnings,
            logger,
            WarningKind.START_CLAMPED,
            f"Event '{event.name}' start {year} is before {earliest}; "
            f"clamped to {earliest}",
            subject=event.name,
        )
        year = earliest

    return SampledValue(value=year, warnings=warnings)


def resolve_duration(
    event: EventSeries,
    rng: np.random.Generator,
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> SampledValue:
    """Resolve the duration of ``event`` in whole years.

    A fixed duration of zero or less, or a uniform range lying entirely at
    or below zero, can never produce a valid duration and is rejected.
    Other draws below ``config.min_duration`` are clamped with a warning;
    normal draws are first redrawn when ``config.duration_policy`` is
    ``BoundPolicy.RESAMPLE``.

    Args:
        event: Event to resolve.
        rng: Random source for this trial.
        config: Resolution settings.

    Returns:
        SampledValue with the duration.

    Raises:
        InvalidDurationError: If the duration spec can never be positive.
        InvalidDistributionError: If the duration distribution is malformed.

    """
    warnings: list[ResolutionWarning] = []
    spec = event.duration
    check_distribution(spec, event.name)

    if isinstance(spec, Fixed) and spec.value <= 0:
        raise InvalidDurationError(spec.value, event.name)
    if isinstance(spec, Uniform) and spec.high <= 0:
        raise InvalidDurationError(spec.high, event.name)

    minimum = config.min_duration
    years = sample_integer(spec, rng, event.name)

    if (
        years < minimum
        and isinstance(spec, Normal)
        and config.duration_policy is BoundPolicy.RESAMPLE
    ):
        for _ in range(config.max_resamples):
            years = sample_integer(spec, rng, event.name)
            if years >= minimum:
                break

    if years < minimum:
        record(
            warnings,
            logger,
            WarningKind.DURATION_CLAMPED,
            f"Event '{event.name}' duration {years} is below {minimum}; "
            f"clamped to {minimum}",
            subject=event.name,
        )
        years = minimum

    return SampledValue(value=years, warnings=warnings)


def resolve_timings(
    events: Sequence[EventSeries],
    rng: np.random.Generator,
    config: ResolutionConfig = DEFAULT_CONFIG,
) -> TimingResult:
    """Resolve start year and duration for every event of a trial.

    Args:
        events: Event series in declaration order.
        rng: Random source for this trial.
        config: Resolution settings.

    Returns:
        TimingResult with timings keyed by event name (in evaluation
        order), the evaluation order, and accumulated warnings.

    Raises:
        ResolutionError: Any fatal error from ordering or sampling.

    """
    order = topological_order(events)
    by_name = {event.name: event for event in events}
    timings: dict[str, EventTiming] = {}
    warnings: list[ResolutionWarning] = []

    for name in order:
        event = by_name[name]
        start = resolve_start(event, timings, rng, config)
        duration = resolve_duration(event, rng, config)
        warnings.extend(start.warnings)
        warnings.extend(duration.warnings)
        timings[name] = EventTiming(start_year=start.value, duration=duration.value)
        logger.debug(
            "Resolved '%s': start %d, duration %d", name, start.value, duration.value
        )

    return TimingResult(timings=timings, order=order, warnings=warnings)
