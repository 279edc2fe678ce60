"""Assembly of a resolved, trial-ready plan.

``build_plan`` runs once per Monte Carlo trial. It orders the scenario's
events, samples their timings from the trial's random stream, converts
every invest/rebalance allocation to nested form and checks it, and
returns a :class:`ResolvedPlan` that the simulation engine reads year by
year. The scenario is only read, never modified, so trials can build plans
concurrently as long as each owns its own ``numpy.random.Generator``.

"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from retiremint.allocation import codec, glide_path
from retiremint.config import DEFAULT_CONFIG, ResolutionConfig
from retiremint.diagnostics import ResolutionWarning, WarningKind, record
from retiremint.errors import AllocationSumError
from retiremint.events.graph import check_unique_names
from retiremint.events.timing import resolve_timings
from retiremint.model import (
    AllocationPayload,
    EventSeries,
    EventType,
    FlatAllocation,
    Investment,
    NestedAllocation,
    Scenario,
)
from retiremint.validation import validate_nested_allocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedEvent:
    """One event's concrete timing and allocation for a single trial.

    Attributes:
        name: Event name.
        event_type: Event type.
        start_year: First active year.
        duration: Length in years; the event is active through
            ``start_year + duration``.
        initial_allocation: Nested allocation at the start (invest and
            rebalance events only).
        final_allocation: Glide-path target, or None for a fixed allocation.
        config: Settings the event was resolved under; glide-path
            interpolation uses the same rounding.

    """

    name: str
    event_type: EventType
    start_year: int
    duration: int
    initial_allocation: NestedAllocation | None = None
    final_allocation: NestedAllocation | None = None
    config: ResolutionConfig = DEFAULT_CONFIG

    @property
    def end_year(self) -> int:
        """Last active year."""
        return self.start_year + self.duration

    @property
    def is_glide_path(self) -> bool:
        """Whether the allocation drifts over the event's duration."""
        return self.initial_allocation is not None and self.final_allocation is not None

    def is_active(self, year: int) -> bool:
        """Whether ``year`` falls within the event."""
        return self.start_year <= year <= self.end_year

    def allocation_for_year(
        self,
        year: int,
        config: ResolutionConfig | None = None,
    ) -> NestedAllocation | None:
        """Target allocation in ``year``.

        Args:
            year: Calendar year, within ``[start_year, end_year]``.
            config: Rounding settings for glide-path interpolation; defaults
                to the settings the event was resolved under.

        Returns:
            The nested allocation for that year, or None when the event
            carries no allocation.

        Raises:
            ValueError: If ``year`` is outside the event.

        """
        if not self.is_active(year):
            msg = (
                f"Year {year} is outside event '{self.name}' "
                f"({self.start_year}-{self.end_year})"
            )
            raise ValueError(msg)
        if self.initial_allocation is None:
            return None
        if self.final_allocation is None:
            return self.initial_allocation
        return glide_path.resolve(
            self.initial_allocation,
            self.final_allocation,
            year - self.start_year,
            self.duration,
            config or self.config,
        )


@dataclass(frozen=True)
class ResolvedPlan:
    """All resolved events of one trial.

    Attributes:
        events: Resolved events keyed by name, in declaration order.
        order: Event names in the order they were resolved.
        warnings: Recoverable problems met while resolving.

    """

    events: dict[str, ResolvedEvent]
    order: tuple[str, ...]
    warnings: tuple[ResolutionWarning, ...] = ()

    def __getitem__(self, name: str) -> ResolvedEvent:
        """Resolved event by name."""
        return self.events[name]

    def __iter__(self) -> Iterator[ResolvedEvent]:
        """Iterate events in declaration order."""
        return iter(self.events.values())

    def __len__(self) -> int:
        """Number of events."""
        return len(self.events)

    def active_events(
        self,
        year: int,
        event_type: EventType | None = None,
    ) -> list[ResolvedEvent]:
        """Events active in ``year``, optionally of one type, in declaration order."""
        return [
            event
            for event in self.events.values()
            if event.is_active(year)
            and (event_type is None or event.event_type is event_type)
        ]

    def allocation_target(
        self,
        year: int,
        event_type: EventType,
        config: ResolutionConfig | None = None,
    ) -> tuple[str, NestedAllocation] | None:
        """Allocation governing ``year`` for invest or rebalance actions.

        When several events of ``event_type`` are active, the last declared
        one with an allocation wins.

        Returns:
            ``(event_name, allocation)``, or None if no such event is active.

        """
        for event in reversed(self.active_events(year, event_type)):
            allocation = event.allocation_for_year(year, config)
            if allocation is not None:
                return event.name, allocation
        return None

    def to_frame(self) -> pd.DataFrame:
        """Timings as a DataFrame, one row per event in declaration order."""
        return pd.DataFrame(
            [
                {
                    "name": event.name,
                    "type": event.event_type.value,
                    "start_year": event.start_year,
                    "end_year": event.end_year,
                    "duration": event.duration,
                    "glide_path": event.is_glide_path,
                }
                for event in self.events.values()
            ],
            columns=["name", "type", "start_year", "end_year", "duration", "glide_path"],
        )


def build_plan(
    scenario: Scenario,
    rng: np.random.Generator,
    config: ResolutionConfig | None = None,
) -> ResolvedPlan:
    """Resolve ``scenario`` into a concrete plan for one trial.

    Args:
        scenario: Scenario definition (read only).
        rng: This trial's random source.
        config: Resolution settings; defaults to :data:`DEFAULT_CONFIG`.

    Returns:
        The resolved plan with accumulated warnings.

    Raises:
        DuplicateNameError: If two events share a name.
        CyclicDependencyError: If start references form a cycle.
        UnresolvedReferenceError: If an event references an unknown event.
        InvalidDurationError: If a duration can never be positive.
        InvalidDistributionError: If a distribution is malformed.
        AllocationSumError: If a built allocation does not sum to 100%.

    """
    config = config or DEFAULT_CONFIG
    check_unique_names(scenario.events)

    timing = resolve_timings(scenario.events, rng, config)
    warnings = list(timing.warnings)
    investments_by_name = scenario.investments_by_name()

    resolved: dict[str, ResolvedEvent] = {}
    for event in scenario.events:
        event_timing = timing.timings[event.name]
        initial: NestedAllocation | None = None
        final: NestedAllocation | None = None
        if event.event_type.has_allocation:
            initial, final = _resolve_allocations(
                event, investments_by_name, config, warnings
            )
        resolved[event.name] = ResolvedEvent(
            name=event.name,
            event_type=event.event_type,
            start_year=event_timing.start_year,
            duration=event_timing.duration,
            initial_allocation=initial,
            final_allocation=final,
            config=config,
        )

    logger.info(
        "Resolved plan for scenario '%s': %d events, %d warnings",
        scenario.name,
        len(resolved),
        len(warnings),
    )
    return ResolvedPlan(events=resolved, order=tuple(timing.order), warnings=tuple(warnings))


def _resolve_allocations(
    event: EventSeries,
    investments_by_name: Mapping[str, Investment],
    config: ResolutionConfig,
    warnings: list[ResolutionWarning],
) -> tuple[NestedAllocation | None, NestedAllocation | None]:
    """Build the initial and (glide path) final allocations of ``event``."""
    payload = event.payload
    if not isinstance(payload, AllocationPayload) or not payload.allocation:
        record(
            warnings,
            logger,
            WarningKind.MISSING_ALLOCATION,
            f"{event.event_type.value} event '{event.name}' has no allocation",
            subject=event.name,
        )
        return None, None

    initial = _build_checked(
        payload.allocation, event.name, investments_by_name, config, warnings
    )
    if initial is None:
        record(
            warnings,
            logger,
            WarningKind.MISSING_ALLOCATION,
            f"No investment in the allocation of '{event.name}' could be placed",
            subject=event.name,
        )
        return None, None

    if not payload.glide_path:
        return initial, None

    final = None
    if payload.final_allocation:
        final = _build_checked(
            payload.final_allocation, event.name, investments_by_name, config, warnings
        )
    if final is None:
        record(
            warnings,
            logger,
            WarningKind.GLIDE_PATH_WITHOUT_FINAL,
            f"Glide path event '{event.name}' has no usable final allocation; "
            "using the initial allocation throughout",
            subject=event.name,
        )
    return initial, final


def _build_checked(
    flat: FlatAllocation,
    subject: str,
    investments_by_name: Mapping[str, Investment],
    config: ResolutionConfig,
    warnings: list[ResolutionWarning],
) -> NestedAllocation | None:
    """Build a nested allocation and enforce its 100% invariants.

    Returns None when nothing could be placed.
    """
    result = codec.build(flat, investments_by_name, config)
    warnings.extend(result.warnings)
    if result.allocation.is_empty():
        return None

    issues = validate_nested_allocation(
        result.allocation, tolerance=config.sum_tolerance, subject=subject
    )
    if issues:
        raise AllocationSumError(subject, [issue.message for issue in issues])
    return result.allocation
