"""Per-year view of a resolved plan over a simulation horizon."""

from __future__ import annotations

import pandas as pd

from retiremint.plan.builder import ResolvedPlan


def events_by_year(plan: ResolvedPlan, first_year: int, n_years: int) -> list[list[str]]:
    """List the events active in each simulation year.

    Args:
        plan: Resolved plan for one trial.
        first_year: Calendar year of simulation index 0.
        n_years: Length of the simulation horizon.

    Returns:
        ``n_years`` lists of event names, each in declaration order.
        Events falling partly or wholly outside the horizon only appear in
        the years they overlap.

    Raises:
        ValueError: If n_years is negative.

    """
    if n_years < 0:
        msg = f"n_years must be non-negative, got {n_years}"
        raise ValueError(msg)

    schedule: list[list[str]] = [[] for _ in range(n_years)]
    for event in plan:
        first = max(event.start_year - first_year, 0)
        last = min(event.end_year - first_year, n_years - 1)
        for index in range(first, last + 1):
            schedule[index].append(event.name)
    return schedule


def schedule_frame(plan: ResolvedPlan, first_year: int, n_years: int) -> pd.DataFrame:
    """Activity matrix: one row per year, one boolean column per event."""
    years = range(first_year, first_year + n_years)
    return pd.DataFrame(
        {event.name: [event.is_active(year) for year in years] for event in plan},
        index=pd.Index(list(years), name="year"),
    )
