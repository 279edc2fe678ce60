"""Independent random streams and plans for a batch of Monte Carlo trials.

Each trial gets its own ``numpy.random.Generator`` spawned from one
``SeedSequence``, so results are reproducible from a single seed and do not
depend on the order (or the process) in which trials are run.

A fatal :class:`~retiremint.errors.ResolutionError` means the scenario
itself cannot be resolved; it is raised on the first trial and never
retried.

"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np

from retiremint.config import ResolutionConfig
from retiremint.errors import ResolutionError
from retiremint.model import Scenario
from retiremint.plan.builder import ResolvedPlan, build_plan

logger = logging.getLogger(__name__)


def spawn_trial_rngs(seed: int | None, n_trials: int) -> list[np.random.Generator]:
    """Create one independent generator per trial.

    Args:
        seed: Root seed; None draws fresh entropy from the OS.
        n_trials: Number of trials.

    Returns:
        List of ``n_trials`` generators.

    Raises:
        ValueError: If n_trials is negative.

    """
    if n_trials < 0:
        msg = f"n_trials must be non-negative, got {n_trials}"
        raise ValueError(msg)
    children = np.random.SeedSequence(seed).spawn(n_trials)
    return [np.random.default_rng(child) for child in children]


def iter_trial_plans(
    scenario: Scenario,
    n_trials: int,
    seed: int | None = None,
    config: ResolutionConfig | None = None,
) -> Iterator[ResolvedPlan]:
    """Yield one resolved plan per trial.

    Args:
        scenario: Scenario definition (read only).
        n_trials: Number of trials.
        seed: Root seed; falls back to ``scenario.seed``.
        config: Resolution settings.

    Yields:
        ResolvedPlan for each trial, in trial order.

    Raises:
        ResolutionError: On the first trial if the scenario is unresolvable.

    """
    root_seed = scenario.seed if seed is None else seed
    for index, rng in enumerate(spawn_trial_rngs(root_seed, n_trials)):
        try:
            plan = build_plan(scenario, rng, config)
        except ResolutionError as exc:
            logger.error(
                "Scenario '%s' cannot be resolved (trial %d): %s",
                scenario.name,
                index,
                exc,
            )
            raise
        yield plan


def build_trial_plans(
    scenario: Scenario,
    n_trials: int,
    seed: int | None = None,
    config: ResolutionConfig | None = None,
) -> list[ResolvedPlan]:
    """Resolve ``n_trials`` plans eagerly. See :func:`iter_trial_plans`."""
    plans = list(iter_trial_plans(scenario, n_trials, seed, config))
    n_warnings = sum(len(plan.warnings) for plan in plans)
    logger.info(
        "Resolved %d trial plans for scenario '%s' (%d warnings)",
        len(plans),
        scenario.name,
        n_warnings,
    )
    return plans
