"""Sampling of start-year and duration distributions.

Every draw takes an explicit ``numpy.random.Generator`` so a trial is
fully reproducible from its seed and trials can run in parallel without
sharing a random source.

"""

from __future__ import annotations

import math

import numpy as np

from retiremint.errors import InvalidDistributionError
from retiremint.model import Distribution, Fixed, Normal, Uniform


def check_distribution(spec: Distribution, subject: str = "") -> None:
    """Reject malformed distribution parameters.

    Raises:
        InvalidDistributionError: If a normal has a negative standard
            deviation or a uniform has ``low > high``.

    """
    problem = distribution_problem(spec)
    if problem is not None:
        raise InvalidDistributionError(spec, problem, subject)


def distribution_problem(spec: Distribution) -> str | None:
    """Describe what is malformed about ``spec``, or None if it is usable."""
    if isinstance(spec, Normal) and spec.sd < 0:
        return f"normal has negative sd {spec.sd}"
    if isinstance(spec, Uniform) and spec.low > spec.high:
        return f"uniform has low {spec.low} > high {spec.high}"
    return None


def sample_integer(
    spec: Distribution,
    rng: np.random.Generator,
    subject: str = "",
) -> int:
    """Draw one whole-year value from ``spec``.

    Fixed values are rounded without touching ``rng``. Normal draws are
    rounded to the nearest integer. Uniform draws are taken from the
    inclusive integer range ``[ceil(low), floor(high)]``; when that range is
    empty (both bounds inside the same year) a continuous draw is rounded.

    Args:
        spec: Distribution to sample.
        rng: Random source for this trial.
        subject: Event name used in error messages.

    Returns:
        The sampled integer.

    Raises:
        InvalidDistributionError: If the distribution is malformed.

    """
    check_distribution(spec, subject)

    if isinstance(spec, Fixed):
        return round(spec.value)

    if isinstance(spec, Normal):
        return round(float(rng.normal(spec.mean, spec.sd)))

    low = math.ceil(spec.low)
    high = math.floor(spec.high)
    if low <= high:
        return int(rng.integers(low, high, endpoint=True))
    return round(float(rng.uniform(spec.low, spec.high)))
