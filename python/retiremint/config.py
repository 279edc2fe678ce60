"""Resolution settings.

Defaults reproduce the exchange-format rounding rules (2 dp for internal
percentages, 4 dp for flat fractions). Settings can be overridden from the
environment for batch runs; see :meth:`ResolutionConfig.from_env`.

"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class BoundPolicy(Enum):
    """What to do when a normal draw falls below the minimum duration."""

    CLAMP = "clamp"
    RESAMPLE = "resample"


@dataclass(frozen=True)
class ResolutionConfig:
    """Settings shared by every resolver.

    Attributes:
        sum_tolerance: Allowed drift from 100 when checking resolved maps.
        percent_decimals: Rounding for internal percentages.
        fraction_decimals: Rounding for flat (exchange) fractions.
        min_duration: Shortest allowed event duration in years.
        duration_policy: Handling of normal duration draws below
            ``min_duration``.
        max_resamples: Redraw limit under ``BoundPolicy.RESAMPLE``.
        earliest_start_year: If set, sampled or fixed start years earlier
            than this are clamped up to it.

    """

    sum_tolerance: float = 0.05
    percent_decimals: int = 2
    fraction_decimals: int = 4
    min_duration: int = 1
    duration_policy: BoundPolicy = BoundPolicy.CLAMP
    max_resamples: int = 100
    earliest_start_year: int | None = None

    @classmethod
    def from_env(cls) -> ResolutionConfig:
        """Build a config from ``RETIREMINT_*`` environment variables.

        Reads ``RETIREMINT_DURATION_POLICY`` (clamp/resample),
        ``RETIREMINT_MAX_RESAMPLES``, ``RETIREMINT_EARLIEST_START_YEAR`` and
        ``RETIREMINT_SUM_TOLERANCE``. Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an unparseable value.

        """
        defaults = cls()
        policy = os.environ.get("RETIREMINT_DURATION_POLICY")
        resamples = os.environ.get("RETIREMINT_MAX_RESAMPLES")
        earliest = os.environ.get("RETIREMINT_EARLIEST_START_YEAR")
        tolerance = os.environ.get("RETIREMINT_SUM_TOLERANCE")
        return cls(
            sum_tolerance=float(tolerance) if tolerance else defaults.sum_tolerance,
            duration_policy=(
                BoundPolicy(policy.strip().lower())
                if policy
                else defaults.duration_policy
            ),
            max_resamples=int(resamples) if resamples else defaults.max_resamples,
            earliest_start_year=int(earliest) if earliest else None,
        )


DEFAULT_CONFIG = ResolutionConfig()
