"""Shared pytest fixtures for Retiremint resolver tests."""

from __future__ import annotations

import numpy as np
import pytest
from retiremint.model import (
    AllocationPayload,
    CashFlowPayload,
    EventSeries,
    EventType,
    Fixed,
    Investment,
    Normal,
    SameYearAs,
    Scenario,
    TaxStatus,
    Uniform,
    YearAfterEnd,
)


@pytest.fixture
def reproducible_rng() -> np.random.Generator:
    """Provide a seeded random number generator for deterministic tests."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def investments() -> tuple[Investment, ...]:
    """Provide one or two holdings in three of the four tax statuses."""
    return (
        Investment("sp500-pre", "S&P 500 pre-tax", TaxStatus.PRE_TAX, 100_000.0, "S&P 500"),
        Investment("bonds-pre", "Bonds pre-tax", TaxStatus.PRE_TAX, 50_000.0, "Bonds"),
        Investment(
            "sp500-nr",
            "S&P 500 non-retirement",
            TaxStatus.NON_RETIREMENT,
            25_000.0,
            "S&P 500",
        ),
        Investment("sp500-at", "S&P 500 after-tax", TaxStatus.AFTER_TAX, 10_000.0, "S&P 500"),
    )


@pytest.fixture
def investments_by_id(investments: tuple[Investment, ...]) -> dict[str, Investment]:
    """Provide the investment lookup keyed by id."""
    return {inv.id: inv for inv in investments}


@pytest.fixture
def investments_by_name(investments: tuple[Investment, ...]) -> dict[str, Investment]:
    """Provide the investment lookup keyed by name."""
    return {inv.name: inv for inv in investments}


@pytest.fixture
def sample_scenario(investments: tuple[Investment, ...]) -> Scenario:
    """Provide a small scenario with chained starts and a glide path.

    ``salary`` runs 2025-2035, ``retirement`` starts the year after and
    glides from stocks to bonds over 20 years, ``rebalance`` starts with
    ``retirement``, and ``travel`` has a random start and duration.
    """
    return Scenario(
        name="Sample retirement",
        investments=investments,
        events=(
            EventSeries(
                name="salary",
                event_type=EventType.INCOME,
                start=Fixed(2025),
                duration=Fixed(10),
                payload=CashFlowPayload(
                    initial_amount=80_000.0,
                    change_distribution=Normal(0.03, 0.01),
                ),
            ),
            EventSeries(
                name="retirement",
                event_type=EventType.INVEST,
                start=YearAfterEnd("salary"),
                duration=Fixed(20),
                payload=AllocationPayload(
                    allocation={"S&P 500 pre-tax": 0.6, "S&P 500 non-retirement": 0.4},
                    final_allocation={"Bonds pre-tax": 0.5, "S&P 500 non-retirement": 0.5},
                    glide_path=True,
                    max_cash=10_000.0,
                ),
            ),
            EventSeries(
                name="rebalance",
                event_type=EventType.REBALANCE,
                start=SameYearAs("retirement"),
                duration=Fixed(20),
                payload=AllocationPayload(
                    allocation={"S&P 500 pre-tax": 0.5, "Bonds pre-tax": 0.5},
                ),
            ),
            EventSeries(
                name="travel",
                event_type=EventType.EXPENSE,
                start=Uniform(2030, 2035),
                duration=Normal(5, 2),
                payload=CashFlowPayload(initial_amount=8_000.0, discretionary=True),
            ),
        ),
        initial_cash=500.0,
        seed=2024,
    )
