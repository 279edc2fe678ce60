"""Tests for trial plan assembly."""

from __future__ import annotations

import copy
import logging
from dataclasses import replace

import numpy as np
import pytest
from retiremint.config import ResolutionConfig
from retiremint.diagnostics import WarningKind
from retiremint.errors import AllocationSumError, CyclicDependencyError, DuplicateNameError
from retiremint.model import (
    AllocationPayload,
    EventSeries,
    EventType,
    Fixed,
    SameYearAs,
    TaxStatus,
)
from retiremint.plan.builder import build_plan

PRE = TaxStatus.PRE_TAX
NR = TaxStatus.NON_RETIREMENT


def _invest(name: str, allocation: dict[str, float], **kwargs) -> EventSeries:
    return EventSeries(
        name,
        EventType.INVEST,
        Fixed(2025),
        Fixed(10),
        AllocationPayload(allocation=allocation, **kwargs),
    )


class TestBuildPlan:
    """Test end-to-end resolution of a scenario."""

    def test_chained_timings(self, sample_scenario, reproducible_rng):
        plan = build_plan(sample_scenario, reproducible_rng)
        assert plan["salary"].start_year == 2025
        assert plan["salary"].end_year == 2035
        assert plan["retirement"].start_year == 2036
        assert plan["rebalance"].start_year == 2036
        assert 2030 <= plan["travel"].start_year <= 2035

    def test_events_in_declaration_order(self, sample_scenario, reproducible_rng):
        plan = build_plan(sample_scenario, reproducible_rng)
        assert [event.name for event in plan] == ["salary", "retirement", "rebalance", "travel"]
        assert len(plan) == 4
        assert plan.order.index("salary") < plan.order.index("retirement")
        assert plan.order.index("retirement") < plan.order.index("rebalance")

    def test_same_seed_same_plan(self, sample_scenario):
        plan1 = build_plan(sample_scenario, np.random.default_rng(seed=7))
        plan2 = build_plan(sample_scenario, np.random.default_rng(seed=7))
        assert plan1 == plan2

    def test_scenario_not_modified(self, sample_scenario, reproducible_rng):
        before = copy.deepcopy(sample_scenario)
        build_plan(sample_scenario, reproducible_rng)
        assert sample_scenario == before

    def test_cash_flow_events_have_no_allocation(self, sample_scenario, reproducible_rng):
        plan = build_plan(sample_scenario, reproducible_rng)
        assert plan["salary"].initial_allocation is None
        assert plan["salary"].allocation_for_year(2025) is None

    def test_completion_logged(self, sample_scenario, reproducible_rng, caplog):
        with caplog.at_level(logging.INFO, logger="retiremint.plan.builder"):
            build_plan(sample_scenario, reproducible_rng)
        assert "Resolved plan for scenario 'Sample retirement': 4 events" in caplog.text

    def test_duplicate_event_names(self, sample_scenario, reproducible_rng):
        events = (*sample_scenario.events, sample_scenario.events[0])
        with pytest.raises(DuplicateNameError):
            build_plan(replace(sample_scenario, events=events), reproducible_rng)

    def test_cycle(self, sample_scenario, reproducible_rng):
        events = (
            EventSeries("A", EventType.EXPENSE, SameYearAs("B"), Fixed(1)),
            EventSeries("B", EventType.EXPENSE, SameYearAs("A"), Fixed(1)),
        )
        with pytest.raises(CyclicDependencyError):
            build_plan(replace(sample_scenario, events=events), reproducible_rng)


class TestAllocations:
    """Test allocation handling during plan assembly."""

    def test_glide_path_endpoints(self, sample_scenario, reproducible_rng):
        event = build_plan(sample_scenario, reproducible_rng)["retirement"]
        assert event.is_glide_path
        assert event.allocation_for_year(2036) is event.initial_allocation
        assert event.allocation_for_year(2056) is event.final_allocation
        assert event.initial_allocation.within(PRE) == {"sp500-pre": 100.0}
        assert event.final_allocation.within(PRE) == {"bonds-pre": 100.0}

    def test_glide_path_midpoint(self, sample_scenario, reproducible_rng):
        event = build_plan(sample_scenario, reproducible_rng)["retirement"]
        mid = event.allocation_for_year(2046)
        assert mid.status_percent(PRE) == pytest.approx(55.0)
        assert mid.status_percent(NR) == pytest.approx(45.0)
        assert mid.within(PRE) == pytest.approx({"sp500-pre": 50.0, "bonds-pre": 50.0})

    def test_interpolation_uses_build_config(self, sample_scenario, reproducible_rng):
        glide = EventSeries(
            "glide",
            EventType.INVEST,
            Fixed(2025),
            Fixed(3),
            AllocationPayload(
                allocation={"S&P 500 pre-tax": 1.0},
                final_allocation={"Bonds pre-tax": 1.0},
                glide_path=True,
            ),
        )
        scenario = replace(sample_scenario, events=(glide,))
        config = ResolutionConfig(percent_decimals=4)
        plan = build_plan(scenario, reproducible_rng, config)
        expected = {"sp500-pre": 66.6667, "bonds-pre": 33.3333}
        assert plan["glide"].config == config
        assert plan["glide"].allocation_for_year(2026).within(PRE) == pytest.approx(expected)
        _, target = plan.allocation_target(2026, EventType.INVEST)
        assert target.within(PRE) == pytest.approx(expected)

    def test_year_outside_event(self, sample_scenario, reproducible_rng):
        event = build_plan(sample_scenario, reproducible_rng)["retirement"]
        with pytest.raises(ValueError, match="outside event"):
            event.allocation_for_year(2035)

    def test_unknown_investment(self, sample_scenario, reproducible_rng):
        scenario = replace(
            sample_scenario,
            events=(_invest("invest", {"Ghost": 0.5, "S&P 500 pre-tax": 0.5}),),
        )
        plan = build_plan(scenario, reproducible_rng)
        allocation = plan["invest"].initial_allocation
        assert allocation.status_percent(PRE) == pytest.approx(100.0)
        assert allocation.within(PRE) == {"sp500-pre": 100.0}
        assert [(w.kind, w.subject) for w in plan.warnings] == [
            (WarningKind.UNKNOWN_INVESTMENT, "Ghost")
        ]

    def test_missing_allocation(self, sample_scenario, reproducible_rng):
        scenario = replace(sample_scenario, events=(_invest("invest", {}),))
        plan = build_plan(scenario, reproducible_rng)
        assert plan["invest"].initial_allocation is None
        assert [w.kind for w in plan.warnings] == [WarningKind.MISSING_ALLOCATION]

    def test_nothing_placeable(self, sample_scenario, reproducible_rng):
        scenario = replace(sample_scenario, events=(_invest("invest", {"Ghost": 1.0}),))
        plan = build_plan(scenario, reproducible_rng)
        assert plan["invest"].initial_allocation is None
        assert [w.kind for w in plan.warnings] == [
            WarningKind.UNKNOWN_INVESTMENT,
            WarningKind.MISSING_ALLOCATION,
        ]

    def test_glide_path_without_final(self, sample_scenario, reproducible_rng):
        scenario = replace(
            sample_scenario,
            events=(_invest("invest", {"S&P 500 pre-tax": 1.0}, glide_path=True),),
        )
        plan = build_plan(scenario, reproducible_rng)
        event = plan["invest"]
        assert not event.is_glide_path
        assert event.allocation_for_year(2030) is event.initial_allocation
        assert [w.kind for w in plan.warnings] == [WarningKind.GLIDE_PATH_WITHOUT_FINAL]

    def test_partial_allocation_is_fatal(self, sample_scenario, reproducible_rng):
        scenario = replace(
            sample_scenario,
            events=(_invest("invest", {"S&P 500 pre-tax": 0.3, "S&P 500 non-retirement": 0.3}),),
        )
        with pytest.raises(AllocationSumError) as exc_info:
            build_plan(scenario, reproducible_rng)
        assert exc_info.value.subject == "invest"


class TestResolvedPlanQueries:
    """Test per-year queries on a resolved plan."""

    def test_active_events(self, sample_scenario, reproducible_rng):
        plan = build_plan(sample_scenario, reproducible_rng)
        names = [event.name for event in plan.active_events(2040)]
        assert names[:2] == ["retirement", "rebalance"]
        assert "salary" not in names
        invest = plan.active_events(2040, EventType.INVEST)
        assert [event.name for event in invest] == ["retirement"]

    def test_allocation_target_last_declared_wins(self, sample_scenario, reproducible_rng):
        scenario = replace(
            sample_scenario,
            events=(
                _invest("first", {"S&P 500 pre-tax": 1.0}),
                _invest("second", {"S&P 500 non-retirement": 1.0}),
            ),
        )
        plan = build_plan(scenario, reproducible_rng)
        name, allocation = plan.allocation_target(2030, EventType.INVEST)
        assert name == "second"
        assert allocation.within(NR) == {"sp500-nr": 100.0}

    def test_allocation_target_none(self, sample_scenario, reproducible_rng):
        plan = build_plan(sample_scenario, reproducible_rng)
        assert plan.allocation_target(2025, EventType.INVEST) is None

    def test_to_frame(self, sample_scenario, reproducible_rng):
        frame = build_plan(sample_scenario, reproducible_rng).to_frame()
        assert list(frame.columns) == [
            "name",
            "type",
            "start_year",
            "end_year",
            "duration",
            "glide_path",
        ]
        assert frame["name"].tolist() == ["salary", "retirement", "rebalance", "travel"]
        row = frame.set_index("name").loc["retirement"]
        assert row["start_year"] == 2036
        assert row["end_year"] == 2056
        assert bool(row["glide_path"])
