"""Tests for flat <-> nested allocation conversion."""

from __future__ import annotations

import logging

import pytest
from retiremint.allocation.codec import build, flatten
from retiremint.allocation.percentages import validate_sum
from retiremint.diagnostics import WarningKind
from retiremint.model import Investment, NestedAllocation, TaxStatus

PRE = TaxStatus.PRE_TAX
NR = TaxStatus.NON_RETIREMENT


@pytest.fixture
def balanced() -> NestedAllocation:
    return NestedAllocation(
        tax_status={NR: 40.0, PRE: 60.0},
        within_status={
            PRE: {"sp500-pre": 50.0, "bonds-pre": 50.0},
            NR: {"sp500-nr": 100.0},
        },
    )


class TestFlatten:
    """Test nested -> flat conversion."""

    def test_multiplies_levels(self, balanced, investments_by_id):
        result = flatten(balanced, investments_by_id)
        assert result.allocation == pytest.approx(
            {
                "S&P 500 non-retirement": 0.4,
                "S&P 500 pre-tax": 0.3,
                "Bonds pre-tax": 0.3,
            }
        )
        assert result.warnings == []

    def test_four_decimal_fractions(self, investments_by_id):
        nested = NestedAllocation(
            tax_status={PRE: 100.0},
            within_status={PRE: {"sp500-pre": 33.333, "bonds-pre": 66.667}},
        )
        flat = flatten(nested, investments_by_id).allocation
        assert flat == {"S&P 500 pre-tax": 0.3333, "Bonds pre-tax": 0.6667}

    def test_zero_within_omitted(self, investments_by_id):
        nested = NestedAllocation(
            tax_status={PRE: 100.0},
            within_status={PRE: {"sp500-pre": 100.0, "bonds-pre": 0.0}},
        )
        assert flatten(nested, investments_by_id).allocation == {"S&P 500 pre-tax": 1.0}

    def test_unknown_id_skipped(self, investments_by_id):
        nested = NestedAllocation(
            tax_status={PRE: 100.0},
            within_status={PRE: {"sp500-pre": 50.0, "sold-fund": 50.0}},
        )
        result = flatten(nested, investments_by_id)
        assert result.allocation == {"S&P 500 pre-tax": 0.5}
        assert [w.kind for w in result.warnings] == [WarningKind.UNKNOWN_INVESTMENT]
        assert result.warnings[0].subject == "sold-fund"

    def test_tax_status_mismatch_skipped(self, investments_by_id):
        nested = NestedAllocation(
            tax_status={PRE: 100.0},
            within_status={PRE: {"sp500-pre": 50.0, "sp500-nr": 50.0}},
        )
        result = flatten(nested, investments_by_id)
        assert result.allocation == {"S&P 500 pre-tax": 0.5}
        assert [w.kind for w in result.warnings] == [WarningKind.TAX_STATUS_MISMATCH]
        assert result.warnings[0].subject == "S&P 500 non-retirement"

    def test_orphaned_within_status(self, investments_by_id):
        nested = NestedAllocation(
            tax_status={PRE: 100.0, NR: 0.0},
            within_status={PRE: {"sp500-pre": 100.0}, NR: {"sp500-nr": 100.0}},
        )
        result = flatten(nested, investments_by_id)
        assert result.allocation == {"S&P 500 pre-tax": 1.0}
        assert [w.kind for w in result.warnings] == [WarningKind.ORPHANED_ALLOCATION]

    def test_warning_is_logged(self, investments_by_id, caplog):
        nested = NestedAllocation(
            tax_status={PRE: 100.0},
            within_status={PRE: {"ghost-id": 100.0}},
        )
        with caplog.at_level(logging.WARNING, logger="retiremint.allocation.codec"):
            flatten(nested, investments_by_id)
        assert "unknown_investment" in caplog.text


class TestBuild:
    """Test flat -> nested conversion."""

    def test_two_pass_build(self, investments_by_name):
        flat = {
            "S&P 500 pre-tax": 0.3,
            "Bonds pre-tax": 0.3,
            "S&P 500 non-retirement": 0.4,
        }
        result = build(flat, investments_by_name)
        nested = result.allocation
        assert nested.status_percent(PRE) == pytest.approx(60.0)
        assert nested.status_percent(NR) == pytest.approx(40.0)
        assert nested.status_percent(TaxStatus.AFTER_TAX) == 0.0
        assert nested.within(PRE) == pytest.approx({"sp500-pre": 50.0, "bonds-pre": 50.0})
        assert nested.within(NR) == pytest.approx({"sp500-nr": 100.0})
        assert result.warnings == []

    def test_unknown_investment_renormalises(self, investments_by_name):
        result = build({"Ghost": 0.5, "S&P 500 pre-tax": 0.5}, investments_by_name)
        nested = result.allocation
        assert nested.status_percent(PRE) == pytest.approx(100.0)
        assert nested.within(PRE) == {"sp500-pre": 100.0}
        assert len(result.warnings) == 1
        assert result.warnings[0].kind is WarningKind.UNKNOWN_INVESTMENT
        assert result.warnings[0].subject == "Ghost"

    def test_within_status_sums_to_100(self):
        lookup = {
            name: Investment(name.lower(), name, PRE)
            for name in ("Fund A", "Fund B", "Fund C")
        }
        lookup["Cash Fund"] = Investment("cash-fund", "Cash Fund", NR)
        flat = {"Fund A": 0.2, "Fund B": 0.2, "Fund C": 0.2, "Cash Fund": 0.4}
        nested = build(flat, lookup).allocation
        assert validate_sum(nested.tax_status, 100.0, 0.01) is None
        assert validate_sum(nested.within(PRE), 100.0, 0.01) is None
        assert sorted(nested.within(PRE).values()) == pytest.approx([33.33, 33.33, 33.34])

    def test_tiny_bucket_keeps_equal_shares(self):
        lookup = {
            "Fund A": Investment("a", "Fund A", PRE),
            "Fund B": Investment("b", "Fund B", TaxStatus.AFTER_TAX),
            "Fund C": Investment("c", "Fund C", TaxStatus.AFTER_TAX),
        }
        flat = {"Fund A": 0.99994, "Fund B": 0.00003, "Fund C": 0.00003}
        nested = build(flat, lookup).allocation
        assert nested.within(TaxStatus.AFTER_TAX) == pytest.approx({"b": 50.0, "c": 50.0})
        assert nested.status_percent(TaxStatus.AFTER_TAX) == pytest.approx(0.01)
        assert nested.status_percent(PRE) == pytest.approx(99.99)

    def test_zero_fraction_not_placed(self, investments_by_name):
        nested = build(
            {"S&P 500 pre-tax": 1.0, "Bonds pre-tax": 0.0}, investments_by_name
        ).allocation
        assert nested.within(PRE) == {"sp500-pre": 100.0}

    def test_empty_status_bucket(self, investments_by_name):
        result = build({"S&P 500 pre-tax": 0.5, "Bonds pre-tax": -0.5}, investments_by_name)
        kinds = [w.kind for w in result.warnings]
        assert kinds == [WarningKind.EMPTY_STATUS_BUCKET, WarningKind.EMPTY_STATUS_BUCKET]
        assert result.allocation.is_empty()

    def test_negative_status_total(self, investments_by_name):
        result = build({"S&P 500 pre-tax": -0.2}, investments_by_name)
        assert [w.kind for w in result.warnings] == [WarningKind.NEGATIVE_STATUS_TOTAL]
        assert result.allocation.is_empty()

    def test_empty_input(self, investments_by_name):
        result = build({}, investments_by_name)
        assert result.allocation.is_empty()
        assert result.warnings == []


class TestRoundTrip:
    """Test that flatten and build invert each other."""

    def test_nested_round_trip(self, balanced, investments_by_id, investments_by_name):
        flat = flatten(balanced, investments_by_id).allocation
        rebuilt = build(flat, investments_by_name).allocation
        for status in TaxStatus:
            assert rebuilt.status_percent(status) == pytest.approx(
                balanced.status_percent(status), abs=0.01
            )
            assert rebuilt.within(status) == pytest.approx(balanced.within(status), abs=0.01)

    def test_flat_round_trip(self, investments_by_id, investments_by_name):
        flat = {
            "S&P 500 pre-tax": 0.15,
            "Bonds pre-tax": 0.35,
            "S&P 500 non-retirement": 0.3,
            "S&P 500 after-tax": 0.2,
        }
        nested = build(flat, investments_by_name).allocation
        assert flatten(nested, investments_by_id).allocation == pytest.approx(flat, abs=1e-4)
