"""
Risk Allocation Tests

Correlation level mapping, the single-cap suggestion and the iterative
pruner under nominal and volatility budgets.
"""
import numpy as np
import pytest

from edge_engine.allocation import (
    LABEL_ALLOCATED,
    LABEL_PRUNED,
    LABEL_SINGLE_CAP,
    CorrelationLevel,
    _constraint_label,
    allocations_to_frame,
    build_correlation_matrix,
    default_correlation_matrix,
    has_hedge,
    prune_risk_allocation,
    set_correlation,
    suggest_max_single_risk,
)
from edge_engine.exceptions import InputValidationError


@pytest.fixture
def hedged_levels():
    """A and B move together; C hedges both."""
    levels = default_correlation_matrix(3)
    set_correlation(levels, 0, 1, CorrelationLevel.STRONG)
    set_correlation(levels, 0, 2, CorrelationLevel.STRONG_HEDGE)
    set_correlation(levels, 1, 2, CorrelationLevel.STRONG_HEDGE)
    return levels


class TestCorrelationLevels:

    def test_set_correlation_is_symmetric(self):
        levels = default_correlation_matrix(3)
        set_correlation(levels, 0, 2, "MEDIUM")

        assert levels[0][2] == CorrelationLevel.MEDIUM
        assert levels[2][0] == CorrelationLevel.MEDIUM
        assert levels[0][1] == CorrelationLevel.WEAK

    def test_diagonal_is_always_one(self):
        levels = [
            [CorrelationLevel.STRONG_HEDGE, CorrelationLevel.MEDIUM],
            [CorrelationLevel.MEDIUM, CorrelationLevel.WEAK],
        ]
        matrix = build_correlation_matrix(levels)

        np.testing.assert_array_equal(np.diag(matrix), [1.0, 1.0])
        assert matrix[0, 1] == 0.5

    def test_has_hedge_ignores_diagonal(self, hedged_levels):
        diagonal_only = default_correlation_matrix(2)
        diagonal_only[0][0] = CorrelationLevel.PARTIAL_HEDGE

        assert not has_hedge(diagonal_only)
        assert has_hedge(hedged_levels)


class TestSuggestMaxSingleRisk:

    @pytest.mark.parametrize("heat,count,expected", [
        (6.0, 3, 3.0),
        (10.0, 2, 5.66),
        (5.0, 1, 5.0),
        (10.0, 200, 0.1),
        (0.0, 3, 0.0),
        (5.0, 0, 0.0),
    ])
    def test_suggestion(self, heat, count, expected):
        assert suggest_max_single_risk(heat, count) == expected


class TestPruneRiskAllocation:

    def test_weak_pair_within_budget_keeps_cap(self):
        result = prune_risk_allocation(
            ["A", "B"], default_correlation_matrix(2), max_single_risk=4.0, total_heat=10.0
        )

        assert [a.final_risk for a in result] == [4.0, 4.0]
        assert all(a.constraint_label == LABEL_SINGLE_CAP for a in result)
        assert all(a.initial_risk == 4.0 for a in result)

    def test_strong_pair_is_pruned_into_budget(self):
        levels = default_correlation_matrix(2)
        set_correlation(levels, 0, 1, CorrelationLevel.STRONG)

        a, b = prune_risk_allocation(["A", "B"], levels, max_single_risk=4.0, total_heat=5.0)

        assert a.final_risk == pytest.approx(b.final_risk)
        assert a.final_risk + b.final_risk <= 5.0 + 1e-9
        assert a.final_risk < 4.0
        assert a.constraint_label == LABEL_ALLOCATED

        corr = build_correlation_matrix(levels)
        w = np.array([a.final_risk, b.final_risk])
        assert np.sqrt(w @ corr @ w) <= 5.0 * 1.0001

    def test_hedge_is_pruned_least(self, hedged_levels):
        result = prune_risk_allocation(
            ["A", "B", "C"], hedged_levels, max_single_risk=2.0, total_heat=5.5
        )
        a, b, c = (x.final_risk for x in result)

        assert a + b + c <= 5.5 + 1e-9
        assert c > a
        assert c > b
        assert a == pytest.approx(b)

    def test_over_allocation_with_hedge(self, hedged_levels):
        result = prune_risk_allocation(
            ["A", "B", "C"],
            hedged_levels,
            max_single_risk=2.0,
            total_heat=5.5,
            allow_over_allocation=True,
        )

        # budget 5.5 * 1.25 = 6.875 covers the nominal 6.0
        assert [a.final_risk for a in result] == [2.0, 2.0, 2.0]

    def test_over_allocation_needs_a_hedge(self):
        result = prune_risk_allocation(
            ["A", "B"],
            default_correlation_matrix(2),
            max_single_risk=4.0,
            total_heat=7.0,
            allow_over_allocation=True,
        )

        assert sum(a.final_risk for a in result) <= 7.0 + 1e-9

    def test_accepts_string_levels(self):
        levels = [["WEAK", "MEDIUM"], ["MEDIUM", "WEAK"]]
        result = prune_risk_allocation(["A", "B"], levels, 1.0, 5.0)
        assert [a.final_risk for a in result] == [1.0, 1.0]

    @pytest.mark.parametrize("names", [["A"], [f"S{i}" for i in range(11)]])
    def test_asset_count_bounds(self, names):
        with pytest.raises(InputValidationError):
            prune_risk_allocation(names, default_correlation_matrix(len(names)), 1.0, 5.0)

    def test_rejects_non_positive_budget(self):
        with pytest.raises(InputValidationError):
            prune_risk_allocation(["A", "B"], default_correlation_matrix(2), 1.0, 0.0)
        with pytest.raises(InputValidationError):
            prune_risk_allocation(["A", "B"], default_correlation_matrix(2), -1.0, 5.0)

    def test_rejects_bad_matrices(self):
        asymmetric = default_correlation_matrix(2)
        asymmetric[0][1] = CorrelationLevel.STRONG

        with pytest.raises(InputValidationError):
            prune_risk_allocation(["A", "B"], asymmetric, 1.0, 5.0)
        with pytest.raises(InputValidationError):
            prune_risk_allocation(["A", "B"], default_correlation_matrix(3), 1.0, 5.0)

    def test_frame_indexed_by_asset(self):
        result = prune_risk_allocation(["A", "B"], default_correlation_matrix(2), 2.0, 10.0)
        frame = allocations_to_frame(result)

        assert list(frame.index) == ["A", "B"]
        assert list(frame.columns) == ["initial_risk", "final_risk", "constraint"]


class TestConstraintLabel:

    @pytest.mark.parametrize("final_risk,expected", [
        (0.005, LABEL_PRUNED),
        (1.98, LABEL_SINGLE_CAP),
        (1.2, LABEL_ALLOCATED),
        (2.5, "None"),
    ])
    def test_labels(self, final_risk, expected):
        assert _constraint_label(final_risk, 2.0) == expected
