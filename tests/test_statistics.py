"""
System Metrics Tests

Win rate, profit factor sentinels, population volatility and the
clamped-sample SQN convention.
"""
import math

import numpy as np
import pytest

from edge_engine.statistics import (
    NO_LOSS_PROFIT_FACTOR,
    compute_system_metrics,
    describe_distribution,
)


class TestSystemMetrics:
    """Test suite for compute_system_metrics."""

    def test_textbook_pool(self, textbook_pool):
        metrics = compute_system_metrics(textbook_pool, n=len(textbook_pool))

        assert metrics.win_rate == pytest.approx(3 / 8)
        assert metrics.expectancy == pytest.approx(0.125)
        assert metrics.profit_factor == pytest.approx(1.2)
        assert metrics.worst_r == -1.0

        # Population standard deviation (divisor N)
        std = math.sqrt(sum((r - 0.125) ** 2 for r in textbook_pool) / 8)
        assert metrics.standard_deviation == pytest.approx(std, abs=1e-12)
        assert metrics.sqn == pytest.approx((0.125 / std) * math.sqrt(8), abs=1e-9)

    def test_sqn_uses_supplied_sample_size(self, textbook_pool):
        clamped = compute_system_metrics(textbook_pool, n=100)
        raw = compute_system_metrics(textbook_pool, n=8)

        assert clamped.n == 100
        assert clamped.sqn == pytest.approx(raw.sqn * math.sqrt(100 / 8))

    def test_empty_pool_returns_zeros(self):
        metrics = compute_system_metrics([], n=100)

        assert metrics.win_rate == 0
        assert metrics.profit_factor == 0
        assert metrics.expectancy == 0
        assert metrics.standard_deviation == 0
        assert metrics.sqn == 0
        assert metrics.n == 0
        assert metrics.worst_r == 0

    def test_no_losses_uses_sentinel(self, winning_pool):
        metrics = compute_system_metrics(winning_pool, n=4)
        assert metrics.profit_factor == NO_LOSS_PROFIT_FACTOR

    def test_all_breakeven(self):
        metrics = compute_system_metrics([0.0, 0.0, 0.0], n=3)

        assert metrics.profit_factor == 0
        assert metrics.win_rate == 0
        assert metrics.sqn == 0  # zero volatility

    def test_r_unit_passthrough(self, textbook_pool):
        metrics = compute_system_metrics(textbook_pool, n=8, r_unit_size=125.0)
        assert metrics.r_unit_size == 125.0


class TestDistributionShape:

    def test_symmetric_pool_has_no_skew(self):
        shape = describe_distribution([-2.0, -1.0, 0.0, 1.0, 2.0])
        assert shape["skewness"] == pytest.approx(0.0, abs=1e-12)
        assert shape["count"] == 5

    def test_right_tail_is_positive_skew(self, frequency_pool):
        shape = describe_distribution(frequency_pool)
        assert shape["skewness"] > 0

    def test_degenerate_pools(self):
        assert describe_distribution([1.0, 1.0, 1.0])["excess_kurtosis"] == 0.0
        assert describe_distribution([1.0])["skewness"] == 0.0
        assert np.isfinite(describe_distribution([-1.0, 2.0, 5.0])["skewness"])
