"""
Risk Metrics Module
====================
Headline risk metrics of a Monte Carlo run and the portfolio heat
recommendation derived from system quality.

Definitions:
    P(profit)        = % of paths with final result > 0
    P95 DD duration  = sorted durations at index floor(0.95 · S)
    Reward / risk    = mean(final result) / mean(max drawdown)

Portfolio heat:
    The total open risk (% of equity) that may be lost at once if every
    position hits its stop. The SQN sets an ideal level; the worst single
    trade caps it so one repeat of that trade cannot exceed 100%.
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence

from edge_engine.models import RiskMetrics, SystemMetrics


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DURATION_PERCENTILE: float = 0.95
MAX_HEAT: float = 25.0

# (sqn_lower, sqn_upper, heat_at_lower, heat_at_upper)
SQN_HEAT_BANDS = (
    (1.3, 1.7, 1.0, 4.0),
    (1.7, 2.5, 4.0, 8.0),
    (2.5, 3.0, 8.0, 12.0),
    (3.0, 4.0, 12.0, 15.0),
    (4.0, 5.0, 15.0, 20.0),
)


@dataclass(frozen=True)
class HeatRecommendation:
    sqn_heat: float
    constraint_heat: float
    final_heat: float
    is_constrained: bool


def compute_risk_metrics(
    final_results: Sequence[float],
    max_drawdowns: Sequence[float],
    durations: Sequence[float],
) -> RiskMetrics:
    """
    Compute RiskMetrics from per-path outcomes.

    Parameters
    ----------
    final_results : sequence of float
        Final equity (R) of each path.
    max_drawdowns : sequence of float
        Max drawdown (R) of each path.
    durations : sequence of float
        Longest drawdown duration (trades) of each path.

    Returns
    -------
    RiskMetrics
        probability_of_profit in %, reward_risk_ratio 0 when the mean
        drawdown is 0.
    """
    finals = np.asarray(final_results, dtype=float)
    drawdowns = np.asarray(max_drawdowns, dtype=float)
    n_sims = finals.size

    probability_of_profit = float(np.count_nonzero(finals > 0) / n_sims * 100)

    sorted_durations = np.sort(np.asarray(durations, dtype=float))
    p95_index = int(np.floor(sorted_durations.size * DURATION_PERCENTILE))
    p95_duration = float(sorted_durations[p95_index])

    avg_final = float(finals.mean())
    avg_drawdown = float(drawdowns.mean())
    reward_risk = 0.0 if avg_drawdown == 0 else avg_final / avg_drawdown

    return RiskMetrics(
        probability_of_profit=probability_of_profit,
        p95_drawdown_duration=p95_duration,
        reward_risk_ratio=reward_risk,
    )


def sqn_heat(sqn: float) -> float:
    """Piecewise-linear SQN → ideal portfolio heat (%), capped at 25%."""
    if sqn < SQN_HEAT_BANDS[0][0]:
        return 1.0

    for lower, upper, heat_lo, heat_hi in SQN_HEAT_BANDS:
        if sqn < upper:
            return heat_lo + (sqn - lower) / (upper - lower) * (heat_hi - heat_lo)

    return min(MAX_HEAT, 20.0 + (sqn - 5.0) * 5.0)


def recommend_portfolio_heat(metrics: SystemMetrics) -> HeatRecommendation:
    """
    Recommend total portfolio heat from SQN and the worst trade.

    Parameters
    ----------
    metrics : SystemMetrics
        Pool statistics (uses ``sqn`` and ``worst_r``).

    Returns
    -------
    HeatRecommendation
        Final heat is the lower of the SQN level and 100 / |worst R|.
    """
    ideal = sqn_heat(metrics.sqn)

    worst_loss = abs(metrics.worst_r) if metrics.worst_r < 0 else 0.0
    constraint = 100.0 / worst_loss if worst_loss > 0 else 100.0

    return HeatRecommendation(
        sqn_heat=ideal,
        constraint_heat=constraint,
        final_heat=min(ideal, constraint),
        is_constrained=constraint < ideal,
    )
