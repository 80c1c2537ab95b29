"""
Monte Carlo Simulation Engine (Flagship Module)
================================================
Resamples the R-multiple pool with replacement into thousands of
hypothetical trade sequences and summarizes the resulting equity paths.

Per path (equity in R, starting at 0):
    E_t      = E_{t-1} + R_t,        R_t drawn uniformly from the pool
    Peak_t   = max(0, E_1..E_t)
    DD       = max_t (Peak_t - E_t)
    Duration = longest run of trades without a new strict peak

Across paths the engine keeps six extremal paths (best/worst final result,
deepest/shallowest drawdown, longest/shortest drawdown duration) plus the
elementwise average path. Strict comparisons: the first path found wins
a tie.
"""

import logging
import numpy as np
from typing import Dict, List, Optional, Sequence

from edge_engine.histogram import compute_histogram, compute_summary_stats
from edge_engine.models import (
    EquityCurve,
    PathSummary,
    SimulationConfig,
    SimulationResults,
    SystemMetrics,
)
from edge_engine.risk_metrics import compute_risk_metrics
from edge_engine.sampling import IndexSampler, resolve_sampler


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
CURVE_BEST_RESULT = "Best Result"
CURVE_WORST_RESULT = "Worst Result"
CURVE_MAX_DRAWDOWN = "Max Drawdown"
CURVE_MIN_DRAWDOWN = "Min Drawdown"
CURVE_LONGEST_DRAWDOWN = "Longest Drawdown"
CURVE_SHORTEST_DRAWDOWN = "Shortest Drawdown"
CURVE_AVERAGE = "Average"

DISTRIBUTION_KEYS = (
    "max_drawdown",
    "max_profit",
    "final_result",
    "consec_losses",
    "consec_wins",
)


def simulate_path(
    pool: Sequence[float],
    trades: int,
    sampler: IndexSampler,
) -> PathSummary:
    """
    Run one simulated trade sequence.

    Parameters
    ----------
    pool : sequence of float
        R-multiple pool (sampled with replacement).
    trades : int
        Number of trades T; the returned path has T + 1 points.
    sampler : IndexSampler
        Source of pool indices.

    Returns
    -------
    PathSummary
        Path statistics plus the full equity path (path[0] = 0).
    """
    pool_arr = np.asarray(pool, dtype=float)
    outcomes = pool_arr[sampler.indices(pool_arr.size, trades)].tolist()

    equity = 0.0
    peak = 0.0
    max_drawdown = 0.0
    max_profit = 0.0
    dd_duration = 0
    max_dd_duration = 0
    loss_streak = max_loss_streak = 0
    win_streak = max_win_streak = 0

    path = [0.0] * (trades + 1)

    for t, r in enumerate(outcomes, start=1):
        equity += r
        path[t] = equity

        if equity > max_profit:
            max_profit = equity

        if equity > peak:
            peak = equity
            dd_duration = 0
        else:
            drawdown = peak - equity
            if drawdown > max_drawdown:
                max_drawdown = drawdown
            dd_duration += 1
            if dd_duration > max_dd_duration:
                max_dd_duration = dd_duration

        if r < 0:
            loss_streak += 1
            win_streak = 0
            max_loss_streak = max(max_loss_streak, loss_streak)
        elif r > 0:
            win_streak += 1
            loss_streak = 0
            max_win_streak = max(max_win_streak, win_streak)
        else:
            # breakeven: neither a win nor a loss
            loss_streak = win_streak = 0

    return PathSummary(
        final_result=equity,
        max_drawdown=max_drawdown,
        max_profit=max_profit,
        max_consecutive_losses=max_loss_streak,
        max_consecutive_wins=max_win_streak,
        drawdown_duration=max_dd_duration,
        path=path,
    )


class _ExtremalPath:
    """Running best path under a strict comparison."""

    def __init__(self, name: str, maximize: bool):
        self.name = name
        self.maximize = maximize
        self.value = -np.inf if maximize else np.inf
        self.path: List[float] = []

    def offer(self, value: float, path: List[float]) -> None:
        better = value > self.value if self.maximize else value < self.value
        if better:
            self.value = value
            self.path = path

    def to_curve(self) -> EquityCurve:
        return EquityCurve(name=self.name, data=list(self.path))


def run_monte_carlo(
    pool: Sequence[float],
    metrics: SystemMetrics,
    config: SimulationConfig,
    sampler: Optional[IndexSampler] = None,
    seed: Optional[int] = None,
) -> SimulationResults:
    """
    Full Monte Carlo engine execution.

    Runs ``config.total_simulations`` independent paths, keeps the six
    extremal paths and the average path, histograms five per-path
    distributions and derives the headline risk metrics.

    Parameters
    ----------
    pool : sequence of float
        Validated, non-empty R-multiple pool.
    metrics : SystemMetrics
        Pool statistics, passed through to the results.
    config : SimulationConfig
        Number of paths S and trades per path T.
    sampler : IndexSampler, optional
        Injected index source. Defaults to ``RandomSampler(seed)``.
    seed : int, optional
        Seed for the default sampler.

    Returns
    -------
    SimulationResults
    """
    sampler = resolve_sampler(sampler, seed)
    n_sims = config.total_simulations
    trades = config.trades_per_simulation
    pool_arr = np.asarray(pool, dtype=float)

    extremes = {
        "best_final": _ExtremalPath(CURVE_BEST_RESULT, maximize=True),
        "worst_final": _ExtremalPath(CURVE_WORST_RESULT, maximize=False),
        "deepest_dd": _ExtremalPath(CURVE_MAX_DRAWDOWN, maximize=True),
        "shallowest_dd": _ExtremalPath(CURVE_MIN_DRAWDOWN, maximize=False),
        "longest_dur": _ExtremalPath(CURVE_LONGEST_DRAWDOWN, maximize=True),
        "shortest_dur": _ExtremalPath(CURVE_SHORTEST_DRAWDOWN, maximize=False),
    }

    sum_curve = np.zeros(trades + 1)
    final_results = np.empty(n_sims)
    max_drawdowns = np.empty(n_sims)
    max_profits = np.empty(n_sims)
    consec_losses = np.empty(n_sims)
    consec_wins = np.empty(n_sims)
    durations = np.empty(n_sims)

    for i in range(n_sims):
        summary = simulate_path(pool_arr, trades, sampler)
        path = summary.path

        sum_curve += path

        extremes["best_final"].offer(summary.final_result, path)
        extremes["worst_final"].offer(summary.final_result, path)
        extremes["deepest_dd"].offer(summary.max_drawdown, path)
        extremes["shallowest_dd"].offer(summary.max_drawdown, path)
        extremes["longest_dur"].offer(summary.drawdown_duration, path)
        extremes["shortest_dur"].offer(summary.drawdown_duration, path)

        final_results[i] = summary.final_result
        max_drawdowns[i] = summary.max_drawdown
        max_profits[i] = summary.max_profit
        consec_losses[i] = summary.max_consecutive_losses
        consec_wins[i] = summary.max_consecutive_wins
        durations[i] = summary.drawdown_duration

    risk_metrics = compute_risk_metrics(final_results, max_drawdowns, durations)

    distributions: Dict[str, np.ndarray] = {
        "max_drawdown": max_drawdowns,
        "max_profit": max_profits,
        "final_result": final_results,
        "consec_losses": consec_losses,
        "consec_wins": consec_wins,
    }

    equity_curves = [extreme.to_curve() for extreme in extremes.values()]
    equity_curves.append(
        EquityCurve(name=CURVE_AVERAGE, data=(sum_curve / n_sims).tolist())
    )

    logger.info(
        "Monte Carlo complete: %d paths x %d trades, P(profit)=%.2f%%",
        n_sims, trades, risk_metrics.probability_of_profit,
    )

    return SimulationResults(
        system_metrics=metrics,
        risk_metrics=risk_metrics,
        simulation_config=config,
        charts={key: compute_histogram(distributions[key]) for key in DISTRIBUTION_KEYS},
        stats={key: compute_summary_stats(distributions[key]) for key in DISTRIBUTION_KEYS},
        r_distribution=pool_arr.tolist(),
        equity_curves=equity_curves,
    )
