"""
Optimal-F Position Sizing Sweep
================================
Searches the per-trade risk fraction f (0.1% … 30.0%, step 0.1%) that
best serves six competing objectives.

Per swept f, every trial starts at equity 1.0 and takes up to
``trades_per_sim`` trades:

    FixedFractional:  pnl = equity · f · R      (compounding)
    FixedInitial:     pnl = 1.0    · f · R
    equity = clip(equity + pnl, 0, 1e100)

A trial is ruined, and stops trading, the first time post-trade equity
≤ 1 + failure%/100. Success is judged only on non-ruined trials, by final
equity ≥ 1 + success%/100; never mid-trial.

Progress:
    The sweep is a generator yielding integer completion (0-100) every
    5 steps and returning the OptimalFAnalysisResult. A host drains it at
    its own pace; abandoning the generator cancels the run.
"""

import asyncio
import logging
import warnings
import numpy as np
from dataclasses import dataclass, replace
from typing import Callable, Generator, List, Optional, Sequence, Tuple

from edge_engine.exceptions import ConfigClampWarning
from edge_engine.models import (
    OptimalFAnalysisResult,
    OptimalFChartPoint,
    OptimalFConfig,
    OptimalFResultRow,
    RiskMode,
)
from edge_engine.sampling import IndexSampler, RandomSampler, resolve_sampler


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
RISK_START_PCT: float = 0.1
RISK_END_PCT: float = 30.0
RISK_STEP_PCT: float = 0.1
PROGRESS_EVERY: int = 5
MAX_EQUITY_CAP: float = 1e100
RUIN_TARGET_PCT: float = 1.0

SUCCESS_THRESHOLD_MIN: float = 0.0
FAILURE_THRESHOLD_RANGE: Tuple[float, float] = (-100.0, 0.0)
TRADES_PER_SIM_RANGE: Tuple[int, int] = (100, 1000)
TOTAL_SIMS_RANGE: Tuple[int, int] = (10_000, 100_000)

ProgressCallback = Callable[[int], None]


def default_risk_grid() -> List[float]:
    """Swept risk fractions in percent: 0.1, 0.2, …, 30.0."""
    n_steps = int(round((RISK_END_PCT - RISK_START_PCT) / RISK_STEP_PCT)) + 1
    return [round(RISK_START_PCT + i * RISK_STEP_PCT, 1) for i in range(n_steps)]


def clamp_optimal_f_config(
    config: OptimalFConfig,
) -> Tuple[OptimalFConfig, List[str]]:
    """
    Clamp out-of-range fields instead of rejecting them.

    Parameters
    ----------
    config : OptimalFConfig
        User-supplied settings.

    Returns
    -------
    tuple
        (corrected config, human-readable list of the corrections). A
        ``ConfigClampWarning`` is emitted when the list is non-empty.
    """
    changes: List[str] = []

    success = config.success_threshold
    if success < SUCCESS_THRESHOLD_MIN:
        success = SUCCESS_THRESHOLD_MIN
        changes.append("success_threshold >= 0%")

    failure = config.failure_threshold
    lo, hi = FAILURE_THRESHOLD_RANGE
    if failure < lo:
        failure = lo
        changes.append("failure_threshold >= -100%")
    elif failure > hi:
        failure = hi
        changes.append("failure_threshold <= 0%")

    trades = config.trades_per_sim
    lo, hi = TRADES_PER_SIM_RANGE
    if trades < lo:
        trades = lo
        changes.append(f"trades_per_sim >= {lo}")
    elif trades > hi:
        trades = hi
        changes.append(f"trades_per_sim <= {hi}")

    sims = config.total_sims
    lo, hi = TOTAL_SIMS_RANGE
    if sims < lo:
        sims = lo
        changes.append(f"total_sims >= {lo}")
    elif sims > hi:
        sims = hi
        changes.append(f"total_sims <= {hi}")

    if changes:
        warnings.warn(
            f"Optimal-F settings auto-corrected: {', '.join(changes)}",
            ConfigClampWarning,
            stacklevel=2,
        )

    corrected = replace(
        config,
        success_threshold=success,
        failure_threshold=failure,
        trades_per_sim=int(trades),
        total_sims=int(sims),
    )
    return corrected, changes


def simulate_risk_fraction(
    pool: np.ndarray,
    risk_pct: float,
    config: OptimalFConfig,
    sampler: IndexSampler,
) -> OptimalFChartPoint:
    """
    Run ``config.total_sims`` bounded-equity trials at one risk fraction.

    All trials advance together, one trade at a time; ruined trials keep
    their equity frozen at the ruin point.

    Parameters
    ----------
    pool : np.ndarray
        R-multiple pool.
    risk_pct : float
        Risk per trade in percent.
    config : OptimalFConfig
        Thresholds, trial length and count, sizing mode.
    sampler : IndexSampler
        Index source for this risk fraction.

    Returns
    -------
    OptimalFChartPoint
        Unrounded probabilities and gains, all in %.
    """
    n_sims = config.total_sims
    risk = risk_pct / 100.0
    ruin_level = 1 + config.failure_threshold / 100
    success_level = 1 + config.success_threshold / 100
    compounding = config.risk_mode == RiskMode.FIXED_FRACTIONAL

    equity = np.ones(n_sims)
    alive = np.ones(n_sims, dtype=bool)

    for _ in range(config.trades_per_sim):
        if not alive.any():
            break
        r = pool[sampler.indices(pool.size, n_sims)]
        pnl = equity * risk * r if compounding else risk * r
        stepped = np.clip(equity + pnl, 0.0, MAX_EQUITY_CAP)
        equity = np.where(alive, stepped, equity)
        alive &= equity > ruin_level

    ruin_count = n_sims - int(np.count_nonzero(alive))
    success_count = int(np.count_nonzero(alive & (equity >= success_level)))

    return OptimalFChartPoint(
        risk=round(risk_pct, 1),
        prob_success=success_count / n_sims * 100,
        prob_ruin=ruin_count / n_sims * 100,
        avg_gain=(float(equity.mean()) - 1) * 100,
        median_gain=(float(np.median(equity)) - 1) * 100,
    )


# ─────────────────────────────────────────────────────────────
# Objective trackers
# ─────────────────────────────────────────────────────────────

@dataclass
class ObjectiveTracker:
    """
    Reducer keeping the best swept point for one objective.

    ``score`` maps a point to a value to maximize, or None when the point
    does not qualify. A strictly higher score replaces the best; equal
    scores only replace it when ``tie_break(candidate, best)`` says so.
    """
    label: str
    score: Callable[[OptimalFChartPoint], Optional[float]]
    empty_label: Optional[str] = None
    tie_break: Optional[Callable[[OptimalFChartPoint, OptimalFChartPoint], bool]] = None
    best: Optional[OptimalFChartPoint] = None
    best_score: Optional[float] = None

    def offer(self, point: OptimalFChartPoint) -> None:
        value = self.score(point)
        if value is None:
            return
        if self.best is None or value > self.best_score:
            self.best, self.best_score = point, value
        elif value == self.best_score and self.tie_break and self.tie_break(point, self.best):
            self.best, self.best_score = point, value

    def row(self) -> OptimalFResultRow:
        if self.best is None:
            return OptimalFResultRow(
                approach=self.empty_label or f"{self.label} (no result)",
                optimal_risk=0.0,
                prob_success=0.0,
                prob_ruin=0.0,
                avg_gain=0.0,
                median_gain=0.0,
            )
        p = self.best
        return OptimalFResultRow(
            approach=self.label,
            optimal_risk=round(p.risk, 1),
            prob_success=round(p.prob_success, 2),
            prob_ruin=round(p.prob_ruin, 2),
            avg_gain=round(p.avg_gain, 2),
            median_gain=round(p.median_gain, 2),
        )


def build_objective_trackers() -> List[ObjectiveTracker]:
    """The six objectives, in reporting order."""
    return [
        ObjectiveTracker("Max Avg Gain", lambda p: p.avg_gain),
        ObjectiveTracker("Max Median Gain", lambda p: p.median_gain),
        # no secondary tie-break: first maximum in the ascending sweep wins
        ObjectiveTracker("Max Prob. Success", lambda p: p.prob_success),
        ObjectiveTracker(
            "Ruin < 1% (closest to 1%)",
            lambda p: -(RUIN_TARGET_PCT - p.prob_ruin) if p.prob_ruin < RUIN_TARGET_PCT else None,
            empty_label="Ruin < 1% (no result)",
        ),
        ObjectiveTracker(
            "Min Positive Ruin",
            lambda p: -p.prob_ruin if p.prob_ruin > 0 else None,
            empty_label="Min Positive Ruin (none)",
            tie_break=lambda cand, best: cand.avg_gain > best.avg_gain,
        ),
        ObjectiveTracker(
            "Max Prob. Success - Ruin",
            lambda p: p.prob_success - p.prob_ruin,
        ),
    ]


class OptimalFSearch:
    """
    Optimal-F sweep over a fixed risk grid.

    The search trusts its config; use ``clamp_optimal_f_config`` (or the
    ``run_optimal_f_search`` entry point) for user input.

    Parameters
    ----------
    pool : sequence of float
        Non-empty R-multiple pool.
    config : OptimalFConfig
        Sweep settings.
    sampler : IndexSampler, optional
        Index source. A ``RandomSampler`` is split into one child stream per
        swept value; any other sampler is shared across the sweep.
    seed : int, optional
        Seed for the default sampler.
    risk_grid : sequence of float, optional
        Swept risk fractions in percent (default: 0.1 … 30.0).
    changes : list of str, optional
        Corrections applied to the user's settings, if any.
    """

    def __init__(
        self,
        pool: Sequence[float],
        config: OptimalFConfig,
        sampler: Optional[IndexSampler] = None,
        seed: Optional[int] = None,
        risk_grid: Optional[Sequence[float]] = None,
        changes: Optional[List[str]] = None,
    ):
        self.pool = np.asarray(pool, dtype=float)
        self.config = config
        self.sampler = resolve_sampler(sampler, seed)
        self.risk_grid = list(risk_grid) if risk_grid is not None else default_risk_grid()
        self.changes: List[str] = list(changes or [])
        self.result: Optional[OptimalFAnalysisResult] = None

        # child seeds are fixed once so repeated runs replay the same streams
        self._step_seeds: Optional[List[np.random.SeedSequence]] = None
        if isinstance(self.sampler, RandomSampler):
            self._step_seeds = self.sampler.seed_sequence.spawn(len(self.risk_grid))

    def __iter__(self) -> Generator[int, None, OptimalFAnalysisResult]:
        return self.progress()

    def _step_samplers(self) -> List[IndexSampler]:
        if self._step_seeds is not None:
            return [RandomSampler(child) for child in self._step_seeds]
        return [self.sampler] * len(self.risk_grid)

    def progress(self) -> Generator[int, None, OptimalFAnalysisResult]:
        """
        Run the sweep, yielding integer progress every 5 steps.

        Returns
        -------
        OptimalFAnalysisResult
            Delivered as the generator's return value and stored on
            ``self.result``.
        """
        trackers = build_objective_trackers()
        chart_data: List[OptimalFChartPoint] = []
        total = len(self.risk_grid)

        for step, (risk_pct, sampler) in enumerate(
            zip(self.risk_grid, self._step_samplers()), start=1
        ):
            point = simulate_risk_fraction(self.pool, risk_pct, self.config, sampler)
            chart_data.append(point)
            for tracker in trackers:
                tracker.offer(point)

            if step % PROGRESS_EVERY == 0:
                yield int(step * 100 / total + 0.5)

        self.result = OptimalFAnalysisResult(
            best_rows=[tracker.row() for tracker in trackers],
            chart_data=chart_data,
        )
        logger.info(
            "Optimal-F sweep complete: %d risk levels x %d trials x %d trades",
            total, self.config.total_sims, self.config.trades_per_sim,
        )
        return self.result

    def _reported(self, on_progress: Optional[ProgressCallback]) -> Generator[int, None, None]:
        for pct in self.progress():
            if on_progress is not None:
                on_progress(pct)
            yield pct

    def run(self, on_progress: Optional[ProgressCallback] = None) -> OptimalFAnalysisResult:
        """Drain the sweep synchronously, forwarding progress to a callback."""
        for _ in self._reported(on_progress):
            pass
        return self.result

    async def run_async(
        self, on_progress: Optional[ProgressCallback] = None
    ) -> OptimalFAnalysisResult:
        """
        Drain the sweep inside an event loop, handing control back to the
        loop at every progress checkpoint.
        """
        for _ in self._reported(on_progress):
            await asyncio.sleep(0)
        return self.result


def run_optimal_f_search(
    pool: Sequence[float],
    config: OptimalFConfig,
    sampler: Optional[IndexSampler] = None,
    seed: Optional[int] = None,
) -> OptimalFSearch:
    """
    Clamp the config and prepare the full sweep.

    The returned search lists the applied corrections in ``changes`` and
    iterates as the progress stream::

        search = run_optimal_f_search(pool, config)
        if search.changes:
            show(search.changes)
        for pct in search:
            show(pct)
        result = search.result

    Inside a generator, ``result = yield from search`` captures the result
    directly.
    """
    config, changes = clamp_optimal_f_config(config)
    return OptimalFSearch(pool, config, sampler=sampler, seed=seed, changes=changes)
