"""
Statistical Estimation Module
==============================
Computes the descriptive statistics of an R-multiple pool: win rate,
profit factor, expectancy, volatility and the System Quality Number.

Mathematical Foundation:
    Expectancy:   E = mean(R)
    Volatility:   σ = sqrt(Σ (R_i - E)² / N)        (population, divisor N)
    SQN:          SQN = (E / σ) · √n                (n clamped, see below)

The SQN sample size ``n`` is passed in separately from the pool. Raw P&L
pools clamp it to 100 and frequency pools use a fixed 100, so SQN measures
edge quality at a fixed sample size rather than growing with pool length.
"""

import logging
import numpy as np
from scipy import stats
from typing import Dict, Optional, Sequence

from edge_engine.models import SystemMetrics


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
NO_LOSS_PROFIT_FACTOR: float = 999.0
SQN_SAMPLE_CAP: int = 100


def compute_system_metrics(
    pool: Sequence[float],
    n: int,
    r_unit_size: Optional[float] = None,
) -> SystemMetrics:
    """
    Compute SystemMetrics for an R-multiple pool.

    Parameters
    ----------
    pool : sequence of float
        R-multiples.
    n : int
        Sample size used for SQN (already clamped by the caller).
    r_unit_size : float, optional
        Currency value of 1R when the pool came from raw P&L.

    Returns
    -------
    SystemMetrics
        All-zero metrics for an empty pool.
    """
    values = np.asarray(pool, dtype=float)
    count = values.size
    if count == 0:
        return SystemMetrics(
            win_rate=0.0,
            profit_factor=0.0,
            expectancy=0.0,
            standard_deviation=0.0,
            sqn=0.0,
            n=0,
            worst_r=0.0,
        )

    positives = values[values > 0]
    negatives = values[values < 0]

    win_rate = positives.size / count

    gross_profit = float(positives.sum())
    gross_loss_abs = abs(float(negatives.sum()))

    if gross_loss_abs == 0:
        profit_factor = NO_LOSS_PROFIT_FACTOR if gross_profit > 0 else 0.0
    else:
        profit_factor = gross_profit / gross_loss_abs

    expectancy = float(values.mean())
    standard_deviation = float(np.sqrt(np.mean((values - expectancy) ** 2)))

    sqn = (
        0.0
        if standard_deviation == 0
        else (expectancy / standard_deviation) * float(np.sqrt(n))
    )

    metrics = SystemMetrics(
        win_rate=win_rate,
        profit_factor=profit_factor,
        expectancy=expectancy,
        standard_deviation=standard_deviation,
        sqn=sqn,
        n=n,
        worst_r=float(values.min()),
        r_unit_size=r_unit_size,
    )
    logger.debug("System metrics for %d outcomes: %s", count, metrics)
    return metrics


def describe_distribution(pool: Sequence[float]) -> Dict[str, float]:
    """
    Shape statistics of the R distribution.

    Skewness < 0 (left skew) and excess kurtosis > 0 (fat tails) both mean
    large losses are more frequent than a Gaussian with the same σ implies.

    Parameters
    ----------
    pool : sequence of float
        R-multiples.

    Returns
    -------
    dict
        count, skewness, excess_kurtosis (zeros when undefined).
    """
    values = np.asarray(pool, dtype=float)
    if values.size < 3 or np.ptp(values) == 0:
        return {"count": int(values.size), "skewness": 0.0, "excess_kurtosis": 0.0}

    return {
        "count": int(values.size),
        "skewness": float(stats.skew(values)),
        # excess_kurtosis = 0 for a Gaussian
        "excess_kurtosis": float(stats.kurtosis(values)),
    }
