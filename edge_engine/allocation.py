"""
Risk Allocation Pruning
=======================
Splits a total portfolio heat budget across correlated assets under two
simultaneous constraints:

    Nominal:     Σ w_i            ≤ K1
    Volatility:  sqrt(w^T Σ w)    ≤ K1

where every asset starts at the single-asset cap K2 and Σ is built from
categorical correlation levels (diagonal 1.0).

Algorithm (per iteration, at most 200):
    1. MRC = Σ w;  contribution_i = max(0, w_i · MRC_i)
    2. share_i = contribution_i / Σ contribution
    3. prune_i = max( share_i · (risk/K1 - 1)                 if risk overloaded,
                      0.1 · (sum/K1 - 1) + share_i · (sum/K1 - 1)  if sum overloaded )
    4. w_i *= 1 - min(0.2, prune_i · 0.1 · 5.0)

Hedging assets have a negative marginal contribution, fall out of the
contribution pool, and only feel the uniform part of the pressure.
"""

import logging
import numpy as np
import pandas as pd
from enum import Enum
from typing import Dict, List, Sequence, Union

from edge_engine.exceptions import InputValidationError
from edge_engine.models import AssetAllocation


logger = logging.getLogger(__name__)


class CorrelationLevel(str, Enum):
    STRONG = "STRONG"
    MEDIUM = "MEDIUM"
    WEAK = "WEAK"
    PARTIAL_HEDGE = "PARTIAL_HEDGE"
    STRONG_HEDGE = "STRONG_HEDGE"


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
CORRELATION_COEFFICIENTS: Dict[CorrelationLevel, float] = {
    CorrelationLevel.STRONG: 0.9,
    CorrelationLevel.MEDIUM: 0.5,
    CorrelationLevel.WEAK: 0.1,
    CorrelationLevel.PARTIAL_HEDGE: -0.5,
    CorrelationLevel.STRONG_HEDGE: -0.8,
}
HEDGE_LEVELS = frozenset({CorrelationLevel.PARTIAL_HEDGE, CorrelationLevel.STRONG_HEDGE})

MIN_ASSETS: int = 2
MAX_ASSETS: int = 10
HEDGE_OVER_ALLOCATION: float = 1.25

MAX_ITERATIONS: int = 200
LEARNING_RATE: float = 0.1
PRUNE_MULTIPLIER: float = 5.0
MAX_STEP_SHRINK: float = 0.2
UNIFORM_PRESSURE: float = 0.1
OVERLOAD_TOLERANCE: float = 1.0001
MIN_WEIGHT_CHANGE: float = 1e-5
SAFETY_SCALE: float = 0.999

LABEL_PRUNED = "Risk Pruning"
LABEL_SINGLE_CAP = "Single Cap"
LABEL_ALLOCATED = "Risk Alloc."
LABEL_NONE = "None"
PRUNED_BELOW: float = 0.01
CAP_TOLERANCE: float = 0.05

LevelMatrix = Sequence[Sequence[Union[CorrelationLevel, str]]]


def default_correlation_matrix(n_assets: int) -> List[List[CorrelationLevel]]:
    """N x N level matrix with every pair set to WEAK."""
    return [[CorrelationLevel.WEAK] * n_assets for _ in range(n_assets)]


def set_correlation(
    matrix: List[List[CorrelationLevel]],
    i: int,
    j: int,
    level: Union[CorrelationLevel, str],
) -> None:
    """Set a pair's level symmetrically."""
    level = CorrelationLevel(level)
    matrix[i][j] = level
    matrix[j][i] = level


def suggest_max_single_risk(total_heat: float, asset_count: int) -> float:
    """
    Default single-asset cap K2 for a heat budget.

    N >= 3: heat / N · 1.5;  N = 2: heat / √2 · 0.8;  N = 1: heat.
    Clamped to [0.1, heat] and rounded to 2 decimals.
    """
    if total_heat <= 0 or asset_count <= 0:
        return 0.0

    if asset_count >= 3:
        suggested = total_heat / asset_count * 1.5
    elif asset_count == 2:
        suggested = total_heat / np.sqrt(asset_count) * 0.8
    else:
        suggested = total_heat

    return round(float(max(0.1, min(total_heat, suggested))), 2)


def _parse_levels(levels: LevelMatrix, n_assets: int) -> List[List[CorrelationLevel]]:
    if len(levels) != n_assets or any(len(row) != n_assets for row in levels):
        raise InputValidationError(
            f"Correlation matrix must be {n_assets}x{n_assets}."
        )
    parsed = [[CorrelationLevel(v) for v in row] for row in levels]
    for i in range(n_assets):
        for j in range(i + 1, n_assets):
            if parsed[i][j] != parsed[j][i]:
                raise InputValidationError(
                    f"Correlation matrix is not symmetric at ({i}, {j})."
                )
    return parsed


def build_correlation_matrix(levels: LevelMatrix) -> np.ndarray:
    """
    Map categorical levels to coefficients; the diagonal is always 1.0.

    Parameters
    ----------
    levels : N x N sequence of CorrelationLevel (or their string values)

    Returns
    -------
    np.ndarray
        Correlation coefficient matrix (N x N).
    """
    parsed = [[CorrelationLevel(v) for v in row] for row in levels]
    matrix = np.array(
        [[CORRELATION_COEFFICIENTS[level] for level in row] for row in parsed]
    )
    np.fill_diagonal(matrix, 1.0)
    return matrix


def has_hedge(levels: Sequence[Sequence[CorrelationLevel]]) -> bool:
    """True if any off-diagonal pair is a (partial or strong) hedge."""
    n = len(levels)
    return any(
        levels[i][j] in HEDGE_LEVELS
        for i in range(n)
        for j in range(n)
        if i != j
    )


def _constraint_label(final_risk: float, cap: float) -> str:
    if final_risk < PRUNED_BELOW:
        return LABEL_PRUNED
    if abs(final_risk - cap) < CAP_TOLERANCE:
        return LABEL_SINGLE_CAP
    if final_risk < cap:
        return LABEL_ALLOCATED
    return LABEL_NONE


def solve_weights(corr: np.ndarray, max_single_risk: float, budget: float) -> np.ndarray:
    """
    Iteratively shrink weights from the single cap until both the nominal
    sum and the portfolio volatility fit the budget.

    Parameters
    ----------
    corr : np.ndarray
        Correlation coefficient matrix (N x N).
    max_single_risk : float
        Starting weight K2 for every asset.
    budget : float
        Effective heat budget K1.

    Returns
    -------
    np.ndarray
        Final weights (N,), after the safety rescale.
    """
    n = corr.shape[0]
    weights = np.full(n, float(max_single_risk))

    iteration = 0
    for iteration in range(1, MAX_ITERATIONS + 1):
        mrc = corr @ weights
        variance = float(weights @ mrc)
        risk = np.sqrt(max(0.0, variance))

        risk_overload = risk / budget
        sum_overload = float(weights.sum()) / budget
        if max(risk_overload, sum_overload) <= OVERLOAD_TOLERANCE:
            break

        contributions = np.maximum(0.0, weights * mrc)
        total_positive = float(contributions.sum())
        if total_positive > 0:
            share = contributions / total_positive
        else:
            share = np.zeros(n)

        prune = np.zeros(n)
        if risk_overload > 1.0 and total_positive > 0:
            prune = np.maximum(prune, share * (risk_overload - 1.0))
        if sum_overload > 1.0:
            base_pressure = (sum_overload - 1.0) * UNIFORM_PRESSURE
            prune = np.maximum(prune, base_pressure + share * (sum_overload - 1.0))

        shrink = np.minimum(MAX_STEP_SHRINK, prune * LEARNING_RATE * PRUNE_MULTIPLIER)
        updated = weights * (1.0 - shrink)
        max_change = float(np.max(np.abs(weights - updated)))
        weights = updated

        if max_change < MIN_WEIGHT_CHANGE:
            break

    final_sum = float(weights.sum())
    if final_sum > budget:
        weights = weights * (budget / final_sum) * SAFETY_SCALE

    logger.debug(
        "Pruning stopped after %d iterations: sum=%.4f budget=%.4f",
        iteration, float(weights.sum()), budget,
    )
    return weights


def prune_risk_allocation(
    asset_names: Sequence[str],
    correlation_matrix: LevelMatrix,
    max_single_risk: float,
    total_heat: float,
    allow_over_allocation: bool = False,
) -> List[AssetAllocation]:
    """
    Allocate a total heat budget across correlated assets.

    Parameters
    ----------
    asset_names : sequence of str
        2 to 10 asset names.
    correlation_matrix : N x N levels
        Symmetric CorrelationLevel matrix; the diagonal is ignored.
    max_single_risk : float
        Per-asset cap K2 (%).
    total_heat : float
        Total heat budget (%).
    allow_over_allocation : bool
        If True and any hedge pair exists, the budget is raised by 25%.

    Returns
    -------
    list of AssetAllocation
        One entry per asset, in input order.

    Raises
    ------
    InputValidationError
        Asset count outside [2, 10], non-positive budget or cap, or a
        mis-shaped / asymmetric matrix.
    """
    n = len(asset_names)
    if not MIN_ASSETS <= n <= MAX_ASSETS:
        raise InputValidationError(
            f"Asset count must be between {MIN_ASSETS} and {MAX_ASSETS}, got {n}."
        )
    if total_heat <= 0 or max_single_risk <= 0:
        raise InputValidationError("total_heat and max_single_risk must be positive.")

    levels = _parse_levels(correlation_matrix, n)
    budget = total_heat
    if allow_over_allocation and has_hedge(levels):
        budget = total_heat * HEDGE_OVER_ALLOCATION

    weights = solve_weights(build_correlation_matrix(levels), max_single_risk, budget)

    allocations = []
    for name, weight in zip(asset_names, weights):
        final_risk = max(0.0, float(weight))
        allocations.append(
            AssetAllocation(
                name=name,
                initial_risk=float(max_single_risk),
                final_risk=final_risk,
                constraint_label=_constraint_label(float(weight), max_single_risk),
            )
        )

    logger.info(
        "Allocated %.2f%% heat across %d assets (budget %.2f%%)",
        sum(a.final_risk for a in allocations), n, budget,
    )
    return allocations


def allocations_to_frame(allocations: Sequence[AssetAllocation]) -> pd.DataFrame:
    """Allocation table as a DataFrame indexed by asset name."""
    frame = pd.DataFrame(
        [
            {
                "asset": a.name,
                "initial_risk": a.initial_risk,
                "final_risk": a.final_risk,
                "constraint": a.constraint_label,
            }
            for a in allocations
        ]
    )
    return frame.set_index("asset")
