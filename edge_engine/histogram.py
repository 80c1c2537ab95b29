"""
Histogram Binning
=================
Fixed-bin-count frequency tables and summary statistics for the
distributions produced by the Monte Carlo engine.
"""

import numpy as np
from typing import List, Sequence

from edge_engine.models import HistogramBin, SummaryStats


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
HISTOGRAM_BINS: int = 30
FLAT_RANGE_EPSILON: float = 1e-9


def compute_summary_stats(values: Sequence[float]) -> SummaryStats:
    """
    Average, median, extremes and 5th/95th percentiles.

    Percentiles index the sorted values at floor(len·0.05) and
    floor(len·0.95), clamped into range. No interpolation.
    """
    if len(values) == 0:
        return SummaryStats()

    ordered = np.sort(np.asarray(values, dtype=float))
    size = ordered.size

    mid = size // 2
    if size % 2:
        median = ordered[mid]
    else:
        median = (ordered[mid - 1] + ordered[mid]) / 2

    p5_index = max(0, int(np.floor(size * 0.05)))
    p95_index = min(size - 1, int(np.floor(size * 0.95)))

    return SummaryStats(
        avg=float(ordered.sum() / size),
        median=float(median),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        p5=float(ordered[p5_index]),
        p95=float(ordered[p95_index]),
    )


def compute_histogram(
    values: Sequence[float], bins: int = HISTOGRAM_BINS
) -> List[HistogramBin]:
    """
    Bucket values into ``bins`` equal-width bins over [min, max].

    A (near-)constant input collapses into a single bin holding every
    value. Otherwise index = floor((v - min) / width), clamped to
    [0, bins - 1] so the exact maximum lands in the last bin.

    Parameters
    ----------
    values : sequence of float
        Scalars to bin.
    bins : int
        Number of bins (default: 30).

    Returns
    -------
    list of HistogramBin
        Empty for empty input.
    """
    if len(values) == 0:
        return []

    data = np.asarray(values, dtype=float)
    lo = float(data.min())
    hi = float(data.max())

    if abs(hi - lo) < FLAT_RANGE_EPSILON:
        return [HistogramBin(bin_label=f"{lo:.2f}", bin_start=lo, frequency=int(data.size))]

    width = (hi - lo) / bins
    index = np.floor((data - lo) / width).astype(int)
    index = np.clip(index, 0, bins - 1)
    counts = np.bincount(index, minlength=bins)

    precision = 1 if width < 1 else 0
    result = []
    for i in range(bins):
        start = lo + i * width
        end = lo + (i + 1) * width
        result.append(
            HistogramBin(
                bin_label=f"{start:.{precision}f}~{end:.{precision}f}",
                bin_start=start,
                frequency=int(counts[i]),
            )
        )
    return result
