"""
Pool Construction Module
========================
Builds the R-multiple distribution pool from one of two inputs:

    1. Frequency table:  rows of (R value, count) entered by hand
    2. Raw P&L text:     per-trade currency results, one per token

Raw P&L Normalization:
    1R   = |mean(losing trades)|
    R_i  = PnL_i / 1R

Design note:
    Tokens are validated strictly ("12x" is rejected, not read as 12) and
    silently dropped when malformed. Only the count of *valid* tokens can
    fail the ingestion.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from edge_engine.exceptions import (
    InputValidationError,
    InsufficientDataError,
    NoLossReferenceError,
    ZeroRiskUnitError,
)
from edge_engine.statistics import SQN_SAMPLE_CAP


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
MIN_RAW_TRADES: int = 30
FREQUENCY_SAMPLE_SIZE: int = 100

TOKEN_SEPARATORS = re.compile(r"[\n,;]+")
NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class FrequencyRow:
    r_value: float
    count: float


@dataclass(frozen=True)
class RawPnLIngestion:
    """Converted raw P&L: pool in R, the 1R unit, and the SQN sample size."""
    pool: List[float]
    r_unit: float
    valid_count: int


def parse_strict_number(token: str) -> Optional[float]:
    """
    Parse a full-token numeric literal.

    Accepts plain decimals and scientific notation. Returns None for
    blanks, partial numbers ("123abc"), and non-finite results.
    """
    trimmed = token.strip()
    if not trimmed or NUMERIC_LITERAL.fullmatch(trimmed) is None:
        return None

    value = float(trimmed)
    return value if math.isfinite(value) else None


def parse_pnl_tokens(text: str) -> List[float]:
    """Split on newline/comma/semicolon and keep only valid numbers."""
    values = []
    for token in TOKEN_SEPARATORS.split(text):
        value = parse_strict_number(token)
        if value is not None:
            values.append(value)
    return values


def ingest_raw_pnl(text: str) -> RawPnLIngestion:
    """
    Convert raw per-trade P&L text into an R-multiple pool.

    Parameters
    ----------
    text : str
        Free text of trade results separated by newlines, commas or
        semicolons.

    Returns
    -------
    RawPnLIngestion
        Full converted pool, 1R unit, and valid count clamped to 100.

    Raises
    ------
    InsufficientDataError
        Fewer than 30 valid tokens.
    NoLossReferenceError
        No negative values to derive 1R from.
    ZeroRiskUnitError
        The derived 1R unit is zero.
    """
    raw_values = parse_pnl_tokens(text)

    if len(raw_values) < MIN_RAW_TRADES:
        raise InsufficientDataError(len(raw_values), MIN_RAW_TRADES)

    losses = [v for v in raw_values if v < 0]
    if not losses:
        raise NoLossReferenceError(len(raw_values))

    # 1R = |average loss|, summed left to right
    r_unit = abs(sum(losses) / len(losses))
    if r_unit == 0:
        raise ZeroRiskUnitError(len(raw_values))

    pool = [v / r_unit for v in raw_values]
    valid_count = min(len(raw_values), SQN_SAMPLE_CAP)

    logger.debug(
        "Ingested %d raw trades (1R = %.6g, SQN n = %d)",
        len(raw_values), r_unit, valid_count,
    )
    return RawPnLIngestion(pool=pool, r_unit=r_unit, valid_count=valid_count)


def build_frequency_pool(
    rows: Iterable[Union[FrequencyRow, Tuple[float, float]]],
) -> List[float]:
    """
    Flatten frequency rows into a pool.

    Each row contributes floor(count) copies of its R value, in row order;
    negative counts contribute nothing.

    Raises
    ------
    InputValidationError
        If no row contributes at least one outcome.
    """
    pool: List[float] = []
    for row in rows:
        if not isinstance(row, FrequencyRow):
            row = FrequencyRow(*row)
        copies = max(0, math.floor(row.count))
        pool.extend([float(row.r_value)] * copies)

    if not pool:
        raise InputValidationError(
            "Add at least one row with a count greater than 0."
        )
    return pool
