"""
Shared Data Model
=================
Result and configuration containers passed between the engines.

Percentages in Optimal-F and allocation results are on a 0-100 scale;
``SystemMetrics.win_rate`` is a 0-1 fraction.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

from edge_engine.exceptions import InputValidationError


@dataclass(frozen=True)
class SystemMetrics:
    """Descriptive statistics of an R-multiple pool."""
    win_rate: float
    profit_factor: float
    expectancy: float
    standard_deviation: float
    sqn: float
    n: int
    worst_r: float
    r_unit_size: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class SimulationConfig:
    """Monte Carlo run size."""
    total_simulations: int = 10000
    trades_per_simulation: int = 100

    def __post_init__(self):
        if self.total_simulations < 1 or self.trades_per_simulation < 1:
            raise InputValidationError(
                "total_simulations and trades_per_simulation must be >= 1"
            )


@dataclass
class PathSummary:
    """Outcome of one simulated trade sequence, in R."""
    final_result: float
    max_drawdown: float
    max_profit: float
    max_consecutive_losses: int
    max_consecutive_wins: int
    drawdown_duration: int
    path: List[float] = field(repr=False, default_factory=list)


@dataclass
class EquityCurve:
    name: str
    data: List[float]


@dataclass(frozen=True)
class HistogramBin:
    bin_label: str
    bin_start: float
    frequency: int


@dataclass(frozen=True)
class SummaryStats:
    avg: float = 0.0
    median: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p5: float = 0.0
    p95: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class RiskMetrics:
    probability_of_profit: float
    p95_drawdown_duration: float
    reward_risk_ratio: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class SimulationResults:
    """Everything a single Monte Carlo run produces."""
    system_metrics: SystemMetrics
    risk_metrics: RiskMetrics
    simulation_config: SimulationConfig
    charts: Dict[str, List[HistogramBin]]
    stats: Dict[str, SummaryStats]
    r_distribution: List[float]
    equity_curves: List[EquityCurve]

    def curve(self, name: str) -> EquityCurve:
        """Look up a retained equity curve by name."""
        for curve in self.equity_curves:
            if curve.name == name:
                return curve
        raise KeyError(name)


class RiskMode(str, Enum):
    """How the Optimal-F sweep sizes each trade."""
    FIXED_FRACTIONAL = "FIXED_FRACTIONAL"  # % of current equity (compounding)
    FIXED_INITIAL = "FIXED_INITIAL"        # % of initial equity


@dataclass
class OptimalFConfig:
    """Optimal-F sweep settings. Thresholds are percentages."""
    success_threshold: float = 100.0
    failure_threshold: float = -25.0
    trades_per_sim: int = 100
    total_sims: int = 10000
    risk_mode: RiskMode = RiskMode.FIXED_FRACTIONAL


@dataclass(frozen=True)
class OptimalFResultRow:
    approach: str
    optimal_risk: float
    prob_success: float
    prob_ruin: float
    avg_gain: float
    median_gain: float

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class OptimalFChartPoint:
    risk: float
    prob_success: float
    prob_ruin: float
    avg_gain: float
    median_gain: float


@dataclass
class OptimalFAnalysisResult:
    best_rows: List[OptimalFResultRow]
    chart_data: List[OptimalFChartPoint]

    def to_frame(self):
        """Per-f series as a DataFrame indexed by risk %."""
        frame = pd.DataFrame([asdict(p) for p in self.chart_data])
        if frame.empty:
            return frame
        return frame.set_index("risk")


@dataclass(frozen=True)
class AssetAllocation:
    name: str
    initial_risk: float
    final_risk: float
    constraint_label: str
