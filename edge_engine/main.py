"""
R-Multiple Edge Engine — Main Orchestrator
==========================================
Entry point for the complete edge analysis pipeline.

Execution Flow:
    1. Build the R-multiple pool (frequency rows or raw P&L file)
    2. System metrics (win rate, expectancy, SQN) and distribution shape
    3. Monte Carlo path resampling
    4. Portfolio heat recommendation
    5. Optimal-F risk sweep (opt-in)
    6. Correlated risk allocation (opt-in)
"""

import argparse
import logging
import sys
import pandas as pd
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from edge_engine.allocation import (
    allocations_to_frame,
    default_correlation_matrix,
    prune_risk_allocation,
    suggest_max_single_risk,
)
from edge_engine.exceptions import EdgeEngineError
from edge_engine.ingestion import (
    FREQUENCY_SAMPLE_SIZE,
    FrequencyRow,
    build_frequency_pool,
    ingest_raw_pnl,
)
from edge_engine.models import OptimalFConfig, RiskMode, SimulationConfig
from edge_engine.monte_carlo import run_monte_carlo
from edge_engine.optimal_f import run_optimal_f_search
from edge_engine.risk_metrics import recommend_portfolio_heat
from edge_engine.statistics import compute_system_metrics, describe_distribution


# ─────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────
DEFAULT_FREQUENCY_ROWS: List[FrequencyRow] = [
    FrequencyRow(r_value=-1.0, count=5),
    FrequencyRow(r_value=2.0, count=3),
    FrequencyRow(r_value=5.0, count=2),
]

NUM_SIMULATIONS = 10_000
TRADES_PER_SIMULATION = 100
RANDOM_SEED = 42
DEFAULT_ASSETS = 3


def print_header(text: str) -> None:
    """Print formatted section header."""
    width = 60
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width)


def print_metrics(metrics: dict, indent: int = 4) -> None:
    """Print dictionary of metrics with formatting."""
    prefix = " " * indent
    for key, val in metrics.items():
        if isinstance(val, float):
            print(f"{prefix}{key:.<35} {val:>12.6f}")
        else:
            print(f"{prefix}{key:.<35} {str(val):>12}")


def load_pool(pnl_file: Optional[str]) -> Tuple[List[float], int, Optional[float]]:
    """Return (pool, SQN sample size, 1R unit) from a P&L file or the default rows."""
    if pnl_file is None:
        print("  Using default frequency rows:")
        for row in DEFAULT_FREQUENCY_ROWS:
            print(f"    {row.r_value:+.2f}R  x {int(row.count)}")
        return build_frequency_pool(DEFAULT_FREQUENCY_ROWS), FREQUENCY_SAMPLE_SIZE, None

    print(f"  Loading raw P&L from {pnl_file}")
    parsed = ingest_raw_pnl(Path(pnl_file).read_text())
    print(f"  1R unit: {parsed.r_unit:.4f}  ({len(parsed.pool)} trades)")
    return parsed.pool, parsed.valid_count, parsed.r_unit


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edge-engine",
        description="Monte Carlo analysis of a trading system's R-multiple edge.",
    )
    parser.add_argument("--pnl-file", help="Raw per-trade P&L text file.")
    parser.add_argument("--simulations", type=int, default=NUM_SIMULATIONS)
    parser.add_argument("--trades", type=int, default=TRADES_PER_SIMULATION)
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--optimal-f", action="store_true", help="Run the Optimal-F sweep.")
    parser.add_argument(
        "--risk-mode",
        choices=[m.value for m in RiskMode],
        default=RiskMode.FIXED_FRACTIONAL.value,
    )
    parser.add_argument("--success", type=float, default=100.0, help="Success threshold %%.")
    parser.add_argument("--failure", type=float, default=-25.0, help="Failure threshold %%.")
    parser.add_argument("--sweep-trades", type=int, default=100)
    parser.add_argument("--sweep-sims", type=int, default=10_000)
    parser.add_argument("--allocate", action="store_true", help="Run risk allocation.")
    parser.add_argument("--assets", type=int, default=DEFAULT_ASSETS)
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Execute the complete edge analysis pipeline."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    print("\n" + "╔" + "═" * 58 + "╗")
    print("║   R-MULTIPLE EDGE ENGINE                                 ║")
    print("║   Monte Carlo Trading System Analysis                    ║")
    print("╚" + "═" * 58 + "╝")

    try:
        # ── PHASE 1: Pool ─────────────────────────────────────────
        print_header("PHASE 1 — R-MULTIPLE POOL")
        pool, sample_size, r_unit = load_pool(args.pnl_file)

        # ── PHASE 2: System Metrics ───────────────────────────────
        print_header("PHASE 2 — SYSTEM METRICS")
        metrics = compute_system_metrics(pool, sample_size, r_unit)
        print_metrics(metrics.to_dict())
        print("\n  Distribution Shape:")
        print_metrics(describe_distribution(pool))

        # ── PHASE 3: Monte Carlo ──────────────────────────────────
        print_header("PHASE 3 — MONTE CARLO SIMULATION")
        sim_config = SimulationConfig(
            total_simulations=args.simulations,
            trades_per_simulation=args.trades,
        )
        print(f"    Running {args.simulations:,} paths x {args.trades} trades...")
        results = run_monte_carlo(pool, metrics, sim_config, seed=args.seed)

        print("\n  ┌─ Risk Metrics ───────────────────────────────┐")
        print_metrics(results.risk_metrics.to_dict())

        stats_table = pd.DataFrame(
            {key: s.to_dict() for key, s in results.stats.items()}
        ).T
        print("\n" + stats_table.to_string(float_format=lambda x: f"{x:.3f}"))

        print("\n  Equity Curves (final R):")
        for curve in results.equity_curves:
            print(f"    {curve.name:.<35} {curve.data[-1]:>12.3f}")

        # ── PHASE 4: Portfolio Heat ───────────────────────────────
        print_header("PHASE 4 — PORTFOLIO HEAT")
        heat = recommend_portfolio_heat(metrics)
        print_metrics(
            {
                "sqn_heat_pct": heat.sqn_heat,
                "constraint_heat_pct": heat.constraint_heat,
                "final_heat_pct": heat.final_heat,
                "constrained_by_worst_trade": heat.is_constrained,
            }
        )

        # ── PHASE 5: Optimal-F ────────────────────────────────────
        if args.optimal_f:
            print_header("PHASE 5 — OPTIMAL-F SWEEP")
            search = run_optimal_f_search(
                pool,
                OptimalFConfig(
                    success_threshold=args.success,
                    failure_threshold=args.failure,
                    trades_per_sim=args.sweep_trades,
                    total_sims=args.sweep_sims,
                    risk_mode=RiskMode(args.risk_mode),
                ),
                seed=args.seed,
            )
            if search.changes:
                print(f"  Settings auto-corrected: {', '.join(search.changes)}")

            analysis = search.run(
                lambda pct: print(f"\r    Progress: {pct:3d}%", end="", flush=True)
            )
            print()

            rows = pd.DataFrame([row.to_dict() for row in analysis.best_rows])
            print("\n" + rows.to_string(index=False, float_format=lambda x: f"{x:.2f}"))

        # ── PHASE 6: Risk Allocation ──────────────────────────────
        if args.allocate:
            print_header("PHASE 6 — RISK ALLOCATION")
            n_assets = args.assets
            names = [f"Symbol {chr(65 + i)}" for i in range(n_assets)]
            cap = suggest_max_single_risk(heat.final_heat, n_assets)
            print(f"  Total heat: {heat.final_heat:.2f}%   Single cap: {cap:.2f}%")

            allocations = prune_risk_allocation(
                names,
                default_correlation_matrix(n_assets),
                cap,
                heat.final_heat,
            )
            frame = allocations_to_frame(allocations)
            print("\n" + frame.to_string(float_format=lambda x: f"{x:.3f}"))

    except (EdgeEngineError, OSError) as exc:
        print(f"\n  ERROR: {exc}", file=sys.stderr)
        return 1

    print("\n" + "╔" + "═" * 58 + "╗")
    print("║   EDGE ANALYSIS COMPLETE                                 ║")
    print("╚" + "═" * 58 + "╝\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
