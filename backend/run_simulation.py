"""
Run the quarterly simulation from the sample game.

Plays a number of quarters with a seeded random source and prints progress
every few quarters. Optionally records every committed quarter in the sqlite
turn ledger and writes a JSON summary.
"""

import argparse
import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from config import CONFIG, load_config
from orchestrator import process_turn
from randomness import make_rng
from sample_game import create_sample_game
from turn_ledger import init_db, log_turn

logger = logging.getLogger(__name__)


def compute_run_stats(reports: List[Dict[str, object]]) -> Dict[str, float]:
    """Vectorized summary of the quarter reports of one run."""
    if not reports:
        return {
            "quarters": 0,
            "mean_net_profit": 0.0,
            "median_net_profit": 0.0,
            "std_net_profit": 0.0,
            "total_net_profit": 0.0,
            "mean_inflation": 0.0,
            "max_inflation": 0.0,
            "mean_market_value": 0.0,
            "loss_quarters": 0,
        }

    net = np.array([r["net_profit"] for r in reports], dtype=float)
    inflation = np.array([r["inflation"] or 0.0 for r in reports], dtype=float)
    market = np.array([r["global_market_value"] for r in reports], dtype=float)

    return {
        "quarters": len(reports),
        "mean_net_profit": float(net.mean()),
        "median_net_profit": float(np.median(net)),
        "std_net_profit": float(net.std()),
        "total_net_profit": float(net.sum()),
        "mean_inflation": float(inflation.mean()),
        "max_inflation": float(inflation.max()),
        "mean_market_value": float(market.mean()),
        "loss_quarters": int((net < 0).sum()),
    }


def main(
    quarters: int = 40,
    seed: Optional[int] = None,
    print_every: int = 4,
    ledger_path: Optional[str] = None,
    summary_path: Optional[str] = None,
    balance_path: Optional[str] = None,
    game_id: str = "cli",
):
    """Run the simulation and return (final state, reports)."""
    config = load_config(balance_path, seed) if balance_path else CONFIG
    seed = seed if seed is not None else config.seed
    rng = make_rng(seed)
    state = create_sample_game(rng, config)

    if ledger_path:
        init_db(ledger_path)

    print("=" * 80)
    print(f"ECOSIM QUARTERLY SIMULATION ({quarters} quarters, seed={seed})")
    print("=" * 80)
    print()
    print("Turn |  Date   |    Money    |  Net profit | Infl. | Phase     | Market")
    print("-" * 80)

    start_time = time.time()
    reports = []
    for _ in range(quarters):
        result = process_turn(state, rng, config)
        state = result.state
        reports.append(result.report)
        if ledger_path:
            log_turn(game_id, state, result.report, ledger_path)

        report = result.report
        if state.turn % print_every == 0 or state.is_game_over:
            print(f"{state.turn:4d} | {report['date']:7s} | ${state.player.money:10,.0f} | "
                  f"${report['net_profit']:10,.0f} | {report['inflation'] or 0:5.1f} | "
                  f"{report['cycle_phase'] or '-':9s} | {report['global_market_value']:.2f}")
        if state.is_game_over:
            print()
            print(f"Game over at turn {state.turn}: {state.end_reason}")
            break

    total_time = time.time() - start_time
    stats = compute_run_stats(reports)

    print()
    print(f"Simulation complete in {total_time:.2f} seconds")
    print(f"  Quarters played:     {stats['quarters']}")
    print(f"  Final money:         ${state.player.money:,.2f}")
    print(f"  Mean net profit:     ${stats['mean_net_profit']:,.2f}")
    print(f"  Median net profit:   ${stats['median_net_profit']:,.2f}")
    print(f"  Loss quarters:       {stats['loss_quarters']}")
    print(f"  Mean inflation:      {stats['mean_inflation']:.2f}%")
    if ledger_path:
        print(f"  Ledger:              {ledger_path}")

    if summary_path:
        summary = {
            "seed": seed,
            "final_turn": state.turn,
            "final_year": state.year,
            "final_money": state.player.money,
            "is_game_over": state.is_game_over,
            "end_reason": state.end_reason,
            "stats": stats,
        }
        path = Path(summary_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        print(f"  Summary:             {path}")

    return state, reports


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    parser = argparse.ArgumentParser(description="Run the EcoSim quarterly simulation.")
    parser.add_argument("--quarters", type=int, default=40, help="Number of quarters to play")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random source")
    parser.add_argument("--print-every", type=int, default=4, help="Progress interval (quarters)")
    parser.add_argument("--ledger", type=str, default=None, help="Write every quarter to this sqlite file")
    parser.add_argument("--summary", type=str, default=None, help="Write a JSON summary to this path")
    parser.add_argument("--balance", type=str, default=None, help="Business balance JSON table")
    parser.add_argument("--verbose", action="store_true", help="Log turn commits and macro events")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    main(
        quarters=args.quarters,
        seed=args.seed,
        print_every=args.print_every,
        ledger_path=args.ledger,
        summary_path=args.summary,
        balance_path=args.balance,
    )
