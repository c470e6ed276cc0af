"""
Turn Orchestrator

Runs one quarter as a fixed, named pipeline of steps over a private copy of
the previous state, then commits the result in one go. The previous state
object is never mutated, and nothing a step writes is visible to callers
until ``process_turn`` returns.

Inflation must stay the last step: every other step prices things with the
rate that was in force before this quarter's yearly update.
"""

import copy
import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from business_step import business_step
from config import CONFIG, SimulationConfig
from economy_steps import economy_step, financial_step, inflation_step, market_step
from financials import BusinessFinancials, calculate_business_financials
from models import GameState, Notification
from player_steps import (
    buffs_step,
    education_step,
    jobs_step,
    lifestyle_step,
    personal_step,
    thresholds_step,
)
from randomness import FixedRandom, turn_rng
from turn_state import TurnContext, TurnState, init_turn_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnStep:
    name: str
    run: Callable[[TurnContext, TurnState], None]


TURN_PIPELINE: Tuple[TurnStep, ...] = (
    TurnStep("economy", economy_step),
    TurnStep("market", market_step),
    TurnStep("education", education_step),
    TurnStep("jobs", jobs_step),
    TurnStep("personal", personal_step),
    TurnStep("business", business_step),
    TurnStep("buffs", buffs_step),
    TurnStep("lifestyle", lifestyle_step),
    TurnStep("thresholds", thresholds_step),
    TurnStep("financial", financial_step),
    TurnStep("inflation", inflation_step),
)


def validate_pipeline(pipeline: Tuple[TurnStep, ...]) -> None:
    """
    Raises:
        ValueError: if step names repeat or inflation is not the final step
    """
    names = [step.name for step in pipeline]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate step names in turn pipeline: {names}")
    if not names or names[-1] != "inflation":
        raise ValueError("The inflation step must be the last step of the turn pipeline")


validate_pipeline(TURN_PIPELINE)


@dataclass
class TurnResult:
    state: GameState
    report: Dict[str, object]
    notifications: List[Notification]


def build_report(ts: TurnState) -> Dict[str, object]:
    country = ts.country()
    return {
        "turn": ts.new_turn,
        "year": ts.new_year,
        "date": ts.date,
        "income": {k: round(v, 2) for k, v in ts.income.items()},
        "expenses": {k: round(v, 2) for k, v in ts.expenses.items()},
        "total_income": round(sum(ts.income.values()), 2),
        "total_expenses": round(sum(ts.expenses.values()), 2),
        "net_profit": ts.net_profit,
        "stat_changes": {k: round(v, 1) for k, v in ts.stat_modifiers.items()},
        "businesses": ts.business_reports,
        "global_market_value": ts.state.global_market_value,
        "inflation": country.inflation if country else None,
        "key_rate": country.key_rate if country else None,
        "cycle_phase": country.cycle.phase.value if country and country.cycle else None,
        "inflation_update": ts.inflation_notification.to_dict() if ts.inflation_notification else None,
        "game_over_reason": ts.game_over_reason,
    }


def commit_turn(ts: TurnState, config: SimulationConfig) -> TurnResult:
    """Write the working copy's accumulators back into its state."""
    state = ts.state
    report = build_report(ts)

    state.turn = ts.new_turn
    state.year = ts.new_year
    state.player.money = round(state.player.money + ts.net_profit, 2)
    state.notifications = (state.notifications + ts.notifications)[-config.personal.max_notifications:]
    state.last_report = report
    if ts.game_over_reason is not None:
        state.is_game_over = True
        state.end_reason = ts.game_over_reason

    logger.info("Committed turn %d (%s): net %.0f, money %.0f",
                state.turn, ts.date, ts.net_profit, state.player.money)
    return TurnResult(state=state, report=report, notifications=list(ts.notifications))


def process_turn(
    previous: GameState,
    rng: Optional[random.Random] = None,
    config: Optional[SimulationConfig] = None,
    pipeline: Tuple[TurnStep, ...] = TURN_PIPELINE,
) -> TurnResult:
    """
    Advance the game by one quarter.

    Args:
        previous: Last committed state; left untouched
        rng: Random source for the whole turn; when omitted each quarter draws
            from its own stream derived from config.seed and the turn
        config: Simulation parameters (defaults to CONFIG)
        pipeline: Step sequence; must end with the inflation step

    Returns:
        TurnResult with the new state, the quarter report and the new notifications
    """
    config = config or CONFIG
    validate_pipeline(pipeline)
    if rng is None:
        rng = turn_rng(config.seed, previous.turn)

    ts = init_turn_state(previous)
    if previous.is_game_over:
        # Ended games stay where they are
        ts.notify(f"game_over_turn_{previous.turn}", "error", "The game is over",
                  f"No more quarters can be played ({previous.end_reason}).")
        ts.state.notifications = (ts.state.notifications + ts.notifications)[-config.personal.max_notifications:]
        return TurnResult(state=ts.state, report=previous.last_report or {}, notifications=list(ts.notifications))

    ctx = TurnContext(previous=previous, rng=rng, config=config)
    for step in pipeline:
        logger.debug("Turn %d: running %s step", ts.new_turn, step.name)
        step.run(ctx, ts)
    return commit_turn(ts, config)


def preview_business(state: GameState, business_id: str,
                     overrides: Optional[Dict[str, object]] = None,
                     config: Optional[SimulationConfig] = None) -> Optional[BusinessFinancials]:
    """
    Financial preview for one business with every random draw at its midpoint.

    ``overrides`` (e.g. a new price level) are applied to a copy; the game
    state is not modified. Returns None for an unknown business.
    """
    config = config or CONFIG
    business = next((b for b in state.player.businesses if b.id == business_id), None)
    if business is None:
        return None

    candidate = copy.deepcopy(business)
    if overrides:
        candidate.apply_overrides(overrides)
    return calculate_business_financials(
        candidate,
        economy=state.country(),
        player=state.player,
        global_market_value=state.global_market_value,
        rng=FixedRandom(),
        is_preview=True,
        balance=config.balance,
    )
