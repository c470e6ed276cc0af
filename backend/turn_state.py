"""
Per-turn working state.

A TurnState wraps a deep copy of the previous committed GameState plus the
accumulators the steps fill in (stat deltas, income and expense lines,
notifications). Nothing in here is visible outside the orchestrator until
the turn is committed.
"""

import copy
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import SimulationConfig
from inflation import InflationNotification, should_apply_inflation_this_turn
from models import STAT_NAMES, CountryEconomy, GameState, Notification, format_game_date


@dataclass(frozen=True)
class TurnContext:
    """Read-only inputs of a turn."""
    previous: GameState
    rng: random.Random
    config: SimulationConfig


@dataclass
class TurnState:
    state: GameState
    new_turn: int
    new_year: int
    stat_modifiers: Dict[str, float] = field(default_factory=lambda: {name: 0.0 for name in STAT_NAMES})
    income: Dict[str, float] = field(default_factory=dict)
    expenses: Dict[str, float] = field(default_factory=dict)
    notifications: List[Notification] = field(default_factory=list)
    business_reports: List[Dict[str, object]] = field(default_factory=list)
    buff_income_pct: float = 0.0
    net_profit: float = 0.0
    game_over_reason: Optional[str] = None
    inflation_notification: Optional[InflationNotification] = None

    def country(self) -> Optional[CountryEconomy]:
        return self.state.country()

    @property
    def date(self) -> str:
        return format_game_date(self.new_year, self.new_turn)

    def add_stat(self, name: str, delta: float) -> None:
        self.stat_modifiers[name] = self.stat_modifiers.get(name, 0.0) + delta

    def add_income(self, line: str, amount: float) -> None:
        self.income[line] = self.income.get(line, 0.0) + amount

    def add_expense(self, line: str, amount: float) -> None:
        self.expenses[line] = self.expenses.get(line, 0.0) + amount

    def notify(self, notification_id: str, kind: str, title: str, message: str) -> Notification:
        notification = Notification(
            id=notification_id,
            type=kind,
            title=title,
            message=message,
            date=self.date,
        )
        self.notifications.append(notification)
        return notification


def next_turn_and_year(turn: int, year: int):
    new_turn = turn + 1
    new_year = year + 1 if should_apply_inflation_this_turn(new_turn) and new_turn > 1 else year
    return new_turn, new_year


def init_turn_state(previous: GameState) -> TurnState:
    """Fresh working state; the previous state is deep-copied and never touched."""
    new_turn, new_year = next_turn_and_year(previous.turn, previous.year)
    return TurnState(state=copy.deepcopy(previous), new_turn=new_turn, new_year=new_year)
