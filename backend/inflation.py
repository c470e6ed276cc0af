"""
Inflation Engine

Yearly inflation generation, key rate policy and category-aware price
compounding.

History convention: ``CountryEconomy.inflation_history`` is stored
newest-first. ``get_cumulative_inflation_multiplier`` expects chronological
order (oldest first), so callers reverse the stored list before compounding.
``get_inflated_price`` does that reversal for you.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from config import CONFIG, InflationConfig
from models import CountryEconomy
from numeric import clamp, is_valid_number, js_round, round_to, safe_number

logger = logging.getLogger(__name__)

CRISIS_EVENT_TYPES = ("crisis", "inflation_spike")


def get_category_multiplier(category: str, cfg: Optional[InflationConfig] = None) -> float:
    cfg = cfg or CONFIG.inflation
    multipliers = cfg.category_multipliers
    return multipliers.get(category, multipliers["default"])


def should_apply_inflation_this_turn(turn: int) -> bool:
    """Inflation is applied once a year, on the first quarter (turns 1, 5, 9, ...)."""
    return turn > 0 and turn % 4 == 1


def is_crisis(economy: CountryEconomy) -> bool:
    return any(event.type in CRISIS_EVENT_TYPES for event in economy.active_events)


def generate_yearly_inflation(
    previous_rate: float,
    economy: CountryEconomy,
    rng: random.Random,
    cfg: Optional[InflationConfig] = None,
) -> float:
    """
    Produce next year's inflation rate.

    The trend blends the damped previous rate with the world average,
    bounded by a window around the previous rate that widens during a
    crisis. Noise and active event shocks are added before the final clamp.

    Args:
        previous_rate: Last year's inflation, percent
        economy: Country whose active events shape the draw
        rng: Random source
        cfg: Inflation parameters (defaults to CONFIG.inflation)

    Returns:
        Rate in [min_inflation, max_inflation], rounded to 0.1
    """
    cfg = cfg or CONFIG.inflation
    current = safe_number(previous_rate, cfg.world_average, "previous inflation")

    volatility = cfg.volatility
    damping = cfg.damping_factor
    if is_crisis(economy):
        volatility *= cfg.crisis_multiplier
        damping = min(1.0, damping * cfg.crisis_damping_boost)

    half_range = abs(current) * volatility
    target_min = max(cfg.min_inflation, current - half_range)
    target_max = min(cfg.max_inflation, current + 2 * half_range)
    if target_max < target_min:
        target_max = target_min

    trend = current * damping + cfg.world_average * (1 - damping)
    trend = clamp(trend, target_min, target_max)

    noise = (rng.random() - 0.5) * (target_max - target_min) * cfg.noise_share
    shock = sum(safe_number(e.inflation_change, 0.0) for e in economy.active_events)

    new_rate = clamp(trend + noise + shock, cfg.min_inflation, cfg.max_inflation)
    return round_to(new_rate, 1)


def calculate_key_rate(
    inflation: float,
    previous_rate: float,
    rng: random.Random,
    cfg: Optional[InflationConfig] = None,
) -> float:
    """Central bank rate: inflation plus a spread, moving at most one point a year."""
    cfg = cfg or CONFIG.inflation
    inflation = safe_number(inflation, cfg.world_average, "inflation")
    previous_rate = safe_number(previous_rate, inflation + cfg.key_rate_spread, "key rate")

    target = inflation + cfg.key_rate_spread + (rng.random() - 0.5) * cfg.key_rate_noise
    change = clamp(target - previous_rate, -cfg.key_rate_max_step, cfg.key_rate_max_step)
    return round_to(max(cfg.min_key_rate, previous_rate + change), 2)


def apply_inflation(base_price: float, rate: float, category: str = "default") -> float:
    """
    One year of inflation on a price.

    Invalid prices become 0; non-positive prices and invalid or negative
    rates leave the price unchanged.
    """
    if not is_valid_number(base_price):
        return 0
    if base_price <= 0 or not is_valid_number(rate) or rate < 0:
        return base_price
    multiplier = get_category_multiplier(category)
    # Rounding must not take a fractional price below where it started
    return max(js_round(base_price * (1 + rate * multiplier / 100)), base_price)


def apply_inflation_to_all(prices: Dict[str, float], rate: float, category: str = "default") -> Dict[str, float]:
    return {key: apply_inflation(price, rate, category) for key, price in prices.items()}


def get_cumulative_inflation_multiplier(history: Sequence[float], category: str = "default") -> float:
    """
    Compounded price multiplier over a chronological (oldest first) history.

    Negative and invalid years count as zero, so the result is never
    below 1. An empty history gives exactly 1.
    """
    multiplier = get_category_multiplier(category)
    result = 1.0
    for rate in history:
        result *= 1 + max(0.0, safe_number(rate, 0.0)) * multiplier / 100
    return result


def get_inflated_price(base_price: float, economy: CountryEconomy, category: str = "default") -> float:
    """Base price compounded over the country's whole stored inflation history."""
    if not is_valid_number(base_price):
        return 0
    if base_price <= 0 or not economy.inflation_history:
        return base_price
    chronological = list(reversed(economy.inflation_history))
    return js_round(base_price * get_cumulative_inflation_multiplier(chronological, category))


def get_inflated_salary(
    base_salary: float,
    economy: CountryEconomy,
    quarters_passed: int,
    rng: random.Random,
    cfg: Optional[InflationConfig] = None,
) -> float:
    """
    Index a salary for the whole years an employee has been on it.

    Salaries follow 70-90% of each year's inflation, using the most
    recent years of history.
    """
    cfg = cfg or CONFIG.inflation
    base_salary = safe_number(base_salary, 0.0, "salary")
    years = int(safe_number(quarters_passed, 0.0)) // 4
    if years <= 0 or base_salary <= 0:
        return base_salary

    history = economy.inflation_history or [economy.inflation]
    recent = list(reversed(history[:years]))
    indexation = cfg.salary_indexation_min + rng.random() * (cfg.salary_indexation_max - cfg.salary_indexation_min)

    salary = base_salary
    for yearly in recent:
        salary *= 1 + max(0.0, safe_number(yearly, 0.0)) * indexation / 100
    return js_round(salary)


def get_quarterly_inflated_salary(
    base_quarterly_salary: float,
    economy: CountryEconomy,
    quarters_passed: int,
    rng: random.Random,
) -> float:
    """Indexation is defined on the monthly figure; a quarter is three months."""
    monthly = safe_number(base_quarterly_salary, 0.0, "quarterly salary") / 3
    return js_round(get_inflated_salary(monthly, economy, quarters_passed, rng) * 3)


@dataclass(slots=True)
class InflationNotification:
    year: int
    inflation_rate: float
    inflation_change: float
    key_rate: float
    key_rate_change: float
    country_name: str
    timestamp: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "year": self.year,
            "inflationRate": self.inflation_rate,
            "inflationChange": self.inflation_change,
            "keyRate": self.key_rate,
            "keyRateChange": self.key_rate_change,
            "countryName": self.country_name,
            "timestamp": self.timestamp,
        }


def _signed(value: float) -> str:
    return f"+{value:.1f}" if value >= 0 else f"{value:.1f}"


def format_inflation_notification(note: InflationNotification) -> str:
    if note.inflation_change > 0.5:
        trend = "Prices are rising faster than last year."
    elif note.inflation_change < -0.5:
        trend = "Price growth is slowing down."
    else:
        trend = "Price growth is stable."
    return (
        f"Inflation in {note.country_name} for {note.year}: {note.inflation_rate:.1f}% "
        f"({_signed(note.inflation_change)} pp). Key rate {note.key_rate:.2f}% "
        f"({_signed(note.key_rate_change)} pp). {trend}"
    )


def push_history(history: List[float], new_rate: float, cfg: Optional[InflationConfig] = None) -> List[float]:
    """Prepend this year's rate, keeping the newest ``history_length`` entries."""
    cfg = cfg or CONFIG.inflation
    return [new_rate] + list(history)[: cfg.history_length - 1]
