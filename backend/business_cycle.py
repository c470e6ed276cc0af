"""
Business Cycle Engine

Four phase state machine: growth -> peak -> recession -> recovery -> growth.
Each phase lasts a random number of quarters; entering recession or peak
emits a macro event (crisis or boom) that the economy step publishes.
"""

import logging
import random
from typing import Optional, Tuple

from config import CONFIG, CycleConfig
from models import CyclePhase, EconomicCycle, EconomicEvent
from numeric import round_to, safe_number

logger = logging.getLogger(__name__)

NEXT_PHASE = {
    CyclePhase.GROWTH: CyclePhase.PEAK,
    CyclePhase.PEAK: CyclePhase.RECESSION,
    CyclePhase.RECESSION: CyclePhase.RECOVERY,
    CyclePhase.RECOVERY: CyclePhase.GROWTH,
}


def random_duration(phase: CyclePhase, rng: random.Random, cfg: Optional[CycleConfig] = None) -> int:
    cfg = cfg or CONFIG.cycle
    table = cfg.phases[phase.value]
    return rng.randint(table.min_duration, table.max_duration)


def calculate_market_modifier(
    phase: CyclePhase,
    intensity: float,
    rng: random.Random,
    cfg: Optional[CycleConfig] = None,
) -> float:
    """Demand modifier for the quarter, rounded to 2 decimals."""
    cfg = cfg or CONFIG.cycle
    intensity = safe_number(intensity, cfg.initial_intensity, "cycle intensity")
    modifier = cfg.phases[phase.value].base_modifier
    if phase is CyclePhase.PEAK:
        modifier += intensity * cfg.peak_intensity_bonus
    elif phase is CyclePhase.RECESSION:
        modifier -= intensity * cfg.recession_intensity_penalty

    fluctuation = cfg.fluctuation_low + rng.random() * (cfg.fluctuation_high - cfg.fluctuation_low)
    return round_to(modifier * fluctuation, 2)


def initial_cycle(rng: random.Random, cfg: Optional[CycleConfig] = None) -> EconomicCycle:
    cfg = cfg or CONFIG.cycle
    return EconomicCycle(
        phase=CyclePhase.GROWTH,
        duration_left=random_duration(CyclePhase.GROWTH, rng, cfg),
        intensity=cfg.initial_intensity,
        current_modifier=1.0,
    )


def _phase_event(
    phase: CyclePhase,
    duration: int,
    turn: int,
    rng: random.Random,
    cfg: CycleConfig,
) -> Optional[EconomicEvent]:
    if phase is CyclePhase.RECESSION:
        return EconomicEvent(
            id=f"cycle_crisis_{turn}",
            type="crisis",
            title="Economic crisis",
            description="The economy has entered a recession. Demand falls and unemployment rises.",
            inflation_change=cfg.crisis_inflation_min + int(rng.random() * cfg.crisis_inflation_spread),
            unemployment_change=cfg.crisis_unemployment_min + int(rng.random() * cfg.crisis_unemployment_spread),
            gdp_growth_change=cfg.crisis_gdp_change,
            salary_modifier_change=cfg.crisis_salary_modifier,
            duration=duration,
            start_turn=turn,
        )
    if phase is CyclePhase.PEAK:
        return EconomicEvent(
            id=f"cycle_boom_{turn}",
            type="boom",
            title="Economic boom",
            description="The economy is at its peak. Demand and wages are up.",
            inflation_change=cfg.boom_inflation_change,
            unemployment_change=cfg.boom_unemployment_change,
            gdp_growth_change=cfg.boom_gdp_change,
            salary_modifier_change=cfg.boom_salary_modifier,
            duration=duration,
            start_turn=turn,
        )
    return None


def process_economic_cycle(
    cycle: Optional[EconomicCycle],
    rng: random.Random,
    turn: int = 0,
    cfg: Optional[CycleConfig] = None,
) -> Tuple[EconomicCycle, Optional[EconomicEvent]]:
    """
    Advance the cycle by one quarter.

    Returns a new EconomicCycle (the input is left untouched) and the macro
    event emitted on a phase change, if any. A missing cycle starts in growth
    with no event.
    """
    cfg = cfg or CONFIG.cycle
    if cycle is None:
        return initial_cycle(rng, cfg), None

    phase = cycle.phase
    intensity = safe_number(cycle.intensity, cfg.initial_intensity, "cycle intensity")
    duration_left = int(safe_number(cycle.duration_left, 0.0)) - 1
    event = None

    if duration_left <= 0:
        phase = NEXT_PHASE[phase]
        duration_left = random_duration(phase, rng, cfg)
        intensity = cfg.min_intensity + rng.random() * (1.0 - cfg.min_intensity)
        event = _phase_event(phase, duration_left, turn, rng, cfg)
        logger.info("Economic cycle entered %s for %d quarters (intensity %.2f)",
                    phase.value, duration_left, intensity)

    modifier = calculate_market_modifier(phase, intensity, rng, cfg)
    return EconomicCycle(
        phase=phase,
        duration_left=duration_left,
        intensity=intensity,
        current_modifier=modifier,
    ), event
