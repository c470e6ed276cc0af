"""
Unit tests for the business cycle engine and global market events

Tests cover:
- Phase transitions and the macro events they emit
- Market modifier ranges
- Market event draws, expiry and the clamped market value
"""

import copy
import random

from business_cycle import NEXT_PHASE, calculate_market_modifier, process_economic_cycle
from market_events import (
    calculate_total_market_impact,
    cleanup_expired_market_events,
    generate_market_event,
    market_value,
)
from models import CyclePhase, EconomicCycle, MarketEvent
from randomness import FixedRandom


def _market_event(impact: float, end_turn: int) -> MarketEvent:
    return MarketEvent(id=f"m{end_turn}", title="t", description="d", impact=impact,
                       duration=4, type="neutral", start_turn=0, end_turn=end_turn)


class TestEconomicCycle:
    """Four phase state machine"""

    def test_missing_cycle_starts_in_growth(self):
        cycle, event = process_economic_cycle(None, random.Random(1))
        assert cycle.phase == CyclePhase.GROWTH
        assert 8 <= cycle.duration_left <= 16
        assert event is None

    def test_counts_down_without_event(self):
        cycle = EconomicCycle(phase=CyclePhase.GROWTH, duration_left=5, intensity=0.5)
        updated, event = process_economic_cycle(cycle, FixedRandom(0.5), turn=3)
        assert updated.phase == CyclePhase.GROWTH
        assert updated.duration_left == 4
        assert event is None

    def test_input_cycle_is_not_mutated(self):
        cycle = EconomicCycle(phase=CyclePhase.PEAK, duration_left=1, intensity=0.5)
        before = copy.deepcopy(cycle)
        process_economic_cycle(cycle, random.Random(5), turn=10)
        assert cycle == before

    def test_growth_to_peak_emits_boom(self):
        cycle = EconomicCycle(phase=CyclePhase.GROWTH, duration_left=1, intensity=0.5)
        updated, event = process_economic_cycle(cycle, random.Random(2), turn=9)
        assert updated.phase == CyclePhase.PEAK
        assert 2 <= updated.duration_left <= 4
        assert event is not None
        assert event.type == "boom"
        assert event.duration == updated.duration_left
        assert event.start_turn == 9

    def test_peak_to_recession_emits_crisis(self):
        cycle = EconomicCycle(phase=CyclePhase.PEAK, duration_left=1, intensity=0.5)
        for seed in range(20):
            updated, event = process_economic_cycle(cycle, random.Random(seed), turn=12)
            assert updated.phase == CyclePhase.RECESSION
            assert event.type == "crisis"
            assert 5 <= event.inflation_change <= 9
            assert 3 <= event.unemployment_change <= 5
            assert event.gdp_growth_change == -5.0
            assert event.salary_modifier_change == 0.9

    def test_recovery_phase_has_no_event(self):
        cycle = EconomicCycle(phase=CyclePhase.RECESSION, duration_left=1, intensity=0.5)
        updated, event = process_economic_cycle(cycle, random.Random(4))
        assert updated.phase == CyclePhase.RECOVERY
        assert event is None

    def test_full_rotation(self):
        phase = CyclePhase.GROWTH
        for _ in range(4):
            phase = NEXT_PHASE[phase]
        assert phase == CyclePhase.GROWTH


class TestMarketModifier:
    """Demand modifier by phase"""

    def test_growth_midpoint(self):
        # 1.2 base, fluctuation midpoint 1.0
        assert calculate_market_modifier(CyclePhase.GROWTH, 0.5, FixedRandom(0.5)) == 1.2

    def test_recession_is_weaker_than_peak(self):
        recession = calculate_market_modifier(CyclePhase.RECESSION, 1.0, FixedRandom(0.5))
        peak = calculate_market_modifier(CyclePhase.PEAK, 1.0, FixedRandom(0.5))
        assert recession < 1.0 < peak

    def test_random_range(self):
        rng = random.Random(8)
        for _ in range(200):
            modifier = calculate_market_modifier(CyclePhase.GROWTH, 0.5, rng)
            assert 1.08 <= modifier <= 1.32


class TestMarketEvents:
    """Global market events"""

    def test_no_event_when_roll_misses(self):
        assert generate_market_event(4, FixedRandom(0.9)) is None

    def test_low_roll_picks_first_template(self):
        event = generate_market_event(4, FixedRandom(0.01))
        assert event is not None
        assert event.title == "Economic boom"
        assert event.end_turn == 4 + event.duration

    def test_cleanup_drops_expired(self):
        events = [_market_event(0.1, 3), _market_event(0.2, 6)]
        remaining = cleanup_expired_market_events(events, 3)
        assert [e.end_turn for e in remaining] == [6]

    def test_market_value_is_clamped(self):
        assert market_value(1.9, [_market_event(0.5, 10)]) == 2.0
        assert market_value(0.4, [_market_event(-0.8, 10)]) == 0.3
        assert market_value(float("nan"), []) == 1.0

    def test_total_impact(self):
        events = [_market_event(0.5, 10), _market_event(-0.2, 10)]
        assert abs(calculate_total_market_impact(events) - 0.3) < 1e-9
