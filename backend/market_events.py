"""Global market events layered on top of the business cycle."""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from config import CONFIG, MarketEventsConfig
from models import MarketEvent
from numeric import clamp, round_to, safe_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketEventTemplate:
    title: str
    description: str
    impact: float
    duration: int
    type: str
    probability: float


MARKET_EVENT_TEMPLATES = (
    MarketEventTemplate("Economic boom", "The world economy is growing fast. Demand for goods and services is up.",
                        0.5, 4, "positive", 0.05),
    MarketEventTemplate("Technology breakthrough", "New technology opens new markets. Consumer demand grows.",
                        0.3, 6, "positive", 0.08),
    MarketEventTemplate("Tax cuts", "Lower business taxes left households with more to spend.",
                        0.2, 8, "positive", 0.10),
    MarketEventTemplate("Consumer confidence", "Consumers are optimistic and spending more.",
                        0.15, 3, "positive", 0.15),
    MarketEventTemplate("Global recession", "The world economy slipped into recession. Demand fell sharply.",
                        -0.6, 6, "negative", 0.03),
    MarketEventTemplate("Financial collapse", "A stock market crash spooked investors and consumers.",
                        -0.8, 8, "negative", 0.01),
    MarketEventTemplate("Rising prices", "High inflation is eating into purchasing power.",
                        -0.3, 5, "negative", 0.12),
    MarketEventTemplate("Trade wars", "International trade disputes weigh on the economy.",
                        -0.25, 4, "negative", 0.08),
    MarketEventTemplate("Energy crunch", "Energy prices jumped, raising business costs.",
                        -0.2, 3, "negative", 0.10),
    MarketEventTemplate("Market stabilization", "The market is slowly returning to normal.",
                        0.1, 2, "neutral", 0.20),
)


def generate_market_event(
    turn: int,
    rng: random.Random,
    cfg: Optional[MarketEventsConfig] = None,
) -> Optional[MarketEvent]:
    """
    Maybe start a market event this quarter.

    The first draw decides whether anything happens; the second picks a
    template by cumulative probability. Rolls past the table total give no event.
    """
    cfg = cfg or CONFIG.market
    if rng.random() > cfg.event_chance:
        return None

    roll = rng.random()
    cumulative = 0.0
    for template in MARKET_EVENT_TEMPLATES:
        cumulative += template.probability
        if roll <= cumulative:
            logger.info("Market event started: %s (impact %+.2f for %d quarters)",
                        template.title, template.impact, template.duration)
            return MarketEvent(
                id=f"market_event_{turn}",
                title=template.title,
                description=template.description,
                impact=template.impact,
                duration=template.duration,
                type=template.type,
                start_turn=turn,
                end_turn=turn + template.duration,
            )
    return None


def cleanup_expired_market_events(events: List[MarketEvent], turn: int) -> List[MarketEvent]:
    return [event for event in events if event.end_turn > turn]


def calculate_total_market_impact(events: List[MarketEvent]) -> float:
    return sum(safe_number(event.impact, 0.0) for event in events)


def market_value(cycle_modifier: float, events: List[MarketEvent], cfg: Optional[MarketEventsConfig] = None) -> float:
    """Global demand level: the cycle modifier shifted by active market events."""
    cfg = cfg or CONFIG.market
    base = safe_number(cycle_modifier, cfg.base_market_value, "cycle modifier")
    value = base + calculate_total_market_impact(events)
    return round_to(clamp(value, cfg.min_market_value, cfg.max_market_value), 2)
