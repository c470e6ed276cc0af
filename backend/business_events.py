"""Random quarterly events for active businesses."""

import logging
import random
from dataclasses import dataclass
from typing import List

from models import Business, BusinessEvent, BusinessState
from numeric import js_round, safe_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventTemplate:
    title: str
    description: str
    efficiency: float = 0.0
    reputation: float = 0.0
    money: float = 0.0
    stock_loss_share: float = 0.0  # Money lost as a share of inventory value


POSITIVE_EVENTS = (
    EventTemplate("Glowing review", "A popular blogger praised your business.", reputation=5),
    EventTemplate("Bulk order", "A corporate client placed a large one-off order.", money=3000),
    EventTemplate("Process improvement", "The team found a faster way to work.", efficiency=5),
    EventTemplate("Local award", "Your business won a city award.", reputation=8, efficiency=2),
    EventTemplate("Supplier discount", "A supplier offered a loyalty discount.", money=1500),
)

NEGATIVE_EVENTS = (
    EventTemplate("Equipment breakdown", "Key equipment failed and needed repairs.", efficiency=-5, money=-2000),
    EventTemplate("Customer complaint", "An angry customer went public.", reputation=-6),
    EventTemplate("Inspection fine", "Inspectors found violations.", money=-3000, reputation=-2),
    EventTemplate("Staff conflict", "A conflict in the team hurt morale.", efficiency=-7),
    EventTemplate("Warehouse damage", "A leak damaged part of the stock.", stock_loss_share=-0.1),
)


def negative_event_chance(business: Business, legal_protection_pct: float = 0.0) -> float:
    """Bad events are likelier for inefficient, poorly regarded businesses; lawyers cut the odds."""
    efficiency = safe_number(business.efficiency, 0.0)
    reputation = safe_number(business.reputation, 0.0)
    chance = 0.3 + (100 - efficiency) / 200 + (100 - reputation) / 200
    protection = safe_number(legal_protection_pct, 0.0)
    if protection > 0:
        chance *= max(0.0, 1 - protection / 100)
    return chance


def _build_event(template: EventTemplate, kind: str, business: Business, turn: int, index: int) -> BusinessEvent:
    money = template.money
    if template.stock_loss_share and business.inventory is not None:
        stock_value = (safe_number(business.inventory.current_stock, 0.0)
                       * safe_number(business.inventory.purchase_cost, 0.0))
        money = js_round(stock_value * template.stock_loss_share)
    return BusinessEvent(
        id=f"evt_{business.id}_{turn}_{index}",
        title=template.title,
        description=template.description,
        type=kind,
        turn=turn,
        effects={
            "efficiency": template.efficiency,
            "reputation": template.reputation,
            "money": money,
        },
    )


def generate_business_events(
    business: Business,
    turn: int,
    rng: random.Random,
    legal_protection_pct: float = 0.0,
    max_events: int = 3,
) -> List[BusinessEvent]:
    """Draw 0 to ``max_events`` events for an active business."""
    if business.state != BusinessState.ACTIVE:
        return []

    count = int(rng.random() * (max_events + 1))
    chance = negative_event_chance(business, legal_protection_pct)
    events = []
    for index in range(count):
        if rng.random() < chance:
            template = rng.choice(NEGATIVE_EVENTS)
            events.append(_build_event(template, "negative", business, turn, index))
        else:
            template = rng.choice(POSITIVE_EVENTS)
            events.append(_build_event(template, "positive", business, turn, index))
    if events:
        logger.debug("Business %s: %d events this quarter", business.id, len(events))
    return events


def events_money(events: List[BusinessEvent]) -> float:
    return sum(safe_number(e.effects.get("money"), 0.0) for e in events)
