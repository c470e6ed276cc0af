"""
Business Metrics Model

Efficiency and reputation (both 0-100) recomputed every active quarter and
consumed by the financial model.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from config import CONFIG, BusinessBalanceConfig
from models import Business, BusinessState, PlayerState, Role
from numeric import clamp, js_round, safe_number
from roles import effort_factor, get_role_config, get_staff_impact
from staffing import check_minimum_staffing

logger = logging.getLogger(__name__)


def _recent_event_effect(business: Business, key: str, window: int) -> float:
    recent = business.events_history[-window:] if window > 0 else []
    return sum(safe_number(event.effects.get(key), 0.0) for event in recent)


def _player_efficiency_bonus(business: Business, player: Optional[PlayerState]) -> Tuple[float, float]:
    """(operational, managerial) efficiency the player adds."""
    if player is None:
        return 0.0, 0.0
    operational = 0.0
    role = business.player_roles.operational
    if role is not None:
        config = get_role_config(role)
        operational = config.player_impact(player.skill_level(config.skill_name)).efficiency

    managerial = 0.0
    effort = effort_factor(business.player_effort)
    for role in business.player_roles.managerial:
        config = get_role_config(role)
        managerial += config.player_impact(player.skill_level(config.skill_name)).efficiency * effort
    return operational, managerial


def calculate_efficiency(
    business: Business,
    player: Optional[PlayerState] = None,
    balance: Optional[BusinessBalanceConfig] = None,
) -> int:
    """
    Team efficiency for the quarter.

    Zero for inactive or understaffed businesses. Otherwise the average
    employee contribution plus manager, player and recent event bonuses.
    """
    balance = balance or CONFIG.balance
    if business.state != BusinessState.ACTIVE:
        return 0

    staffing = check_minimum_staffing(business)
    if not staffing.is_valid:
        logger.debug("Business %s understaffed, efficiency 0", business.id)
        return 0

    productivity_boost = 1 + get_staff_impact(business).staff_productivity / 100
    contributions = []
    manager_bonus = 0.0
    for employee in business.employees:
        skill = safe_number(employee.skills.get("efficiency"), 0.0)
        productivity = min(100.0, safe_number(employee.productivity, 0.0) * productivity_boost)
        contributions.append(skill * productivity / 100 * effort_factor(employee.effort_percent))
        if employee.role == Role.MANAGER:
            manager_bonus += safe_number(employee.skills.get("management"), 0.0) / 100 * 10

    average = float(np.mean(contributions)) if contributions else 0.0
    operational, managerial = _player_efficiency_bonus(business, player)
    events = _recent_event_effect(business, "efficiency", balance.recent_events_window)

    return js_round(clamp(average + manager_bonus + operational + managerial + events, 0, 100))


def calculate_reputation(
    business: Business,
    efficiency: float,
    player: Optional[PlayerState] = None,
    balance: Optional[BusinessBalanceConfig] = None,
) -> int:
    """Reputation moves a fixed share of the way toward its target each quarter."""
    balance = balance or CONFIG.balance
    efficiency = safe_number(efficiency, 0.0)

    stars = [safe_number(e.stars, 0.0) for e in business.employees]
    avg_stars = float(np.mean(stars)) if stars else 0.0

    creativity = [safe_number(e.skills.get("creativity"), 0.0)
                  for e in business.employees if e.role == Role.MARKETER]
    marketing = float(np.mean(creativity)) * 0.2 if creativity else 0.0

    player_bonus = 0.0
    if player is not None:
        effort = effort_factor(business.player_effort)
        for role in business.player_roles.all_roles():
            config = get_role_config(role)
            scale = effort if config.is_managerial else 1.0
            player_bonus += config.player_impact(player.skill_level(config.skill_name)).reputation * scale

    events = _recent_event_effect(business, "reputation", balance.recent_events_window)
    target = (efficiency * balance.efficiency_weight
              + avg_stars / 5 * 100 * balance.team_stars_weight
              + marketing + player_bonus + events)

    current = safe_number(business.reputation, 0.0)
    updated = current + (target - current) * balance.reputation_smoothing
    return js_round(clamp(updated, 0, 100))


def update_business_metrics(
    business: Business,
    player: Optional[PlayerState] = None,
    balance: Optional[BusinessBalanceConfig] = None,
) -> Business:
    """Recompute efficiency, then reputation from the new efficiency, in place."""
    business.efficiency = calculate_efficiency(business, player, balance)
    business.reputation = calculate_reputation(business, business.efficiency, player, balance)
    return business
