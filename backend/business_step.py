"""
Business step of the turn pipeline.

Moves each of the player's businesses through its lifecycle and, for active
ones, runs roles, events, metrics and financials for the quarter. Results
are scaled by the player's ownership share before they reach the household
accounts.
"""

import logging
from typing import Dict, List

from business_events import events_money, generate_business_events
from financials import BusinessFinancials, calculate_business_financials
from metrics import update_business_metrics
from models import Business, BusinessState, QuarterSummary
from numeric import js_round, safe_number
from roles import (
    calculate_total_business_impact,
    effort_factor,
    get_player_skill_growth,
    get_player_stat_effects,
)
from skills import add_skill_progress
from staffing import check_minimum_staffing
from turn_state import TurnContext, TurnState

logger = logging.getLogger(__name__)


def profit_distribution(business: Business, net_profit: float) -> Dict[str, float]:
    if not business.partners:
        return {"player": js_round(net_profit)}
    return {p.id: js_round(net_profit * p.share / 100) for p in business.partners}


def _process_opening(business: Business, ts: TurnState) -> None:
    business.opening_progress = max(0, int(safe_number(business.opening_progress, 0.0)) - 1)
    if business.opening_progress == 0:
        business.state = BusinessState.ACTIVE
        logger.info("Business %s opened", business.id)
        ts.notify(f"business_opened_{business.id}_{ts.new_turn}", "success",
                  f"{business.name} is open",
                  f"{business.name} has finished opening and starts trading next quarter.")


def _apply_player_role_costs(business: Business, ctx: TurnContext, ts: TurnState) -> None:
    effects = get_player_stat_effects(business)
    for stat, delta in effects.items():
        ts.add_stat(stat, delta)

    total_cost = abs(effects["energy"]) + abs(effects["sanity"])
    if total_cost > ctx.config.personal.stat_cost_notice:
        ts.notify(f"business_roles_{business.id}_{ts.new_turn}", "info",
                  f"Work at {business.name}",
                  f"Running your roles cost {abs(effects['energy']):.0f} energy "
                  f"and {abs(effects['sanity']):.0f} sanity this quarter.")

    player = ts.state.player
    for skill_name, amount in get_player_skill_growth(business).items():
        gained = add_skill_progress(player, skill_name, amount, ts.new_turn, ctx.config.personal)
        if gained:
            level = player.skills[skill_name].level
            ts.notify(f"skill_up_{skill_name}_{business.id}_{ts.new_turn}", "success", "Skill improved",
                      f"Your {skill_name} skill reached level {level} through work at {business.name}.")


def _notify_events(business: Business, events, ts: TurnState) -> None:
    for event in events:
        kind = "success" if event.type == "positive" else "warning"
        ts.notify(event.id, kind, f"{business.name}: {event.title}", event.description)


def process_active_business(business: Business, ctx: TurnContext, ts: TurnState) -> BusinessFinancials:
    player = ts.state.player
    balance = ctx.config.balance

    _apply_player_role_costs(business, ctx, ts)

    impact = calculate_total_business_impact(business, player, balance)
    events = generate_business_events(business, ts.new_turn, ctx.rng, impact.legal_protection,
                                      balance.max_events_per_quarter)
    business.events_history.extend(events)
    business.events_history = business.events_history[-ctx.config.personal.max_business_events:]
    _notify_events(business, events, ts)

    update_business_metrics(business, player, balance)

    staffing = check_minimum_staffing(business)
    if not staffing.is_valid:
        missing = ", ".join(r.value for r in staffing.missing_roles) or "none"
        ts.notify(f"staffing_{business.id}_{ts.new_turn}", "warning",
                  f"{business.name} is understaffed",
                  f"Missing roles: {missing}. Workers {staffing.worker_count}/{staffing.required_workers}. "
                  f"The business runs at minimum capacity.")

    financials = calculate_business_financials(
        business,
        economy=ts.country(),
        player=player,
        global_market_value=ts.state.global_market_value,
        rng=ctx.rng,
        impact=impact,
        balance=balance,
    )
    if financials.new_inventory is not None:
        business.inventory = financials.new_inventory

    money = events_money(events)
    financials.income += js_round(max(0.0, money))
    financials.expenses += js_round(max(0.0, -money))
    financials.net_profit = js_round(financials.net_profit + money)
    financials.profit = financials.net_profit
    financials.cash_flow = js_round(financials.cash_flow + money)

    for employee in business.employees:
        employee.experience = safe_number(employee.experience, 0.0) + \
            balance.experience_per_quarter * effort_factor(employee.effort_percent)
    business.player_tenure += 1

    business.last_quarter_summary = QuarterSummary(
        sold=int(financials.debug.get("sales_volume", 0)),
        price_used=financials.debug.get("price_used", 0),
        sales_income=financials.income,
        taxes=financials.tax_amount,
        expenses=financials.expenses,
        net_profit=financials.net_profit,
        profit_distribution=profit_distribution(business, financials.net_profit),
    )
    return financials


def process_business(business: Business, ctx: TurnContext, ts: TurnState) -> BusinessFinancials:
    if business.state == BusinessState.OPENING:
        # Fixed upkeep only, even in the quarter the business opens
        financials = calculate_business_financials(business)
        _process_opening(business, ts)
        return financials
    if business.state == BusinessState.FROZEN:
        return calculate_business_financials(business)
    return process_active_business(business, ctx, ts)


def business_step(ctx: TurnContext, ts: TurnState) -> None:
    """Run every business for the quarter and book the player's share."""
    reports: List[Dict[str, object]] = []
    for business in ts.state.player.businesses:
        financials = process_business(business, ctx, ts)
        share = business.player_share() / 100

        player_salary = financials.debug.get("expenses_breakdown", {}).get("player_salary", 0)
        if player_salary:
            ts.add_income("salary", player_salary)
        if financials.income:
            ts.add_income("business", js_round(financials.income * share))
        if financials.expenses:
            ts.add_expense("business", js_round(financials.expenses * share))

        reports.append({
            "business_id": business.id,
            "state": business.state.value,
            "income": financials.income,
            "expenses": financials.expenses,
            "net_profit": financials.net_profit,
            "cash_flow": financials.cash_flow,
            "tax_amount": financials.tax_amount,
            "player_share": business.player_share(),
            "efficiency": business.efficiency,
            "reputation": business.reputation,
            "debug": financials.debug,
        })
    ts.business_reports = reports
