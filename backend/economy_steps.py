"""
Macro steps of the turn pipeline: business cycle, market events, the
financial rollup and yearly inflation.
"""

import logging

from business_cycle import process_economic_cycle
from inflation import (
    InflationNotification,
    calculate_key_rate,
    format_inflation_notification,
    generate_yearly_inflation,
    push_history,
    should_apply_inflation_this_turn,
)
from market_events import cleanup_expired_market_events, generate_market_event, market_value
from numeric import clamp, js_round, round_to, safe_number
from turn_state import TurnContext, TurnState

logger = logging.getLogger(__name__)


def economy_step(ctx: TurnContext, ts: TurnState) -> None:
    """Advance the country's business cycle and publish any macro event."""
    country = ts.country()
    if country is None:
        logger.warning("Player country %s not found, skipping economy step", ts.state.player.country_id)
        return

    country.active_events = [e for e in country.active_events if not e.is_expired(ts.new_turn)]

    cycle, event = process_economic_cycle(country.cycle, ctx.rng, ts.new_turn, ctx.config.cycle)
    country.cycle = cycle
    ts.state.global_market_value = cycle.current_modifier

    if event is None:
        return

    country.active_events.append(event)
    country.unemployment = round_to(clamp(country.unemployment + event.unemployment_change, 0.0, 50.0), 1)
    country.gdp_growth = round_to(country.gdp_growth + event.gdp_growth_change, 1)
    country.salary_modifier = round_to(country.salary_modifier * event.salary_modifier_change, 2)
    logger.info("%s in %s: %s", event.type, country.name, event.title)

    if event.type == "crisis":
        ts.notify(event.id, "warning", f"Crisis: {event.title}",
                  f"{event.description} Expected inflation +{event.inflation_change:.0f}%, "
                  f"unemployment +{event.unemployment_change:.0f}%.")
    else:
        ts.notify(event.id, "success", f"Boom: {event.title}", event.description)


def market_step(ctx: TurnContext, ts: TurnState) -> None:
    """Expire and draw global market events, then shift the market value."""
    state = ts.state
    state.market_events = cleanup_expired_market_events(state.market_events, ts.new_turn)

    event = generate_market_event(ts.new_turn, ctx.rng, ctx.config.market)
    if event is not None:
        state.market_events.append(event)
        kind = "success" if event.type == "positive" else "info"
        ts.notify(event.id, kind, f"Market: {event.title}", event.description)

    country = ts.country()
    cycle_modifier = country.cycle.current_modifier if country and country.cycle else ctx.config.market.base_market_value
    state.global_market_value = market_value(cycle_modifier, state.market_events, ctx.config.market)


def financial_step(ctx: TurnContext, ts: TurnState) -> None:
    """
    Roll every income and expense line into the quarter's net profit.

    Salaries and family income pay personal income tax; business results
    arrive already taxed at the corporate level.
    """
    player = ts.state.player
    country = ts.country()

    family_income = sum(safe_number(m.income, 0.0) for m in player.personal.family_members)
    if family_income:
        ts.add_income("family", family_income)

    salary = ts.income.get("salary", 0.0)
    if ts.buff_income_pct and salary:
        bonus = salary * ts.buff_income_pct / 100
        ts.add_income("buffs", bonus)

    taxable = ts.income.get("salary", 0.0) + ts.income.get("buffs", 0.0) + ts.income.get("family", 0.0)
    tax_rate = safe_number(country.tax_rate, 13.0) if country else 13.0
    if taxable > 0:
        ts.add_expense("income_tax", js_round(taxable * tax_rate / 100))

    total_income = sum(ts.income.values())
    total_expenses = sum(ts.expenses.values())
    ts.net_profit = js_round(safe_number(total_income - total_expenses, 0.0))

    balance = player.money + ts.net_profit
    if balance < 0:
        ts.notify(f"financial_crisis_{ts.new_turn}", "warning", "Financial crisis",
                  f"Your balance will drop to ${balance:,.0f}. Cut expenses or raise income.")
    if balance < ctx.config.personal.bankruptcy_floor and ts.game_over_reason is None:
        ts.game_over_reason = "BANKRUPTCY"
        ts.notify(f"game_over_{ts.new_turn}", "error", "Bankruptcy",
                  "Your debts can no longer be serviced. The game is over.")


def inflation_step(ctx: TurnContext, ts: TurnState) -> None:
    """
    Yearly inflation and key rate update for the player's country.

    Runs last so every other step in the turn priced things with the
    previous year's rate.
    """
    country = ts.country()
    if country is None or not should_apply_inflation_this_turn(ts.new_turn):
        return

    new_inflation = generate_yearly_inflation(country.inflation, country, ctx.rng, ctx.config.inflation)
    new_key_rate = calculate_key_rate(new_inflation, country.key_rate, ctx.rng, ctx.config.inflation)

    note = InflationNotification(
        year=ts.new_year,
        inflation_rate=new_inflation,
        inflation_change=round_to(new_inflation - country.inflation, 1),
        key_rate=new_key_rate,
        key_rate_change=round_to(new_key_rate - country.key_rate, 2),
        country_name=country.name,
        timestamp=ts.new_turn,
    )
    country.inflation_history = push_history(country.inflation_history, new_inflation, ctx.config.inflation)
    country.inflation = new_inflation
    country.key_rate = new_key_rate
    ts.inflation_notification = note

    logger.info("Inflation update for %s, year %d: %.1f%% (key rate %.2f%%)",
                country.name, ts.new_year, new_inflation, new_key_rate)
    ts.notify(f"inflation_{ts.new_turn}", "info", f"Economy: inflation in {country.name}",
              format_inflation_notification(note))
