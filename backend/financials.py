"""
Business Financial Model

Quarterly P&L for one business: operating expenses, revenue for service and
product businesses, corporate tax, and the next inventory snapshot.

Conventions:
    - ``expenses`` is the P&L figure: COGS + OpEx + tax.
    - ``purchase_cost`` (goods produced this quarter) only affects
      ``cash_flow``; unsold production is carried as inventory, not expensed.
    - Every input passes through ``safe_number``; the functions here never
      raise and never return NaN.
"""

import logging
import random
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Optional

from config import CONFIG, BusinessBalanceConfig
from inflation import get_inflated_price, get_quarterly_inflated_salary
from models import Business, BusinessState, CountryEconomy, Inventory, PlayerState
from numeric import clamp, is_valid_number, js_round, safe_number
from randomness import FixedRandom
from roles import BusinessImpact, calculate_total_business_impact, effort_factor
from staffing import StaffingStatus, check_minimum_staffing, count_workers

logger = logging.getLogger(__name__)

# Price slider range
MIN_PRICE_LEVEL = 1
MAX_PRICE_LEVEL = 10


@dataclass(slots=True)
class OpExBreakdown:
    salaries: int = 0  # Includes KPI bonuses, payroll tax and the player's salary
    player_salary: int = 0  # Paid to the player, part of salaries
    payroll_tax: int = 0
    rent: int = 0
    equipment: int = 0  # Utilities
    insurance: int = 0
    min_fixed_costs: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(slots=True)
class RevenueResult:
    sales_income: float = 0.0
    cogs: float = 0.0
    sales_volume: int = 0
    purchase_cost: float = 0.0
    purchase_amount: float = 0.0
    production_capacity: float = 0.0
    selling_price: float = 0.0
    unit_cost: float = 0.0
    market_demand: float = 0.0
    new_inventory: Optional[Inventory] = None


@dataclass(slots=True)
class TaxResult:
    effective_rate: float
    tax_amount: int


@dataclass(slots=True)
class BusinessFinancials:
    income: int
    expenses: int
    profit: int
    net_profit: int
    cash_flow: int
    tax_amount: int = 0
    new_inventory: Optional[Inventory] = None
    debug: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def kpi_adjustment(salary: float, productivity: float, balance: Optional[BusinessBalanceConfig] = None) -> float:
    """Bonus for productive staff, penalty for unproductive ones."""
    balance = balance or CONFIG.balance
    productivity = safe_number(productivity, 50.0)
    if productivity >= balance.kpi_high_productivity:
        return salary * balance.kpi_bonus_share
    if productivity <= balance.kpi_low_productivity:
        return -salary * balance.kpi_bonus_share
    return 0.0


def _salary_cost(
    salary: float,
    experience: float,
    effort_percent: float,
    productivity: float,
    economy: Optional[CountryEconomy],
    rng: random.Random,
    balance: BusinessBalanceConfig,
) -> float:
    quarterly = max(0.0, safe_number(salary, 0.0, "salary"))
    experience = safe_number(experience, 0.0)
    indexed = get_quarterly_inflated_salary(quarterly, economy, int(experience), rng) if economy else quarterly
    scaled = indexed * effort_factor(effort_percent)
    return scaled + kpi_adjustment(scaled, productivity, balance)


def calculate_opex(
    business: Business,
    economy: Optional[CountryEconomy],
    expense_reduction_pct: float,
    rng: random.Random,
    balance: Optional[BusinessBalanceConfig] = None,
) -> OpExBreakdown:
    """
    Operating expenses for the quarter.

    Salaries are indexed by each employee's tenure, scaled by effort and
    adjusted for KPI. Rent and utilities are per max-employee slot and follow
    the ``business`` inflation category. Every component is reduced by
    ``expense_reduction_pct`` and rounded.
    """
    balance = balance or CONFIG.balance

    payroll = 0.0
    player_salary = 0.0
    for employee in business.employees:
        payroll += _salary_cost(employee.salary, employee.experience, employee.effort_percent,
                                employee.productivity, economy, rng, balance)
    if safe_number(business.player_salary, 0.0) > 0:
        player_salary = _salary_cost(business.player_salary, business.player_tenure, business.player_effort,
                                     100.0, economy, rng, balance)
        payroll += player_salary
    payroll = safe_number(payroll, 0.0)
    payroll_tax = payroll * balance.payroll_tax_rate / 100

    slots = max(0, int(safe_number(business.max_employees, 0.0)))
    rent = balance.base_rent_per_employee * slots
    utilities = balance.base_utilities_per_employee * slots
    if economy is not None:
        rent = get_inflated_price(rent, economy, "business")
        utilities = get_inflated_price(utilities, economy, "business")
    insurance = safe_number(business.insurance_cost, 0.0) if business.has_insurance else 0.0

    reduction = clamp(safe_number(expense_reduction_pct, 0.0), 0.0, 100.0)
    factor = 1 - reduction / 100

    breakdown = OpExBreakdown(
        salaries=js_round((payroll + payroll_tax) * factor),
        player_salary=js_round(player_salary),
        payroll_tax=js_round(payroll_tax * factor),
        rent=js_round(rent * factor),
        equipment=js_round(utilities * factor),
        insurance=js_round(insurance * factor),
        min_fixed_costs=js_round(balance.min_fixed_costs * factor),
    )
    breakdown.total = (breakdown.salaries + breakdown.rent + breakdown.equipment
                       + breakdown.insurance + breakdown.min_fixed_costs)
    return breakdown


def _price_level(business: Business, balance: BusinessBalanceConfig) -> float:
    level = safe_number(business.price, balance.default_price_level, "price level")
    return clamp(level, MIN_PRICE_LEVEL, MAX_PRICE_LEVEL)


def calculate_service_revenue(
    business: Business,
    efficiency: float,
    reputation: float,
    market_value: float,
    sales_bonus_pct: float,
    staffing: StaffingStatus,
    balance: Optional[BusinessBalanceConfig] = None,
) -> RevenueResult:
    """
    Demand for a service business.

    Price elasticity only kicks in once the normalized price (level / 5)
    passes a threshold that rises with reputation. Expensive services lose
    extra demand in a weak market; understaffed businesses sell a fraction.
    """
    balance = balance or CONFIG.balance
    level = _price_level(business, balance)
    base_demand = max(1, safe_number(business.max_employees, 1.0)) * balance.base_service_demand_per_max_emp

    efficiency_mod = safe_number(efficiency, 0.0, "efficiency") / 100
    reputation_mod = safe_number(reputation, 0.0, "reputation") / 100

    normalized_price = max(0.1, level / 5)
    threshold = balance.safe_price_threshold + reputation_mod * balance.reputation_safety_bonus
    price_mod = 1.0
    if normalized_price > threshold:
        price_mod = (threshold / normalized_price) ** balance.demand_exponent

    cycle_mod = safe_number(market_value, 1.0, "market value")
    if cycle_mod < balance.recession_market_threshold and level > balance.luxury_service_price_level:
        cycle_mod *= balance.luxury_service_recession_factor

    staffing_mod = 1.0 if staffing.is_valid else balance.min_staffing_penalty

    demand = safe_number(
        base_demand * efficiency_mod * max(0.1, reputation_mod) * price_mod * cycle_mod * staffing_mod, 0.0)
    market_demand = demand
    bonus = safe_number(sales_bonus_pct, 0.0)
    if bonus > 0:
        demand *= 1 + bonus / 100

    selling_price = balance.base_service_revenue_per_level * level
    sales_volume = int(demand)
    return RevenueResult(
        sales_income=sales_volume * selling_price,
        sales_volume=sales_volume,
        selling_price=selling_price,
        market_demand=market_demand,
    )


def product_selling_price(
    inventory: Inventory,
    price_level: float,
    unit_cost: float,
    balance: Optional[BusinessBalanceConfig] = None,
) -> float:
    """
    Unit sell price: price level 1-10 maps to 0.5x-5x the unit cost.

    Levels outside 1-10 are clamped and a negative unit cost counts as 0.
    A stored unit price of 0 means the goods are not on sale; an invalid one
    falls back to the default sell price.
    """
    balance = balance or CONFIG.balance
    level = clamp(safe_number(price_level, balance.default_price_level), MIN_PRICE_LEVEL, MAX_PRICE_LEVEL)
    normalized = level * 0.5
    unit_cost = max(0.0, safe_number(unit_cost, 0.0))
    raw = inventory.price_per_unit
    if not is_valid_number(raw):
        return balance.default_sell_price
    if raw == 0:
        return 0
    return js_round(unit_cost * normalized)


def calculate_product_revenue(
    business: Business,
    inventory: Inventory,
    efficiency: float,
    reputation: float,
    market_value: float,
    sales_bonus_pct: float,
    rng: random.Random,
    is_preview: bool = False,
    balance: Optional[BusinessBalanceConfig] = None,
) -> RevenueResult:
    """
    Production, demand and sales for a product business.

    Demand elasticity is keyed on markup. In a weak market high-margin goods
    lose demand while low-margin goods gain a little. Sales are capped by
    stock plus this quarter's production; leftover stock is clamped to
    ``[0, max_stock]``.
    """
    balance = balance or CONFIG.balance
    unit_cost = max(0.0, safe_number(inventory.purchase_cost, balance.default_unit_cost, "unit cost"))
    level = _price_level(business, balance)
    selling_price = product_selling_price(inventory, level, unit_cost, balance)

    efficiency_mod = safe_number(efficiency, 0.0, "efficiency") / 100
    reputation_mod = safe_number(reputation, 0.0, "reputation") / 100

    workers = count_workers(business)
    capacity = int(max(0.0, (workers + 0.5) * balance.base_production_per_worker * efficiency_mod))
    planned = max(0.0, safe_number(business.quantity, 0.0))
    production = min(planned, capacity)
    purchase_cost = production * unit_cost

    base_demand = max(1, safe_number(business.max_employees, 1.0)) * balance.base_product_demand_per_max_emp
    market_mod = safe_number(market_value, 1.0, "market value")
    threshold = balance.safe_price_threshold + reputation_mod * balance.reputation_safety_bonus
    markup = selling_price / max(1.0, unit_cost) - 1

    price_mod = 1.0
    if markup > threshold and markup > 0:
        price_mod = (threshold / markup) ** balance.demand_exponent
    if market_mod < balance.recession_market_threshold:
        if markup >= balance.high_markup_threshold:
            price_mod *= balance.high_markup_recession_factor
        elif markup <= balance.low_markup_threshold:
            price_mod *= balance.low_markup_recession_factor

    demand = safe_number(base_demand * max(0.1, reputation_mod) * market_mod * price_mod, 0.0)
    market_demand = demand
    bonus = safe_number(sales_bonus_pct, 0.0)
    if bonus > 0:
        demand *= 1 + bonus / 100
    if not is_preview:
        low, high = balance.demand_fluctuation_low, balance.demand_fluctuation_high
        demand *= low + rng.random() * (high - low)

    stock = max(0.0, safe_number(inventory.current_stock, 0.0, "stock"))
    available = stock + production
    sales_volume = int(min(available, max(0, int(demand))))

    max_stock = max(0.0, safe_number(inventory.max_stock, balance.default_max_stock))
    new_inventory = replace(
        inventory,
        current_stock=min(max(0.0, available - sales_volume), max_stock),
        max_stock=max_stock,
    )
    return RevenueResult(
        sales_income=sales_volume * selling_price,
        cogs=sales_volume * unit_cost,
        sales_volume=sales_volume,
        purchase_cost=js_round(purchase_cost),
        purchase_amount=production,
        production_capacity=capacity,
        selling_price=selling_price,
        unit_cost=unit_cost,
        market_demand=market_demand,
        new_inventory=new_inventory,
    )


def calculate_tax(
    gross_profit: float,
    base_rate_pct: float,
    tax_reduction_pct: float,
    balance: Optional[BusinessBalanceConfig] = None,
) -> TaxResult:
    """Corporate tax; role bonuses can cut the rate by at most half. Losses are not taxed."""
    balance = balance or CONFIG.balance
    base_rate = safe_number(base_rate_pct, balance.default_tax_rate, "tax rate") / 100
    reduction = min(balance.max_tax_rate_reduction, max(0.0, safe_number(tax_reduction_pct, 0.0)) / 100)
    effective = max(0.0, base_rate * (1 - reduction))
    taxable = max(0.0, safe_number(gross_profit, 0.0))
    return TaxResult(effective_rate=effective, tax_amount=js_round(taxable * effective))


def _inactive_financials(business: Business) -> BusinessFinancials:
    expenses = js_round(max(0.0, safe_number(business.quarterly_expenses, 0.0)))
    return BusinessFinancials(
        income=0,
        expenses=expenses,
        profit=-expenses,
        net_profit=-expenses,
        cash_flow=-expenses,
        new_inventory=replace(business.inventory) if business.inventory else None,
        debug={"state": business.state.value},
    )


def calculate_business_financials(
    business: Business,
    economy: Optional[CountryEconomy] = None,
    player: Optional[PlayerState] = None,
    global_market_value: float = 1.0,
    rng: Optional[random.Random] = None,
    is_preview: bool = False,
    impact: Optional[BusinessImpact] = None,
    balance: Optional[BusinessBalanceConfig] = None,
) -> BusinessFinancials:
    """
    Full quarterly financials for a business.

    Opening and frozen businesses only pay their fixed ``quarterly_expenses``.
    Previews use midpoint values for every random draw.

    Returns:
        BusinessFinancials; ``debug`` carries price_used, sales_volume,
        tax_amount and an expenses_breakdown for display.
    """
    balance = balance or CONFIG.balance
    if business.state != BusinessState.ACTIVE:
        return _inactive_financials(business)

    if rng is None:
        rng = FixedRandom() if is_preview else random.Random()
    if impact is None:
        impact = calculate_total_business_impact(business, player, balance)
    staffing = check_minimum_staffing(business)

    opex = calculate_opex(business, economy, impact.expense_reduction, rng, balance)

    if business.is_product:
        inventory = business.inventory or Inventory(
            max_stock=balance.default_max_stock,
            price_per_unit=balance.default_sell_price,
            purchase_cost=balance.default_unit_cost,
        )
        revenue = calculate_product_revenue(
            business, inventory, business.efficiency, business.reputation,
            global_market_value, impact.sales_bonus, rng, is_preview, balance)
    else:
        revenue = calculate_service_revenue(
            business, business.efficiency, business.reputation,
            global_market_value, impact.sales_bonus, staffing, balance)

    sales_income = safe_number(revenue.sales_income, 0.0)
    cogs = safe_number(revenue.cogs, 0.0)
    gross_profit = sales_income - cogs - opex.total
    tax = calculate_tax(gross_profit, business.tax_rate, impact.tax_reduction, balance)

    net_profit = gross_profit - tax.tax_amount
    cash_flow = sales_income - opex.total - tax.tax_amount - safe_number(revenue.purchase_cost, 0.0)

    if not staffing.is_valid:
        logger.debug("Business %s is understaffed: missing %s", business.id,
                     [r.value for r in staffing.missing_roles])

    breakdown = opex.to_dict()
    breakdown["cogs"] = js_round(cogs)
    return BusinessFinancials(
        income=js_round(sales_income),
        expenses=js_round(cogs + opex.total + tax.tax_amount),
        profit=js_round(net_profit),
        net_profit=js_round(net_profit),
        cash_flow=js_round(cash_flow),
        tax_amount=tax.tax_amount,
        new_inventory=revenue.new_inventory if revenue.new_inventory is not None else (
            replace(business.inventory) if business.inventory else None),
        debug={
            "price_used": revenue.selling_price,
            "sales_volume": revenue.sales_volume,
            "tax_amount": tax.tax_amount,
            "effective_tax_rate": tax.effective_rate,
            "gross_profit": js_round(gross_profit),
            "purchase_cost": js_round(safe_number(revenue.purchase_cost, 0.0)),
            "production_capacity": revenue.production_capacity,
            "market_demand": round(revenue.market_demand, 2),
            "staffing_valid": staffing.is_valid,
            "missing_roles": [r.value for r in staffing.missing_roles],
            "expenses_breakdown": breakdown,
        },
    )
