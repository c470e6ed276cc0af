"""
Unit tests for the business financial model

Tests cover:
- Product price scenarios and NaN-safe defaults
- Frozen and opening businesses
- Tax non-negativity and caps
- Inventory bounds
- Staffing penalty on service demand
- P&L vs cash-flow treatment of purchases
"""

import math
import random

from conftest import make_employee, make_product_business, make_service_business
from financials import calculate_business_financials, calculate_service_revenue, calculate_tax
from models import BusinessState, CountryEconomy, Inventory, Role
from randomness import FixedRandom
from staffing import check_minimum_staffing


class TestProductPricing:
    """Price level maps to a multiple of unit cost"""

    def test_price_level_10_sells_at_five_times_cost(self):
        business = make_product_business(price=10, purchase_cost=100)
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.debug["price_used"] == 500

    def test_price_level_1_sells_at_half_cost(self):
        business = make_product_business(price=1, purchase_cost=100)
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.debug["price_used"] == 50

    def test_nan_inventory_prices_use_defaults(self):
        """Invalid price and cost fall back to 100 and 50"""
        business = make_product_business(
            inventory=Inventory(current_stock=100, max_stock=1000,
                                price_per_unit=float("nan"), purchase_cost=float("nan")))
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.debug["price_used"] == 100
        for value in (result.income, result.expenses, result.profit, result.cash_flow):
            assert math.isfinite(value)

    def test_zero_unit_price_sells_nothing(self):
        business = make_product_business(
            inventory=Inventory(current_stock=100, max_stock=1000, price_per_unit=0, purchase_cost=20))
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.income == 0
        assert math.isfinite(result.net_profit)


class TestInactiveBusinesses:
    """Frozen and opening businesses only pay fixed upkeep"""

    def test_frozen_scenario(self):
        business = make_service_business(state=BusinessState.FROZEN, quarterly_expenses=500)
        result = calculate_business_financials(business)
        assert result.income == 0
        assert result.expenses == 500
        assert result.profit == -500
        assert result.net_profit == -500
        assert result.cash_flow == -500

    def test_opening_pays_upkeep(self):
        business = make_service_business(state=BusinessState.OPENING, quarterly_expenses=1200)
        result = calculate_business_financials(business)
        assert result.expenses == 1200
        assert result.income == 0


class TestTax:
    """Corporate tax"""

    def test_no_tax_on_losses(self):
        assert calculate_tax(-1000, 20, 0).tax_amount == 0
        assert calculate_tax(0, 20, 0).tax_amount == 0

    def test_reduction_capped_at_half(self):
        # 20% base, reduction capped at 50% -> 10% of 1000
        assert calculate_tax(1000, 20, 100).tax_amount == 100

    def test_tax_never_negative(self):
        rng = random.Random(21)
        for _ in range(100):
            business = make_product_business(price=rng.randint(1, 10),
                                             efficiency=rng.uniform(0, 100),
                                             reputation=rng.uniform(0, 100))
            result = calculate_business_financials(business, rng=rng)
            assert result.tax_amount >= 0
            if result.debug["gross_profit"] <= 0:
                assert result.tax_amount == 0


class TestInventory:
    """Stock stays within [0, max_stock]"""

    def test_bounds_hold_across_random_quarters(self):
        rng = random.Random(5)
        for _ in range(200):
            business = make_product_business(
                price=rng.randint(1, 10),
                quantity=rng.uniform(0, 5000),
                inventory=Inventory(current_stock=rng.uniform(0, 1000), max_stock=1000,
                                    price_per_unit=100, purchase_cost=rng.uniform(1, 200)),
            )
            result = calculate_business_financials(business, global_market_value=rng.uniform(0.3, 2.0), rng=rng)
            stock = result.new_inventory.current_stock
            assert 0 <= stock <= result.new_inventory.max_stock

    def test_nan_stock(self):
        business = make_product_business(
            inventory=Inventory(current_stock=float("nan"), max_stock=1000, price_per_unit=50, purchase_cost=20))
        result = calculate_business_financials(business, rng=FixedRandom())
        assert math.isfinite(result.new_inventory.current_stock)
        assert math.isfinite(result.income)

    def test_input_inventory_untouched(self):
        business = make_product_business()
        before = business.inventory.current_stock
        calculate_business_financials(business, rng=FixedRandom())
        assert business.inventory.current_stock == before


class TestServiceDemand:
    """Service revenue"""

    def test_understaffing_applies_penalty(self):
        staffed = make_service_business()
        understaffed = make_service_business(employees=[make_employee(Role.WORKER)])
        full = calculate_service_revenue(staffed, 80, 80, 1.0, 0, check_minimum_staffing(staffed))
        penalized = calculate_service_revenue(understaffed, 80, 80, 1.0, 0, check_minimum_staffing(understaffed))
        assert abs(penalized.market_demand - full.market_demand * 0.2) < 1e-9

    def test_nan_efficiency_and_reputation_give_zero_income(self):
        business = make_service_business(efficiency=float("nan"), reputation=float("nan"))
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.income == 0

    def test_nan_price_is_safe(self):
        business = make_service_business(price=float("nan"))
        result = calculate_business_financials(business, rng=FixedRandom())
        assert math.isfinite(result.income)
        assert result.income >= 0


class TestExpenses:
    """Expenses and cash flow"""

    def test_nan_salary_gives_finite_expenses(self):
        business = make_service_business(employees=[make_employee(Role.MANAGER, salary=float("nan")),
                                                     make_employee(Role.WORKER)])
        result = calculate_business_financials(business, rng=FixedRandom())
        assert math.isfinite(result.expenses)
        assert result.expenses >= 0

    def test_purchases_hit_cash_flow_not_pnl(self):
        business = make_product_business(price=6, purchase_cost=50)
        result = calculate_business_financials(business, rng=FixedRandom())
        breakdown = result.debug["expenses_breakdown"]
        assert result.debug["purchase_cost"] > 0
        assert result.expenses == breakdown["cogs"] + breakdown["total"] + result.tax_amount
        assert result.cash_flow == result.income - breakdown["total"] - result.tax_amount - result.debug["purchase_cost"]

    def test_salaries_indexed_by_tenure(self):
        economy = CountryEconomy(id="c", name="C", inflation_history=[10.0, 10.0])
        fresh = make_service_business()
        veteran = make_service_business(employees=[make_employee(Role.MANAGER, experience=8),
                                                   make_employee(Role.WORKER, 1, experience=8)])
        fresh_result = calculate_business_financials(fresh, economy=economy, rng=FixedRandom())
        veteran_result = calculate_business_financials(veteran, economy=economy, rng=FixedRandom())
        assert veteran_result.debug["expenses_breakdown"]["salaries"] > fresh_result.debug["expenses_breakdown"]["salaries"]

    def test_preview_is_deterministic(self):
        business = make_product_business()
        first = calculate_business_financials(business, is_preview=True)
        second = calculate_business_financials(business, is_preview=True)
        assert first.to_dict() == second.to_dict()


class TestOutOfRangeInputs:
    """Negative and out-of-range inputs never produce negative money"""

    def test_negative_service_price_uses_lowest_level(self):
        negative = calculate_business_financials(make_service_business(price=-5), rng=FixedRandom())
        lowest = calculate_business_financials(make_service_business(price=1), rng=FixedRandom())
        assert negative.income >= 0
        assert negative.income == lowest.income
        assert negative.debug["price_used"] == lowest.debug["price_used"]

    def test_negative_product_price_uses_lowest_level(self):
        business = make_product_business(price=-3, purchase_cost=100)
        result = calculate_business_financials(business, rng=FixedRandom())
        # Level 1 sells at half the unit cost
        assert result.debug["price_used"] == 50
        assert result.income >= 0

    def test_price_above_range_is_capped(self):
        result = calculate_business_financials(make_product_business(price=25, purchase_cost=100), rng=FixedRandom())
        assert result.debug["price_used"] == 500

    def test_negative_unit_cost(self):
        business = make_product_business(purchase_cost=-40)
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.debug["purchase_cost"] >= 0
        assert result.debug["expenses_breakdown"]["cogs"] >= 0
        assert result.income >= 0

    def test_zero_and_negative_effort_use_minimum_effort(self):
        def salaries(effort):
            business = make_service_business(employees=[make_employee(Role.MANAGER, effort_percent=effort),
                                                        make_employee(Role.WORKER, 1)])
            result = calculate_business_financials(business, rng=FixedRandom())
            return result.debug["expenses_breakdown"]["salaries"]

        assert salaries(0) == salaries(10)
        assert salaries(-50) == salaries(10)
        assert salaries(0) > 0

    def test_negative_salary_costs_nothing(self):
        business = make_service_business(employees=[make_employee(Role.MANAGER, salary=-6000),
                                                    make_employee(Role.WORKER, 1, salary=-6000)])
        result = calculate_business_financials(business, rng=FixedRandom())
        assert result.debug["expenses_breakdown"]["salaries"] == 0
        assert result.expenses >= 0
