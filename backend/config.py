"""
Simulation Configuration

Centralizes all tunable parameters for the quarterly simulation core.
Balance values can be overridden from a JSON table, which is validated
before anything runs.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ROLE_CATALOG = ROOT_DIR / "data" / "roles.json"


@dataclass
class TimeConfig:
    """Time-related constants."""
    quarters_per_year: int = 4  # One turn = one quarter
    start_year: int = 2024


@dataclass
class InflationConfig:
    """Yearly inflation generation and key rate parameters."""

    min_inflation: float = 0.1
    max_inflation: float = 20.0
    world_average: float = 2.5  # Long-run anchor
    damping_factor: float = 0.6
    volatility: float = 0.8
    crisis_multiplier: float = 2.5
    crisis_damping_boost: float = 1.2
    noise_share: float = 0.3

    # Key rate follows inflation with a spread
    key_rate_spread: float = 1.5
    key_rate_noise: float = 0.5
    key_rate_max_step: float = 1.0
    min_key_rate: float = 0.1

    history_length: int = 10

    # Salary indexation share of inflation
    salary_indexation_min: float = 0.7
    salary_indexation_max: float = 0.9

    category_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "housing": 1.5,
        "realEstate": 1.5,
        "business": 1.3,
        "education": 1.2,
        "health": 1.1,
        "transport": 1.0,
        "salaries": 0.95,
        "services": 0.9,
        "food": 0.5,
        "default": 1.0,
    })


@dataclass
class PhaseConfig:
    min_duration: int
    max_duration: int
    base_modifier: float


@dataclass
class CycleConfig:
    """Business cycle phase table (durations in quarters)."""

    phases: Dict[str, PhaseConfig] = field(default_factory=lambda: {
        "growth": PhaseConfig(8, 16, 1.2),
        "peak": PhaseConfig(2, 4, 1.5),
        "recession": PhaseConfig(4, 8, 0.6),
        "recovery": PhaseConfig(4, 6, 0.9),
    })
    initial_intensity: float = 0.5
    min_intensity: float = 0.3
    peak_intensity_bonus: float = 0.3
    recession_intensity_penalty: float = 0.2
    fluctuation_low: float = 0.9
    fluctuation_high: float = 1.1

    # Crisis event on entering recession
    crisis_inflation_min: int = 5
    crisis_inflation_spread: int = 5
    crisis_unemployment_min: int = 3
    crisis_unemployment_spread: int = 3
    crisis_gdp_change: float = -5.0
    crisis_salary_modifier: float = 0.9

    # Boom event on entering peak
    boom_inflation_change: float = 2.0
    boom_unemployment_change: float = -2.0
    boom_gdp_change: float = 4.0
    boom_salary_modifier: float = 1.1


@dataclass
class BusinessBalanceConfig:
    """Business balance table: staffing costs, production, elasticity, metrics."""

    # Staffing
    payroll_tax_rate: float = 13.0  # percent of payroll
    base_rent_per_employee: float = 150.0  # per max-employee slot
    base_utilities_per_employee: float = 30.0
    min_fixed_costs: float = 500.0

    # Production
    base_production_per_worker: float = 50.0
    base_product_demand_per_max_emp: float = 60.0
    base_service_demand_per_max_emp: float = 10.0
    base_service_revenue_per_level: float = 1000.0

    # Elasticity
    price_slider_step: float = 1.0
    safe_price_threshold: float = 0.8
    demand_exponent: float = 1.5
    reputation_safety_bonus: float = 0.4

    # Metrics
    base_efficiency: float = 20.0
    base_reputation_bonus: float = 10.0
    min_staffing_penalty: float = 0.2
    efficiency_weight: float = 0.6
    team_stars_weight: float = 0.2
    reputation_smoothing: float = 0.1
    min_staff_efficiency_reduction: float = 0.5
    max_tax_reduction: float = 0.8
    max_expense_reduction: float = 0.5

    # Safe defaults for invalid inputs
    default_price_level: int = 5
    default_unit_cost: float = 50.0
    default_sell_price: float = 100.0
    default_tax_rate: float = 15.0
    default_max_stock: int = 1000
    max_tax_rate_reduction: float = 0.5  # Effective tax rate can drop at most 50%

    # KPI salary adjustments
    kpi_high_productivity: float = 80.0
    kpi_low_productivity: float = 50.0
    kpi_bonus_share: float = 0.1

    # Recession behaviour of product demand
    recession_market_threshold: float = 0.9
    high_markup_threshold: float = 0.6
    low_markup_threshold: float = 0.3
    high_markup_recession_factor: float = 0.7
    low_markup_recession_factor: float = 1.1
    luxury_service_recession_factor: float = 0.6
    luxury_service_price_level: int = 6
    demand_fluctuation_low: float = 0.9
    demand_fluctuation_high: float = 1.1

    # Events
    max_events_per_quarter: int = 3
    recent_events_window: int = 4

    experience_per_quarter: float = 1.0  # Quarters of tenure per full-effort quarter


@dataclass
class PersonalConfig:
    """Player life: jobs, skills, thresholds and defeat."""

    max_skill_level: int = 5
    skill_progress_per_level: float = 100.0

    # Job firing risk
    base_firing_risk: float = 0.01
    recession_firing_risk: float = 0.15
    growth_firing_relief: float = 0.005
    new_hire_firing_risk: float = 0.10
    veteran_firing_relief: float = 0.05
    new_hire_tenure: int = 4
    veteran_tenure: int = 12
    max_firing_risk: float = 0.5

    # Practice and decay
    job_practice_progress: float = 15.0
    job_practice_level_cap: int = 4
    skill_decay_grace_quarters: int = 4
    skill_decay_rate: float = 5.0

    # Job applications
    matched_offer_chance: float = 0.6
    match_score_bonus: float = 0.1
    unmatched_offer_chance: float = 0.05
    max_offer_chance: float = 0.95

    # Personal life
    partner_search_chance: float = 0.3
    pregnancy_quarters: int = 3

    # Thresholds
    stat_warning_level: float = 30.0
    stat_danger_level: float = 20.0
    stat_critical_level: float = 10.0
    severe_medical_cost: float = 2000.0
    medical_cost: float = 500.0
    severe_therapy_cost: float = 1000.0
    therapy_cost: float = 500.0
    bankruptcy_floor: float = -100000.0

    # Lifestyle (quarterly per family member)
    food_cost: float = 900.0
    housing_cost: float = 1800.0
    transport_cost: float = 300.0
    child_cost: float = 600.0

    # Stat cost notification threshold
    stat_cost_notice: float = 5.0

    # Quarterly rest and upkeep
    energy_recovery: float = 20.0
    study_energy_cost: float = 5.0
    course_intelligence_gain: float = 2.0
    child_happiness_boost: float = 10.0
    max_notifications: int = 100
    max_business_events: int = 20


@dataclass
class MarketEventsConfig:
    """Global market event generation."""

    event_chance: float = 0.3  # Per quarter
    base_market_value: float = 1.0
    min_market_value: float = 0.3
    max_market_value: float = 2.0


@dataclass
class SimulationConfig:
    """Master configuration for the entire simulation."""

    time: TimeConfig = field(default_factory=TimeConfig)
    inflation: InflationConfig = field(default_factory=InflationConfig)
    cycle: CycleConfig = field(default_factory=CycleConfig)
    balance: BusinessBalanceConfig = field(default_factory=BusinessBalanceConfig)
    personal: PersonalConfig = field(default_factory=PersonalConfig)
    market: MarketEventsConfig = field(default_factory=MarketEventsConfig)

    seed: Optional[int] = None

    def __post_init__(self):
        """Validation and derived values."""
        if self.time.quarters_per_year <= 0:
            raise ValueError("quarters_per_year must be positive")

        if not (0.0 <= self.inflation.min_inflation < self.inflation.max_inflation):
            raise ValueError("inflation bounds must satisfy 0 <= min < max")
        if not (0.0 <= self.inflation.damping_factor <= 1.0):
            raise ValueError("damping_factor must be in [0, 1]")
        for category, multiplier in self.inflation.category_multipliers.items():
            if multiplier <= 0:
                raise ValueError(f"inflation multiplier for {category} must be positive")
        if "default" not in self.inflation.category_multipliers:
            raise ValueError("inflation multipliers must define a default category")

        for name in ("growth", "peak", "recession", "recovery"):
            phase = self.cycle.phases.get(name)
            if phase is None:
                raise ValueError(f"cycle phase {name} is not configured")
            if phase.min_duration < 1 or phase.max_duration < phase.min_duration:
                raise ValueError(f"cycle phase {name} has an invalid duration range")

        balance = self.balance
        if not (0.0 <= balance.safe_price_threshold <= 1.0):
            raise ValueError("safe_price_threshold must be in [0, 1]")
        for name in ("min_staffing_penalty", "efficiency_weight", "team_stars_weight",
                     "reputation_smoothing", "max_tax_reduction", "max_expense_reduction"):
            if not (0.0 <= getattr(balance, name) <= 1.0):
                raise ValueError(f"{name} must be in [0, 1]")
        if not (0.0 <= balance.payroll_tax_rate <= 100.0):
            raise ValueError("payroll_tax_rate must be in [0, 100]")
        for name in ("base_rent_per_employee", "base_utilities_per_employee", "min_fixed_costs",
                     "base_production_per_worker", "base_product_demand_per_max_emp",
                     "base_service_demand_per_max_emp", "base_service_revenue_per_level",
                     "demand_exponent", "reputation_safety_bonus"):
            if getattr(balance, name) < 0:
                raise ValueError(f"{name} cannot be negative")

        if not (0.0 <= self.market.event_chance <= 1.0):
            raise ValueError("event_chance must be in [0, 1]")


# ---------------------------------------------------------------------------
# Balance table loading
# ---------------------------------------------------------------------------

class StaffingSchema(BaseModel):
    payrollTaxRate: float = Field(ge=0, le=100)
    baseRentPerEmployee: float = Field(ge=0)
    baseUtilitiesPerEmployee: float = Field(ge=0)
    minFixedCosts: float = Field(ge=0)


class ProductionSchema(BaseModel):
    baseProductionPerWorker: float = Field(ge=0)
    baseProductDemandPerMaxEmp: float = Field(ge=0)
    baseServiceDemandPerMaxEmp: float = Field(ge=0)
    baseServiceRevenuePerLevel: float = Field(ge=0)


class ElasticitySchema(BaseModel):
    priceSliderStep: float = Field(ge=0)
    safePriceThreshold: float = Field(ge=0, le=1)
    demandExponent: float = Field(ge=0)
    reputationSafetyBonus: float = Field(ge=0)


class MetricsSchema(BaseModel):
    baseEfficiency: float = Field(ge=0)
    baseReputationBonus: float = Field(ge=0)
    minStaffingPenalty: float = Field(ge=0, le=1)
    efficiencyWeight: float = Field(ge=0, le=1)
    teamStarsWeight: float = Field(ge=0, le=1)
    reputationSmoothing: float = Field(ge=0, le=1)
    minStaffEfficiencyReduction: float = Field(ge=0, le=1)
    maxTaxReduction: float = Field(ge=0, le=1)
    maxExpenseReduction: float = Field(ge=0, le=1)


class BusinessBalanceSchema(BaseModel):
    staffing: StaffingSchema
    production: ProductionSchema
    elasticity: ElasticitySchema
    metrics: MetricsSchema


# Schema key -> BusinessBalanceConfig attribute
_BALANCE_FIELDS: List[Tuple[str, str, str]] = [
    ("staffing", "payrollTaxRate", "payroll_tax_rate"),
    ("staffing", "baseRentPerEmployee", "base_rent_per_employee"),
    ("staffing", "baseUtilitiesPerEmployee", "base_utilities_per_employee"),
    ("staffing", "minFixedCosts", "min_fixed_costs"),
    ("production", "baseProductionPerWorker", "base_production_per_worker"),
    ("production", "baseProductDemandPerMaxEmp", "base_product_demand_per_max_emp"),
    ("production", "baseServiceDemandPerMaxEmp", "base_service_demand_per_max_emp"),
    ("production", "baseServiceRevenuePerLevel", "base_service_revenue_per_level"),
    ("elasticity", "priceSliderStep", "price_slider_step"),
    ("elasticity", "safePriceThreshold", "safe_price_threshold"),
    ("elasticity", "demandExponent", "demand_exponent"),
    ("elasticity", "reputationSafetyBonus", "reputation_safety_bonus"),
    ("metrics", "baseEfficiency", "base_efficiency"),
    ("metrics", "baseReputationBonus", "base_reputation_bonus"),
    ("metrics", "minStaffingPenalty", "min_staffing_penalty"),
    ("metrics", "efficiencyWeight", "efficiency_weight"),
    ("metrics", "teamStarsWeight", "team_stars_weight"),
    ("metrics", "reputationSmoothing", "reputation_smoothing"),
    ("metrics", "minStaffEfficiencyReduction", "min_staff_efficiency_reduction"),
    ("metrics", "maxTaxReduction", "max_tax_reduction"),
    ("metrics", "maxExpenseReduction", "max_expense_reduction"),
]


def balance_from_table(table: Dict[str, object]) -> BusinessBalanceConfig:
    """
    Build a BusinessBalanceConfig from a raw balance table.

    Raises:
        ValueError: if the table does not match BusinessBalanceSchema
    """
    try:
        schema = BusinessBalanceSchema.model_validate(table)
    except ValidationError as exc:
        logger.error("Business balance validation failed: %s", exc)
        raise ValueError("Invalid business balance configuration") from exc

    balance = BusinessBalanceConfig()
    for group, key, attr in _BALANCE_FIELDS:
        setattr(balance, attr, getattr(getattr(schema, group), key))
    return balance


def load_config(balance_path: Optional[str] = None, seed: Optional[int] = None) -> SimulationConfig:
    """
    Create a SimulationConfig, optionally reading the balance table from JSON.

    Any problem with the file is fatal: the caller gets a ValueError instead
    of a config silently built from defaults.
    """
    balance = BusinessBalanceConfig()
    if balance_path:
        try:
            with open(balance_path, "r", encoding="utf-8") as fh:
                table = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Cannot read balance table %s: %s", balance_path, exc)
            raise ValueError(f"Cannot read balance table {balance_path}") from exc
        balance = balance_from_table(table)
        logger.info("Loaded business balance from %s", balance_path)
    return SimulationConfig(balance=balance, seed=seed)


def _env_seed() -> Optional[int]:
    raw = os.getenv("SIM_SEED")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"SIM_SEED must be an integer, got {raw!r}") from exc


# Global configuration instance
CONFIG = load_config(os.getenv("SIM_BALANCE_PATH"), _env_seed())
