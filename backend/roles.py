"""
Role / Staffing Impact Model

Static role table plus the aggregation that turns employees and the
player's role assignments into a TotalBusinessImpact. Nothing here has side
effects; the financial model queries it every quarter.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from config import CONFIG, DEFAULT_ROLE_CATALOG, BusinessBalanceConfig
from models import Business, BusinessState, PlayerState, Role
from numeric import clamp, js_round, safe_number

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BusinessImpact:
    """Additive modifiers; every field but efficiency/reputation is a percentage."""
    efficiency: float = 0.0
    sales_bonus: float = 0.0
    tax_reduction: float = 0.0
    expense_reduction: float = 0.0
    reputation: float = 0.0
    staff_productivity: float = 0.0
    legal_protection: float = 0.0

    def add(self, other: "BusinessImpact", scale: float = 1.0) -> None:
        self.efficiency += other.efficiency * scale
        self.sales_bonus += other.sales_bonus * scale
        self.tax_reduction += other.tax_reduction * scale
        self.expense_reduction += other.expense_reduction * scale
        self.reputation += other.reputation * scale
        self.staff_productivity += other.staff_productivity * scale
        self.legal_protection += other.legal_protection * scale

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


ImpactFn = Callable[[float], BusinessImpact]


@dataclass(frozen=True)
class RoleConfig:
    role: Role
    is_managerial: bool
    energy_cost: float  # Per quarter while the player holds the role
    sanity_cost: float
    skill_name: Optional[str]  # Player skill used and trained by the role
    skill_growth: float  # Progress points per quarter
    player_impact: ImpactFn  # skill level -> impact
    staff_impact: ImpactFn  # stars -> impact


ROLE_CONFIGS: Dict[Role, RoleConfig] = {
    Role.MANAGER: RoleConfig(
        role=Role.MANAGER, is_managerial=True,
        energy_cost=-10, sanity_cost=-1,
        skill_name="Management", skill_growth=20,
        player_impact=lambda level: BusinessImpact(efficiency=level * 5),
        staff_impact=lambda stars: BusinessImpact(efficiency=stars * 4),
    ),
    Role.ACCOUNTANT: RoleConfig(
        role=Role.ACCOUNTANT, is_managerial=True,
        energy_cost=-8, sanity_cost=-1,
        skill_name="Accounting", skill_growth=20,
        player_impact=lambda level: BusinessImpact(tax_reduction=level * 2),
        staff_impact=lambda stars: BusinessImpact(tax_reduction=stars * 2),
    ),
    Role.MARKETER: RoleConfig(
        role=Role.MARKETER, is_managerial=True,
        energy_cost=-12, sanity_cost=-1,
        skill_name="Marketing", skill_growth=20,
        player_impact=lambda level: BusinessImpact(reputation=level * 2, sales_bonus=level * 3),
        staff_impact=lambda stars: BusinessImpact(sales_bonus=stars * 3, reputation=stars * 2),
    ),
    Role.LAWYER: RoleConfig(
        role=Role.LAWYER, is_managerial=True,
        energy_cost=-10, sanity_cost=-2,
        skill_name="Law", skill_growth=15,
        player_impact=lambda level: BusinessImpact(
            tax_reduction=level * 3, expense_reduction=level * 2, legal_protection=level * 10),
        staff_impact=lambda stars: BusinessImpact(
            tax_reduction=stars * 3, expense_reduction=stars * 2, legal_protection=stars * 10),
    ),
    Role.HR: RoleConfig(
        role=Role.HR, is_managerial=True,
        energy_cost=-9, sanity_cost=-1,
        skill_name="HR management", skill_growth=18,
        player_impact=lambda level: BusinessImpact(efficiency=level * 5, staff_productivity=level * 2),
        staff_impact=lambda stars: BusinessImpact(efficiency=stars * 5, staff_productivity=stars * 2),
    ),
    Role.SALESPERSON: RoleConfig(
        role=Role.SALESPERSON, is_managerial=False,
        energy_cost=-15, sanity_cost=-2,
        skill_name="Sales", skill_growth=20,
        player_impact=lambda level: BusinessImpact(sales_bonus=level * 10 if level > 0 else 5),
        staff_impact=lambda stars: BusinessImpact(sales_bonus=stars * 2.5),
    ),
    Role.TECHNICIAN: RoleConfig(
        role=Role.TECHNICIAN, is_managerial=False,
        energy_cost=-16, sanity_cost=-1,
        skill_name="Engineering", skill_growth=20,
        player_impact=lambda level: BusinessImpact(efficiency=level * 8 if level > 0 else 5),
        staff_impact=lambda stars: BusinessImpact(efficiency=stars * 2),
    ),
    Role.WORKER: RoleConfig(
        role=Role.WORKER, is_managerial=False,
        energy_cost=-18, sanity_cost=-2,
        skill_name=None, skill_growth=0,
        player_impact=lambda level: BusinessImpact(efficiency=5),
        staff_impact=lambda stars: BusinessImpact(efficiency=stars * 1),
    ),
}

MANAGERIAL_ROLES = tuple(r for r, c in ROLE_CONFIGS.items() if c.is_managerial)
OPERATIONAL_ROLES = tuple(r for r, c in ROLE_CONFIGS.items() if not c.is_managerial)


def get_role_config(role: Role) -> RoleConfig:
    return ROLE_CONFIGS[Role(role)]


def is_managerial(role: Role) -> bool:
    return get_role_config(role).is_managerial


def effort_factor(effort_percent: float) -> float:
    """Share of full commitment, never below 10%."""
    return clamp(safe_number(effort_percent, 100.0, "effort") / 100, 0.1, 1.0)


def get_staff_impact(business: Business) -> BusinessImpact:
    """Employees' contribution; managerial roles scale with each employee's effort."""
    total = BusinessImpact()
    for employee in business.employees:
        config = get_role_config(employee.role)
        stars = clamp(safe_number(employee.stars, 1.0, "stars"), 0, 5)
        scale = effort_factor(employee.effort_percent) if config.is_managerial else 1.0
        total.add(config.staff_impact(stars), scale)
    return total


def get_player_role_impact(business: Business, player: Optional[PlayerState]) -> BusinessImpact:
    """The player's contribution from every role they hold in the business."""
    total = BusinessImpact()
    if player is None:
        return total
    effort = effort_factor(business.player_effort)
    for role in business.player_roles.all_roles():
        config = get_role_config(role)
        level = player.skill_level(config.skill_name)
        scale = effort if config.is_managerial else 1.0
        total.add(config.player_impact(level), scale)
    return total


def calculate_total_business_impact(
    business: Business,
    player: Optional[PlayerState] = None,
    balance: Optional[BusinessBalanceConfig] = None,
) -> BusinessImpact:
    """
    Sum of base values, staff and player impact, with reduction caps applied.

    A business that is not active starts from zero base efficiency and
    reputation instead of the configured baseline.
    """
    balance = balance or CONFIG.balance
    total = BusinessImpact()
    if business.state == BusinessState.ACTIVE:
        total.efficiency = balance.base_efficiency
        total.reputation = balance.base_reputation_bonus

    total.add(get_staff_impact(business))
    total.add(get_player_role_impact(business, player))

    total.tax_reduction = min(total.tax_reduction, balance.max_tax_reduction * 100)
    total.expense_reduction = min(total.expense_reduction, balance.max_expense_reduction * 100)
    return total


def get_player_stat_effects(business: Business) -> Dict[str, float]:
    """Energy and sanity the player spends this quarter on their roles (negative)."""
    effort = effort_factor(business.player_effort)
    managerial = {"energy": 0.0, "sanity": 0.0}
    operational = {"energy": 0.0, "sanity": 0.0}
    for role in business.player_roles.all_roles():
        config = get_role_config(role)
        bucket = managerial if config.is_managerial else operational
        bucket["energy"] += config.energy_cost
        bucket["sanity"] += config.sanity_cost
    return {
        stat: managerial[stat] * effort + operational[stat]
        for stat in ("energy", "sanity")
    }


def get_player_skill_growth(business: Business) -> Dict[str, int]:
    """Skill progress the player earns in each role held this quarter."""
    effort = effort_factor(business.player_effort)
    growth: Dict[str, int] = {}
    for role in business.player_roles.all_roles():
        config = get_role_config(role)
        if not config.skill_name or config.skill_growth <= 0:
            continue
        amount = config.skill_growth * effort if config.is_managerial else config.skill_growth
        growth[config.skill_name] = growth.get(config.skill_name, 0) + js_round(amount)
    return growth


# ---------------------------------------------------------------------------
# Role catalog (titles and salary bands)
# ---------------------------------------------------------------------------

class RoleCatalogEntry(BaseModel):
    title: str = Field(min_length=1)
    salary_min: float = Field(ge=0)
    salary_max: float = Field(ge=0)
    description: str = ""

    @model_validator(mode="after")
    def check_band(self) -> "RoleCatalogEntry":
        if self.salary_max < self.salary_min:
            raise ValueError("salary_max must not be below salary_min")
        return self


def parse_role_catalog(raw: Dict[str, object]) -> Dict[Role, RoleCatalogEntry]:
    """
    Validate a raw role catalog.

    Raises:
        ValueError: on unknown roles, missing roles or malformed entries
    """
    catalog: Dict[Role, RoleCatalogEntry] = {}
    for key, entry in raw.items():
        try:
            role = Role(key)
        except ValueError as exc:
            raise ValueError(f"Unknown role in catalog: {key}") from exc
        try:
            catalog[role] = RoleCatalogEntry.model_validate(entry)
        except ValidationError as exc:
            logger.error("Role catalog entry %s is invalid: %s", key, exc)
            raise ValueError(f"Invalid role catalog entry: {key}") from exc

    missing = [r.value for r in Role if r not in catalog]
    if missing:
        raise ValueError(f"Role catalog is missing roles: {', '.join(missing)}")
    return catalog


def load_role_catalog(path: str) -> Dict[Role, RoleCatalogEntry]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Cannot read role catalog %s: %s", path, exc)
        raise ValueError(f"Cannot read role catalog {path}") from exc
    return parse_role_catalog(raw)


@lru_cache(maxsize=1)
def get_role_catalog() -> Dict[Role, RoleCatalogEntry]:
    path = os.getenv("SIM_ROLE_CATALOG_PATH") or str(DEFAULT_ROLE_CATALOG)
    return load_role_catalog(path)


def suggest_salary(role: Role, stars: int, catalog: Optional[Dict[Role, RoleCatalogEntry]] = None) -> float:
    """Quarterly salary within the role's band, higher for more stars."""
    catalog = catalog or get_role_catalog()
    entry = catalog[Role(role)]
    position = (clamp(stars, 1, 5) - 1) / 4
    return js_round(entry.salary_min + (entry.salary_max - entry.salary_min) * position)
