"""
Starting game states for the CLI, the API and the tests.
"""

import random
from typing import List, Optional

from business_cycle import initial_cycle
from config import CONFIG, SimulationConfig
from models import (
    Business,
    BusinessState,
    CountryEconomy,
    Employee,
    GameState,
    Inventory,
    Job,
    Partner,
    PlayerRoles,
    PlayerState,
    Role,
    Skill,
)
from roles import suggest_salary


def create_country(rng: random.Random, config: Optional[SimulationConfig] = None,
                   country_id: str = "us", name: str = "United States") -> CountryEconomy:
    config = config or CONFIG
    return CountryEconomy(
        id=country_id,
        name=name,
        inflation=2.5,
        key_rate=4.0,
        unemployment=4.5,
        gdp_growth=2.0,
        tax_rate=13.0,
        corporate_tax_rate=20.0,
        inflation_history=[2.5, 3.1, 2.8],  # Newest first
        cycle=initial_cycle(rng, config.cycle),
    )


def _hire(business_id: str, index: int, role: Role, stars: int, efficiency: float = 60.0) -> Employee:
    return Employee(
        id=f"{business_id}_emp_{index}",
        name=f"{role.value.title()} {index}",
        role=role,
        stars=stars,
        skills={"efficiency": efficiency},
        salary=suggest_salary(role, stars),
        productivity=60.0 + stars * 5,
    )


def create_service_business(business_id: str = "biz_service", name: str = "Corner Cafe") -> Business:
    staff = [(Role.MANAGER, 3), (Role.SALESPERSON, 2), (Role.WORKER, 2), (Role.WORKER, 2)]
    return Business(
        id=business_id,
        name=name,
        business_type="service",
        state=BusinessState.ACTIVE,
        price=5,
        employees=[_hire(business_id, i, role, stars) for i, (role, stars) in enumerate(staff)],
        max_employees=6,
        min_employees=1,
        player_roles=PlayerRoles(managerial=[Role.MARKETER]),
        player_effort=60.0,
        player_salary=3000.0,
        tax_rate=15.0,
        quarterly_expenses=2000.0,
    )


def create_product_business(business_id: str = "biz_product", name: str = "Bike Workshop") -> Business:
    staff = [(Role.MANAGER, 3), (Role.TECHNICIAN, 3), (Role.WORKER, 2), (Role.WORKER, 3), (Role.WORKER, 1)]
    return Business(
        id=business_id,
        name=name,
        business_type="product",
        state=BusinessState.ACTIVE,
        price=6,
        quantity=300,
        inventory=Inventory(current_stock=100, max_stock=1000, price_per_unit=100, purchase_cost=50),
        employees=[_hire(business_id, i, role, stars) for i, (role, stars) in enumerate(staff)],
        max_employees=8,
        min_employees=2,
        player_effort=40.0,
        tax_rate=15.0,
        quarterly_expenses=3000.0,
        partners=[
            Partner(id="player", name="You", share=60, invested_amount=60000, is_player=True),
            Partner(id="partner_1", name="Investor", share=40, invested_amount=40000),
        ],
    )


def create_player(country_id: str, businesses: List[Business]) -> PlayerState:
    return PlayerState(
        id="player",
        name="Player",
        country_id=country_id,
        age=28,
        money=50000.0,
        skills={
            "Marketing": Skill(name="Marketing", level=2, progress=40.0, last_practiced_turn=1),
            "Management": Skill(name="Management", level=1, last_practiced_turn=1),
            "Sales": Skill(name="Sales", level=1, last_practiced_turn=1),
        },
        jobs=[Job(id="job_1", title="Office clerk", company="City Office", salary=9000.0,
                  start_turn=1, skill="Sales", stat_costs={"energy": -10, "sanity": -2})],
        businesses=businesses,
    )


def create_sample_game(rng: Optional[random.Random] = None, config: Optional[SimulationConfig] = None,
                       with_businesses: bool = True) -> GameState:
    """A one-country game in its first quarter, optionally with two businesses."""
    config = config or CONFIG
    rng = rng or random.Random(config.seed)
    country = create_country(rng, config)
    businesses = [create_service_business(), create_product_business()] if with_businesses else []
    return GameState(
        turn=1,
        year=config.time.start_year,
        player=create_player(country.id, businesses),
        countries={country.id: country},
    )
