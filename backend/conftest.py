import random

import pytest

from config import CONFIG
from models import Business, BusinessState, Employee, Inventory, Role
from randomness import FixedRandom
from sample_game import create_sample_game
from turn_ledger import init_db
from turn_state import TurnContext, init_turn_state


@pytest.fixture
def sample_state():
    return create_sample_game(random.Random(7), CONFIG)


@pytest.fixture
def turn(sample_state):
    """(context, working state) for driving a single step by hand."""
    ctx = TurnContext(previous=sample_state, rng=FixedRandom(0.5), config=CONFIG)
    return ctx, init_turn_state(sample_state)


@pytest.fixture
def ledger_path(tmp_path):
    path = str(tmp_path / "turns.db")
    init_db(path)
    return path


def make_employee(role: Role, index: int = 0, **overrides) -> Employee:
    values = dict(id=f"emp_{role.value}_{index}", name=f"{role.value} {index}", role=role,
                  stars=3, skills={"efficiency": 60.0}, salary=6000.0, productivity=70.0)
    values.update(overrides)
    return Employee(**values)


def make_product_business(price: int = 5, purchase_cost: float = 100.0, **overrides) -> Business:
    values = dict(
        id="prod",
        name="Workshop",
        business_type="product",
        state=BusinessState.ACTIVE,
        price=price,
        quantity=200,
        inventory=Inventory(current_stock=100, max_stock=1000, price_per_unit=100, purchase_cost=purchase_cost),
        employees=[make_employee(Role.MANAGER), make_employee(Role.WORKER, 1), make_employee(Role.WORKER, 2)],
        max_employees=5,
        min_employees=1,
        efficiency=70.0,
        reputation=60.0,
    )
    values.update(overrides)
    return Business(**values)


def make_service_business(**overrides) -> Business:
    values = dict(
        id="svc",
        name="Studio",
        business_type="service",
        state=BusinessState.ACTIVE,
        price=5,
        employees=[make_employee(Role.MANAGER), make_employee(Role.WORKER, 1)],
        max_employees=5,
        min_employees=1,
        efficiency=70.0,
        reputation=60.0,
    )
    values.update(overrides)
    return Business(**values)
