"""
Unit tests for roles, staffing and the role catalog

Tests cover:
- Exhaustive role table
- Minimum staffing rules
- Player and staff impact aggregation
- Role catalog validation and salary suggestions
"""

import pytest

from conftest import make_employee, make_service_business
from models import BusinessState, PlayerRoles, PlayerState, Role, Skill
from roles import (
    ROLE_CONFIGS,
    calculate_total_business_impact,
    effort_factor,
    get_player_skill_growth,
    get_player_stat_effects,
    get_role_catalog,
    parse_role_catalog,
    suggest_salary,
)
from staffing import check_minimum_staffing


def _player(**skills) -> PlayerState:
    return PlayerState(id="p", name="P", country_id="c",
                       skills={name: Skill(name=name, level=level) for name, level in skills.items()})


class TestRoleTable:
    """Every role has a capability record"""

    def test_table_covers_every_role(self):
        assert set(ROLE_CONFIGS) == set(Role)

    def test_effort_factor_bounds(self):
        assert effort_factor(5) == 0.1
        assert effort_factor(250) == 1.0
        assert effort_factor(float("nan")) == 1.0
        assert effort_factor(50) == 0.5


class TestMinimumStaffing:
    """Required roles and worker headcount"""

    def test_manager_always_required(self):
        business = make_service_business(employees=[make_employee(Role.WORKER)])
        status = check_minimum_staffing(business)
        assert not status.is_valid
        assert status.missing_roles == [Role.MANAGER]

    def test_player_can_fill_manager(self):
        business = make_service_business(employees=[make_employee(Role.WORKER)],
                                         player_roles=PlayerRoles(managerial=[Role.MANAGER]))
        assert check_minimum_staffing(business).is_valid

    def test_large_business_needs_accountant(self):
        business = make_service_business(max_employees=20)
        status = check_minimum_staffing(business)
        assert Role.ACCOUNTANT in status.missing_roles

    def test_player_worker_counts_toward_headcount(self):
        business = make_service_business(employees=[make_employee(Role.MANAGER)], min_employees=1)
        assert not check_minimum_staffing(business).is_valid

        business.player_roles = PlayerRoles(operational=Role.WORKER)
        status = check_minimum_staffing(business)
        assert status.is_valid
        assert status.worker_count == 1
        assert status.total_employees == 1

    def test_custom_required_roles(self):
        business = make_service_business(required_roles=[Role.LAWYER])
        assert check_minimum_staffing(business).missing_roles == [Role.LAWYER]


class TestImpact:
    """Aggregated business impact"""

    def test_active_business_gets_base_values(self):
        business = make_service_business(employees=[])
        impact = calculate_total_business_impact(business)
        assert impact.efficiency == 20.0
        assert impact.reputation == 10.0

    def test_inactive_business_has_no_base(self):
        business = make_service_business(employees=[], state=BusinessState.FROZEN)
        impact = calculate_total_business_impact(business)
        assert impact.efficiency == 0.0

    def test_managerial_player_scales_with_effort(self):
        business = make_service_business(employees=[], player_roles=PlayerRoles(managerial=[Role.ACCOUNTANT]),
                                         player_effort=50)
        # Accounting level 4 -> 8% tax reduction, halved by effort
        impact = calculate_total_business_impact(business, _player(Accounting=4))
        assert impact.tax_reduction == 4.0

    def test_reductions_are_capped(self):
        lawyers = [make_employee(Role.LAWYER, i, stars=5) for i in range(10)]
        business = make_service_business(employees=lawyers)
        impact = calculate_total_business_impact(business)
        assert impact.tax_reduction == 80.0
        assert impact.expense_reduction == 50.0

    def test_player_stat_costs(self):
        business = make_service_business(player_roles=PlayerRoles(managerial=[Role.MANAGER],
                                                                  operational=Role.WORKER),
                                         player_effort=50)
        effects = get_player_stat_effects(business)
        # Manager -10 energy at half effort, worker -18 in full
        assert effects["energy"] == -23.0
        assert effects["sanity"] == -2.5

    def test_skill_growth(self):
        business = make_service_business(player_roles=PlayerRoles(managerial=[Role.MARKETER],
                                                                  operational=Role.SALESPERSON),
                                         player_effort=50)
        assert get_player_skill_growth(business) == {"Marketing": 10, "Sales": 20}


class TestRoleCatalog:
    """Static role catalog"""

    def test_bundled_catalog_covers_every_role(self):
        catalog = get_role_catalog()
        assert set(catalog) == set(Role)

    def test_missing_role_is_rejected(self):
        raw = {"manager": {"title": "Manager", "salary_min": 1, "salary_max": 2}}
        with pytest.raises(ValueError, match="missing roles"):
            parse_role_catalog(raw)

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown role"):
            parse_role_catalog({"astronaut": {"title": "A", "salary_min": 1, "salary_max": 2}})

    def test_inverted_band_is_rejected(self):
        raw = {role.value: {"title": role.value, "salary_min": 100, "salary_max": 200} for role in Role}
        raw["worker"] = {"title": "Worker", "salary_min": 300, "salary_max": 200}
        with pytest.raises(ValueError, match="worker"):
            parse_role_catalog(raw)

    def test_suggest_salary_spans_band(self):
        # Worker band 4500-9000
        assert suggest_salary(Role.WORKER, 1) == 4500
        assert suggest_salary(Role.WORKER, 5) == 9000
        assert suggest_salary(Role.WORKER, 3) == 6750
