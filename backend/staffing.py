"""Minimum staffing checks: required roles and worker headcount."""

from dataclasses import asdict, dataclass, field
from typing import Dict, List

from models import Business, Role

# Businesses above this size also need an accountant
ACCOUNTANT_THRESHOLD = 15


@dataclass(slots=True)
class StaffingStatus:
    is_valid: bool
    missing_roles: List[Role] = field(default_factory=list)
    total_employees: int = 0
    worker_count: int = 0
    required_workers: int = 0

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def required_roles(business: Business) -> List[Role]:
    roles = [Role.MANAGER]
    if business.max_employees > ACCOUNTANT_THRESHOLD:
        roles.append(Role.ACCOUNTANT)
    for role in business.required_roles:
        if role not in roles:
            roles.append(role)
    return roles


def count_workers(business: Business) -> int:
    workers = sum(1 for e in business.employees if e.role == Role.WORKER)
    if business.player_roles.operational == Role.WORKER:
        workers += 1
    return workers


def check_minimum_staffing(business: Business) -> StaffingStatus:
    """
    A role counts as filled when any employee holds it or the player does.
    The business is staffed when no role is missing and there are at least
    ``min_employees`` workers.
    """
    filled = {e.role for e in business.employees}
    filled.update(business.player_roles.all_roles())

    missing = [role for role in required_roles(business) if role not in filled]
    workers = count_workers(business)
    return StaffingStatus(
        is_valid=not missing and workers >= business.min_employees,
        missing_roles=missing,
        total_employees=len(business.employees),
        worker_count=workers,
        required_workers=business.min_employees,
    )
