"""
Domain records for the quarterly simulation.

Businesses, employees, country economies and the player are plain
dataclasses. Formulas live in their own modules and receive these records
as arguments; the orchestrator owns the only mutable copy during a turn.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Role(str, Enum):
    """Every position a business can staff."""
    MANAGER = "manager"
    SALESPERSON = "salesperson"
    ACCOUNTANT = "accountant"
    MARKETER = "marketer"
    TECHNICIAN = "technician"
    WORKER = "worker"
    LAWYER = "lawyer"
    HR = "hr"


class BusinessState(str, Enum):
    OPENING = "opening"
    ACTIVE = "active"
    FROZEN = "frozen"


class CyclePhase(str, Enum):
    GROWTH = "growth"
    PEAK = "peak"
    RECESSION = "recession"
    RECOVERY = "recovery"


def format_game_date(year: int, turn: int) -> str:
    """Human readable quarter label, e.g. '2025 Q2'."""
    quarter = turn % 4 or 4
    return f"{year} Q{quarter}"


@dataclass(slots=True)
class Notification:
    id: str
    type: str  # info | success | warning | error
    title: str
    message: str
    date: str
    is_read: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "date": self.date,
            "isRead": self.is_read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Notification":
        return cls(
            id=data["id"],
            type=data["type"],
            title=data["title"],
            message=data["message"],
            date=data["date"],
            is_read=data.get("isRead", data.get("is_read", False)),
        )


# ---------------------------------------------------------------------------
# Business
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Employee:
    id: str
    name: str
    role: Role
    stars: int = 1  # 1-5
    skills: Dict[str, float] = field(default_factory=lambda: {"efficiency": 50.0})
    salary: float = 0.0  # Quarterly baseline at hiring
    productivity: float = 50.0  # 0-100
    experience: float = 0.0  # Accumulated effort-quarters
    effort_percent: float = 100.0  # 10-100

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Employee":
        values = dict(data)
        values["role"] = Role(values["role"])
        values["skills"] = dict(values.get("skills", {"efficiency": 50.0}))
        return cls(**values)


@dataclass(slots=True)
class Inventory:
    current_stock: float = 0.0
    max_stock: float = 1000.0
    price_per_unit: float = 100.0
    purchase_cost: float = 50.0
    auto_purchase_amount: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Inventory":
        return cls(**data)


@dataclass(slots=True)
class Partner:
    id: str
    name: str
    share: float  # percent, shares of a business sum to 100
    invested_amount: float = 0.0
    is_player: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Partner":
        return cls(**data)


@dataclass(slots=True)
class BusinessEvent:
    id: str
    title: str
    description: str
    type: str  # positive | negative
    turn: int
    effects: Dict[str, float] = field(default_factory=dict)  # efficiency, reputation, money

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "BusinessEvent":
        values = dict(data)
        values["effects"] = dict(values.get("effects", {}))
        return cls(**values)


@dataclass(slots=True)
class QuarterSummary:
    sold: int = 0
    price_used: float = 0.0
    sales_income: float = 0.0
    taxes: float = 0.0
    expenses: float = 0.0
    net_profit: float = 0.0
    profit_distribution: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "QuarterSummary":
        values = dict(data)
        values["profit_distribution"] = dict(values.get("profit_distribution", {}))
        return cls(**values)


@dataclass(slots=True)
class PlayerRoles:
    """Managerial roles stack; at most one operational role."""
    managerial: List[Role] = field(default_factory=list)
    operational: Optional[Role] = None

    def all_roles(self) -> List[Role]:
        roles = list(self.managerial)
        if self.operational is not None:
            roles.append(self.operational)
        return roles

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PlayerRoles":
        operational = data.get("operational")
        return cls(
            managerial=[Role(r) for r in data.get("managerial", [])],
            operational=Role(operational) if operational else None,
        )


@dataclass(slots=True)
class Business:
    id: str
    name: str
    business_type: str = "service"  # service | product
    state: BusinessState = BusinessState.ACTIVE
    price: int = 5  # Price level 1-10
    quantity: float = 0.0  # Planned production per quarter
    inventory: Optional[Inventory] = None
    employees: List[Employee] = field(default_factory=list)
    max_employees: int = 5
    min_employees: int = 0  # Minimum worker headcount
    required_roles: List[Role] = field(default_factory=list)
    player_roles: PlayerRoles = field(default_factory=PlayerRoles)
    player_effort: float = 100.0  # Player's effort percent across managerial roles
    player_salary: float = 0.0  # Quarterly salary the player draws from the business
    player_tenure: int = 0
    reputation: float = 50.0
    efficiency: float = 50.0
    tax_rate: float = 15.0
    has_insurance: bool = False
    insurance_cost: float = 0.0
    quarterly_expenses: float = 0.0  # Fixed upkeep while frozen
    opening_progress: int = 0  # Quarters left while opening
    partners: List[Partner] = field(default_factory=list)
    events_history: List[BusinessEvent] = field(default_factory=list)
    last_quarter_summary: Optional[QuarterSummary] = None

    @property
    def is_product(self) -> bool:
        return self.business_type == "product"

    def player_share(self) -> float:
        """Player's ownership percentage; sole owner when there are no partners."""
        if not self.partners:
            return 100.0
        return sum(p.share for p in self.partners if p.is_player)

    def to_dict(self) -> Dict[str, object]:
        """Serialize all fields to basic Python types."""
        return asdict(self)

    def apply_overrides(self, overrides: Dict[str, object]) -> None:
        """
        Apply external overrides to business state.

        Args:
            overrides: Dictionary of attribute names to new values
        """
        for key, value in overrides.items():
            if hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Business":
        values = dict(data)
        values["state"] = BusinessState(values.get("state", "active"))
        if values.get("inventory") is not None:
            values["inventory"] = Inventory.from_dict(values["inventory"])
        values["employees"] = [Employee.from_dict(e) for e in values.get("employees", [])]
        values["required_roles"] = [Role(r) for r in values.get("required_roles", [])]
        values["player_roles"] = PlayerRoles.from_dict(values.get("player_roles") or {})
        values["partners"] = [Partner.from_dict(p) for p in values.get("partners", [])]
        values["events_history"] = [BusinessEvent.from_dict(e) for e in values.get("events_history", [])]
        if values.get("last_quarter_summary") is not None:
            values["last_quarter_summary"] = QuarterSummary.from_dict(values["last_quarter_summary"])
        return cls(**values)


# ---------------------------------------------------------------------------
# Macro economy
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class EconomicCycle:
    phase: CyclePhase = CyclePhase.GROWTH
    duration_left: int = 8
    intensity: float = 0.5  # 0-1
    current_modifier: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "EconomicCycle":
        values = dict(data)
        values["phase"] = CyclePhase(values.get("phase", "growth"))
        return cls(**values)


@dataclass(slots=True)
class EconomicEvent:
    id: str
    type: str  # crisis | boom | inflation_spike | ...
    title: str
    description: str = ""
    inflation_change: float = 0.0
    unemployment_change: float = 0.0
    gdp_growth_change: float = 0.0
    salary_modifier_change: float = 1.0
    duration: int = 1
    start_turn: int = 0

    def is_expired(self, turn: int) -> bool:
        return self.start_turn + self.duration <= turn

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "EconomicEvent":
        return cls(**data)


@dataclass(slots=True)
class CountryEconomy:
    id: str
    name: str
    inflation: float = 2.5
    key_rate: float = 4.0
    unemployment: float = 5.0
    gdp_growth: float = 2.0
    tax_rate: float = 13.0  # Personal income tax
    corporate_tax_rate: float = 20.0
    salary_modifier: float = 1.0
    cost_of_living_modifier: float = 1.0
    inflation_history: List[float] = field(default_factory=list)  # Newest first
    active_events: List[EconomicEvent] = field(default_factory=list)
    cycle: Optional[EconomicCycle] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "CountryEconomy":
        values = dict(data)
        values["inflation_history"] = list(values.get("inflation_history", []))
        values["active_events"] = [EconomicEvent.from_dict(e) for e in values.get("active_events", [])]
        if values.get("cycle") is not None:
            values["cycle"] = EconomicCycle.from_dict(values["cycle"])
        return cls(**values)


@dataclass(slots=True)
class MarketEvent:
    id: str
    title: str
    description: str
    impact: float
    duration: int
    type: str  # positive | negative | neutral
    start_turn: int
    end_turn: int

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "MarketEvent":
        return cls(**data)


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class PlayerStats:
    happiness: float = 70.0
    health: float = 80.0
    sanity: float = 70.0
    intelligence: float = 60.0
    energy: float = 80.0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PlayerStats":
        return cls(**data)


STAT_NAMES = ("happiness", "health", "sanity", "intelligence", "energy")


@dataclass(slots=True)
class Skill:
    name: str
    level: int = 0  # 0-5
    progress: float = 0.0  # 0-100 towards next level
    last_practiced_turn: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Skill":
        return cls(**data)


@dataclass(slots=True)
class Job:
    id: str
    title: str
    company: str
    salary: float  # Quarterly salary at hiring
    start_turn: int = 0
    skill: Optional[str] = None  # Skill practiced on the job
    stat_costs: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Job":
        values = dict(data)
        values["stat_costs"] = dict(values.get("stat_costs", {}))
        return cls(**values)


@dataclass(slots=True)
class JobApplication:
    id: str
    job: Job
    required_skills: Dict[str, int] = field(default_factory=dict)  # skill -> min level
    quarters_waited: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "JobApplication":
        values = dict(data)
        values["job"] = Job.from_dict(values["job"])
        values["required_skills"] = dict(values.get("required_skills", {}))
        return cls(**values)


@dataclass(slots=True)
class Course:
    id: str
    name: str
    skill: str
    levels: int = 1
    quarters_left: int = 1
    is_university: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Course":
        return cls(**data)


@dataclass(slots=True)
class Buff:
    id: str
    title: str
    duration: int
    effects: Dict[str, float] = field(default_factory=dict)  # stat deltas; "money" is an income %

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Buff":
        values = dict(data)
        values["effects"] = dict(values.get("effects", {}))
        return cls(**values)


@dataclass(slots=True)
class FamilyMember:
    id: str
    name: str
    relation: str  # partner | child
    age: int = 0
    occupation: str = ""
    income: float = 0.0  # Quarterly

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "FamilyMember":
        return cls(**data)


@dataclass(slots=True)
class PersonalLife:
    family_members: List[FamilyMember] = field(default_factory=list)
    is_dating: bool = False
    potential_partner: Optional[FamilyMember] = None
    pregnancy_quarters_left: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PersonalLife":
        partner = data.get("potential_partner")
        return cls(
            family_members=[FamilyMember.from_dict(m) for m in data.get("family_members", [])],
            is_dating=data.get("is_dating", False),
            potential_partner=FamilyMember.from_dict(partner) if partner else None,
            pregnancy_quarters_left=data.get("pregnancy_quarters_left"),
        )


@dataclass(slots=True)
class PlayerState:
    id: str
    name: str
    country_id: str
    age: int = 25
    money: float = 0.0
    stats: PlayerStats = field(default_factory=PlayerStats)
    skills: Dict[str, Skill] = field(default_factory=dict)
    jobs: List[Job] = field(default_factory=list)
    applications: List[JobApplication] = field(default_factory=list)
    courses: List[Course] = field(default_factory=list)
    buffs: List[Buff] = field(default_factory=list)
    businesses: List[Business] = field(default_factory=list)
    personal: PersonalLife = field(default_factory=PersonalLife)

    def skill_level(self, name: Optional[str]) -> int:
        if not name:
            return 0
        skill = self.skills.get(name)
        return skill.level if skill else 0

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PlayerState":
        values = dict(data)
        values["stats"] = PlayerStats.from_dict(values.get("stats", {}))
        values["skills"] = {k: Skill.from_dict(v) for k, v in values.get("skills", {}).items()}
        values["jobs"] = [Job.from_dict(j) for j in values.get("jobs", [])]
        values["applications"] = [JobApplication.from_dict(a) for a in values.get("applications", [])]
        values["courses"] = [Course.from_dict(c) for c in values.get("courses", [])]
        values["buffs"] = [Buff.from_dict(b) for b in values.get("buffs", [])]
        values["businesses"] = [Business.from_dict(b) for b in values.get("businesses", [])]
        values["personal"] = PersonalLife.from_dict(values.get("personal", {}))
        return cls(**values)


@dataclass(slots=True)
class GameState:
    """Committed state between turns."""
    turn: int
    year: int
    player: PlayerState
    countries: Dict[str, CountryEconomy] = field(default_factory=dict)
    global_market_value: float = 1.0
    market_events: List[MarketEvent] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    is_game_over: bool = False
    end_reason: Optional[str] = None
    last_report: Optional[Dict[str, object]] = None

    def country(self) -> Optional[CountryEconomy]:
        return self.countries.get(self.player.country_id)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["notifications"] = [n.to_dict() for n in self.notifications]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "GameState":
        values = dict(data)
        values["player"] = PlayerState.from_dict(values["player"])
        values["countries"] = {k: CountryEconomy.from_dict(v) for k, v in values.get("countries", {}).items()}
        values["market_events"] = [MarketEvent.from_dict(e) for e in values.get("market_events", [])]
        values["notifications"] = [Notification.from_dict(n) for n in values.get("notifications", [])]
        return cls(**values)
