import logging
import os
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, conint, confloat, field_validator

from config import CONFIG
from models import GameState, Partner
from orchestrator import preview_business, process_turn
from randomness import make_rng
from sample_game import create_sample_game
from turn_ledger import init_db, log_turn

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="EcoSim Quarterly Core", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Request Models ----------

class GameSetup(BaseModel):
    seed: Optional[int] = None
    player_name: str = Field(default="Player", min_length=1)
    starting_money: confloat(ge=0) = 50000.0
    with_businesses: bool = True
    # Ownership split of the product business, player first; must sum to 100
    partner_shares: Optional[List[confloat(gt=0, le=100)]] = None

    @field_validator("partner_shares")
    @classmethod
    def shares_sum_to_100(cls, value):
        if value is not None and abs(sum(value) - 100) > 1e-6:
            raise ValueError("partner shares must sum to 100")
        return value


class TurnRequest(BaseModel):
    quarters: conint(ge=1, le=40) = 1


class PreviewRequest(BaseModel):
    business_id: str
    price: Optional[conint(ge=1, le=10)] = None
    quantity: Optional[confloat(ge=0)] = None
    player_effort: Optional[confloat(ge=10, le=100)] = None


# ---------- Simulation Manager ----------

@dataclass
class GameSession:
    state: GameState
    rng: random.Random
    reports: List[Dict[str, Any]] = field(default_factory=list)


class SimulationManager:
    def __init__(self, ledger_path: Optional[str] = None):
        self.games: Dict[str, GameSession] = {}
        self.ledger_path = ledger_path
        if ledger_path:
            init_db(ledger_path)

    def create_game(self, setup: GameSetup) -> str:
        seed = setup.seed if setup.seed is not None else CONFIG.seed
        rng = make_rng(seed)
        state = create_sample_game(rng, CONFIG, with_businesses=setup.with_businesses)
        state.player.name = setup.player_name
        state.player.money = setup.starting_money
        if setup.partner_shares and setup.with_businesses:
            self._apply_shares(state, setup.partner_shares)

        game_id = uuid.uuid4().hex[:12]
        self.games[game_id] = GameSession(state=state, rng=rng)
        logger.info(f"Created game {game_id} (seed={seed})")
        return game_id

    @staticmethod
    def _apply_shares(state: GameState, shares: List[float]):
        business = next(b for b in state.player.businesses if b.partners)
        partners = business.partners[:1]
        partners[0].share = shares[0]
        for index, share in enumerate(shares[1:], start=1):
            partners.append(Partner(id=f"partner_{index}", name=f"Investor {index}", share=share))
        business.partners = partners

    def get(self, game_id: str) -> GameSession:
        session = self.games.get(game_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
        return session

    def advance(self, game_id: str, quarters: int = 1) -> List[Dict[str, Any]]:
        session = self.get(game_id)
        reports = []
        for _ in range(quarters):
            if session.state.is_game_over:
                break
            result = process_turn(session.state, session.rng, CONFIG)
            session.state = result.state
            session.reports.append(result.report)
            reports.append(result.report)
            if self.ledger_path:
                log_turn(game_id, result.state, result.report, self.ledger_path)
        return reports


manager = SimulationManager(os.getenv("SIM_LEDGER_PATH"))


# ---------- API Endpoints ----------

@app.post("/games", status_code=201)
def create_game(setup: GameSetup):
    game_id = manager.create_game(setup)
    return {"game_id": game_id, "state": manager.get(game_id).state.to_dict()}


@app.get("/games/{game_id}")
def get_game(game_id: str):
    return manager.get(game_id).state.to_dict()


@app.post("/games/{game_id}/turn")
def play_turn(game_id: str, req: Optional[TurnRequest] = None):
    req = req or TurnRequest()
    reports = manager.advance(game_id, req.quarters)
    state = manager.get(game_id).state
    return {
        "turn": state.turn,
        "year": state.year,
        "money": state.player.money,
        "is_game_over": state.is_game_over,
        "end_reason": state.end_reason,
        "reports": reports,
    }


@app.post("/games/{game_id}/preview")
def preview(game_id: str, req: PreviewRequest):
    state = manager.get(game_id).state
    overrides = {k: v for k, v in req.model_dump().items() if k != "business_id" and v is not None}
    financials = preview_business(state, req.business_id, overrides, CONFIG)
    if financials is None:
        raise HTTPException(status_code=404, detail=f"Business {req.business_id} not found")
    return financials.to_dict()


@app.get("/games/{game_id}/notifications")
def notifications(game_id: str, unread_only: bool = False):
    state = manager.get(game_id).state
    items = [n for n in state.notifications if not (unread_only and n.is_read)]
    return [n.to_dict() for n in items]
