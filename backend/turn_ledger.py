# After every committed quarter the API and the CLI call log_turn() to record KPIs.

import os
import sqlite3
from typing import Dict, Optional

from models import GameState

DEFAULT_LEDGER = os.getenv("SIM_LEDGER_PATH", "ecosim_turns.db")


# init_db: sets up the database and table
def init_db(db_path: str = DEFAULT_LEDGER):
    conn = sqlite3.connect(db_path)
    c = conn.cursor()
    c.execute("""
        CREATE TABLE IF NOT EXISTS turns (
            game_id TEXT NOT NULL,
            turn INTEGER NOT NULL,
            year INTEGER NOT NULL,
            money REAL,
            net_profit REAL,
            inflation REAL,
            key_rate REAL,
            cycle_phase TEXT,
            market_value REAL,
            business_income REAL,
            business_expenses REAL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (game_id, turn)
        )
    """)
    conn.commit()
    conn.close()


def ledger_row(game_id: str, state: GameState, report: Optional[Dict[str, object]] = None) -> Dict[str, object]:
    report = report or state.last_report or {}
    country = state.country()
    businesses = report.get("businesses", [])
    return {
        "game_id": game_id,
        "turn": state.turn,
        "year": state.year,
        "money": state.player.money,
        "net_profit": report.get("net_profit", 0),
        "inflation": country.inflation if country else None,
        "key_rate": country.key_rate if country else None,
        "cycle_phase": country.cycle.phase.value if country and country.cycle else None,
        "market_value": state.global_market_value,
        "business_income": sum(b["income"] for b in businesses),
        "business_expenses": sum(b["expenses"] for b in businesses),
    }


def log_turn(game_id: str, state: GameState, report: Optional[Dict[str, object]] = None,
             db_path: str = DEFAULT_LEDGER):
    row = ledger_row(game_id, state, report)
    conn = sqlite3.connect(db_path)
    c = conn.cursor()
    c.execute("""
        INSERT OR REPLACE INTO turns (game_id, turn, year, money, net_profit, inflation, key_rate,
                                      cycle_phase, market_value, business_income, business_expenses)
        VALUES (:game_id, :turn, :year, :money, :net_profit, :inflation, :key_rate,
                :cycle_phase, :market_value, :business_income, :business_expenses)
    """, row)
    conn.commit()
    conn.close()
