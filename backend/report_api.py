"""
Read-only report endpoints over the turn ledger.

    GET /api/latest_turn[?game_id=...]     newest committed quarter
    GET /api/games/<game_id>/turns[?limit] quarter history of one game, oldest first
"""

import logging
import sqlite3

from flask import Flask, jsonify, request

from turn_ledger import DEFAULT_LEDGER

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["LEDGER_PATH"] = DEFAULT_LEDGER

MAX_HISTORY = 400


def _query(sql, params=()):
    conn = sqlite3.connect(app.config["LEDGER_PATH"])
    conn.row_factory = sqlite3.Row
    try:
        return [dict(row) for row in conn.execute(sql, params).fetchall()]
    finally:
        conn.close()


@app.route("/api/latest_turn")
def latest_turn():
    game_id = request.args.get("game_id")
    sql = "SELECT * FROM turns"
    params = ()
    if game_id:
        sql += " WHERE game_id = ?"
        params = (game_id,)
    sql += " ORDER BY created_at DESC, turn DESC LIMIT 1"

    try:
        rows = _query(sql, params)
    except sqlite3.Error as e:
        logger.error("Ledger query failed: %s", e)
        return jsonify({"error": "Database error occurred"}), 500

    if not rows:
        return jsonify({"error": "No committed turns in the ledger"}), 404
    return jsonify(rows[0])


@app.route("/api/games/<game_id>/turns")
def game_turns(game_id):
    limit = request.args.get("limit", default=MAX_HISTORY, type=int)
    if limit < 1:
        return jsonify({"error": "limit must be a positive integer"}), 400
    limit = min(limit, MAX_HISTORY)

    try:
        # Newest rows first for the LIMIT, returned in turn order
        rows = _query(
            "SELECT * FROM (SELECT * FROM turns WHERE game_id = ? ORDER BY turn DESC LIMIT ?) ORDER BY turn",
            (game_id, limit),
        )
    except sqlite3.Error as e:
        logger.error("Ledger query failed: %s", e)
        return jsonify({"error": "Database error occurred"}), 500

    if not rows:
        return jsonify({"error": f"No turns recorded for game {game_id}"}), 404
    return jsonify({"game_id": game_id, "turns": rows})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Serving the turn ledger %s at http://127.0.0.1:5000/api/latest_turn", app.config["LEDGER_PATH"])
    app.run(debug=True, port=5000)
