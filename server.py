"""
Minimal Flask API that hosts Wanderer sessions.

Endpoints:
- POST /api/games                 -> log in (or reuse a token), start a session, return its summary
- GET  /api/games/<id>            -> session summary
- POST /api/games/<id>/command    -> run one command (n, s, e, w, info) and return the result
- POST /api/games/<id>/save       -> save the visited cities as a content item

Sessions live in memory only; inactive ones are dropped after an hour.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Dict

from flask import Flask, jsonify, request

from wanderer.arcgis import ArcGISClient
from wanderer.config import SETTINGS
from wanderer.errors import BackendQueryError, BackendUnavailable, WandererError
from wanderer.narration import describe_result, welcome_line
from wanderer.sampler import DIFFICULTY_LABELS, city_count_for_difficulty
from wanderer.session import GameSession, SessionConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
logging.basicConfig(level=getattr(logging, SETTINGS.log_level, logging.INFO), format=LOG_FORMAT)

app = Flask(__name__)
games_lock = threading.Lock()

GAMES: Dict[str, dict] = {}
GAME_TTL_S = 3600  # drop inactive sessions after an hour to avoid leaks


def _make_client(data: dict) -> ArcGISClient:
    client = ArcGISClient(token=data.get("token"), referrer=data.get("referrer"))
    if data.get("password"):
        client.login(data.get("username") or "", data["password"])
    else:
        client.username = data.get("username")
    return client


def _level(difficulty) -> int:
    try:
        return int(difficulty)
    except (TypeError, ValueError):
        return 0


def _cleanup_stale_games(max_age_s: int = GAME_TTL_S):
    now = time.time()
    with games_lock:
        expired = [gid for gid, g in GAMES.items() if now - g.get("updated_at", now) > max_age_s]
        for gid in expired:
            GAMES.pop(gid, None)


def _get_game(game_id: str) -> dict | None:
    _cleanup_stale_games()
    with games_lock:
        return GAMES.get(game_id)


def _error_response(e: WandererError):
    status = 502 if isinstance(e, (BackendUnavailable, BackendQueryError)) else 500
    return jsonify({"error": type(e).__name__, "message": str(e)}), status


@app.route("/api/games", methods=["POST"])
def create_game():
    _cleanup_stale_games()
    data = request.get_json(force=True, silent=True) or {}
    if not data.get("token") and not data.get("password"):
        return jsonify({"error": "token or username/password is required"}), 400
    difficulty = data.get("difficulty", 0)
    cfg = SessionConfig(
        city_count=city_count_for_difficulty(difficulty),
        end_on_arrival=bool(data.get("end_on_arrival", SETTINGS.end_on_arrival)),
    )
    try:
        client = _make_client(data)
        session = GameSession.from_client(client, cfg=cfg).start()
    except WandererError as e:
        logging.exception("Failed to start game")
        return _error_response(e)

    game_id = f"game_{int(time.time())}_{uuid.uuid4().hex[:6]}"
    with games_lock:
        GAMES[game_id] = {
            "id": game_id,
            "client": client,
            "session": session,
            "difficulty": DIFFICULTY_LABELS.get(_level(difficulty), "easy"),
            "created_at": time.time(),
            "updated_at": time.time(),
            "lock": threading.Lock(),
        }
    body = {"game_id": game_id, "message": welcome_line(session.current.name)}
    body.update(session.summary())
    return jsonify(body)


@app.route("/api/games/<game_id>", methods=["GET"])
def game_summary(game_id: str):
    game = _get_game(game_id)
    if not game:
        return jsonify({"error": "not found"}), 404
    body = {"game_id": game_id, "difficulty": game["difficulty"]}
    body.update(game["session"].summary())
    return jsonify(body)


@app.route("/api/games/<game_id>/command", methods=["POST"])
def game_command(game_id: str):
    game = _get_game(game_id)
    if not game:
        return jsonify({"error": "not found"}), 404
    data = request.get_json(force=True, silent=True) or {}
    command = data.get("command")
    if not isinstance(command, str):
        return jsonify({"error": "command is required"}), 400
    # One command at a time per session; a move blocks until its job is terminal.
    with game["lock"]:
        result = game["session"].handle(command)
        game["updated_at"] = time.time()
    body = result.to_dict()
    body["message"] = describe_result(result)
    return jsonify(body)


@app.route("/api/games/<game_id>/save", methods=["POST"])
def save_game(game_id: str):
    game = _get_game(game_id)
    if not game:
        return jsonify({"error": "not found"}), 404
    data = request.get_json(force=True, silent=True) or {}
    with game["lock"]:
        visited = game["session"].visited_ids()
        try:
            item_id = game["client"].add_game_item(visited, title=data.get("title") or f"Wanderer Game {game_id}")
        except (WandererError, ValueError) as e:
            logging.exception("Failed to save game %s", game_id)
            if isinstance(e, ValueError):
                return jsonify({"error": str(e)}), 400
            return _error_response(e)
    return jsonify({"item_id": item_id, "cities_visited": visited})


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return response


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
