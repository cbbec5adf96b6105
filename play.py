"""
Console host: log in, pick a difficulty, and wander until you type quit.

Usage: python play.py --username you [--difficulty 0-3] [--config cfg.json] [--save]
"""
import argparse
import getpass
import json
import logging
import sys

from wanderer.arcgis import ArcGISClient
from wanderer.config import SETTINGS
from wanderer.errors import WandererError
from wanderer.narration import describe_result, welcome_line
from wanderer.sampler import city_count_for_difficulty
from wanderer.session import GameSession, SessionConfig

QUIT_COMMANDS = ("q", "quit", "exit")


def load_json_config(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logging.getLogger("play").error("Failed to read config %s: %s", path, e)
        return {}


def read_line(prompt: str) -> str:
    print(prompt)
    try:
        return input().strip()
    except EOFError:
        return "quit"


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=None, help="Optional JSON config file to load defaults from.")
    ap.add_argument("--username", default=None, help="ArcGIS Online username (prompted if missing)")
    ap.add_argument("--difficulty", type=int, default=None, help="0 = easy, 1 = medium, 2 = hard, 3 = legendary")
    ap.add_argument("--end-on-arrival", action="store_true", help="Stop the game when the target city is reached")
    ap.add_argument("--poll-interval", type=float, default=None, help="Seconds between job status checks")
    ap.add_argument("--save", action="store_true", help="Save visited cities as a content item when the game ends")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")

    args = ap.parse_args()
    cfg_dict = load_json_config(args.config) if args.config else {}

    # Resolve values with precedence: CLI arg if provided -> config -> default
    def pick(*keys, default=None):
        for k in keys:
            v = getattr(args, k, None)
            if v is not None:
                return v
            if k in cfg_dict and cfg_dict[k] is not None:
                return cfg_dict[k]
        return default

    log_level = str(pick("log_level", default=SETTINGS.log_level)).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play")

    print("Wanderer")
    username = pick("username") or read_line("ArcGIS Online username:")
    password = getpass.getpass("Password: ")

    client = ArcGISClient()
    try:
        client.login(username, password)
    except WandererError as e:
        print(f"Could not log in: {e}")
        sys.exit(1)

    difficulty = pick("difficulty")
    if difficulty is None:
        difficulty = read_line("Level of difficulty (0 = easy, 1 = medium, 2 = hard, 3 = legendary):") or 0
    city_count = city_count_for_difficulty(difficulty)
    scfg = SessionConfig(
        city_count=city_count,
        end_on_arrival=args.end_on_arrival or bool(cfg_dict.get("end_on_arrival", SETTINGS.end_on_arrival)),
        poll_interval_s=pick("poll_interval"),
    )
    log.info("Starting game: difficulty=%s cities=%s", difficulty, city_count or "all")

    session = GameSession.from_client(client, cfg=scfg)
    try:
        session.start()
    except WandererError as e:
        print(f"No cities?! {e}")
        sys.exit(1)

    print("Hey, Wanderer! Let's see if you can make it to the secret destination.")
    print(welcome_line(session.current.name))
    while True:
        print(f"You are now {session.distance_km:.0f}km from your destination.")
        cmd = read_line("What's next, Wanderer? (n, s, e, w, info, quit)").lower()
        if cmd in QUIT_COMMANDS:
            break
        if cmd in ("n", "s", "e", "w"):
            print(f"You decide to travel {cmd}.")
        result = session.handle(cmd)
        print(describe_result(result))
        if result.kind == "finished" or (result.arrived and scfg.end_on_arrival):
            break

    summary = session.summary()
    print(f"You visited {len(summary['visited'])} cities in {summary['moves']} moves.")
    if args.save or bool(cfg_dict.get("save", False)):
        try:
            item_id = client.add_game_item(session.visited_ids(), title=f"Wanderer Game {username}")
            print(f"Saved game item {item_id}")
        except WandererError as e:
            print(f"Failed to save game item: {e}")
