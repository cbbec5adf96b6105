"""
Single-session game engine and config.

- SessionConfig: knobs for city count (difficulty), arrival handling, and job/sampling tuning.
- GameSession: the turn loop between a player and the backend.
  - start(): threshold + random city pair + first distance; all or nothing.
  - handle(): one command at a time; n/s/e/w move via a FindNearest job, info reports bearing.
  - A failed move leaves the current city, distance and visited list untouched.

The engine never declares victory on its own; reaching the target is only reported
unless SessionConfig.end_on_arrival is set.
"""
from __future__ import annotations
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .config import SETTINGS
from .errors import BackendQueryError, BackendUnavailable, JobFailed
from .geodesy import bearing_degrees, classify_direction, distance_km
from .jobs import NearestJobRunner
from .models import City, CityPair, JobStatus
from .region import DIRECTIONS
from .sampler import CitySampler


class SessionState(str, Enum):
    AWAITING_SETUP = "awaiting_setup"
    READY = "ready"
    AWAITING_COMMAND = "awaiting_command"
    MOVING = "moving"
    ARRIVED = "arrived"


@dataclass
class SessionConfig:
    city_count: Optional[int] = 10  # None = every city with a population
    end_on_arrival: bool = field(default_factory=lambda: SETTINGS.end_on_arrival)
    poll_interval_s: float | None = None
    max_polls: int | None = None
    max_sampling_attempts: int | None = None


@dataclass
class CommandResult:
    kind: str  # moved | move_failed | info | unrecognized | finished
    command: str
    city: Optional[City] = None
    distance_km: Optional[float] = None
    bearing: Optional[float] = None
    direction_matched: Optional[bool] = None
    arrived: bool = False
    status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "command": self.command,
            "city": _city_dict(self.city),
            "distance_km": self.distance_km,
            "bearing": self.bearing,
            "direction_matched": self.direction_matched,
            "arrived": self.arrived,
            "status": self.status,
            "error": self.error,
        }


def _city_dict(city: Optional[City]) -> Optional[dict]:
    if city is None:
        return None
    return {
        "fid": city.fid,
        "name": city.name,
        "admin_name": city.admin_name,
        "country": city.country,
        "lat": city.lat,
        "lng": city.lng,
        "population": city.population,
    }


class GameSession:
    def __init__(self, features, analysis, geometry, cfg: SessionConfig | None = None,
                 sleep: Callable[[float], None] = time.sleep, rng: random.Random | None = None):
        self.log = logging.getLogger("GameSession")
        self.cfg = cfg or SessionConfig()
        self.geometry = geometry
        self.sampler = CitySampler(features, max_attempts=self.cfg.max_sampling_attempts, rng=rng)
        self.runner = NearestJobRunner(analysis, poll_interval_s=self.cfg.poll_interval_s,
                                       max_polls=self.cfg.max_polls, sleep=sleep)
        self.state = SessionState.AWAITING_SETUP
        self.threshold: int | None = None
        self.pair: CityPair | None = None
        self.current: City | None = None
        self.distance_km: float | None = None
        self._visited: List[int] = []
        self.records: list[dict] = []  # one dict per move attempt
        self.start_ts = time.time()

    @classmethod
    def from_client(cls, client, cfg: SessionConfig | None = None, **kwargs) -> "GameSession":
        """Session over a single client that serves features, analysis and geometry."""
        return cls(client, client, client, cfg=cfg, **kwargs)

    @property
    def target(self) -> City | None:
        return self.pair.target if self.pair else None

    # ---------------- Setup -----------------
    def start(self) -> "GameSession":
        """Resolve the threshold, draw the cities and measure the first distance.

        Any backend error propagates and leaves the session in AWAITING_SETUP.
        """
        if self.state != SessionState.AWAITING_SETUP:
            raise RuntimeError(f"Session already started (state={self.state.value})")
        threshold = self.sampler.resolve_threshold(self.cfg.city_count)
        pair = self.sampler.random_pair(threshold)
        distance = distance_km(self.geometry, pair.current, pair.target)

        self.threshold = threshold
        self.pair = pair
        self.current = pair.current
        self._visited = [pair.current.fid]
        self.state = SessionState.READY
        self.distance_km = distance
        self.state = SessionState.AWAITING_COMMAND
        self.log.info("Session ready: %s -> (hidden) threshold=%d distance=%.0fkm",
                      self.current.name, threshold, distance)
        return self

    # ---------------- Commands -----------------
    def handle(self, command: str) -> CommandResult:
        if self.state == SessionState.AWAITING_SETUP:
            raise RuntimeError("Session not started")
        cmd = (command or "").strip().lower()
        if self.state == SessionState.ARRIVED:
            return self._finished(cmd)
        if cmd in DIRECTIONS:
            return self.move(cmd)
        if cmd == "info":
            return self.info()
        self.log.debug("Unrecognized command %r", cmd)
        return CommandResult(kind="unrecognized", command=cmd)

    def _finished(self, cmd: str) -> CommandResult:
        return CommandResult(kind="finished", command=cmd, city=self.current,
                             distance_km=self.distance_km, arrived=True)

    def info(self) -> CommandResult:
        bearing = bearing_degrees(self.current, self.target)
        return CommandResult(kind="info", command="info", city=self.current,
                             distance_km=self.distance_km, bearing=bearing)

    def move(self, direction: str) -> CommandResult:
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction {direction!r}")
        if self.state == SessionState.AWAITING_SETUP:
            raise RuntimeError("Session not started")
        if self.state == SessionState.ARRIVED:
            return self._finished(direction)
        origin = self.current
        self.state = SessionState.MOVING
        t0 = time.time()
        try:
            outcome = self.runner.find_nearest(origin, direction, self.threshold)
            if not outcome.succeeded:
                raise JobFailed(outcome.status, outcome.job_id)
            city = outcome.city
            if city.fid == origin.fid or not city.qualifies(self.threshold):
                raise BackendQueryError(f"Job {outcome.job_id} returned ineligible city {city.fid}")
            distance = distance_km(self.geometry, city, self.target)
        except (BackendUnavailable, BackendQueryError, JobFailed) as e:
            self.state = SessionState.AWAITING_COMMAND
            status = e.status.value if isinstance(e, JobFailed) else None
            self.records.append({"direction": direction, "ok": False, "from": origin.fid, "to": None,
                                 "error": str(e), "ms": int((time.time() - t0) * 1000)})
            self.log.warning("Move %s from %s failed: %s", direction, origin.name, e)
            return CommandResult(kind="move_failed", command=direction, city=origin,
                                 distance_km=self.distance_km, status=status, error=str(e))

        self.current = city
        self._visited.append(city.fid)
        self.distance_km = distance
        traveled = bearing_degrees(origin, city)
        matched = classify_direction(traveled, direction)
        arrived = city.fid == self.target.fid
        self.records.append({"direction": direction, "ok": True, "from": origin.fid, "to": city.fid,
                             "bearing": traveled, "matched": matched, "ms": int((time.time() - t0) * 1000)})
        if arrived and self.cfg.end_on_arrival:
            self.state = SessionState.ARRIVED
            self.log.info("Arrived at %s after %d moves", city.name, self.moves_made())
        else:
            self.state = SessionState.AWAITING_COMMAND
        if not matched:
            self.log.debug("Nearest city %s lies at bearing %.0f, outside %s", city.name, traveled, direction)
        return CommandResult(kind="moved", command=direction, city=city, distance_km=distance,
                             bearing=traveled, direction_matched=matched, arrived=arrived,
                             status=JobStatus.SUCCEEDED.value)

    # ---------------- Export -----------------
    def visited_ids(self) -> List[int]:
        return list(self._visited)

    def moves_made(self) -> int:
        return sum(1 for r in self.records if r.get("ok"))

    def summary(self) -> dict:
        return {
            "state": self.state.value,
            "minimum_population": self.threshold,
            "current": _city_dict(self.current),
            "distance_km": self.distance_km,
            "moves": self.moves_made(),
            "failed_moves": sum(1 for r in self.records if not r.get("ok")),
            "visited": self.visited_ids(),
            "arrived": bool(self.current and self.target and self.current.fid == self.target.fid),
            "duration_s": round(time.time() - self.start_ts, 2),
        }
