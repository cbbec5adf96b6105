"""
CitySampler: picks the population threshold and the random start/target cities.

- resolve_threshold(): population of the N-th largest city (N from the difficulty tier).
- fid_range(): min/max FID among qualifying cities, used as the sampling range.
- sample_distinct_pair(): random FIDs, never repeated within one call, two per query,
  until two qualifying cities are found or max_attempts query rounds are spent.

"""
from __future__ import annotations
import logging
import random
from typing import Dict, List, Optional

from .config import SETTINGS
from .errors import BackendQueryError
from .models import City, CityPair

ELIGIBLE_WHERE = "population IS NOT NULL"

# difficulty level -> how many of the largest cities are in play (None = all of them)
DIFFICULTY_CITY_COUNTS: Dict[int, Optional[int]] = {
    0: 10,
    1: 100,
    2: 1000,
    3: None,
}
DIFFICULTY_LABELS = {0: "easy", 1: "medium", 2: "hard", 3: "legendary"}


def city_count_for_difficulty(level) -> Optional[int]:
    log = logging.getLogger("CitySampler")
    try:
        level = int(level)
    except (TypeError, ValueError):
        log.warning("Difficulty %r is not a number; using easy", level)
        return DIFFICULTY_CITY_COUNTS[0]
    if level not in DIFFICULTY_CITY_COUNTS:
        log.warning("Unknown difficulty %d; using easy", level)
        return DIFFICULTY_CITY_COUNTS[0]
    return DIFFICULTY_CITY_COUNTS[level]


class CitySampler:
    def __init__(self, client, max_attempts: int | None = None, rng: random.Random | None = None):
        self.log = logging.getLogger("CitySampler")
        self.client = client
        self.max_attempts = max_attempts if max_attempts is not None else SETTINGS.max_sampling_attempts
        self.rng = rng or random.Random()

    def resolve_threshold(self, city_count: Optional[int] = None) -> int:
        """Minimum population so that exactly the `city_count` largest cities qualify."""
        if city_count is None:
            city_count = self.client.query_count(ELIGIBLE_WHERE)
            self.log.info("Using all %d cities with a population", city_count)
        if city_count < 1:
            raise ValueError(f"city_count must be at least 1, got {city_count}")
        ranked = self.client.query_ranked("population DESC", offset=city_count - 1, limit=1, where=ELIGIBLE_WHERE)
        if not ranked:
            raise BackendQueryError(f"No city ranked {city_count} by population")
        population = ranked[0].population
        if population is None:
            raise BackendQueryError(f"City ranked {city_count} has no population")
        self.log.info("Minimum population for %d cities: %d", city_count, population)
        return population

    def fid_range(self, minimum_population: int) -> tuple[int, int]:
        attrs = self.client.query_statistic(
            [
                {"statisticType": "min", "onStatisticField": "FID", "outStatisticFieldName": "min_fid"},
                {"statisticType": "max", "onStatisticField": "FID", "outStatisticFieldName": "max_fid"},
            ],
            where=f"population >= {minimum_population}",
        )
        try:
            return int(attrs["min_fid"]), int(attrs["max_fid"])
        except (KeyError, TypeError, ValueError) as e:
            raise BackendQueryError("Statistics response has no min_fid/max_fid") from e

    def _draw_untried(self, min_fid: int, max_fid: int, tried: set[int], count: int) -> List[int]:
        fids: List[int] = []
        while len(fids) < count:
            fid = self.rng.randint(min_fid, max_fid)
            if fid not in tried:
                tried.add(fid)
                fids.append(fid)
        return fids

    def sample_distinct_pair(self, min_fid: int, max_fid: int, minimum_population: int) -> CityPair:
        """Return (current, target) in draw order.

        A sparse population relative to the FID range makes this slow; the loop is
        bounded by max_attempts rounds and raises BackendQueryError instead of spinning.
        """
        if max_fid < min_fid:
            raise ValueError(f"Empty FID range [{min_fid}, {max_fid}]")
        span = max_fid - min_fid + 1
        tried: set[int] = set()
        cities: List[City] = []
        rounds = 0
        while len(cities) < 2:
            remaining = span - len(tried)
            if remaining <= 0:
                raise BackendQueryError(
                    f"Only {len(cities)} of {span} FIDs have population >= {minimum_population}"
                )
            if rounds >= self.max_attempts:
                raise BackendQueryError(f"No qualifying city pair after {rounds} query rounds")
            fids = self._draw_untried(min_fid, max_fid, tried, min(2, remaining))
            rounds += 1
            by_fid = {c.fid: c for c in self.client.query_by_ids(fids)}
            for fid in fids:
                city = by_fid.get(fid)
                if city is None:
                    self.log.debug("FID %d not found", fid)
                    continue
                if city.population is None:
                    self.log.debug("FID %d (%s) has a null population; skipping", fid, city.name)
                    continue
                if len(cities) < 2 and city.qualifies(minimum_population):
                    cities.append(city)
        self.log.info("Picked %s -> %s after %d rounds (%d FIDs tried)", cities[0].name, cities[1].name, rounds, len(tried))
        return CityPair(current=cities[0], target=cities[1])

    def random_pair(self, minimum_population: int) -> CityPair:
        min_fid, max_fid = self.fid_range(minimum_population)
        self.log.info("Sampling FIDs in [%d, %d] with minimum population %d", min_fid, max_fid, minimum_population)
        return self.sample_distinct_pair(min_fid, max_fid, minimum_population)
