"""
Configuration and environment loading for Wanderer.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables.
- Exposes SETTINGS with the backend endpoints and game tuning knobs.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")

DEFAULT_FEATURE_LAYER_URL = (
    "https://services7.arcgis.com/iYTqAIgyDcVSpgzf/arcgis/rest/services/World_Cities/FeatureServer/0"
)


def _repo_root() -> str:
    # this file: src/wanderer/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        log.exception("Failed to read %s; using environment only", path)
        return {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.environ.get("WANDERER_SETTINGS", os.path.join(_repo_root(), "settings.yml")))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast and val is not None else val
    env = os.environ.get(name)
    if env is not None and env != "":
        return cast(env) if cast else env
    return default


def _bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Backend endpoints
    portal_url: str
    feature_layer_url: str

    # Tuning knobs
    request_timeout_s: float
    poll_interval_s: float
    max_polls: int | None
    max_sampling_attempts: int

    # Game behaviour
    end_on_arrival: bool
    log_level: str


SETTINGS = Settings(
    portal_url=_get("WANDERER_PORTAL_URL", "https://www.arcgis.com").rstrip("/"),
    feature_layer_url=_get("WANDERER_FEATURE_LAYER_URL", DEFAULT_FEATURE_LAYER_URL).rstrip("/"),
    request_timeout_s=float(_get("WANDERER_REQUEST_TIMEOUT_S", 30.0, cast=float)),
    poll_interval_s=float(_get("WANDERER_POLL_INTERVAL_S", 5.0, cast=float)),
    max_polls=_get("WANDERER_MAX_POLLS", None, cast=int),
    max_sampling_attempts=int(_get("WANDERER_MAX_SAMPLING_ATTEMPTS", 200, cast=int)),
    end_on_arrival=_bool(_get("WANDERER_END_ON_ARRIVAL", False)),
    log_level=str(_get("WANDERER_LOG_LEVEL", "INFO")).upper(),
)
