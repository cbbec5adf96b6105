"""
Value types shared by the game engine and the backend adapters.

- City: an immutable feature record from the cities layer (population may be None).
- JobStatus / AnalysisJob: analysis job identity and classified status.
- DirectionalExtent: WGS84 envelope used as a query/analysis filter.
- QueryResult: a parsed backend document, either a payload or a structured error.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import BackendQueryError

WGS84_WKID = 4326


@dataclass(frozen=True)
class City:
    fid: int
    name: str
    admin_name: str
    country: str
    lat: float
    lng: float
    population: Optional[int] = None

    @classmethod
    def from_attributes(cls, attrs: Dict[str, Any]) -> "City":
        """Build a City from a feature's attribute dict.

        The id may come back as FID or ORIG_FID depending on whether the record was
        read from the layer directly or from an analysis output.
        """
        if not isinstance(attrs, dict):
            raise BackendQueryError("Feature attributes are not an object")
        fid = attrs.get("FID", attrs.get("ORIG_FID", attrs.get("fid")))
        if fid is None:
            raise BackendQueryError("Feature has no FID")
        missing = [k for k in ("city", "lat", "lng") if attrs.get(k) is None]
        if missing:
            raise BackendQueryError(f"Feature {fid} is missing {', '.join(missing)}")
        population = attrs.get("population")
        try:
            return cls(
                fid=int(fid),
                name=str(attrs["city"]),
                admin_name=str(attrs.get("admin_name") or ""),
                country=str(attrs.get("country") or ""),
                lat=float(attrs["lat"]),
                lng=float(attrs["lng"]),
                population=int(population) if population is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise BackendQueryError(f"Feature {fid} has a malformed field: {e}") from e

    @classmethod
    def from_feature(cls, feature: Dict[str, Any]) -> "City":
        if not isinstance(feature, dict) or "attributes" not in feature:
            raise BackendQueryError("Feature has no attributes")
        return cls.from_attributes(feature["attributes"])

    def qualifies(self, minimum_population: int) -> bool:
        # A null population never qualifies, whatever the threshold.
        return self.population is not None and self.population >= minimum_population

    def label(self) -> str:
        parts = [p for p in (self.name, self.admin_name, self.country) if p]
        return ", ".join(parts)


@dataclass(frozen=True)
class CityPair:
    current: City
    target: City

    def __post_init__(self):
        if self.current.fid == self.target.fid:
            raise ValueError(f"City pair must be distinct (both are FID {self.current.fid})")


class JobStatus(str, Enum):
    SUBMITTED = "esriJobSubmitted"
    NEW = "esriJobNew"
    WAITING = "esriJobWaiting"
    RUNNING = "esriJobExecuting"
    CANCELLING = "esriJobCancelling"
    SUCCEEDED = "esriJobSucceeded"
    FAILED = "esriJobFailed"
    TIMED_OUT = "esriJobTimedOut"
    CANCELLED = "esriJobCancelled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "JobStatus":
        """Classify a server status string; anything unrecognized is UNKNOWN."""
        if isinstance(raw, str):
            for status in cls:
                if status.value == raw:
                    return status
        return cls.UNKNOWN

    @property
    def is_pending(self) -> bool:
        return self not in TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in (JobStatus.FAILED, JobStatus.TIMED_OUT, JobStatus.CANCELLED)


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT, JobStatus.CANCELLED})


@dataclass(frozen=True)
class AnalysisJob:
    job_id: str
    status: JobStatus


@dataclass(frozen=True)
class DirectionalExtent:
    xmin: float
    ymin: float
    xmax: float
    ymax: float
    wkid: int = WGS84_WKID

    def to_json(self) -> Dict[str, Any]:
        return {
            "xmin": self.xmin,
            "ymin": self.ymin,
            "xmax": self.xmax,
            "ymax": self.ymax,
            "spatialReference": {"wkid": self.wkid},
        }


@dataclass
class QueryResult:
    """A backend document after validation: payload on success, error fields otherwise."""

    payload: Optional[Dict[str, Any]] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    error_details: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.payload is not None

    @classmethod
    def from_document(cls, doc: Any) -> "QueryResult":
        if not isinstance(doc, dict):
            return cls(error_message=f"Expected a JSON object, got {type(doc).__name__}")
        err = doc.get("error")
        if err is not None:
            if not isinstance(err, dict):
                return cls(error_message=str(err))
            code = err.get("code")
            return cls(
                error_code=int(code) if isinstance(code, (int, float)) else None,
                error_message=str(err.get("message") or "Backend returned an error"),
                error_details=list(err.get("details") or []),
            )
        return cls(payload=doc)

    def unwrap(self) -> Dict[str, Any]:
        if self.payload is None:
            raise BackendQueryError(self.error_message or "Backend returned an error", self.error_code, self.error_details)
        return self.payload
