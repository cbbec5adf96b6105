"""
ArcGIS REST transport for the game.

- Feature queries against the cities layer (by id, ranked, counts, statistics).
- FindNearest analysis jobs: submit, status, result (helper analysis service).
- Geodesic distance (helper geometry service).
- Token login, portal self (helper service discovery) and addItem for saved games.

Every response goes through QueryResult so a missing field or an {"error": ...}
document surfaces as BackendQueryError; connection/HTTP failures become BackendUnavailable.
"""
from __future__ import annotations
import json
import logging
import uuid
from typing import Any, Dict, List, Sequence

import requests

from .config import SETTINGS
from .errors import BackendQueryError, BackendUnavailable
from .models import AnalysisJob, City, DirectionalExtent, JobStatus, QueryResult, WGS84_WKID

log = logging.getLogger("arcgis_client")

# esriSRUnit_* codes accepted by the geometry service
DISTANCE_UNITS = {
    "kilometers": 9036,
    "meters": 9001,
    "miles": 9093,
}


def point_geometry(x: float, y: float) -> Dict[str, Any]:
    return {"geometryType": "esriGeometryPoint", "geometry": {"x": x, "y": y}}


class ArcGISClient:
    """Feature, analysis and geometry client bound to one portal login."""

    def __init__(
        self,
        feature_layer_url: str | None = None,
        portal_url: str | None = None,
        token: str | None = None,
        referrer: str | None = None,
        analysis_url: str | None = None,
        geometry_url: str | None = None,
        timeout_s: float | None = None,
        session: requests.Session | None = None,
    ):
        self.feature_layer_url = (feature_layer_url or SETTINGS.feature_layer_url).rstrip("/")
        self.portal_url = (portal_url or SETTINGS.portal_url).rstrip("/")
        self.token = token
        self.referrer = referrer or f"Referrer {uuid.uuid4()}"
        self.timeout_s = timeout_s if timeout_s is not None else SETTINGS.request_timeout_s
        self.http = session or requests.Session()
        self._analysis_url = analysis_url
        self._geometry_url = geometry_url
        self.username: str | None = None

    # ---------------- Transport -----------------
    def _auth_params(self) -> Dict[str, str]:
        params = {"referer": self.referrer, "f": "json"}
        if self.token:
            params["token"] = self.token
        return params

    def _request(self, method: str, url: str, params: dict | None = None, data: dict | None = None,
                 headers: dict | None = None) -> Dict[str, Any]:
        try:
            rsp = self.http.request(method, url, params=params, data=data, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            log.warning("%s %s failed: %s", method, url, type(e).__name__)
            raise BackendUnavailable(f"{method} {url} failed: {e}") from e
        if rsp.status_code >= 400:
            raise BackendUnavailable(f"{method} {url} returned HTTP {rsp.status_code}")
        try:
            doc = rsp.json()
        except ValueError as e:
            raise BackendQueryError(f"{method} {url} returned a non-JSON body") from e
        return QueryResult.from_document(doc).unwrap()

    def _get(self, url: str, params: dict | None = None, headers: dict | None = None) -> Dict[str, Any]:
        merged = self._auth_params()
        merged.update(params or {})
        return self._request("GET", url, params=merged, headers=headers)

    def _post(self, url: str, data: dict | None = None) -> Dict[str, Any]:
        merged = self._auth_params()
        merged.update(data or {})
        return self._request("POST", url, data=merged)

    # ---------------- Portal -----------------
    def login(self, username: str, password: str) -> str:
        """Exchange credentials for a token bound to this client's referrer."""
        doc = self._request(
            "POST",
            f"{self.portal_url}/sharing/rest/generateToken",
            data={"username": username, "password": password, "referer": self.referrer, "f": "json"},
        )
        token = doc.get("token")
        if not isinstance(token, str) or not token:
            raise BackendQueryError("Login response has no token")
        self.token = token
        self.username = username
        log.info("Logged in as %s (expires=%s ssl=%s)", username, doc.get("expires"), doc.get("ssl"))
        return token

    def portal_self(self) -> Dict[str, Any]:
        doc = self._get(f"{self.portal_url}/sharing/rest/portals/self")
        helpers = doc.get("helperServices") or {}
        try:
            self._analysis_url = str(helpers["analysis"]["url"]).rstrip("/")
            self._geometry_url = str(helpers["geometry"]["url"]).rstrip("/")
        except (KeyError, TypeError) as e:
            raise BackendQueryError("Portal self has no analysis/geometry helper services") from e
        return doc

    @property
    def analysis_url(self) -> str:
        if not self._analysis_url:
            self.portal_self()
        return self._analysis_url

    @property
    def geometry_url(self) -> str:
        if not self._geometry_url:
            self.portal_self()
        return self._geometry_url

    # ---------------- Feature queries -----------------
    def _query(self, params: dict) -> Dict[str, Any]:
        return self._get(f"{self.feature_layer_url}/query", params=params)

    @staticmethod
    def _features(doc: Dict[str, Any]) -> List[Dict[str, Any]]:
        features = doc.get("features")
        if not isinstance(features, list):
            raise BackendQueryError("Query response has no features array")
        return features

    def query_by_ids(self, ids: Sequence[int]) -> List[City]:
        if not ids:
            return []
        doc = self._query({
            "objectIds": ",".join(str(i) for i in ids),
            "outFields": "*",
            "returnGeometry": "false",
        })
        return [City.from_feature(f) for f in self._features(doc)]

    def query_count(self, where: str) -> int:
        doc = self._query({"where": where, "returnCountOnly": "true"})
        count = doc.get("count")
        if not isinstance(count, int):
            raise BackendQueryError("Count query returned no count")
        return count

    def query_ranked(self, order_by: str, offset: int, limit: int, where: str = "1=1") -> List[City]:
        doc = self._query({
            "where": where,
            "outFields": "*",
            "orderByFields": order_by,
            "resultOffset": str(offset),
            "resultRecordCount": str(limit),
            "returnGeometry": "false",
        })
        return [City.from_feature(f) for f in self._features(doc)]

    def query_statistic(self, statistics: List[Dict[str, str]], where: str) -> Dict[str, Any]:
        """Run outStatistics and return the attributes of the single summary row."""
        doc = self._query({"outStatistics": json.dumps(statistics), "where": where})
        features = self._features(doc)
        if not features or not isinstance(features[0].get("attributes"), dict):
            raise BackendQueryError("Statistics query returned no summary row")
        return features[0]["attributes"]

    # ---------------- Analysis jobs -----------------
    def submit_find_nearest(self, analysis_filter: str, near_filter: str, extent: DirectionalExtent,
                            max_count: int = 1) -> AnalysisJob:
        context = {"extent": extent.to_json(), "outSR": {"wkid": WGS84_WKID}}
        doc = self._post(f"{self.analysis_url}/FindNearest/submitJob", data={
            "analysisLayer": json.dumps({"url": self.feature_layer_url, "filter": analysis_filter}),
            "nearLayer": json.dumps({"url": self.feature_layer_url, "filter": near_filter}),
            "measurementType": "StraightLine",
            "maxCount": str(max_count),
            "context": json.dumps(context),
        })
        job_id = doc.get("jobId")
        if not isinstance(job_id, str) or not job_id:
            raise BackendQueryError("submitJob response has no jobId")
        return AnalysisJob(job_id=job_id, status=JobStatus.parse(doc.get("jobStatus")))

    def get_status(self, job_id: str) -> JobStatus:
        doc = self._get(
            f"{self.analysis_url}/FindNearest/jobs/{job_id}",
            headers={"Cache-Control": "no-cache"},
        )
        return JobStatus.parse(doc.get("jobStatus"))

    def get_result(self, job_id: str) -> City:
        doc = self._get(f"{self.analysis_url}/FindNearest/jobs/{job_id}/results/nearestLayer")
        try:
            features = doc["value"]["featureSet"]["features"]
        except (KeyError, TypeError) as e:
            raise BackendQueryError(f"Job {job_id} result has no featureSet") from e
        if not features:
            raise BackendQueryError(f"Job {job_id} found no city")
        return City.from_feature(features[0])

    # ---------------- Geometry -----------------
    def distance(self, point_a: tuple[float, float], point_b: tuple[float, float], unit: str = "kilometers",
                 geodesic: bool = True) -> float:
        if unit not in DISTANCE_UNITS:
            raise ValueError(f"Unsupported distance unit {unit!r}")
        doc = self._get(f"{self.geometry_url}/distance", params={
            "geometry1": json.dumps(point_geometry(*point_a)),
            "geometry2": json.dumps(point_geometry(*point_b)),
            "sr": str(WGS84_WKID),
            "distanceUnit": str(DISTANCE_UNITS[unit]),
            "geodesic": "true" if geodesic else "false",
        })
        dist = doc.get("distance")
        if not isinstance(dist, (int, float)):
            raise BackendQueryError("Distance response has no distance")
        return float(dist)

    # ---------------- Content items -----------------
    def add_game_item(self, visited_ids: Sequence[int], title: str = "Wanderer Game",
                      username: str | None = None) -> str:
        """Save the visited FIDs as a content item owned by the logged-in user; returns the item id."""
        owner = username or self.username
        if not owner:
            raise ValueError("A username is required to add an item")
        doc = self._post(f"{self.portal_url}/sharing/rest/content/users/{owner}/addItem", data={
            "type": "Color Set",
            "typeKeywords": "Wanderer game",
            "title": title,
            "text": json.dumps({"cities_visited": list(visited_ids)}),
        })
        if not doc.get("success"):
            raise BackendQueryError("addItem did not report success")
        item_id = doc.get("id")
        if not isinstance(item_id, str):
            raise BackendQueryError("addItem response has no id")
        log.info("Saved game item %s with %d cities", item_id, len(visited_ids))
        return item_id
