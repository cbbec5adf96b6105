"""
NearestJobRunner: one move = one FindNearest analysis job.

The job looks for the single nearest qualifying city inside the directional extent,
excluding the current city. Polling is a plain fixed-interval loop: pending statuses
(including UNKNOWN from a status read we could not classify) sleep and re-query,
SUCCEEDED fetches the city, FAILED/TIMED_OUT/CANCELLED end the move. A status read
that fails in transport or parsing counts as UNKNOWN. No retries of terminal failures.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .config import SETTINGS
from .errors import BackendQueryError, BackendUnavailable, JobFailed
from .models import AnalysisJob, City, DirectionalExtent, JobStatus
from .region import build_extent

ID_FIELD = "FID"


@dataclass(frozen=True)
class TerminalOutcome:
    job_id: str
    status: JobStatus
    city: Optional[City] = None
    polls: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCEEDED and self.city is not None


def build_filters(city: City, minimum_population: int) -> tuple[str, str]:
    """(analysis layer filter, near layer filter) for a move away from `city`."""
    analysis_filter = f"population >= {minimum_population} AND {ID_FIELD} <> {city.fid}"
    near_filter = f"{ID_FIELD} = {city.fid}"
    return analysis_filter, near_filter


class NearestJobRunner:
    def __init__(self, client, poll_interval_s: float | None = None, max_polls: int | None = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.log = logging.getLogger("NearestJobRunner")
        self.client = client
        self.poll_interval_s = poll_interval_s if poll_interval_s is not None else SETTINGS.poll_interval_s
        self.max_polls = max_polls if max_polls is not None else SETTINGS.max_polls
        self._sleep = sleep

    def submit(self, analysis_filter: str, near_filter: str, extent: DirectionalExtent) -> AnalysisJob:
        job = self.client.submit_find_nearest(analysis_filter, near_filter, extent, max_count=1)
        self.log.info("Submitted FindNearest job %s status=%s", job.job_id, job.status.value)
        return job

    def poll_until_terminal(self, job: AnalysisJob) -> TerminalOutcome:
        status = job.status
        polls = 0
        prev_status = status
        while status.is_pending:
            if self.max_polls is not None and polls >= self.max_polls:
                self.log.error("Job %s still %s after %d polls", job.job_id, status.value, polls)
                raise JobFailed(JobStatus.UNKNOWN, job.job_id)
            self._sleep(self.poll_interval_s)
            polls += 1
            try:
                status = self.client.get_status(job.job_id)
            except (BackendUnavailable, BackendQueryError) as e:
                # The job is still running server-side.
                self.log.warning("Job %s status read failed: %s", job.job_id, e)
                status = JobStatus.UNKNOWN
            if status != prev_status:
                self.log.info("Job %s status=%s", job.job_id, status.value)
                prev_status = status
        if status == JobStatus.SUCCEEDED:
            city = self.client.get_result(job.job_id)
            self.log.info("Job %s found %s", job.job_id, city.name)
            return TerminalOutcome(job_id=job.job_id, status=status, city=city, polls=polls)
        self.log.warning("Job %s ended with %s", job.job_id, status.value)
        return TerminalOutcome(job_id=job.job_id, status=status, polls=polls)

    def find_nearest(self, city: City, direction: str, minimum_population: int) -> TerminalOutcome:
        extent = build_extent(city, direction)
        if extent is None:
            raise ValueError(f"Unknown direction {direction!r}")
        analysis_filter, near_filter = build_filters(city, minimum_population)
        job = self.submit(analysis_filter, near_filter, extent)
        return self.poll_until_terminal(job)
