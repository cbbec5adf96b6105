"""
Error kinds raised by the backend adapters and the game engine.

- BackendQueryError: a response arrived but is malformed, is missing an expected field,
  or is an ArcGIS error document.
- BackendUnavailable: the request never produced a usable response (connection, HTTP status).
- JobFailed: an analysis job reached a terminal non-success status.
"""
from __future__ import annotations
from typing import Any, Optional


class WandererError(Exception):
    """Base class for all game/backend errors."""


class BackendQueryError(WandererError):
    def __init__(self, message: str, code: Optional[int] = None, details: Optional[list[Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = list(details or [])

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} (code {self.code})"
        return self.message


class BackendUnavailable(WandererError):
    pass


class JobFailed(WandererError):
    def __init__(self, status, job_id: str | None = None):
        self.status = status
        self.job_id = job_id
        label = getattr(status, "value", status)
        super().__init__(f"Job {job_id or '?'} ended with status {label}")
