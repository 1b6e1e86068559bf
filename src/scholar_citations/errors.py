"""Exceptions raised by the citation-check client."""
from __future__ import annotations

from typing import Optional

import httpx


class CitationServiceError(RuntimeError):
    """Base class for every error raised by this package."""


class CitationApiError(CitationServiceError):
    """The backend answered with a non-2xx status."""

    def __init__(self, action: str, status_code: int, reason: str = ""):
        self.action = action
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{action}: {reason or status_code}")

    @classmethod
    def from_response(cls, action: str, response: httpx.Response) -> "CitationApiError":
        return cls(action, response.status_code, response.reason_phrase)


class StreamParseError(CitationServiceError):
    """An event-stream frame could not be decoded."""

    def __init__(self, message: str, data: Optional[str] = None):
        self.data = data
        super().__init__(message)


class StreamTransportError(CitationServiceError):
    """The event-stream connection failed or ended before completion."""


class CitationJobFailed(CitationServiceError):
    """A citation-check session could not reach a terminal job state."""
