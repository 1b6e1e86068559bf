"""Client for the ScholarAI citation-check service."""

from .client import CitationApiClient
from .config import Settings, load_settings
from .errors import (
    CitationApiError,
    CitationJobFailed,
    CitationServiceError,
    StreamParseError,
    StreamTransportError,
)
from .hashing import ContentCache, sha256_hex
from .models import (
    CitationCheckJob,
    CitationIssue,
    CitationSummary,
    JobStatus,
    StartCitationCheckRequest,
    StatusUpdate,
)
from .polling import poll_citation_job
from .review import FinalReviewService
from .session import CitationCheckSession, StartResult, TransportState, start_citation_check_with_streaming
from .stream import CitationEventStream, StreamHandlers, StreamState

__all__ = [
    "CitationApiClient",
    "CitationApiError",
    "CitationCheckJob",
    "CitationCheckSession",
    "CitationEventStream",
    "CitationIssue",
    "CitationJobFailed",
    "CitationServiceError",
    "CitationSummary",
    "ContentCache",
    "FinalReviewService",
    "JobStatus",
    "Settings",
    "StartCitationCheckRequest",
    "StartResult",
    "StatusUpdate",
    "StreamHandlers",
    "StreamParseError",
    "StreamState",
    "StreamTransportError",
    "TransportState",
    "load_settings",
    "poll_citation_job",
    "sha256_hex",
    "start_citation_check_with_streaming",
]
