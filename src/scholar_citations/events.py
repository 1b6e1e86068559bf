"""Typed events delivered while a citation-check job runs.

The event endpoint has used two envelopes: a flat object carrying ``type``
next to the payload, and a ``{"type": ..., "data": {...}}`` wrapper whose
payload may itself be keyed (``data.issue``). :func:`parse_event` accepts
both and returns one of the event classes below, or ``None`` for types the
client does not act on (``tick`` and friends).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import StreamParseError
from .models import CitationCheckJob, CitationIssue, CitationSummary, StatusUpdate
from .normalization import normalize_issue, normalize_status, normalize_summary


@dataclass
class StatusEvent:
    update: StatusUpdate
    kind: str = field(default="status", init=False)


@dataclass
class IssueEvent:
    issue: CitationIssue
    kind: str = field(default="issue", init=False)


@dataclass
class SummaryEvent:
    summary: CitationSummary
    kind: str = field(default="summary", init=False)


@dataclass
class CompleteEvent:
    kind: str = field(default="complete", init=False)


@dataclass
class ErrorEvent:
    error: Exception
    kind: str = field(default="error", init=False)


@dataclass
class SnapshotEvent:
    job: CitationCheckJob
    kind: str = field(default="snapshot", init=False)


StreamEvent = Union[StatusEvent, IssueEvent, SummaryEvent, CompleteEvent]
SessionUpdate = Union[StatusEvent, IssueEvent, SummaryEvent, CompleteEvent, ErrorEvent, SnapshotEvent]


def _envelope(message: Mapping[str, Any]) -> Tuple[Optional[str], Mapping[str, Any]]:
    data = message.get("data")
    body: Mapping[str, Any] = data if isinstance(data, Mapping) else message
    kind = message.get("type") or body.get("type")
    return (str(kind) if kind else None), body


def _payload(body: Mapping[str, Any], key: str) -> Any:
    if isinstance(body.get(key), Mapping):
        return body[key]
    nested = body.get("data")
    if isinstance(nested, Mapping):
        if isinstance(nested.get(key), Mapping):
            return nested[key]
        return nested
    return body


def parse_event(message: Mapping[str, Any]) -> Optional[StreamEvent]:
    kind, body = _envelope(message)
    if kind == "status":
        if "status" in body:
            return StatusEvent(normalize_status(body))
        return StatusEvent(normalize_status(_payload(body, "status")))
    if kind == "issue":
        return IssueEvent(normalize_issue(_payload(body, "issue")))
    if kind == "summary":
        return SummaryEvent(normalize_summary(_payload(body, "summary")))
    if kind == "complete":
        return CompleteEvent()
    return None


def decode_event(data: str) -> Tuple[Dict[str, Any], Optional[StreamEvent]]:
    """Decode one ``data`` frame into its raw JSON object and typed event."""
    try:
        message = json.loads(data)
    except ValueError as exc:
        raise StreamParseError(f"Invalid event payload: {exc}", data=data) from exc
    if not isinstance(message, dict):
        raise StreamParseError("Event payload is not a JSON object", data=data)
    return message, parse_event(message)


__all__ = [
    "CompleteEvent",
    "ErrorEvent",
    "IssueEvent",
    "SessionUpdate",
    "SnapshotEvent",
    "StatusEvent",
    "StreamEvent",
    "SummaryEvent",
    "decode_event",
    "parse_event",
]
