"""Normalization of citation-check payloads.

The backend has renamed fields over time (``position``/``length`` became
``from``/``to``, ``totalIssues`` became ``total`` and so on). Every helper here
accepts both the legacy and the current shape and always returns a complete
model, falling back to empty values instead of raising.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import CitationCheckJob, CitationIssue, CitationSummary, StatusUpdate

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def ensure_number(value: Any, fallback: int = 0) -> int:
    """Coerce ``value`` to an int the way the UI always has.

    Numbers pass through (floats are truncated), strings contribute their
    leading integer (``"12px"`` -> 12) and anything else yields ``fallback``.
    """
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else fallback
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return fallback


def _optional_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    if isinstance(value, str) and _LEADING_INT.match(value):
        return max(ensure_number(value), 0)
    return None


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _progress(value: Any) -> int:
    return min(max(ensure_number(value, 0), 0), 100)


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_issue(raw: Any) -> CitationIssue:
    """Build a :class:`CitationIssue` from a backend DTO or a canonical dict."""
    if isinstance(raw, CitationIssue):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    if "position" in raw or "from" not in raw:
        start = ensure_number(raw.get("position"), 0)
        end = start + ensure_number(raw.get("length"), 0)
    else:
        start = ensure_number(raw.get("from"), 0)
        end = ensure_number(raw.get("to"), start)

    return CitationIssue(
        id=_text(raw.get("id")),
        project_id=_text(raw.get("projectId")),
        document_id=_text(raw.get("documentId")),
        tex_file_name=_text(_first(raw, "filename", "texFileName")),
        type=_text(_first(raw, "issueType", "type") or "missing-citation"),
        severity=_text(raw.get("severity") or "medium").lower(),
        start=start,
        end=max(end, start),
        line_start=ensure_number(raw.get("lineStart"), 0),
        line_end=ensure_number(raw.get("lineEnd"), 0),
        snippet=_text(_first(raw, "citationText", "snippet")),
        cited_keys=[str(key) for key in _as_list(raw.get("citedKeys"))],
        suggestions=_as_list(raw.get("suggestions")),
        evidence=_as_list(raw.get("evidence")),
        created_at=_text(raw.get("createdAt")) or datetime.now(timezone.utc).isoformat(),
    )


def normalize_issues(raw_issues: Optional[Iterable[Any]]) -> List[CitationIssue]:
    if not raw_issues:
        return []
    return [normalize_issue(item) for item in raw_issues]


def normalize_summary(raw: Any, issues: Optional[Sequence[Any]] = None) -> CitationSummary:
    """Build a :class:`CitationSummary`.

    The total comes from ``total``, then ``totalIssues``, then the number of
    ``issues``. Type counts come from ``byType``, then ``typeCounts``.
    """
    issue_count = len(issues) if issues else 0
    if isinstance(raw, CitationSummary):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return CitationSummary(total=issue_count)

    total = _optional_count(raw.get("total"))
    if total is None:
        total = _optional_count(raw.get("totalIssues"))
    if total is None:
        total = issue_count

    counts = raw.get("byType") or raw.get("typeCounts") or {}
    by_type: Dict[str, int] = {}
    if isinstance(counts, Mapping):
        by_type = {str(key): ensure_number(value, 0) for key, value in counts.items()}

    return CitationSummary(
        total=total,
        by_type=by_type,
        content_hash=raw.get("contentHash"),
        started_at=raw.get("startedAt"),
        finished_at=raw.get("finishedAt"),
    )


def normalize_status(raw: Any) -> StatusUpdate:
    if isinstance(raw, StatusUpdate):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}
    progress = raw.get("progressPct")
    if progress is None:
        progress = raw.get("progressPercent")
    return StatusUpdate(
        status=_text(raw.get("status")),
        step=_text(_first(raw, "step", "currentStep")),
        progress_pct=_progress(progress),
    )


def normalize_job(raw: Any) -> CitationCheckJob:
    """Build a :class:`CitationCheckJob` from a job DTO or a canonical dict."""
    if isinstance(raw, CitationCheckJob):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    raw_issues = _as_list(raw.get("issues"))
    status = normalize_status(raw)
    error_message = raw.get("message")
    if error_message is None:
        error_message = raw.get("errorMessage")

    return CitationCheckJob(
        job_id=_text(_first(raw, "id", "jobId")),
        status=status.status,
        step=status.step,
        progress_pct=status.progress_pct,
        summary=normalize_summary(raw.get("summary"), raw_issues),
        issues=normalize_issues(raw_issues),
        error_message=None if error_message is None else str(error_message),
    )


__all__ = [
    "ensure_number",
    "normalize_issue",
    "normalize_issues",
    "normalize_job",
    "normalize_status",
    "normalize_summary",
]
