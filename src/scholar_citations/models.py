"""Data models for citation-check jobs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class JobStatus:
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"

    TERMINAL = frozenset({DONE, ERROR})

    @classmethod
    def is_terminal(cls, status: Optional[str]) -> bool:
        return status in cls.TERMINAL


STEP_LABELS: Dict[str, str] = {
    "PARSING": "Parsing LaTeX content...",
    "LOCAL_RETRIEVAL": "Searching selected papers...",
    "LOCAL_VERIFICATION": "Verifying against local corpus...",
    "WEB_RETRIEVAL": "Searching web sources...",
    "WEB_VERIFICATION": "Verifying web evidence...",
    "SAVING": "Saving results...",
    "DONE": "Complete",
    "ERROR": "Error occurred",
}


@dataclass
class CitationIssue:
    """A single finding reported by the citation checker.

    ``start`` and ``end`` are character offsets into the LaTeX source; they
    travel as ``from`` and ``to`` on the wire.
    """

    id: str
    project_id: str = ""
    document_id: str = ""
    tex_file_name: str = ""
    type: str = "missing-citation"
    severity: str = "medium"
    start: int = 0
    end: int = 0
    line_start: int = 0
    line_end: int = 0
    snippet: str = ""
    cited_keys: List[str] = field(default_factory=list)
    suggestions: List[Dict[str, Any]] = field(default_factory=list)
    evidence: List[Dict[str, Any]] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "documentId": self.document_id,
            "texFileName": self.tex_file_name,
            "type": self.type,
            "severity": self.severity,
            "from": self.start,
            "to": self.end,
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
            "snippet": self.snippet,
            "citedKeys": list(self.cited_keys),
            "suggestions": list(self.suggestions),
            "evidence": list(self.evidence),
            "createdAt": self.created_at,
        }


@dataclass
class CitationSummary:
    total: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    content_hash: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"total": self.total, "byType": dict(self.by_type)}
        if self.content_hash is not None:
            data["contentHash"] = self.content_hash
        if self.started_at is not None:
            data["startedAt"] = self.started_at
        if self.finished_at is not None:
            data["finishedAt"] = self.finished_at
        return data


@dataclass
class StatusUpdate:
    status: str
    step: str = ""
    progress_pct: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "step": self.step, "progressPct": self.progress_pct}


@dataclass
class CitationCheckJob:
    """Snapshot of a citation-check job as reported by the backend."""

    job_id: str
    status: str
    step: str = ""
    progress_pct: int = 0
    summary: CitationSummary = field(default_factory=CitationSummary)
    issues: List[CitationIssue] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return JobStatus.is_terminal(self.status)

    def status_update(self) -> StatusUpdate:
        return StatusUpdate(status=self.status, step=self.step, progress_pct=self.progress_pct)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "jobId": self.job_id,
            "status": self.status,
            "step": self.step,
            "progressPct": self.progress_pct,
            "summary": self.summary.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
        }
        if self.error_message is not None:
            data["errorMessage"] = self.error_message
        return data


class CheckOptions(BaseModel):
    """Checker tuning sent with every job submission."""

    check_local: bool = True
    check_web: bool = True
    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
    plagiarism_threshold: float = Field(0.92, ge=0.0, le=1.0)
    max_evidence_per_issue: int = Field(5, ge=1)
    strict_mode: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            "checkLocal": self.check_local,
            "checkWeb": self.check_web,
            "similarityThreshold": self.similarity_threshold,
            "plagiarismThreshold": self.plagiarism_threshold,
            "maxEvidencePerIssue": self.max_evidence_per_issue,
            "strictMode": self.strict_mode,
        }


class StartCitationCheckRequest(BaseModel):
    project_id: str
    document_id: str
    tex_file_name: str
    latex_content: str
    selected_paper_ids: List[str] = Field(default_factory=list)
    force_recheck: bool = False
    run_web_check: bool = True
    content_hash: Optional[str] = None

    @field_validator("project_id", "document_id")
    @classmethod
    def require_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identifier must not be empty")
        return value

    @field_validator("content_hash")
    @classmethod
    def lowercase_hash(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else None

    def to_payload(self, content_hash: str) -> Dict[str, Any]:
        options = CheckOptions(check_web=self.run_web_check)
        return {
            "projectId": self.project_id,
            "documentId": self.document_id,
            "selectedPaperIds": list(self.selected_paper_ids),
            "content": self.latex_content,
            "filename": self.tex_file_name,
            "contentHash": content_hash,
            "forceRecheck": self.force_recheck,
            "options": options.to_payload(),
        }


@dataclass
class ReviewResult:
    text: str
    cached: bool = False
