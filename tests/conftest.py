import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import httpx
import pytest

from scholar_citations.client import CitationApiClient

SERVICE_URL = "http://backend.test/project-service"


@pytest.fixture()
def legacy_issue() -> dict:
    """An issue DTO as the citation service has historically sent it."""

    return {
        "id": "iss-1",
        "projectId": "proj-1",
        "documentId": "doc-1",
        "filename": "main.tex",
        "issueType": "weak-citation",
        "severity": "HIGH",
        "position": 10,
        "length": 4,
        "lineStart": "3",
        "lineEnd": 3,
        "citationText": "as shown in \\cite{doe2021}",
        "citedKeys": ["doe2021"],
        "suggestions": [{"kind": "local", "score": 0.91, "paperId": "paper-7"}],
        "evidence": [],
        "createdAt": "2024-05-01T10:00:00Z",
    }


@pytest.fixture()
def job_payload(legacy_issue):
    """Build job DTOs the way ``GET /api/citations/jobs/{id}`` returns them."""

    def build(status: str = "DONE", issues=None, **extra) -> dict:
        payload = {
            "id": "job-1",
            "status": status,
            "currentStep": "DONE" if status == "DONE" else "LOCAL_VERIFICATION",
            "progressPercent": 100 if status == "DONE" else 40,
            "summary": {"totalIssues": 1, "typeCounts": {"weak-citation": 1}},
            "issues": [legacy_issue] if issues is None else issues,
        }
        payload.update(extra)
        return payload

    return build


@pytest.fixture()
def sse_body():
    """Encode messages as a text/event-stream body."""

    def build(*messages) -> bytes:
        frames = []
        for message in messages:
            data = message if isinstance(message, str) else json.dumps(message)
            frames.append(f"data: {data}\n\n")
        return "".join(frames).encode("utf-8")

    return build


@pytest.fixture()
def make_client():
    """Create an API client whose requests are answered by ``handler``."""

    def build(handler, poll_interval: float = 0.01, token=None) -> CitationApiClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return CitationApiClient(SERVICE_URL, token=token, poll_interval=poll_interval, http=http)

    return build
