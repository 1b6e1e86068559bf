"""HTTP client for the citation-check endpoints of the project service."""
from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, Dict, Optional

import httpx

from .auth import BearerTokenAuth
from .config import Settings
from .errors import CitationApiError, CitationServiceError
from .hashing import sha256_hex
from .models import CitationCheckJob, StartCitationCheckRequest
from .normalization import normalize_job

logger = logging.getLogger(__name__)

USER_AGENT = "scholar-citations/0.1"


class CitationApiClient:
    """Async wrapper around the citation-check REST API.

    Every call raises :class:`CitationApiError` on a non-2xx answer, with the
    single exception of :meth:`get_citation_result`, where 404 means the
    document has never been checked.
    """

    def __init__(
        self,
        service_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.auth = BearerTokenAuth(token)
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: Settings, http: Optional[httpx.AsyncClient] = None
    ) -> "CitationApiClient":
        return cls(
            settings.service_url,
            token=settings.auth_token,
            timeout=settings.timeout,
            poll_interval=settings.poll_interval,
            http=http,
        )

    @staticmethod
    def _headers() -> Dict[str, str]:
        return {"Accept": "application/json", "User-Agent": USER_AGENT}

    async def __aenter__(self) -> "CitationApiClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def url(self, path: str) -> str:
        return f"{self.service_url}{path}"

    async def _request(
        self, method: str, path: str, action: str, json: Any = None
    ) -> httpx.Response:
        response = await self._http.request(
            method, self.url(path), json=json, headers=self._headers(), auth=self.auth
        )
        if response.is_success:
            return response
        raise CitationApiError.from_response(action, response)

    async def start_citation_check(self, request: StartCitationCheckRequest) -> str:
        """Submit a job for one document and return its id."""
        content_hash = request.content_hash or sha256_hex(request.latex_content)
        payload = request.to_payload(content_hash)
        response = await self._request(
            "POST", "/api/citations/jobs", "Failed to start citation check", json=payload
        )
        job_id = response.json().get("id")
        if not job_id:
            raise CitationServiceError("Citation check started without a job id")
        logger.info(
            "Started citation job %s for document %s (hash %s, force=%s)",
            job_id,
            request.document_id,
            content_hash[:12],
            request.force_recheck,
        )
        return str(job_id)

    async def start_project_check(
        self,
        project_id: str,
        content: str,
        enable_web: bool = False,
        content_hash: Optional[str] = None,
    ) -> str:
        """Submit a job through the simplified per-project endpoint."""
        content_hash = content_hash or sha256_hex(content)
        response = await self._request(
            "POST",
            f"/api/citations/check/{project_id}",
            "Failed to start citation check",
            json={"content": content, "enableWeb": enable_web, "contentHash": content_hash},
        )
        job_id = response.json().get("jobId")
        if not job_id:
            raise CitationServiceError("Citation check started without a job id")
        logger.info("Started citation job %s for project %s (hash %s)", job_id, project_id, content_hash[:12])
        return str(job_id)

    async def get_citation_job(self, job_id: str) -> CitationCheckJob:
        response = await self._request(
            "GET", f"/api/citations/jobs/{job_id}", "Failed to get citation job"
        )
        return normalize_job(response.json())

    async def get_citation_result(self, document_id: str) -> Optional[CitationCheckJob]:
        """Return the latest job for a document, or ``None`` if it was never checked."""
        response = await self._http.get(
            self.url(f"/api/citations/documents/{document_id}"), headers=self._headers(), auth=self.auth
        )
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise CitationApiError.from_response("Failed to get citation result", response)
        return normalize_job(response.json())

    async def update_citation_issue(self, issue_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "PUT", f"/api/citations/issues/{issue_id}", "Failed to update citation issue", json=patch
        )
        return response.json()

    async def cancel_citation_job(self, job_id: str) -> None:
        await self._request("DELETE", f"/api/citations/jobs/{job_id}", "Failed to cancel citation job")
        logger.info("Cancelled citation job %s", job_id)

    async def generate_final_review(self, content: str) -> str:
        response = await self._request(
            "POST",
            "/api/ai-assistance/final-review",
            "Failed to generate final review",
            json={"content": content},
        )
        body = response.json()
        if isinstance(body, dict):
            return str(body.get("data") or "")
        return str(body)

    def open_event_stream(self, job_id: str) -> AsyncContextManager[httpx.Response]:
        """Open the server-sent event stream of a job.

        The read timeout is disabled since the server may stay quiet for
        long stretches between events.
        """
        return self._http.stream(
            "GET",
            self.url(f"/api/citations/jobs/{job_id}/events"),
            headers={**self._headers(), "Accept": "text/event-stream", "Cache-Control": "no-cache"},
            auth=self.auth,
            timeout=httpx.Timeout(self.timeout, read=None),
        )


__all__ = ["CitationApiClient", "USER_AGENT"]
