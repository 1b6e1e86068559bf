"""Resilient citation-check sessions: stream first, poll when the stream fails."""
from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Set

from .client import CitationApiClient
from .errors import CitationJobFailed, StreamParseError
from .events import (
    CompleteEvent,
    ErrorEvent,
    IssueEvent,
    SessionUpdate,
    SnapshotEvent,
    StatusEvent,
    SummaryEvent,
)
from .hashing import sha256_hex
from .models import CitationCheckJob, CitationIssue, CitationSummary, StatusUpdate
from .polling import poll_citation_job
from .stream import CitationEventStream, StreamHandlers

logger = logging.getLogger(__name__)

Callback = Optional[Callable[..., Any]]


class TransportState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    POLLING = "polling"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL_STATES = frozenset(
    {TransportState.FINISHED, TransportState.FAILED, TransportState.CANCELLED}
)


@dataclass
class StartResult:
    job_id: str
    result: Optional[CitationCheckJob] = None
    session: Optional["CitationCheckSession"] = field(default=None, repr=False, compare=False)


def _issue_key(issue: CitationIssue) -> str:
    return issue.id or f"{issue.type}:{issue.start}:{issue.end}"


class CitationCheckSession:
    """Run one citation check and keep a single transport alive for it.

    Updates are delivered in transport order both to the optional callbacks
    and to the :meth:`updates` channel. The session starts on the event
    stream and moves to polling on the first stream failure, whether the
    connection broke or a frame could not be decoded; it never goes back.
    An exception raised by a callback fails the session.
    """

    def __init__(
        self,
        client: CitationApiClient,
        project_id: str,
        content: str,
        enable_web: bool = False,
        on_status: Callback = None,
        on_issue: Callback = None,
        on_summary: Callback = None,
        on_complete: Callback = None,
        on_event: Callback = None,
        on_error: Callback = None,
        poll_interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.project_id = project_id
        self.content = content
        self.enable_web = enable_web
        self.poll_interval = client.poll_interval if poll_interval is None else poll_interval
        self.callbacks: Dict[str, Callback] = {
            "status": on_status,
            "issue": on_issue,
            "summary": on_summary,
            "complete": on_complete,
            "event": on_event,
            "error": on_error,
        }
        self._sleep = sleep

        self.state = TransportState.IDLE
        self.job_id: Optional[str] = None
        self.content_hash: Optional[str] = None
        self.result: Optional[CitationCheckJob] = None
        self.error: Optional[BaseException] = None
        self.stream: Optional[CitationEventStream] = None

        self._stream_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._queue: "asyncio.Queue[Optional[SessionUpdate]]" = asyncio.Queue()
        self._finished = asyncio.Event()
        self._seen_issues: Set[str] = set()
        self._last_summary: Optional[CitationSummary] = None

    @property
    def done(self) -> bool:
        return self.state in _TERMINAL_STATES

    async def start(self, streaming: bool = True) -> StartResult:
        """Submit the job and begin following it in the background.

        Returns as soon as the job id is known; progress arrives through the
        callbacks and :meth:`updates`.
        """
        if self.state is not TransportState.IDLE:
            raise RuntimeError("Citation check session already started")

        self.content_hash = sha256_hex(self.content)
        logger.info("Starting citation check for project %s (hash %s)", self.project_id, self.content_hash)
        self.job_id = await self.client.start_project_check(
            self.project_id, self.content, enable_web=self.enable_web, content_hash=self.content_hash
        )

        if streaming:
            self._open_stream()
        else:
            self._begin_polling()
        return StartResult(job_id=self.job_id, result=None, session=self)

    def _open_stream(self) -> None:
        self.state = TransportState.STREAMING
        self.stream = CitationEventStream(self.client, self.job_id)
        handlers = StreamHandlers(
            on_status=self._on_status,
            on_issue=self._on_issue,
            on_summary=self._on_summary,
            on_complete=self._on_stream_complete,
            on_event=self._on_raw_event,
            on_error=self._on_stream_error,
        )
        self._stream_task = asyncio.create_task(self._stream(handlers))

    async def _stream(self, handlers: StreamHandlers) -> None:
        try:
            await self.stream.run(handlers)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Event stream for job %s failed: %s", self.job_id, exc)
            await self._fail(exc)

    def _begin_polling(self) -> None:
        self.state = TransportState.POLLING
        self._poll_task = asyncio.create_task(self._poll())

    def fall_back_to_polling(self, reason: Optional[BaseException] = None) -> bool:
        """Swap the event stream for polling.

        Only the first call while streaming has an effect; the state change
        happens before anything is awaited, so concurrent stream errors cannot
        start a second poller. Returns whether polling was started.
        """
        if self.state is not TransportState.STREAMING:
            return False
        logger.info("Switching job %s to polling: %s", self.job_id, reason or "requested")
        self.stream.close()
        task = self._stream_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._begin_polling()
        return True

    async def _emit(self, update: SessionUpdate, callback: str, *args: Any) -> None:
        self._queue.put_nowait(update)
        handler = self.callbacks.get(callback)
        if handler is None:
            return
        result = handler(*args)
        if inspect.isawaitable(result):
            await result

    async def _on_status(self, update: StatusUpdate) -> None:
        if self.done:
            return
        await self._emit(StatusEvent(update), "status", update)

    async def _on_issue(self, issue: CitationIssue) -> None:
        if self.done:
            return
        key = _issue_key(issue)
        if key in self._seen_issues:
            return
        self._seen_issues.add(key)
        await self._emit(IssueEvent(issue), "issue", issue)

    async def _on_summary(self, summary: CitationSummary) -> None:
        if self.done or summary == self._last_summary:
            return
        self._last_summary = summary
        await self._emit(SummaryEvent(summary), "summary", summary)

    async def _on_raw_event(self, message: Dict[str, Any]) -> None:
        handler = self.callbacks.get("event")
        if handler is not None:
            result = handler(message)
            if inspect.isawaitable(result):
                await result

    async def _on_stream_error(self, exc: BaseException) -> None:
        if isinstance(exc, StreamParseError):
            await self._report_error(exc)
        self.fall_back_to_polling(exc)

    async def _on_stream_complete(self) -> None:
        if self.state is not TransportState.STREAMING:
            return
        try:
            job = await self.client.get_citation_job(self.job_id)
        except Exception as exc:
            await self._fail(exc)
            return
        await self._finish(job)

    async def _on_snapshot(self, job: CitationCheckJob) -> None:
        if self.state is not TransportState.POLLING:
            return
        await self._on_status(job.status_update())
        for issue in job.issues:
            await self._on_issue(issue)
        await self._on_summary(job.summary)

    async def _poll(self) -> None:
        try:
            job = await poll_citation_job(
                self.client,
                self.job_id,
                on_tick=self._on_snapshot,
                interval=self.poll_interval,
                sleep=self._sleep,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Polling failed for job %s: %s", self.job_id, exc)
            await self._fail(exc)
            return
        await self._finish(job)

    async def _report_error(self, exc: BaseException) -> None:
        await self._emit(ErrorEvent(exc), "error", exc)

    async def _finish(self, job: CitationCheckJob) -> None:
        if self.done:
            return
        self.state = TransportState.FINISHED
        self.result = job
        logger.info("Citation job %s finished with status %s", self.job_id, job.status)
        try:
            await self._emit(CompleteEvent(), "complete", job)
        finally:
            self._queue.put_nowait(SnapshotEvent(job))
            self._close_channel()

    async def _fail(self, exc: BaseException) -> None:
        if self.done:
            return
        self.state = TransportState.FAILED
        self.error = exc
        self._stop_transports()
        try:
            await self._report_error(exc)
        finally:
            self._close_channel()

    def _stop_transports(self) -> None:
        if self.stream is not None:
            self.stream.close()
        current = asyncio.current_task()
        for task in (self._stream_task, self._poll_task):
            if task is not None and not task.done() and task is not current:
                task.cancel()

    def _close_channel(self) -> None:
        self._queue.put_nowait(None)
        self._finished.set()

    async def cancel(self) -> None:
        """Stop following the job and ask the backend to cancel it."""
        if self.done:
            return
        self.state = TransportState.CANCELLED
        self._stop_transports()
        self._close_channel()
        if self.job_id:
            await self.client.cancel_citation_job(self.job_id)

    async def updates(self) -> AsyncIterator[SessionUpdate]:
        """Yield every update until the session finishes, fails or is cancelled."""
        while True:
            update = await self._queue.get()
            if update is None:
                return
            yield update

    async def wait(self) -> CitationCheckJob:
        """Wait for the terminal job snapshot."""
        await self._finished.wait()
        if self.state is TransportState.FAILED:
            raise CitationJobFailed(f"Citation job {self.job_id} could not be followed: {self.error}") from self.error
        if self.state is TransportState.CANCELLED:
            raise CitationJobFailed(f"Citation job {self.job_id} was cancelled")
        return self.result


async def start_citation_check_with_streaming(
    client: CitationApiClient,
    project_id: str,
    content: str,
    enable_web: bool = False,
    on_status: Callback = None,
    on_issue: Callback = None,
    on_summary: Callback = None,
    on_event: Callback = None,
) -> StartResult:
    """Start a check and follow it in the background, streaming with polling fallback."""
    session = CitationCheckSession(
        client,
        project_id,
        content,
        enable_web=enable_web,
        on_status=on_status,
        on_issue=on_issue,
        on_summary=on_summary,
        on_event=on_event,
    )
    return await session.start()


__all__ = [
    "CitationCheckSession",
    "StartResult",
    "TransportState",
    "start_citation_check_with_streaming",
]
