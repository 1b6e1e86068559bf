"""Server-sent event stream for a single citation-check job."""
from __future__ import annotations

import enum
import inspect
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Optional, Tuple

import httpx

from .client import CitationApiClient
from .errors import StreamParseError, StreamTransportError
from .events import (
    CompleteEvent,
    IssueEvent,
    StatusEvent,
    StreamEvent,
    SummaryEvent,
    decode_event,
    parse_event,
)

logger = logging.getLogger(__name__)

Callback = Optional[Callable[..., Any]]


class StreamState(enum.Enum):
    PENDING = "pending"
    OPEN = "open"
    COMPLETED = "completed"
    CLOSED = "closed"
    ERRORED = "errored"


async def _call(callback: Callback, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def iter_sse_frames(lines: AsyncIterator[str]) -> AsyncIterator[Tuple[str, str]]:
    """Group event-stream lines into ``(event_name, data)`` frames.

    A frame still buffered when the stream ends is dropped, as browsers do.
    """
    event_name = ""
    data: List[str] = []
    async for line in lines:
        if not line:
            if data:
                yield event_name, "\n".join(data)
            event_name, data = "", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data.append(value)
        elif name == "event":
            event_name = value


@dataclass
class StreamHandlers:
    on_status: Callback = None
    on_issue: Callback = None
    on_summary: Callback = None
    on_complete: Callback = None
    on_event: Callback = None
    on_error: Callback = None

    async def dispatch(self, event: StreamEvent) -> None:
        if isinstance(event, StatusEvent):
            await _call(self.on_status, event.update)
        elif isinstance(event, IssueEvent):
            await _call(self.on_issue, event.issue)
        elif isinstance(event, SummaryEvent):
            await _call(self.on_summary, event.summary)
        elif isinstance(event, CompleteEvent):
            await _call(self.on_complete)


class CitationEventStream:
    """Follow one job over its event endpoint.

    The stream never reconnects: a transport failure moves it to ERRORED and
    the caller decides what to do next. ``close()`` may be called at any
    time; no error is reported after it.
    """

    def __init__(self, client: CitationApiClient, job_id: str):
        self.client = client
        self.job_id = job_id
        self.state = StreamState.PENDING

    @property
    def closed(self) -> bool:
        return self.state is StreamState.CLOSED

    def close(self) -> None:
        if self.state in (StreamState.PENDING, StreamState.OPEN):
            logger.info("Closing event stream for job %s", self.job_id)
            self.state = StreamState.CLOSED

    async def _report_parse_error(self, exc: StreamParseError, on_parse_error: Callback) -> None:
        logger.warning("Dropping malformed event for job %s: %s", self.job_id, exc)
        if not self.closed:
            await _call(on_parse_error, exc)

    async def _decode(
        self, event_name: str, data: str, on_raw: Callback, on_parse_error: Callback
    ) -> Optional[StreamEvent]:
        try:
            message, event = decode_event(data)
        except StreamParseError as exc:
            await self._report_parse_error(exc, on_parse_error)
            return None
        if event is None and "type" not in message and event_name not in ("", "message"):
            event = parse_event({**message, "type": event_name})
        await _call(on_raw, message)
        return event

    async def events(
        self, on_raw: Callback = None, on_parse_error: Callback = None
    ) -> AsyncIterator[StreamEvent]:
        """Yield typed events in the order the server sends them.

        Ends after ``complete`` or once the stream is closed. Raises
        :class:`StreamTransportError` if the connection fails first.
        """
        if self.state is StreamState.CLOSED:
            return
        if self.state is not StreamState.PENDING:
            raise RuntimeError(f"Event stream for job {self.job_id} was already consumed")

        try:
            async with self.client.open_event_stream(self.job_id) as response:
                if not response.is_success:
                    self.state = StreamState.ERRORED
                    raise StreamTransportError(
                        f"Event stream for job {self.job_id} returned HTTP {response.status_code}"
                    )
                if self.closed:
                    return
                self.state = StreamState.OPEN
                logger.info("Event stream opened for job %s", self.job_id)

                async for event_name, data in iter_sse_frames(response.aiter_lines()):
                    if self.closed:
                        return
                    event = await self._decode(event_name, data, on_raw, on_parse_error)
                    if event is None:
                        continue
                    yield event
                    if self.closed:
                        return
                    if isinstance(event, CompleteEvent):
                        self.state = StreamState.COMPLETED
                        logger.info("Event stream completed for job %s", self.job_id)
                        return
        except httpx.HTTPError as exc:
            if self.closed:
                return
            self.state = StreamState.ERRORED
            raise StreamTransportError(f"Event stream for job {self.job_id} failed: {exc}") from exc

        if self.state is StreamState.OPEN:
            self.state = StreamState.ERRORED
            raise StreamTransportError(f"Event stream for job {self.job_id} ended before completion")

    async def run(self, handlers: StreamHandlers) -> None:
        """Consume the stream and dispatch every event to ``handlers``."""
        events = self.events(on_raw=handlers.on_event, on_parse_error=handlers.on_error)
        try:
            async with aclosing(events):
                async for event in events:
                    await handlers.dispatch(event)
        except StreamTransportError as exc:
            logger.warning("%s", exc)
            if self.closed:
                return
            if handlers.on_error is None:
                raise
            await _call(handlers.on_error, exc)


def stream_citation_job(client: CitationApiClient, job_id: str) -> CitationEventStream:
    return CitationEventStream(client, job_id)


__all__ = [
    "CitationEventStream",
    "StreamHandlers",
    "StreamState",
    "iter_sse_frames",
    "stream_citation_job",
]
