"""Snapshot polling for citation-check jobs."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

from .client import CitationApiClient
from .models import CitationCheckJob

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


async def poll_citation_job(
    client: CitationApiClient,
    job_id: str,
    on_tick: Optional[Callable[[CitationCheckJob], Any]] = None,
    interval: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> CitationCheckJob:
    """Fetch the job every ``interval`` seconds until it is DONE or ERROR.

    The first fetch also waits one interval. Fetch errors propagate to the
    caller; cancel the surrounding task to stop polling early.
    """
    interval = client.poll_interval if interval is None else interval
    ticks = 0
    while True:
        await sleep(interval)
        snapshot = await client.get_citation_job(job_id)
        ticks += 1
        logger.debug(
            "Poll %d for job %s: %s %s (%d%%)",
            ticks,
            job_id,
            snapshot.status,
            snapshot.step,
            snapshot.progress_pct,
        )
        if on_tick is not None:
            result = on_tick(snapshot)
            if inspect.isawaitable(result):
                await result
        if snapshot.is_terminal:
            logger.info("Job %s reached %s after %d polls", job_id, snapshot.status, ticks)
            return snapshot
