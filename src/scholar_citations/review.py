"""AI final review of a document, answered from cache while the content is unchanged."""
from __future__ import annotations

import logging
from typing import Optional

from .client import CitationApiClient
from .hashing import ContentCache
from .models import ReviewResult

logger = logging.getLogger(__name__)


class FinalReviewService:
    def __init__(self, client: CitationApiClient, cache: Optional[ContentCache[str]] = None):
        self.client = client
        self.cache: ContentCache[str] = cache if cache is not None else ContentCache()

    async def review(self, content: str) -> ReviewResult:
        if not content.strip():
            raise ValueError("No content to review")
        cached = self.cache.get(content)
        if cached is not None:
            logger.debug("Final review served from cache")
            return ReviewResult(text=cached, cached=True)
        text = await self.client.generate_final_review(content)
        self.cache.put(content, text)
        return ReviewResult(text=text, cached=False)

    async def regenerate(self, content: str) -> ReviewResult:
        """Drop any cached review for ``content`` and ask the backend again."""
        if not content.strip():
            raise ValueError("No content to review")
        self.cache.discard(content)
        return await self.review(content)
