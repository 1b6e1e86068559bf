"""Bearer-token credential shared by every backend request."""
from __future__ import annotations

import logging
from typing import Generator, Optional

import httpx

logger = logging.getLogger(__name__)

REFRESHED_TOKEN_HEADER = "X-New-Access-Token"


class BearerTokenAuth(httpx.Auth):
    """Attach ``Authorization: Bearer`` and adopt tokens refreshed by the gateway.

    The API gateway may rotate an expiring token on any response and hands
    the new one back in ``X-New-Access-Token``.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self.token:
            request.headers["Authorization"] = f"Bearer {self.token}"
        response = yield request
        refreshed = response.headers.get(REFRESHED_TOKEN_HEADER)
        if refreshed and refreshed != self.token:
            logger.debug("Adopting refreshed access token from %s", request.url.host)
            self.token = refreshed
