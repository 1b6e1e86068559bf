"""Client configuration loaded from environment variables.

Usage:
    from scholar_citations.config import load_settings
    settings = load_settings()
    print(settings.service_url)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_DEV_URL = "http://localhost:8989"
DEFAULT_DOCKER_URL = "http://scholar-api-gateway:8989"
DEFAULT_SERVICE = "project-service"


@dataclass(frozen=True)
class Settings:
    """Typed configuration for talking to the citation backend."""

    environment: str
    base_url: str
    service: str = DEFAULT_SERVICE
    auth_token: Optional[str] = None
    timeout: float = 30.0
    poll_interval: float = 2.0

    @property
    def service_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.service.strip('/')}"


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _base_url(env: Mapping[str, str], environment: str) -> str:
    if environment == "docker":
        return env.get("SCHOLARAI_DOCKER_BACKEND_URL") or DEFAULT_DOCKER_URL
    if environment == "prod":
        url = env.get("SCHOLARAI_API_BASE_URL")
        if not url:
            raise ValueError("SCHOLARAI_API_BASE_URL is required when SCHOLARAI_ENV=prod")
        return url
    return env.get("SCHOLARAI_DEV_API_URL") or DEFAULT_DEV_URL


def load_settings(
    env: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = None
) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    A ``.env`` file is loaded first when reading the real environment; it
    never overrides variables that are already set.
    """
    if env is None:
        load_dotenv(env_file, override=False)
        env = os.environ

    environment = (env.get("SCHOLARAI_ENV") or "dev").strip().lower()
    if environment not in {"dev", "docker", "prod"}:
        environment = "dev"

    return Settings(
        environment=environment,
        base_url=_base_url(env, environment),
        service=env.get("SCHOLARAI_SERVICE") or DEFAULT_SERVICE,
        auth_token=env.get("SCHOLARAI_AUTH_TOKEN") or None,
        timeout=_float(env, "SCHOLARAI_TIMEOUT", 30.0),
        poll_interval=_float(env, "SCHOLARAI_POLL_INTERVAL", 2.0),
    )
