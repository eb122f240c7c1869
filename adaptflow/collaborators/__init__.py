"""Collaborator factory and initialization."""

from __future__ import annotations

from typing import Optional

from ..config import AdaptflowConfig, load_config
from .base import BaseCollaborator
from .http import HttpCollaborator
from .inmemory import InMemoryCollaborator


def get_collaborator(
    backend: Optional[str] = None, config: Optional[AdaptflowConfig] = None
) -> BaseCollaborator:
    """Return a collaborator for ``backend`` or the configured default."""

    config = config or load_config()
    settings = config.collaborator
    backend = backend or settings.backend

    if backend == "inmemory":
        return InMemoryCollaborator()
    if backend == "http":
        return HttpCollaborator(
            base_url=settings.base_url,
            endpoints=settings.endpoints,
            api_key=settings.api_key,
            timeout=settings.timeout,
            headers=settings.headers,
        )
    raise ValueError(f"Unsupported collaborator backend: {backend}")


__all__ = [
    "BaseCollaborator",
    "HttpCollaborator",
    "InMemoryCollaborator",
    "get_collaborator",
]
