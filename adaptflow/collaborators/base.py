"""Base interface for the remote step collaborators."""

from __future__ import annotations

import abc
from typing import Any, Dict


class BaseCollaborator(metaclass=abc.ABCMeta):
    """Abstract boundary to the extraction, summarization and custom functions.

    Every operation receives the merged request body
    ``{**input, **config, "userId": user_id}`` and returns parsed JSON.
    """

    async def connect(self) -> None:
        """Open underlying resources (no-op by default)."""
        pass

    async def aclose(self) -> None:
        """Release underlying resources (no-op by default)."""
        pass

    async def __aenter__(self) -> "BaseCollaborator":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @abc.abstractmethod
    async def extract(self, body: Dict[str, Any]) -> Any:
        """Run data extraction."""
        raise NotImplementedError

    @abc.abstractmethod
    async def summarize(self, body: Dict[str, Any]) -> Any:
        """Run summarization."""
        raise NotImplementedError

    @abc.abstractmethod
    async def execute_custom(self, body: Dict[str, Any]) -> Any:
        """Run a custom step or a workflow-level manual trigger."""
        raise NotImplementedError
