"""In-process collaborator for tests and offline runs."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .base import BaseCollaborator

Operation = Callable[[Dict[str, Any]], Awaitable[Any]]


class InMemoryCollaborator(BaseCollaborator):
    """Echo collaborator that records every call.

    Without overrides each operation answers with a single annotation key
    (``extracted``, ``summary`` or ``custom``). Pass coroutine functions in
    ``overrides`` keyed by operation name to script responses or failures.
    """

    def __init__(self, overrides: Optional[Dict[str, Operation]] = None) -> None:
        self.overrides: Dict[str, Operation] = dict(overrides or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def _dispatch(self, operation: str, body: Dict[str, Any], default: Any) -> Any:
        self.calls.append((operation, dict(body)))
        override = self.overrides.get(operation)
        if override is not None:
            return await override(body)
        return default

    def calls_for(self, operation: str) -> List[Dict[str, Any]]:
        return [body for name, body in self.calls if name == operation]

    async def extract(self, body: Dict[str, Any]) -> Any:
        return await self._dispatch("extract", body, {"extracted": True})

    async def summarize(self, body: Dict[str, Any]) -> Any:
        text = body.get("text")
        summary = text[:200] if isinstance(text, str) else ""
        return await self._dispatch("summarize", body, {"summary": summary})

    async def execute_custom(self, body: Dict[str, Any]) -> Any:
        return await self._dispatch("execute_custom", body, {"custom": True})
