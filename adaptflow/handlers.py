"""Step handler registry keyed by step type."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional

from .collaborators import BaseCollaborator
from .contracts import StepType, UnknownStepTypeError
from .dependencies import ANNOTATION_FIELDS

logger = logging.getLogger(__name__)

StepHandler = Callable[[Dict[str, Any], Dict[str, Any], str], Awaitable[Dict[str, Any]]]


def build_request(payload: Mapping[str, Any], config: Mapping[str, Any], user_id: str) -> Dict[str, Any]:
    """Request body sent to a collaborator: input, then config, then ``userId``."""
    return {**payload, **config, "userId": user_id}


def merge_response(payload: Mapping[str, Any], response: Any) -> Dict[str, Any]:
    """Merge a collaborator response onto the step input."""
    if response is None:
        return dict(payload)
    if not isinstance(response, Mapping):
        response = {"result": response}
    return {**payload, **response}


def remote_handler(operation: Callable[[Dict[str, Any]], Awaitable[Any]]) -> StepHandler:
    """Wrap a collaborator operation as a step handler."""

    async def _handler(payload: Dict[str, Any], config: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        response = await operation(build_request(payload, config, user_id))
        return merge_response(payload, response)

    _handler.__name__ = f"remote_{getattr(operation, '__name__', 'operation')}"
    return _handler


def annotation_handler(field: str) -> StepHandler:
    """Local hook that marks the payload with ``field = True``.

    Classification, transformation and validation are placeholders meant to
    be replaced through :meth:`HandlerRegistry.register`.
    """

    async def _handler(payload: Dict[str, Any], config: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        return {**payload, field: True}

    _handler.__name__ = f"annotate_{field}"
    return _handler


class HandlerRegistry:
    """Maps step type tags to async handlers."""

    def __init__(self, handlers: Optional[Mapping[str, StepHandler]] = None) -> None:
        self._handlers: Dict[str, StepHandler] = {}
        for step_type, handler in (handlers or {}).items():
            self.register(step_type, handler)

    def register(self, step_type: str | StepType, handler: StepHandler) -> None:
        """Register or replace the handler for ``step_type``."""
        key = step_type.value if isinstance(step_type, StepType) else step_type
        if key in self._handlers:
            logger.debug(f"Replacing handler for step type {key}")
        self._handlers[key] = handler

    def get(self, step_type: str) -> StepHandler:
        try:
            return self._handlers[step_type]
        except KeyError:
            raise UnknownStepTypeError(step_type) from None

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)


def default_handlers(collaborator: BaseCollaborator) -> HandlerRegistry:
    """Registry with the six built-in step types."""
    return HandlerRegistry(
        {
            StepType.EXTRACT.value: remote_handler(collaborator.extract),
            StepType.SUMMARIZE.value: remote_handler(collaborator.summarize),
            StepType.CUSTOM.value: remote_handler(collaborator.execute_custom),
            StepType.CLASSIFY.value: annotation_handler(ANNOTATION_FIELDS[StepType.CLASSIFY.value]),
            StepType.TRANSFORM.value: annotation_handler(ANNOTATION_FIELDS[StepType.TRANSFORM.value]),
            StepType.VALIDATE.value: annotation_handler(ANNOTATION_FIELDS[StepType.VALIDATE.value]),
        }
    )
