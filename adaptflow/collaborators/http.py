"""HTTP collaborator calling the backend's serverless functions."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import EndpointConfig
from ..contracts import CollaboratorError
from .base import BaseCollaborator

logger = logging.getLogger(__name__)


class HttpCollaborator(BaseCollaborator):
    """POST JSON request bodies to the configured function endpoints."""

    def __init__(
        self,
        base_url: str,
        endpoints: Optional[EndpointConfig] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.endpoints = endpoints or EndpointConfig()
        self.api_key = api_key
        self.timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, headers=self._headers, timeout=self.timeout
            )
            self._owns_client = True

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, body: Dict[str, Any]) -> Any:
        if self._client is None:
            await self.connect()
        try:
            response = await self._client.post(path, json=body, headers=self._headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorError(
                f"{path} returned HTTP {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"Request to {path} failed: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorError(f"{path} returned invalid JSON: {exc}") from exc

    async def extract(self, body: Dict[str, Any]) -> Any:
        return await self._post(self.endpoints.extract, body)

    async def summarize(self, body: Dict[str, Any]) -> Any:
        return await self._post(self.endpoints.summarize, body)

    async def execute_custom(self, body: Dict[str, Any]) -> Any:
        return await self._post(self.endpoints.custom, body)
