import json

import httpx
import pytest

from adaptflow.collaborators import HttpCollaborator
from adaptflow.config import EndpointConfig
from adaptflow.contracts import CollaboratorError


def _collaborator(handler, **kwargs):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://fn.example.com"
    )
    return HttpCollaborator("https://fn.example.com", client=client, **kwargs)


@pytest.mark.asyncio
async def test_posts_body_to_endpoint_with_auth():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"entities": ["acme"]})

    collaborator = _collaborator(handler, api_key="secret")
    response = await collaborator.extract({"text": "hi", "userId": "u1"})

    assert response == {"entities": ["acme"]}
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/functions/v1/extract-data"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"text": "hi", "userId": "u1"}


@pytest.mark.asyncio
async def test_each_operation_uses_its_endpoint():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={})

    collaborator = _collaborator(handler, endpoints=EndpointConfig(custom="/run"))
    await collaborator.summarize({})
    await collaborator.execute_custom({})

    assert paths == ["/functions/v1/summarization-executor", "/run"]


@pytest.mark.asyncio
async def test_http_error_raises_collaborator_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    collaborator = _collaborator(handler)

    with pytest.raises(CollaboratorError, match="HTTP 503") as excinfo:
        await collaborator.summarize({"text": "x"})
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_transport_error_raises_collaborator_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    collaborator = _collaborator(handler)

    with pytest.raises(CollaboratorError, match="connection refused"):
        await collaborator.execute_custom({})


@pytest.mark.asyncio
async def test_invalid_json_raises_collaborator_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    collaborator = _collaborator(handler)

    with pytest.raises(CollaboratorError, match="invalid JSON"):
        await collaborator.extract({})


@pytest.mark.asyncio
async def test_injected_client_left_open():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"null")

    collaborator = _collaborator(handler)
    async with collaborator:
        assert await collaborator.extract({}) is None
    assert not collaborator._client.is_closed
