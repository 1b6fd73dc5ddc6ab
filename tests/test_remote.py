from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from hectrack.services.remote import RemoteProjectStore, RemoteUnavailableError


def _client(handler, **kwargs) -> RemoteProjectStore:
    kwargs.setdefault("retry_attempts", 1)
    return RemoteProjectStore(
        "https://docs.example.test/v1/",
        "projects",
        retry_min_wait=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_get_all_accepts_list_and_wrapped_payloads() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if len(seen) == 1:
            return httpx.Response(200, json=[{"id": "a"}, "junk"])
        return httpx.Response(200, json={"documents": [{"id": "b"}]})

    remote = _client(handler, api_key="secret")

    assert asyncio.run(remote.get_all()) == [{"id": "a"}]
    assert asyncio.run(remote.get_all()) == [{"id": "b"}]
    assert str(seen[0].url) == "https://docs.example.test/v1/projects"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_put_sends_full_document() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={})

    asyncio.run(_client(handler).put("p-1", {"id": "p-1", "projectName": "Bridge"}))

    assert seen == [("PUT", "/v1/projects/p-1", {"id": "p-1", "projectName": "Bridge"})]


def test_delete_treats_missing_document_as_deleted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    asyncio.run(_client(handler).delete("p-1"))


def test_transient_errors_are_retried() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    assert asyncio.run(_client(handler, retry_attempts=3).get_all()) == []
    assert len(attempts) == 3


def test_connection_errors_surface_as_remote_unavailable() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteUnavailableError):
        asyncio.run(_client(handler, retry_attempts=2).get_all())
    assert len(attempts) == 2


def test_rejected_requests_are_not_retried() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(400, text="bad document")

    with pytest.raises(RemoteUnavailableError, match="400"):
        asyncio.run(_client(handler, retry_attempts=3).put("p-1", {}))
    assert len(attempts) == 1


def test_unconfigured_remote_is_offline() -> None:
    remote = RemoteProjectStore(None)

    assert remote.enabled is False
    with pytest.raises(RemoteUnavailableError, match="not configured"):
        asyncio.run(remote.get_all())


def test_malformed_base_url_surfaces_as_remote_unavailable() -> None:
    remote = RemoteProjectStore("http://docs.example.test:notaport/v1", retry_attempts=1, retry_min_wait=0)

    with pytest.raises(RemoteUnavailableError):
        asyncio.run(remote.get_all())
    with pytest.raises(RemoteUnavailableError):
        asyncio.run(remote.put("p-1", {"id": "p-1"}))
