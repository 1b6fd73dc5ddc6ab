from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from hectrack.services.config import Settings

logger = logging.getLogger(__name__)

TRANSIENT_STATUS = {408, 425, 429}


class RemoteUnavailableError(RuntimeError):
    """Any failure talking to the remote document store."""


class _TransientRemoteError(RuntimeError):
    pass


class RemoteProjectStore:
    """Client for the cloud document collection that holds one document per project."""

    def __init__(
        self,
        base_url: Optional[str],
        collection: str = "projects",
        *,
        api_key: Optional[str] = None,
        timeout_seconds: float = 15.0,
        retry_attempts: int = 3,
        retry_min_wait: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.collection = collection
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = max(1, retry_attempts)
        self.retry_min_wait = retry_min_wait
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RemoteProjectStore":
        return cls(
            settings.remote_base_url,
            settings.remote_collection,
            api_key=settings.remote_api_key,
            timeout_seconds=settings.remote_timeout_seconds,
            retry_attempts=settings.remote_retry_attempts,
            retry_min_wait=settings.remote_retry_min_wait,
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    def _collection_url(self) -> str:
        return f"{self.base_url}/{self.collection}"

    def _document_url(self, project_id: str) -> str:
        return f"{self._collection_url()}/{project_id}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _send(self, method: str, url: str, payload: Optional[dict[str, Any]] = None) -> httpx.Response:
        timeout = httpx.Timeout(self.timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            response = await client.request(method, url, headers=self._headers(), json=payload)

        if response.status_code >= 500 or response.status_code in TRANSIENT_STATUS:
            raise _TransientRemoteError(f"Remote store temporary error: {response.status_code}")
        return response

    async def _request(self, method: str, url: str, payload: Optional[dict[str, Any]] = None) -> httpx.Response:
        if not self.enabled:
            raise RemoteUnavailableError("Remote store is not configured")

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError, _TransientRemoteError)),
                wait=wait_exponential(multiplier=self.retry_min_wait, max=8),
                stop=stop_after_attempt(self.retry_attempts),
                reraise=True,
            ):
                with attempt:
                    return await self._send(method, url, payload)
        except (httpx.HTTPError, httpx.InvalidURL, _TransientRemoteError) as exc:
            raise RemoteUnavailableError(f"{method} {url} failed: {exc}") from exc
        raise RemoteUnavailableError(f"{method} {url} failed")

    @staticmethod
    def _check(response: httpx.Response) -> None:
        if response.status_code >= 400:
            detail = response.text[:300]
            raise RemoteUnavailableError(f"Remote store rejected request ({response.status_code}): {detail}")

    async def get_all(self) -> list[dict[str, Any]]:
        response = await self._request("GET", self._collection_url())
        self._check(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError("Remote store returned invalid JSON") from exc

        if isinstance(data, dict):
            data = data.get("documents", [])
        if not isinstance(data, list):
            raise RemoteUnavailableError("Remote store returned an unexpected payload")
        return [item for item in data if isinstance(item, dict)]

    async def put(self, project_id: str, document: dict[str, Any]) -> None:
        response = await self._request("PUT", self._document_url(project_id), document)
        self._check(response)

    async def delete(self, project_id: str) -> None:
        response = await self._request("DELETE", self._document_url(project_id))
        if response.status_code == 404:
            logger.debug("Remote document %s already absent", project_id)
            return
        self._check(response)
