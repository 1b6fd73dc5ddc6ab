from __future__ import annotations

import asyncio
import copy
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import pytest

from hectrack.services.local_cache import LocalProjectCache
from hectrack.services.models import ProjectDraft
from hectrack.services.remote import RemoteUnavailableError
from hectrack.services.store import ProjectStore

NOW = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


class FakeRemote:
    """In-memory stand-in for the cloud collection; flip ``fail`` to simulate an outage."""

    def __init__(self, documents: Optional[list[dict[str, Any]]] = None) -> None:
        self.documents = {document["id"]: copy.deepcopy(document) for document in documents or []}
        self.fail = False
        self.calls: list[tuple[str, ...]] = []
        self.on_get_all: Optional[Callable[[], None]] = None
        # Seconds to wait in each put/delete, consumed in call order
        self.delays: list[float] = []

    async def _pause(self) -> None:
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))

    async def get_all(self) -> list[dict[str, Any]]:
        self.calls.append(("get_all",))
        if self.on_get_all:
            self.on_get_all()
        if self.fail:
            raise RemoteUnavailableError("simulated outage")
        return [copy.deepcopy(document) for document in self.documents.values()]

    async def put(self, project_id: str, document: dict[str, Any]) -> None:
        self.calls.append(("put", project_id))
        await self._pause()
        if self.fail:
            raise RemoteUnavailableError("simulated outage")
        self.documents[project_id] = copy.deepcopy(document)

    async def delete(self, project_id: str) -> None:
        self.calls.append(("delete", project_id))
        await self._pause()
        if self.fail:
            raise RemoteUnavailableError("simulated outage")
        self.documents.pop(project_id, None)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def cache(tmp_path) -> LocalProjectCache:
    return LocalProjectCache(tmp_path / "hec-cache.db")


@pytest.fixture
def store(remote, cache) -> ProjectStore:
    return ProjectStore(remote, cache, clock=lambda: NOW)


@pytest.fixture
def make_draft() -> Callable[..., ProjectDraft]:
    def _make(**overrides: Any) -> ProjectDraft:
        payload = {
            "projectName": "Bridge",
            "state": "Delhi",
            "siteEngineer": "Amit Khanna",
            "startDate": date(2026, 1, 1),
            "projectValue": 1_000_000,
        }
        payload.update(overrides)
        return ProjectDraft.model_validate(payload)

    return _make
