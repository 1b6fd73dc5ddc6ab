from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from hectrack.routes.deps import get_store
from hectrack.services.store import ProjectStore

router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/sync/reload")
async def reload_projects(store: ProjectStore = Depends(get_store)) -> dict[str, Any]:
    projects = await store.load()
    return {"status": "ok", "projects": len(projects)}


@router.get("/notices")
async def list_notices(limit: int = 20, store: ProjectStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [notice.as_dict() for notice in store.notices.recent(limit)]
