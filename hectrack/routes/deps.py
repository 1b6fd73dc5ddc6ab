from __future__ import annotations

from fastapi import HTTPException, Request

from hectrack.services.config import get_settings
from hectrack.services.metrics import StatusPolicy
from hectrack.services.models import Project
from hectrack.services.store import ProjectStore


def get_store(request: Request) -> ProjectStore:
    return request.app.state.store


def get_status_policy() -> StatusPolicy:
    return StatusPolicy(get_settings().status_policy)


def require_project(store: ProjectStore, project_id: str) -> Project:
    project = store.get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project
