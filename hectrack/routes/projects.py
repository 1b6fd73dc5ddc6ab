from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from hectrack.routes.deps import get_status_policy, get_store, require_project
from hectrack.services import ledger
from hectrack.services.metrics import StatusPolicy, labour_by_role, materials_by_category, project_summary
from hectrack.services.models import LabourInput, MaterialInput, Project, ProjectDraft, ProjectEdit
from hectrack.services.store import ProjectStore

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _saved(project: Optional[Project]) -> Project:
    # The project can disappear between lookup and save when a reload lands in between
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("", response_model=list[Project])
async def list_projects(
    state: Optional[str] = None,
    q: str = "",
    status: Optional[str] = None,
    sort: str = "name",
    store: ProjectStore = Depends(get_store),
) -> list[Project]:
    try:
        return store.search(q, state=state, status=status, sort_by=sort)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("", response_model=Project, status_code=201)
async def create_project(body: ProjectDraft, store: ProjectStore = Depends(get_store)) -> Project:
    return await store.create(body)


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, store: ProjectStore = Depends(get_store)) -> Project:
    return require_project(store, project_id)


@router.put("/{project_id}", response_model=Project)
async def edit_project(
    project_id: str, body: ProjectEdit, store: ProjectStore = Depends(get_store)
) -> Project:
    current = require_project(store, project_id)
    try:
        edited = body.apply_to(current)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _saved(await store.update(edited))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str, confirm: bool = False, store: ProjectStore = Depends(get_store)
) -> dict[str, str]:
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail="Deleting a project removes all its labour and material entries; pass confirm=true",
        )
    if not await store.delete(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"status": "ok", "deleted": project_id}


@router.post("/{project_id}/select", response_model=Project)
async def select_project(project_id: str, store: ProjectStore = Depends(get_store)) -> Project:
    project = store.select_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/{project_id}/summary")
async def get_project_summary(
    project_id: str,
    store: ProjectStore = Depends(get_store),
    policy: StatusPolicy = Depends(get_status_policy),
) -> dict[str, Any]:
    project = require_project(store, project_id)
    summary = project_summary(project, policy=policy)
    return {
        **summary.as_dict(),
        "labour_by_role": labour_by_role(project),
        "materials_by_category": materials_by_category(project),
    }


@router.post("/{project_id}/labours", response_model=Project, status_code=201)
async def add_labour_entry(
    project_id: str, body: LabourInput, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    return _saved(await store.set_labours(project_id, ledger.add_labour(project, body)))


@router.put("/{project_id}/labours/{entry_id}", response_model=Project)
async def edit_labour_entry(
    project_id: str, entry_id: str, body: LabourInput, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    try:
        labours = ledger.replace_labour(project, entry_id, body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _saved(await store.set_labours(project_id, labours))


@router.delete("/{project_id}/labours/{entry_id}", response_model=Project)
async def delete_labour_entry(
    project_id: str, entry_id: str, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    try:
        labours = ledger.remove_labour(project, entry_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _saved(await store.set_labours(project_id, labours))


@router.post("/{project_id}/materials", response_model=Project, status_code=201)
async def add_material_entry(
    project_id: str, body: MaterialInput, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    return _saved(await store.set_materials(project_id, ledger.add_material(project, body)))


@router.put("/{project_id}/materials/{entry_id}", response_model=Project)
async def edit_material_entry(
    project_id: str, entry_id: str, body: MaterialInput, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    try:
        materials = ledger.replace_material(project, entry_id, body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _saved(await store.set_materials(project_id, materials))


@router.delete("/{project_id}/materials/{entry_id}", response_model=Project)
async def delete_material_entry(
    project_id: str, entry_id: str, store: ProjectStore = Depends(get_store)
) -> Project:
    project = require_project(store, project_id)
    try:
        materials = ledger.remove_material(project, entry_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _saved(await store.set_materials(project_id, materials))
