from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from hectrack.routes.deps import get_status_policy, get_store
from hectrack.services.config import get_settings
from hectrack.services.metrics import (
    StatusPolicy,
    dashboard_totals,
    rollup,
    state_overview,
    upcoming_deadlines,
)
from hectrack.services.models import STATES
from hectrack.services.store import ProjectStore

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/states")
async def list_states(store: ProjectStore = Depends(get_store)) -> dict[str, Any]:
    return {"states": list(STATES), "selected_state": store.selected_state}


@router.post("/states/{state}/select")
async def select_state(state: str, store: ProjectStore = Depends(get_store)) -> dict[str, Any]:
    if state not in STATES:
        raise HTTPException(status_code=404, detail="Unknown state")
    store.select_state(state)
    store.clear_selection()
    return {"selected_state": state}


@router.get("/dashboard")
async def get_dashboard(
    store: ProjectStore = Depends(get_store),
    policy: StatusPolicy = Depends(get_status_policy),
) -> dict[str, Any]:
    projects = store.snapshot()
    return {
        "loading": store.loading,
        "totals": dashboard_totals(projects, policy=policy).as_dict(),
        "states": [row.as_dict() for row in state_overview(projects, STATES, policy=policy)],
    }


@router.get("/dashboard/rollup")
async def get_rollup(
    group_by: str = "state",
    store: ProjectStore = Depends(get_store),
    policy: StatusPolicy = Depends(get_status_policy),
) -> dict[str, Any]:
    try:
        groups = rollup(store.snapshot(), group_by, policy=policy)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"group_by": group_by, "groups": [stats.as_dict() for stats in groups.values()]}


@router.get("/dashboard/deadlines")
async def get_deadlines(
    within_days: int = 0,
    store: ProjectStore = Depends(get_store),
) -> list[dict[str, Any]]:
    window = within_days or get_settings().deadline_warning_days
    return [
        {
            "id": project.id,
            "projectName": project.name,
            "state": project.state,
            "tentativeCompletion": project.target_date.isoformat(),
            "days_remaining": days,
        }
        for project, days in upcoming_deadlines(store.snapshot(), window)
    ]
