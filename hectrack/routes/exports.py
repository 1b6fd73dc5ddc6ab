from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from hectrack.routes.deps import get_store
from hectrack.services.export import (
    EmptyExportError,
    ExportFile,
    ExportFilters,
    build_export,
    build_quick_export,
)
from hectrack.services.store import ProjectStore

router = APIRouter(prefix="/api/exports", tags=["exports"])


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("")
async def export_projects(
    state: str = "all",
    date_range: str = "currentMonth",
    include_labours: bool = True,
    include_materials: bool = True,
    fmt: str = Query("xlsx", alias="format"),
    store: ProjectStore = Depends(get_store),
) -> Response:
    filters = ExportFilters(
        state=state,
        date_range=date_range,
        include_labours=include_labours,
        include_materials=include_materials,
        format=fmt,
    )
    try:
        export = build_export(store.snapshot(), filters)
    except EmptyExportError as exc:
        store.notices.warning(str(exc))
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    store.notices.success(f"Export completed: {export.project_count} projects")
    return _download(export)


@router.get("/quick")
async def quick_export(store: ProjectStore = Depends(get_store)) -> Response:
    try:
        export = build_quick_export(store.snapshot())
    except EmptyExportError as exc:
        store.notices.warning(str(exc))
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    store.notices.success("Quick export completed")
    return _download(export)
