from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from hectrack.services.models import (
    LabourEntry,
    LabourInput,
    MaterialEntry,
    MaterialInput,
    Project,
    new_id,
    utc_now,
)


def _newest_first(labours: list[LabourEntry]) -> list[LabourEntry]:
    return sorted(
        labours,
        key=lambda entry: (entry.work_date is not None, entry.work_date or date.min),
        reverse=True,
    )


def _position(entries: list, entry_id: str, kind: str) -> int:
    for index, entry in enumerate(entries):
        if entry.id == entry_id:
            return index
    raise LookupError(f"{kind} entry {entry_id} not found")


def add_labour(project: Project, data: LabourInput, now: Optional[datetime] = None) -> list[LabourEntry]:
    entry = LabourEntry(**data.model_dump(), id=new_id(), created_at=now or utc_now())
    return _newest_first([*project.labours, entry])


def replace_labour(project: Project, entry_id: str, data: LabourInput) -> list[LabourEntry]:
    labours = list(project.labours)
    index = _position(labours, entry_id, "Labour")
    labours[index] = LabourEntry(**data.model_dump(), id=entry_id, created_at=labours[index].created_at)
    return _newest_first(labours)


def remove_labour(project: Project, entry_id: str) -> list[LabourEntry]:
    _position(project.labours, entry_id, "Labour")
    return [entry for entry in project.labours if entry.id != entry_id]


def add_material(project: Project, data: MaterialInput, now: Optional[datetime] = None) -> list[MaterialEntry]:
    entry = MaterialEntry(**data.model_dump(), id=new_id(), created_at=now or utc_now())
    return [*project.materials, entry]


def replace_material(project: Project, entry_id: str, data: MaterialInput) -> list[MaterialEntry]:
    materials = list(project.materials)
    index = _position(materials, entry_id, "Material")
    materials[index] = MaterialEntry(**data.model_dump(), id=entry_id, created_at=materials[index].created_at)
    return materials


def remove_material(project: Project, entry_id: str) -> list[MaterialEntry]:
    _position(project.materials, entry_id, "Material")
    return [entry for entry in project.materials if entry.id != entry_id]
