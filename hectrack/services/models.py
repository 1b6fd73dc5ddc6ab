from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

STATES: tuple[str, ...] = ("Tamil Nadu", "Delhi", "Uttar Pradesh")

# Creation time for stored records that never had one and carry no start date
LEGACY_CREATED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def new_id() -> str:
    return uuid4().hex


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _clamp_percentage(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return min(max(value, 0.0), 100.0)


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


_STATUS_VALUES = frozenset([*ProjectStatus, *(status.value for status in ProjectStatus)])


class _Record(BaseModel):
    """Stored documents keep their camelCase wire keys; attributes are snake_case."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("created_at", "updated_at", mode="after", check_fields=False)
    @classmethod
    def _utc_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LabourEntry(_Record):
    id: str = Field(default_factory=new_id)
    work_date: Optional[date] = Field(None, alias="date")
    count: int = Field(0, alias="numberOfLabours", ge=0)
    daily_rate: float = Field(0.0, alias="dailySalary", ge=0)
    work_description: str = Field("", alias="workDescription")
    role: Optional[str] = None
    overtime_hours: Optional[float] = Field(None, alias="overtimeHours")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def _migrate(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {key: _blank_to_none(value) for key, value in data.items()}
        if not data.get("id"):
            data.pop("id", None)
        rate_key = "dailySalary" if "dailySalary" in data else "daily_rate"
        count = data.get("numberOfLabours", data.get("count")) or 0
        if data.get(rate_key) is None and data.get("wages") is not None:
            # Older entries stored one lump total for the whole crew
            count = int(float(count))
            data[rate_key] = float(data["wages"]) / count if count else 0.0
        if data.get(rate_key) is None:
            data[rate_key] = 0.0
        if data.get("numberOfLabours", data.get("count")) is None:
            data["numberOfLabours"] = 0
        if data.get("workDescription", data.get("work_description")) is None:
            data["workDescription"] = ""
        return data

    @property
    def daily_cost(self) -> float:
        return self.count * self.daily_rate


class MaterialEntry(_Record):
    id: str = Field(default_factory=new_id)
    name: str = Field("", alias="materialName")
    unit_cost: float = Field(0.0, alias="cost", ge=0)
    quantity: float = Field(0.0, ge=0)
    purchase_date: Optional[date] = Field(None, alias="dateOfPurchase")
    supplier: str = ""
    category: Optional[str] = None
    unit: Optional[str] = None
    specifications: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def _migrate(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {key: _blank_to_none(value) for key, value in data.items()}
        if not data.get("id"):
            data.pop("id", None)
        for alias, name in (("cost", "unit_cost"), ("quantity", "quantity")):
            if data.get(alias) is None and data.get(name) is None:
                data[alias] = 0.0
        if data.get("supplier") is None:
            data["supplier"] = ""
        return data

    @property
    def line_cost(self) -> float:
        return self.unit_cost * self.quantity


class Project(_Record):
    id: str
    name: str = Field(alias="projectName", min_length=1)
    description: str = ""
    state: str = Field(min_length=1)
    engineer: str = Field("", alias="siteEngineer")
    start_date: Optional[date] = Field(None, alias="startDate")
    target_date: Optional[date] = Field(None, alias="tentativeCompletion")
    value: float = Field(0.0, alias="projectValue")
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    percentage_complete: Optional[float] = Field(None, alias="percentageComplete")
    labours: list[LabourEntry] = Field(default_factory=list)
    materials: list[MaterialEntry] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _migrate(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {key: _blank_to_none(value) for key, value in data.items()}
        status = data.get("status")
        if not isinstance(status, str) or status not in _STATUS_VALUES:
            data.pop("status", None)
        for key in ("description", "siteEngineer", "engineer"):
            if key in data and data[key] is None:
                data[key] = ""
        for key in ("labours", "materials"):
            if data.get(key) is None:
                data[key] = []
        for key in ("createdAt", "created_at"):
            if key in data and data[key] is None:
                del data[key]
        return data

    @field_validator("value", mode="before")
    @classmethod
    def _value_default(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("value")
    @classmethod
    def _value_non_negative(cls, value: float) -> float:
        return max(value, 0.0)

    @field_validator("percentage_complete")
    @classmethod
    def _percentage_in_range(cls, value: Optional[float]) -> Optional[float]:
        return _clamp_percentage(value)


def _fill_stored_gaps(document: Any) -> Any:
    """Derive missing entry ids and creation time from the document itself.

    Loads never write migrated records back, so whatever is filled in here
    has to come out the same on every load.
    """
    if not isinstance(document, dict) or not document.get("id"):
        return document
    document = dict(document)
    project_id = document["id"]
    for key, prefix in (("labours", "L"), ("materials", "M")):
        entries = document.get(key)
        if isinstance(entries, list):
            document[key] = [
                {**entry, "id": f"{project_id}-{prefix}{index}"}
                if isinstance(entry, dict) and not entry.get("id")
                else entry
                for index, entry in enumerate(entries)
            ]
    if _blank_to_none(document.get("createdAt", document.get("created_at"))) is None:
        start = _blank_to_none(document.get("startDate", document.get("start_date")))
        document["createdAt"] = f"{start}T00:00:00+00:00" if start else LEGACY_CREATED_AT
    return document


def migrate_documents(documents: Iterable[Any]) -> list[Project]:
    """Coerce stored documents into the canonical schema, skipping unusable ones."""
    projects: list[Project] = []
    seen: set[str] = set()
    for document in documents:
        try:
            project = Project.model_validate(_fill_stored_gaps(document))
        except ValidationError as exc:
            logger.warning("Skipping unreadable project record: %s", exc.errors()[:1])
            continue
        if project.id in seen:
            logger.warning("Skipping duplicate project id %s", project.id)
            continue
        seen.add(project.id)
        projects.append(project)
    return projects


# Input-boundary models: requests that fail these never reach the store.


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ProjectDraft(_Input):
    name: str = Field(alias="projectName", min_length=3)
    description: str = ""
    state: str
    engineer: str = Field(alias="siteEngineer", min_length=1)
    start_date: date = Field(default_factory=date.today, alias="startDate")
    target_date: Optional[date] = Field(None, alias="tentativeCompletion")
    value: float = Field(alias="projectValue", gt=0)
    status: ProjectStatus = ProjectStatus.ACTIVE
    percentage_complete: Optional[float] = Field(None, alias="percentageComplete")

    @field_validator("state")
    @classmethod
    def _known_state(cls, value: str) -> str:
        if value not in STATES:
            raise ValueError(f"state must be one of: {', '.join(STATES)}")
        return value

    @field_validator("target_date", "percentage_complete", mode="before")
    @classmethod
    def _optional_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("percentage_complete")
    @classmethod
    def _percentage_in_range(cls, value: Optional[float]) -> Optional[float]:
        return _clamp_percentage(value)

    @model_validator(mode="after")
    def _dates_in_order(self) -> "ProjectDraft":
        if self.target_date is not None and self.target_date < self.start_date:
            raise ValueError("Completion date must be after start date")
        return self


# Only these may be cleared by sending null or a blank value
_CLEARABLE_EDIT_FIELDS = ("description", "target_date", "percentage_complete")


class ProjectEdit(_Input):
    """Partial project edit: fields left out of the request keep their stored value."""

    name: Optional[str] = Field(None, alias="projectName", min_length=3)
    description: Optional[str] = None
    state: Optional[str] = None
    engineer: Optional[str] = Field(None, alias="siteEngineer", min_length=1)
    start_date: Optional[date] = Field(None, alias="startDate")
    target_date: Optional[date] = Field(None, alias="tentativeCompletion")
    value: Optional[float] = Field(None, alias="projectValue", gt=0)
    status: Optional[ProjectStatus] = None
    percentage_complete: Optional[float] = Field(None, alias="percentageComplete")

    @field_validator("state")
    @classmethod
    def _known_state(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in STATES:
            raise ValueError(f"state must be one of: {', '.join(STATES)}")
        return value

    @field_validator("target_date", "percentage_complete", mode="before")
    @classmethod
    def _optional_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("percentage_complete")
    @classmethod
    def _percentage_in_range(cls, value: Optional[float]) -> Optional[float]:
        return _clamp_percentage(value)

    def changes(self) -> dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        if changes.get("description", "") is None:
            changes["description"] = ""
        return {
            key: value
            for key, value in changes.items()
            if value is not None or key in _CLEARABLE_EDIT_FIELDS
        }

    def apply_to(self, project: Project) -> Project:
        edited = project.model_copy(update={**self.changes(), "updated_at": utc_now()})
        if edited.start_date and edited.target_date and edited.target_date < edited.start_date:
            raise ValueError("Completion date must be after start date")
        return edited


class LabourInput(_Input):
    work_date: date = Field(alias="date")
    count: int = Field(alias="numberOfLabours", gt=0)
    daily_rate: float = Field(0.0, alias="dailySalary", ge=0)
    work_description: str = Field(alias="workDescription", min_length=1)
    role: Optional[str] = None
    overtime_hours: Optional[float] = Field(None, alias="overtimeHours", ge=0)


class MaterialInput(_Input):
    name: str = Field(alias="materialName", min_length=1)
    unit_cost: float = Field(alias="cost", ge=0)
    quantity: float = Field(gt=0)
    purchase_date: date = Field(alias="dateOfPurchase")
    supplier: str = ""
    category: Optional[str] = None
    unit: Optional[str] = None
    specifications: Optional[str] = None
