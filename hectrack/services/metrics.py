"""Derived figures computed from a project snapshot.

Every function here is pure: no I/O, no mutation, and missing optional data
falls back to a neutral value (0, an empty collection, or ``NO_DEADLINE``)
instead of raising. ``now`` is injectable so results are reproducible.
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Union

from hectrack.services.models import STATES, Project, ProjectStatus, utc_now

SECONDS_PER_DAY = 24 * 60 * 60
GROUP_FIELDS = ("state", "engineer", "status")


class Deadline(Enum):
    NONE = "no-deadline"


NO_DEADLINE = Deadline.NONE


class StatusPolicy(str, Enum):
    BY_DATE = "by-date"
    BY_STORED_STATUS = "by-stored-status"


class DerivedStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DELAYED = "delayed"


@dataclass
class GroupStats:
    key: str
    count: int = 0
    total_value: float = 0.0
    completed: int = 0

    @property
    def completion_rate(self) -> float:
        return self.completed / self.count if self.count else 0.0

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["completion_rate"] = round(self.completion_rate, 4)
        return data


@dataclass
class DashboardTotals:
    total_projects: int = 0
    total_value: float = 0.0
    total_labour_cost: float = 0.0
    total_material_cost: float = 0.0
    active_projects: int = 0
    completed_projects: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectSummary:
    project_id: str
    labour_cost: float
    material_cost: float
    total_cost: float
    remaining_budget: float
    budget_utilization: float
    days_remaining: Union[int, Deadline]
    schedule_progress: Union[int, Deadline]
    status: DerivedStatus
    labour_entries: int
    material_entries: int
    total_workers: int

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("days_remaining", "schedule_progress"):
            if data[key] is NO_DEADLINE:
                data[key] = None
        data["has_deadline"] = self.days_remaining is not NO_DEADLINE
        data["status"] = self.status.value
        return data


def _now(now: Optional[datetime]) -> datetime:
    now = now or utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def labour_cost(project: Project) -> float:
    return sum((entry.daily_cost for entry in project.labours or ()), 0.0)


def material_cost(project: Project) -> float:
    return sum((entry.line_cost for entry in project.materials or ()), 0.0)


def project_cost(project: Project) -> float:
    return labour_cost(project) + material_cost(project)


def budget_utilization(project: Project) -> float:
    """Cost as a percentage of project value; 0 for a zero-value project."""
    if project.value <= 0:
        return 0.0
    return project_cost(project) / project.value * 100


def remaining_budget(project: Project) -> float:
    return project.value - project_cost(project)


def days_until(target: Optional[date], now: Optional[datetime] = None) -> Union[int, Deadline]:
    if target is None:
        return NO_DEADLINE
    delta = _midnight(target) - _now(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def is_overdue(project: Project, now: Optional[datetime] = None) -> bool:
    return project.target_date is not None and _midnight(project.target_date) < _now(now)


def schedule_progress(project: Project, now: Optional[datetime] = None) -> Union[int, Deadline]:
    """Percent of the start-to-target window already elapsed."""
    if project.target_date is None:
        return NO_DEADLINE
    now = _now(now)
    start = _midnight(project.start_date) if project.start_date else project.created_at
    end = _midnight(project.target_date)
    total = (end - start).total_seconds()
    if total <= 0:
        return 100 if now >= end else 0
    elapsed = (now - start).total_seconds()
    return min(max(round(elapsed / total * 100), 0), 100)


def status_classification(
    project: Project,
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy.BY_DATE,
) -> DerivedStatus:
    overdue = is_overdue(project, now)
    if policy is StatusPolicy.BY_DATE:
        return DerivedStatus.COMPLETED if overdue else DerivedStatus.ACTIVE

    if project.status is ProjectStatus.COMPLETED:
        return DerivedStatus.COMPLETED
    if overdue and project.status is not ProjectStatus.CANCELLED:
        return DerivedStatus.DELAYED
    return DerivedStatus.ACTIVE


def _group_key(project: Project, group_by: str) -> str:
    value = getattr(project, group_by)
    if isinstance(value, Enum):
        return value.value
    return value or ""


def rollup(
    projects: Iterable[Project],
    group_by: str = "state",
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy.BY_DATE,
) -> dict[str, GroupStats]:
    if group_by not in GROUP_FIELDS:
        raise ValueError(f"group_by must be one of: {', '.join(GROUP_FIELDS)}")

    now = _now(now)
    groups: dict[str, GroupStats] = {}
    for project in projects:
        key = _group_key(project, group_by)
        stats = groups.setdefault(key, GroupStats(key=key))
        stats.count += 1
        stats.total_value += project.value
        if status_classification(project, now, policy) is DerivedStatus.COMPLETED:
            stats.completed += 1
    return {key: groups[key] for key in sorted(groups)}


def state_overview(
    projects: Iterable[Project],
    states: Sequence[str] = STATES,
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy.BY_DATE,
) -> list[GroupStats]:
    """One row per configured state, empty states included, for the state grid."""
    groups = rollup(projects, "state", now, policy)
    return [groups.get(state, GroupStats(key=state)) for state in states]


def dashboard_totals(
    projects: Iterable[Project],
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy.BY_DATE,
) -> DashboardTotals:
    now = _now(now)
    totals = DashboardTotals()
    for project in projects:
        totals.total_projects += 1
        totals.total_value += project.value
        totals.total_labour_cost += labour_cost(project)
        totals.total_material_cost += material_cost(project)
        if status_classification(project, now, policy) is DerivedStatus.COMPLETED:
            totals.completed_projects += 1
        else:
            totals.active_projects += 1
    return totals


def labour_by_role(project: Project) -> list[dict[str, Any]]:
    roles: dict[str, dict[str, Any]] = defaultdict(lambda: {"count": 0, "cost": 0.0})
    for entry in project.labours or ():
        role = entry.role or "Unknown"
        roles[role]["count"] += entry.count
        roles[role]["cost"] += entry.daily_cost
    rows = [{"role": role, **data} for role, data in roles.items()]
    return sorted(rows, key=lambda row: (-row["count"], row["role"]))


def materials_by_category(project: Project) -> list[dict[str, Any]]:
    total = material_cost(project)
    categories: dict[str, dict[str, Any]] = defaultdict(lambda: {"entries": 0, "cost": 0.0})
    for entry in project.materials or ():
        category = entry.category or "Uncategorized"
        categories[category]["entries"] += 1
        categories[category]["cost"] += entry.line_cost
    rows = []
    for category, data in categories.items():
        share = data["cost"] / total * 100 if total else 0.0
        rows.append({"category": category, **data, "share": round(share, 1)})
    return sorted(rows, key=lambda row: (-row["cost"], row["category"]))


def upcoming_deadlines(
    projects: Iterable[Project],
    within_days: int = 7,
    now: Optional[datetime] = None,
) -> list[tuple[Project, int]]:
    now = _now(now)
    due = []
    for project in projects:
        days = days_until(project.target_date, now)
        if days is not NO_DEADLINE and 0 < days <= within_days:
            due.append((project, days))
    return sorted(due, key=lambda item: (item[1], item[0].name))


def project_summary(
    project: Project,
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy.BY_DATE,
) -> ProjectSummary:
    now = _now(now)
    labours = labour_cost(project)
    materials = material_cost(project)
    return ProjectSummary(
        project_id=project.id,
        labour_cost=labours,
        material_cost=materials,
        total_cost=labours + materials,
        remaining_budget=project.value - labours - materials,
        budget_utilization=budget_utilization(project),
        days_remaining=days_until(project.target_date, now),
        schedule_progress=schedule_progress(project, now),
        status=status_classification(project, now, policy),
        labour_entries=len(project.labours or ()),
        material_entries=len(project.materials or ()),
        total_workers=sum(entry.count for entry in project.labours or ()),
    )
