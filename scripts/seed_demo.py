#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hectrack.services.config import get_settings
from hectrack.services.local_cache import LocalProjectCache
from hectrack.services.models import STATES, LabourEntry, MaterialEntry, Project, ProjectStatus
from hectrack.services.remote import RemoteProjectStore, RemoteUnavailableError

DEMO_DATE = date(2026, 2, 13)


@dataclass(frozen=True)
class DemoProject:
    id: str
    name: str
    state: str
    engineer: str
    value: float
    start_offset_days: int
    duration_days: Optional[int]
    status: ProjectStatus = ProjectStatus.ACTIVE
    percentage_complete: Optional[float] = None


DEMO_PROJECTS: list[DemoProject] = [
    DemoProject("TN-2026-001", "Adyar Bridge Widening", "Tamil Nadu", "R. Karthikeyan", 18_500_000, -120, 300, percentage_complete=35),
    DemoProject("TN-2026-002", "Madurai Ring Road Drainage", "Tamil Nadu", "S. Meenakshi", 7_250_000, -200, 190, percentage_complete=90),
    DemoProject("DL-2026-001", "Dwarka Sector 21 Flyover", "Delhi", "Amit Khanna", 42_000_000, -60, 540, percentage_complete=12),
    DemoProject("DL-2026-002", "Rohini Community Hall", "Delhi", "Neha Bhatia", 3_800_000, -300, 240, ProjectStatus.COMPLETED, 100),
    DemoProject("UP-2026-001", "Lucknow Metro Depot Boundary Wall", "Uttar Pradesh", "Vikas Tiwari", 5_600_000, -30, 5, percentage_complete=70),
    DemoProject("UP-2026-002", "Kanpur Water Tank Repairs", "Uttar Pradesh", "Pooja Mishra", 1_150_000, -10, None, ProjectStatus.ON_HOLD),
]

LABOUR_PLANS: dict[str, list[tuple[int, int, float, str, str]]] = {
    "TN-2026-001": [
        (-100, 24, 650, "Mason", "Pier cap shuttering"),
        (-95, 18, 720, "Bar bender", "Reinforcement for deck slab"),
        (-40, 30, 600, "Helper", "Approach road earthwork"),
    ],
    "TN-2026-002": [(-150, 12, 550, "Helper", "Trench excavation"), (-20, 8, 700, "Mason", "Chamber brickwork")],
    "DL-2026-001": [(-45, 40, 800, "Carpenter", "Pile cap formwork")],
    "DL-2026-002": [(-250, 15, 750, "Mason", "Hall superstructure")],
    "UP-2026-001": [(-25, 20, 500, "Mason", "Boundary wall foundation")],
}

MATERIAL_PLANS: dict[str, list[tuple[int, str, float, float, str, str, str]]] = {
    "TN-2026-001": [
        (-110, "OPC 53 Grade Cement", 410, 800, "UltraTech Dealers Chennai", "Cement & Concrete", "bags"),
        (-96, "TMT Fe500 Bars 16mm", 62_000, 42.5, "Sri Balaji Steels", "Steel & Reinforcement", "tons"),
    ],
    "DL-2026-001": [(-50, "Ready Mix M35", 6_400, 320, "Delhi RMC Co.", "Cement & Concrete", "units")],
    "DL-2026-002": [(-260, "Fly Ash Bricks", 7.5, 42_000, "NCR Bricks", "Bricks & Blocks", "pieces")],
    "UP-2026-001": [(-26, "Coarse Aggregate 20mm", 1_450, 60, "Gomti Stone Crushers", "Aggregates", "tons")],
}


def _stamp(day: date) -> datetime:
    return datetime.combine(day, time(9, 30), tzinfo=timezone.utc)


def build_projects(today: date = DEMO_DATE) -> list[Project]:
    projects = []
    for demo in DEMO_PROJECTS:
        start = today + timedelta(days=demo.start_offset_days)
        target = start + timedelta(days=demo.duration_days) if demo.duration_days else None
        labours = [
            LabourEntry(
                id=f"{demo.id}-L{index}",
                work_date=today + timedelta(days=offset),
                count=count,
                daily_rate=rate,
                role=role,
                work_description=description,
                created_at=_stamp(today + timedelta(days=offset)),
            )
            for index, (offset, count, rate, role, description) in enumerate(LABOUR_PLANS.get(demo.id, []), 1)
        ]
        materials = [
            MaterialEntry(
                id=f"{demo.id}-M{index}",
                name=name,
                unit_cost=unit_cost,
                quantity=quantity,
                purchase_date=today + timedelta(days=offset),
                supplier=supplier,
                category=category,
                unit=unit,
                created_at=_stamp(today + timedelta(days=offset)),
            )
            for index, (offset, name, unit_cost, quantity, supplier, category, unit) in enumerate(
                MATERIAL_PLANS.get(demo.id, []), 1
            )
        ]
        projects.append(
            Project(
                id=demo.id,
                name=demo.name,
                description=f"{demo.name} ({demo.state})",
                state=demo.state,
                engineer=demo.engineer,
                start_date=start,
                target_date=target,
                value=demo.value,
                status=demo.status,
                percentage_complete=demo.percentage_complete,
                created_at=_stamp(start),
                labours=sorted(labours, key=lambda entry: entry.work_date, reverse=True),
                materials=materials,
            )
        )
    return projects


def run_integrity_checks(projects: list[Project]) -> None:
    failures = []
    ids = [project.id for project in projects]
    if len(ids) != len(set(ids)):
        failures.append("duplicate project ids")

    for project in projects:
        if project.state not in STATES:
            failures.append(f"{project.id}: unknown state {project.state!r}")
        if project.value < 0:
            failures.append(f"{project.id}: negative project value")
        if project.start_date and project.target_date and project.target_date < project.start_date:
            failures.append(f"{project.id}: completion date before start date")
        entry_ids = [entry.id for entry in [*project.labours, *project.materials]]
        if len(entry_ids) != len(set(entry_ids)):
            failures.append(f"{project.id}: duplicate entry ids")
        if any(entry.daily_rate < 0 or entry.count < 0 for entry in project.labours):
            failures.append(f"{project.id}: negative labour figures")
        if any(entry.unit_cost < 0 or entry.quantity < 0 for entry in project.materials):
            failures.append(f"{project.id}: negative material figures")

    if failures:
        raise RuntimeError("Integrity checks failed: " + "; ".join(failures))


async def seed(push_remote: bool, today: date) -> dict[str, Any]:
    settings = get_settings()
    projects = build_projects(today)
    run_integrity_checks(projects)
    cache = LocalProjectCache(settings.resolved_cache_path, settings.cache_key)
    await cache.write(projects)

    pushed = 0
    if push_remote:
        remote = RemoteProjectStore.from_settings(settings)
        for project in projects:
            try:
                await remote.put(project.id, project.to_document())
            except RemoteUnavailableError as exc:
                print(f"Remote push failed for {project.id}: {exc}")
                continue
            pushed += 1
    return {"cache": cache.path, "projects": len(projects), "pushed": pushed}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the local project cache with demo data")
    parser.add_argument("--push-remote", action="store_true", help="Also write every project to the remote store")
    parser.add_argument("--today", type=date.fromisoformat, default=DEMO_DATE, help="Anchor date (YYYY-MM-DD)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    result = asyncio.run(seed(args.push_remote, args.today))
    print(f"Seed complete: {result['cache']}")
    print(f"- {result['projects']} projects written to the local cache")
    if args.push_remote:
        print(f"- {result['pushed']} projects pushed to the remote store")


if __name__ == "__main__":
    main()
