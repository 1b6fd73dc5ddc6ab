#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hectrack.services.config import get_settings
from hectrack.services.export import format_inr
from hectrack.services.metrics import GROUP_FIELDS, StatusPolicy, dashboard_totals, rollup, upcoming_deadlines
from hectrack.services.store import ProjectStore


async def _run(group_by: str, policy: StatusPolicy, as_json: bool) -> None:
    settings = get_settings()
    store = ProjectStore.from_settings(settings)
    projects = await store.load()

    totals = dashboard_totals(projects, policy=policy)
    groups = rollup(projects, group_by, policy=policy)
    deadlines = upcoming_deadlines(projects, settings.deadline_warning_days)

    if as_json:
        payload = {
            "totals": totals.as_dict(),
            "groups": [stats.as_dict() for stats in groups.values()],
            "deadlines": [{"id": p.id, "projectName": p.name, "days_remaining": days} for p, days in deadlines],
        }
        print(json.dumps(payload, indent=2))
        return

    for notice in store.notices.recent():
        print(f"[{notice.level}] {notice.message}")
    print(f"Projects: {totals.total_projects} ({totals.active_projects} active, {totals.completed_projects} completed)")
    print(f"Total value: {format_inr(totals.total_value)}")
    print(f"Labour cost: {format_inr(totals.total_labour_cost)}")
    print(f"Material cost: {format_inr(totals.total_material_cost)}")
    print(f"By {group_by}:")
    for stats in groups.values():
        print(
            f"  {stats.key or '(none)'}: {stats.count} projects, {format_inr(stats.total_value)}, "
            f"{stats.completion_rate:.0%} completed"
        )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print HEC dashboard figures from the CLI")
    parser.add_argument("--group-by", choices=GROUP_FIELDS, default="state")
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in StatusPolicy],
        default=get_settings().status_policy,
        help="How completed projects are counted",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(_run(args.group_by, StatusPolicy(args.policy), args.json))


if __name__ == "__main__":
    main()
