#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hectrack.services.config import get_settings
from hectrack.services.local_cache import LocalProjectCache
from scripts.seed_demo import run_integrity_checks


def main() -> None:
    settings = get_settings()
    path = settings.resolved_cache_path
    if not path.exists():
        raise SystemExit(f"Local cache not found at {path}. Run seed_demo.py first.")

    cache = LocalProjectCache(path, settings.cache_key)
    documents = asyncio.run(cache.read_documents())
    if documents is None:
        raise SystemExit(f"No readable project set under key {settings.cache_key!r} in {path}.")

    projects = asyncio.run(cache.read())
    skipped = len(documents) - len(projects)
    run_integrity_checks(projects)

    print(f"Integrity checks passed for {len(projects)} projects.")
    if skipped:
        print(f"- {skipped} unreadable or duplicate records would be skipped on load")


if __name__ == "__main__":
    main()
