from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from hectrack.services.config import Settings
from hectrack.services.local_cache import LocalProjectCache
from hectrack.services.metrics import upcoming_deadlines
from hectrack.services.models import (
    LabourEntry,
    MaterialEntry,
    Project,
    ProjectDraft,
    migrate_documents,
    new_id,
    utc_now,
)
from hectrack.services.notices import NoticeBoard
from hectrack.services.remote import RemoteProjectStore, RemoteUnavailableError

logger = logging.getLogger(__name__)

SORT_KEYS = ("name", "value", "date", "completion")


class RemoteStore(Protocol):
    async def get_all(self) -> list[dict[str, Any]]: ...

    async def put(self, project_id: str, document: dict[str, Any]) -> None: ...

    async def delete(self, project_id: str) -> None: ...


class ConflictPolicy(str, Enum):
    """How a successful remote load treats a local cache that disagrees with it."""

    LAST_WRITE_WINS = "last-write-wins"


class ProjectStore:
    """Single owner of the project set.

    Every mutation is applied to memory first, then written to the remote
    store, then mirrored to the local cache whatever the remote outcome was.
    Remote failures become notices; they never undo the local change.
    """

    def __init__(
        self,
        remote: RemoteStore,
        cache: LocalProjectCache,
        notices: Optional[NoticeBoard] = None,
        *,
        conflict_policy: ConflictPolicy = ConflictPolicy.LAST_WRITE_WINS,
        deadline_warning_days: int = 7,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.notices = notices or NoticeBoard()
        self.conflict_policy = conflict_policy
        self.deadline_warning_days = deadline_warning_days
        self.clock = clock
        self.loading = False
        self.selected_state: Optional[str] = None
        self._projects: list[Project] = []
        self._selected_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProjectStore":
        return cls(
            RemoteProjectStore.from_settings(settings),
            LocalProjectCache(settings.resolved_cache_path, settings.cache_key),
            NoticeBoard(settings.notice_history),
            deadline_warning_days=settings.deadline_warning_days,
        )

    # Reads

    def snapshot(self) -> list[Project]:
        return [project.model_copy(deep=True) for project in self._projects]

    def get(self, project_id: str) -> Optional[Project]:
        project = self._find(project_id)
        return project.model_copy(deep=True) if project else None

    @property
    def selected_project(self) -> Optional[Project]:
        return self.get(self._selected_id) if self._selected_id else None

    def select_state(self, state: Optional[str]) -> None:
        self.selected_state = state

    def select_project(self, project_id: str) -> Optional[Project]:
        project = self.get(project_id)
        if project is not None:
            self._selected_id = project.id
            self.selected_state = project.state
        return project

    def clear_selection(self) -> None:
        self._selected_id = None

    def search(
        self,
        query: str = "",
        *,
        state: Optional[str] = None,
        status: Optional[str] = None,
        sort_by: str = "name",
    ) -> list[Project]:
        if sort_by not in SORT_KEYS:
            raise ValueError(f"sort_by must be one of: {', '.join(SORT_KEYS)}")

        needle = query.strip().lower()
        results = []
        for project in self.snapshot():
            if state and project.state != state:
                continue
            if status and status != "all" and project.status.value != status:
                continue
            if needle and not any(
                needle in field.lower() for field in (project.name, project.engineer, project.state)
            ):
                continue
            results.append(project)

        if sort_by == "value":
            results.sort(key=lambda p: p.value, reverse=True)
        elif sort_by == "date":
            results.sort(key=lambda p: p.created_at, reverse=True)
        elif sort_by == "completion":
            results.sort(key=lambda p: (p.target_date is None, p.target_date))
        else:
            results.sort(key=lambda p: p.name.lower())
        return results

    # Lifecycle

    async def load(self) -> list[Project]:
        self.loading = True
        try:
            try:
                documents = await self.remote.get_all()
            except RemoteUnavailableError as exc:
                logger.warning("Remote load failed, falling back to local cache: %s", exc)
                self._projects = await self.cache.read()
                self.notices.warning("Using offline data")
            else:
                projects = migrate_documents(documents)
                await self._resolve_conflict(projects)
                self._projects = projects
                await self._mirror()
                self.notices.success("Data loaded successfully")
        finally:
            self.loading = False

        if self._selected_id and self._find(self._selected_id) is None:
            self._selected_id = None
        self._warn_upcoming_deadlines()
        return self.snapshot()

    async def _resolve_conflict(self, remote_projects: list[Project]) -> None:
        # Last write wins: the remote set replaces whatever the cache held.
        cached = {project.id: project for project in await self.cache.read()}
        remote = {project.id: project for project in remote_projects}
        local_only = sorted(cached.keys() - remote.keys())
        changed = sorted(key for key in cached.keys() & remote.keys() if cached[key] != remote[key])
        if local_only or changed:
            logger.warning(
                "Remote data replaced diverging local cache (policy=%s, local_only=%s, changed=%s)",
                self.conflict_policy.value,
                local_only,
                changed,
            )
            self.notices.warning(
                f"Cloud data replaced {len(local_only) + len(changed)} project(s) that differed from the local copy"
            )

    def _warn_upcoming_deadlines(self) -> None:
        for project, days in upcoming_deadlines(self._projects, self.deadline_warning_days, self.clock()):
            self.notices.warning(f'Project "{project.name}" deadline in {days} days')

    # Mutations

    async def create(self, draft: ProjectDraft) -> Project:
        project = Project(
            **draft.model_dump(),
            id=new_id(),
            created_at=self.clock(),
            labours=[],
            materials=[],
        )
        self._projects.append(project)

        try:
            await self.remote.put(project.id, project.to_document())
        except RemoteUnavailableError as exc:
            logger.warning("Remote save of project %s failed: %s", project.id, exc)
            self.notices.warning("Project saved locally")
        else:
            self.notices.success("Project created successfully")
        await self._mirror()
        return project.model_copy(deep=True)

    async def update(self, project: Project) -> Optional[Project]:
        index = self._index(project.id)
        if index is None:
            logger.debug("Ignoring update for unknown project %s", project.id)
            return None

        stored = project.model_copy(deep=True)
        self._projects[index] = stored

        try:
            await self.remote.put(stored.id, stored.to_document())
        except RemoteUnavailableError as exc:
            logger.warning("Remote update of project %s failed: %s", stored.id, exc)
            self.notices.warning("Updated locally")
        else:
            self.notices.success("Project updated successfully")
        await self._mirror()
        return stored.model_copy(deep=True)

    async def delete(self, project_id: str) -> bool:
        index = self._index(project_id)
        if index is None:
            logger.debug("Ignoring delete for unknown project %s", project_id)
            return False

        del self._projects[index]
        if self._selected_id == project_id:
            self._selected_id = None

        try:
            await self.remote.delete(project_id)
        except RemoteUnavailableError as exc:
            logger.warning("Remote delete of project %s failed: %s", project_id, exc)
            self.notices.warning("Deleted locally")
        else:
            self.notices.success("Project deleted successfully")
        await self._mirror()
        return True

    async def set_labours(self, project_id: str, labours: list[LabourEntry]) -> Optional[Project]:
        project = self._find(project_id)
        if project is None:
            return None
        return await self.update(project.model_copy(update={"labours": list(labours), "updated_at": self.clock()}))

    async def set_materials(self, project_id: str, materials: list[MaterialEntry]) -> Optional[Project]:
        project = self._find(project_id)
        if project is None:
            return None
        return await self.update(
            project.model_copy(update={"materials": list(materials), "updated_at": self.clock()})
        )

    # Internals

    def _index(self, project_id: str) -> Optional[int]:
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                return index
        return None

    def _find(self, project_id: str) -> Optional[Project]:
        index = self._index(project_id)
        return self._projects[index] if index is not None else None

    async def _mirror(self) -> None:
        await self.cache.write(self._projects)
