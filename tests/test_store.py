from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from hectrack.services import ledger
from hectrack.services.local_cache import LocalProjectCache
from hectrack.services.metrics import project_cost, remaining_budget
from hectrack.services.models import LabourInput, MaterialInput, Project
from hectrack.services.store import ProjectStore

from conftest import NOW, FakeRemote


def _messages(store: ProjectStore) -> list[str]:
    return [notice.message for notice in store.notices.recent(50)]


def test_create_assigns_id_and_empty_ledgers(store, remote, make_draft) -> None:
    project = asyncio.run(store.create(make_draft()))

    assert project.id
    assert project.labours == []
    assert project.materials == []
    assert project.created_at == NOW
    assert project_cost(project) == 0
    assert remaining_budget(project) == 1_000_000
    assert remote.documents[project.id]["projectName"] == "Bridge"
    assert _messages(store)[-1] == "Project created successfully"


def test_labour_and_material_entries_add_to_project_cost(store, make_draft) -> None:
    project = asyncio.run(store.create(make_draft()))

    labour = LabourInput(date=date(2026, 2, 1), numberOfLabours=10, dailySalary=500, workDescription="Shuttering")
    project = asyncio.run(store.set_labours(project.id, ledger.add_labour(project, labour, NOW)))
    assert project_cost(project) == 5000
    assert project.updated_at == NOW

    material = MaterialInput(materialName="Cement", cost=300, quantity=20, dateOfPurchase=date(2026, 2, 2))
    project = asyncio.run(store.set_materials(project.id, ledger.add_material(project, material, NOW)))
    assert project_cost(project) == 11000
    assert store.get(project.id).materials[0].name == "Cement"


def test_load_falls_back_to_cache_when_remote_fails(store, remote, cache) -> None:
    cached = Project(id="p-1", name="Cached Flyover", state="Delhi", value=250_000)
    asyncio.run(cache.write([cached]))
    remote.fail = True
    seen_loading = []
    remote.on_get_all = lambda: seen_loading.append(store.loading)

    projects = asyncio.run(store.load())

    assert projects == [cached]
    assert store.snapshot() == [cached]
    assert seen_loading == [True]
    assert store.loading is False
    assert "Using offline data" in _messages(store)


def test_load_with_failing_remote_and_empty_cache_is_empty(store, remote) -> None:
    remote.fail = True

    assert asyncio.run(store.load()) == []
    assert store.loading is False


def test_create_then_load_round_trip(store, remote, tmp_path, make_draft) -> None:
    created = asyncio.run(
        store.create(make_draft(tentativeCompletion=date(2026, 12, 31), percentageComplete=40))
    )

    assert asyncio.run(store.load()) == [created]
    assert not any(message.startswith("Cloud data replaced") for message in _messages(store))

    other = ProjectStore(remote, LocalProjectCache(tmp_path / "other.db"), clock=lambda: NOW)
    assert asyncio.run(other.load()) == [created]


def test_update_twice_is_idempotent(store, cache, make_draft) -> None:
    created = asyncio.run(store.create(make_draft()))
    edited = created.model_copy(update={"name": "Bridge Phase 2", "value": 1_200_000})

    asyncio.run(store.update(edited))
    snapshot_once = store.snapshot()
    cache_once = asyncio.run(cache.read_documents())

    asyncio.run(store.update(edited))

    assert store.snapshot() == snapshot_once
    assert asyncio.run(cache.read_documents()) == cache_once
    assert snapshot_once[0].name == "Bridge Phase 2"


def test_snapshot_is_detached_from_store(store, make_draft) -> None:
    created = asyncio.run(store.create(make_draft()))

    store.snapshot()[0].name = "Changed outside"

    assert store.get(created.id).name == "Bridge"


def test_unknown_ids_are_no_ops(store, remote) -> None:
    ghost = Project(id="missing", name="Ghost", state="Delhi")

    assert asyncio.run(store.update(ghost)) is None
    assert asyncio.run(store.delete("missing")) is False
    assert asyncio.run(store.set_labours("missing", [])) is None
    assert remote.calls == []


def test_delete_removes_project_and_its_entries(store, remote, cache, make_draft) -> None:
    project = asyncio.run(store.create(make_draft()))
    labour = LabourInput(date=date(2026, 2, 1), numberOfLabours=3, dailySalary=600, workDescription="Curing")
    project = asyncio.run(store.set_labours(project.id, ledger.add_labour(project, labour)))
    material = MaterialInput(materialName="Sand", cost=1200, quantity=4, dateOfPurchase=date(2026, 2, 3))
    project = asyncio.run(store.set_materials(project.id, ledger.add_material(project, material)))
    entry_ids = {project.labours[0].id, project.materials[0].id}
    store.select_project(project.id)

    assert asyncio.run(store.delete(project.id)) is True

    reachable = {entry.id for p in store.snapshot() for entry in [*p.labours, *p.materials]}
    assert reachable.isdisjoint(entry_ids)
    assert store.get(project.id) is None
    assert store.selected_project is None
    assert asyncio.run(cache.read()) == []
    assert project.id not in remote.documents
    assert _messages(store)[-1] == "Project deleted successfully"


def test_remote_failures_keep_local_changes(store, remote, cache, make_draft) -> None:
    remote.fail = True

    created = asyncio.run(store.create(make_draft()))
    assert [p.id for p in asyncio.run(cache.read())] == [created.id]
    assert _messages(store)[-1] == "Project saved locally"

    asyncio.run(store.update(created.model_copy(update={"name": "Bridge East"})))
    assert asyncio.run(cache.read())[0].name == "Bridge East"
    assert _messages(store)[-1] == "Updated locally"

    asyncio.run(store.delete(created.id))
    assert asyncio.run(cache.read()) == []
    assert _messages(store)[-1] == "Deleted locally"
    assert remote.documents == {}


def test_load_warns_when_remote_replaces_diverging_cache(store, cache) -> None:
    local = Project(id="p-1", name="Local Edit", state="Delhi", value=10)
    asyncio.run(cache.write([local]))
    store.remote = FakeRemote([Project(id="p-1", name="Cloud Copy", state="Delhi", value=10).to_document()])

    projects = asyncio.run(store.load())

    assert [p.name for p in projects] == ["Cloud Copy"]
    assert asyncio.run(cache.read())[0].name == "Cloud Copy"
    assert "Cloud data replaced 1 project(s) that differed from the local copy" in _messages(store)


def test_load_posts_upcoming_deadline_warnings(cache) -> None:
    soon = Project(id="p-1", name="Bridge", state="Delhi", target_date=NOW.date() + timedelta(days=3))
    later = Project(id="p-2", name="Depot", state="Delhi", target_date=NOW.date() + timedelta(days=30))
    store = ProjectStore(FakeRemote([soon.to_document(), later.to_document()]), cache, clock=lambda: NOW)

    asyncio.run(store.load())

    warnings = [n.message for n in store.notices.recent(50) if n.level == "warning"]
    assert warnings == ['Project "Bridge" deadline in 3 days']


def test_load_clears_selection_of_vanished_project(store, remote, make_draft) -> None:
    created = asyncio.run(store.create(make_draft()))
    store.select_project(created.id)
    assert store.selected_state == "Delhi"

    remote.documents.clear()
    asyncio.run(store.load())

    assert store.selected_project is None


def test_search_filters_and_sorts(store, make_draft) -> None:
    asyncio.run(store.create(make_draft(projectName="Ring Road", projectValue=500, siteEngineer="Meena")))
    asyncio.run(
        store.create(make_draft(projectName="Adyar Bridge", state="Tamil Nadu", projectValue=900, siteEngineer="Karthik"))
    )
    asyncio.run(store.create(make_draft(projectName="Water Tank", projectValue=100, siteEngineer="Meena Iyer")))

    assert [p.name for p in store.search()] == ["Adyar Bridge", "Ring Road", "Water Tank"]
    assert [p.name for p in store.search("meena", sort_by="value")] == ["Ring Road", "Water Tank"]
    assert [p.name for p in store.search("TAMIL")] == ["Adyar Bridge"]
    assert [p.name for p in store.search(state="Delhi", sort_by="value")] == ["Ring Road", "Water Tank"]
    assert store.search(status="completed") == []
    with pytest.raises(ValueError):
        store.search(sort_by="budget")


def test_reloading_legacy_records_keeps_entry_ids_stable(cache) -> None:
    legacy = {
        "id": "p-legacy",
        "projectName": "Old Depot",
        "state": "Uttar Pradesh",
        "startDate": "2025-11-03",
        "labours": [{"date": "2025-11-04", "numberOfLabours": 6, "wages": 3000, "workDescription": "Fencing"}],
        "materials": [{"materialName": "Wire", "cost": 90, "quantity": 40}],
    }
    store = ProjectStore(FakeRemote([legacy]), cache, clock=lambda: NOW)

    first = asyncio.run(store.load())[0]
    second = asyncio.run(store.load())[0]

    assert first.labours[0].id == second.labours[0].id == "p-legacy-L0"
    assert first.materials[0].id == second.materials[0].id == "p-legacy-M0"
    assert first.created_at == second.created_at
    assert not any(message.startswith("Cloud data replaced") for message in _messages(store))
    assert store.get("p-legacy").labours[0].daily_rate == 500


def test_overlapping_mutations_apply_in_call_order(store, remote, cache, make_draft) -> None:
    first = asyncio.run(store.create(make_draft(projectName="Ring Road")))
    second = asyncio.run(store.create(make_draft(projectName="Water Tank")))
    # The earliest call finishes its remote write last
    remote.delays = [0.03, 0.01, 0.02]

    async def overlap():
        return await asyncio.gather(
            store.create(make_draft(projectName="Depot Wall")),
            store.update(first.model_copy(update={"name": "Ring Road East"})),
            store.delete(second.id),
        )

    created, updated, deleted = asyncio.run(overlap())

    assert deleted is True
    assert [p.name for p in store.snapshot()] == ["Ring Road East", "Depot Wall"]
    assert [p.id for p in store.snapshot()] == [updated.id, created.id]
    assert asyncio.run(cache.read()) == store.snapshot()


def test_back_to_back_updates_keep_the_later_one(store, remote, cache, make_draft) -> None:
    project = asyncio.run(store.create(make_draft()))
    remote.delays = [0.03, 0.0]

    async def overlap():
        await asyncio.gather(
            store.update(project.model_copy(update={"name": "Bridge A"})),
            store.update(project.model_copy(update={"name": "Bridge B"})),
        )

    asyncio.run(overlap())

    assert store.get(project.id).name == "Bridge B"
    assert asyncio.run(cache.read()) == store.snapshot()
