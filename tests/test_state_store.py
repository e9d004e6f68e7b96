# tests/test_state_store.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

from gtd_planner.cli.bootstrap import create_initial_state
from gtd_planner.core.engine import GTDStore
from gtd_planner.core.models import RepeatRule, RepeatType, StoreSnapshot, TaskStatus, ViewType
from gtd_planner.storage.state_store import StateStore

from .fakes import FakeClock, InMemoryStateRepo


def test_every_commit_is_mirrored_and_restored(tmp_path: Path) -> None:
    slot = StateStore(tmp_path / "state.sqlite3")
    store = GTDStore(slot.load(), on_commit=slot.save, clock=FakeClock())

    area = store.add_area("Home")
    tag = store.add_tag("errand")
    project = store.add_project(title="Garden", area_id=area, tags=[tag])
    task = store.add_task(
        title="Plant tulips",
        notes="before frost",
        project_id=project,
        tags=[tag],
        scheduled_date="2024-10-01",
        deadline="2024-10-15",
        repeat_rule=RepeatRule(type=RepeatType.YEARLY, interval=1),
    )
    store.add_checklist_item(task, "buy bulbs")
    done = store.add_task(title="Rake leaves")
    store.complete_task(done)
    store.set_current_view(ViewType.PROJECT, project)
    store.set_search_query("tulip")

    restored = StateStore(tmp_path / "state.sqlite3").load()

    assert restored == store.snapshot()


def test_document_layout_uses_camel_case_and_iso_strings(tmp_path: Path) -> None:
    slot = StateStore(tmp_path / "state.sqlite3", key="custom-key")
    store = GTDStore(on_commit=slot.save, clock=FakeClock())
    task = store.add_task(
        title="t",
        scheduled_date="2024-01-05",
        repeat_rule=RepeatRule(type=RepeatType.WEEKLY, interval=2, days_of_week=(1, 5)),
    )
    store.complete_task(task)

    doc = json.loads(slot.read_raw())

    assert set(doc) == {
        "tasks",
        "projects",
        "areas",
        "tags",
        "currentView",
        "selectedItemId",
        "selectedTaskId",
        "sidebarCollapsed",
        "searchQuery",
        "isQuickEntryOpen",
    }
    saved = doc["tasks"][0]
    assert saved["status"] == "completed"
    assert saved["scheduledDate"] == "2024-01-05"
    assert saved["completedAt"].startswith("2024-01-02T09:00")
    assert saved["repeatRule"] == {"type": "weekly", "interval": 2, "daysOfWeek": [1, 5]}
    assert saved["projectId"] is None


def test_missing_slot_loads_empty_default(tmp_path: Path) -> None:
    assert StateStore(tmp_path / "state.sqlite3").load() == StoreSnapshot()


def test_corrupt_slot_loads_empty_default(tmp_path: Path) -> None:
    slot = StateStore(tmp_path / "state.sqlite3")

    slot.write_raw("{not json")
    assert slot.load() == StoreSnapshot()

    slot.write_raw("[1, 2, 3]")
    assert slot.load() == StoreSnapshot()


def test_malformed_entries_are_skipped_or_defaulted(tmp_path: Path) -> None:
    slot = StateStore(tmp_path / "state.sqlite3")
    slot.write_raw(
        json.dumps(
            {
                "tasks": [
                    {"id": "a", "title": "ok", "status": "bogus", "order": "x"},
                    {"id": "b", "status": "completed", "createdAt": "2024-01-01T00:00:00+00:00"},
                    {"id": "a", "title": "duplicate"},
                    {"title": "no id"},
                    5,
                ],
                "projects": "not a list",
                "tags": [{"id": "t", "name": "n", "color": "#fff"}],
                "currentView": "calendar",
                "searchQuery": 42,
            }
        )
    )

    snap = slot.load()

    assert [t.id for t in snap.tasks] == ["a", "b"]
    assert snap.tasks[0].status is TaskStatus.INBOX
    assert snap.tasks[0].order == 0
    assert snap.tasks[1].completed_at == "2024-01-01T00:00:00+00:00"
    assert snap.projects == ()
    assert len(snap.tags) == 1
    assert snap.ui.current_view is ViewType.INBOX
    assert snap.ui.search_query == ""


def test_slots_are_isolated_by_key(tmp_path: Path) -> None:
    db = tmp_path / "state.sqlite3"
    one = StateStore(db, key="one")
    GTDStore(on_commit=one.save).add_task(title="only in one")

    assert StateStore(db, key="two").load() == StoreSnapshot()
    assert len(StateStore(db, key="one").load().tasks) == 1

    one.clear()
    assert one.load() == StoreSnapshot()


def test_bootstrap_reloads_previous_session(settings: SimpleNamespace) -> None:
    first = create_initial_state(settings=settings)
    task_id = first.store.add_task(title="remember me", status="today")

    second = create_initial_state(settings=settings)

    task = second.store.get_task(task_id)
    assert task is not None
    assert task.status is TaskStatus.TODAY


def test_bootstrap_loads_once_and_respects_save_switch(settings: SimpleNamespace) -> None:
    settings.save_on_commit = False
    repo = InMemoryStateRepo()

    state = create_initial_state(settings=settings, repo=repo)
    state.store.add_task(title="not persisted")

    assert repo.loads == 1
    assert repo.saved == []


def test_bootstrap_starts_empty_on_a_corrupt_database_file(settings: SimpleNamespace) -> None:
    settings.state_db_path.write_bytes(b"this is not sqlite at all" * 100)

    state = create_initial_state(settings=settings)

    assert state.store.snapshot() == StoreSnapshot()
    task_id = state.store.add_task(title="still usable")
    assert state.store.get_task(task_id) is not None


def test_corrupt_database_file_loads_empty_default(tmp_path: Path) -> None:
    db = tmp_path / "state.sqlite3"
    db.write_bytes(b"\x00garbage" * 512)

    assert StateStore(db).load() == StoreSnapshot()


def test_bootstrap_starts_empty_when_the_data_dir_is_unusable(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way", encoding="utf-8")
    settings = SimpleNamespace(
        data_dir=blocker / "gtd",
        state_db_path=blocker / "gtd" / "state.sqlite3",
        storage_key="gtd-storage",
        save_on_commit=True,
    )

    state = create_initial_state(settings=settings)

    assert state.repo is None
    assert state.store.snapshot() == StoreSnapshot()
    state.store.add_task(title="in memory only")
    assert len(state.store.tasks) == 1


def test_bootstrap_survives_a_failing_load(settings: SimpleNamespace) -> None:
    class BrokenRepo(InMemoryStateRepo):
        def load(self) -> StoreSnapshot:
            raise OSError("unreadable")

    state = create_initial_state(settings=settings, repo=BrokenRepo())

    assert state.store.snapshot() == StoreSnapshot()
