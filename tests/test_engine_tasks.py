# tests/test_engine_tasks.py

from __future__ import annotations

import dataclasses
import random
from datetime import date

import pytest

from gtd_planner.core.engine import GTDStore
from gtd_planner.core.models import RepeatRule, RepeatType, TaskStatus, ViewType
from gtd_planner.core.views import resolve

from .fakes import FailingStateRepo


def test_add_task_fills_defaults(store: GTDStore, repo) -> None:
    task_id = store.add_task(title="Buy milk")
    task = store.get_task(task_id)

    assert task is not None
    assert task.title == "Buy milk"
    assert task.notes == ""
    assert task.status is TaskStatus.INBOX
    assert task.project_id is None and task.area_id is None
    assert task.tags == () and task.checklist == ()
    assert task.scheduled_date is None and task.deadline is None
    assert task.repeat_rule is None
    assert task.completed_at is None
    assert task.created_at == task.updated_at
    assert task.order == 1
    assert len(repo.saved) == 1
    assert repo.saved[0].tasks == (task,)


def test_add_task_order_is_max_plus_one_and_ignores_caller_order(store: GTDStore) -> None:
    a = store.add_task(title="a")
    store.reorder_tasks(["x", a])  # a.order -> 1 (position in list)
    store.update_task(a, order=10)
    b = store.add_task(title="b", order=-5)

    assert store.get_task(b).order == 11


def test_add_then_delete_leaves_others_untouched(store: GTDStore) -> None:
    a = store.add_task(title="a")
    b = store.add_task(title="b")
    before = {t.id: (t.order, t.updated_at) for t in store.tasks}

    c = store.add_task(title="c")
    store.delete_task(c)

    assert {t.id: (t.order, t.updated_at) for t in store.tasks} == before
    assert [t.id for t in store.tasks] == [a, b]


def test_add_task_created_as_completed_keeps_invariant(store: GTDStore) -> None:
    task = store.get_task(store.add_task(title="done already", status="completed"))
    assert task.status is TaskStatus.COMPLETED
    assert task.completed_at == task.created_at


def test_update_task_merges_and_restamps(store: GTDStore, repo) -> None:
    task_id = store.add_task(title="draft")
    created = store.get_task(task_id)

    store.update_task(
        task_id,
        title="final",
        notes="details",
        scheduled_date=date(2024, 1, 5),
        deadline="2024-02-01",
        repeat_rule=RepeatRule(type=RepeatType.WEEKLY, interval=2, days_of_week=(1, 3)),
        tags=["t1", "t2", "t1"],
    )
    task = store.get_task(task_id)

    assert task.title == "final"
    assert task.notes == "details"
    assert task.scheduled_date == "2024-01-05"
    assert task.deadline == "2024-02-01"
    assert task.repeat_rule.days_of_week == (1, 3)
    assert task.tags == ("t1", "t2")
    assert task.created_at == created.created_at
    assert task.updated_at > created.updated_at
    assert len(repo.saved) == 2


def test_update_task_unknown_id_is_silent_noop(store: GTDStore, repo) -> None:
    store.update_task("missing", title="x")
    store.delete_task("missing")
    store.complete_task("missing")
    store.move_task_to_trash("missing")
    store.restore_task("missing")
    store.uncomplete_task("missing")

    assert store.tasks == ()
    assert repo.saved == []


def test_update_task_ignores_unknown_fields_and_bad_values(store: GTDStore) -> None:
    task_id = store.add_task(title="t")
    before = store.get_task(task_id)

    store.update_task(
        task_id,
        status="doing",
        id="hijack",
        created_at="1999-01-01",
        scheduled_date="not a date",
        order="first",
    )
    after = store.get_task(task_id)

    assert after.id == task_id
    assert after.status is TaskStatus.INBOX
    assert after.created_at == before.created_at
    assert after.scheduled_date is None
    assert after.order == before.order


def test_update_task_status_keeps_completion_invariant(store: GTDStore) -> None:
    task_id = store.add_task(title="t", status="today")

    store.update_task(task_id, status=TaskStatus.COMPLETED)
    done = store.get_task(task_id)
    assert done.completed_at is not None

    # editing a completed task keeps its completion time
    store.update_task(task_id, title="renamed")
    assert store.get_task(task_id).completed_at == done.completed_at

    store.update_task(task_id, status="anytime")
    assert store.get_task(task_id).completed_at is None


def test_trash_then_restore_always_lands_in_inbox(store: GTDStore) -> None:
    for status in ("today", "someday", "anytime", "completed", "inbox"):
        task_id = store.add_task(title=status, status=status)
        store.move_task_to_trash(task_id)
        assert store.get_task(task_id).status is TaskStatus.TRASH
        assert store.get_task(task_id).completed_at is None

        store.restore_task(task_id)
        restored = store.get_task(task_id)
        assert restored.status is TaskStatus.INBOX
        assert restored.completed_at is None


def test_complete_overwrites_status_and_uncomplete_goes_to_inbox(store: GTDStore) -> None:
    task_id = store.add_task(title="t", status="someday")

    store.complete_task(task_id)
    done = store.get_task(task_id)
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_at == done.updated_at

    store.uncomplete_task(task_id)
    reopened = store.get_task(task_id)
    assert reopened.status is TaskStatus.INBOX
    assert reopened.completed_at is None


def test_uncomplete_on_inbox_task_only_restamps(store: GTDStore, repo) -> None:
    task_id = store.add_task(title="t")
    before = store.get_task(task_id)

    store.uncomplete_task(task_id)
    after = store.get_task(task_id)

    assert after.status is TaskStatus.INBOX
    assert after.completed_at is None
    assert after.updated_at > before.updated_at
    assert dataclasses.replace(after, updated_at=before.updated_at) == before
    assert len(repo.saved) == 2


def test_reorder_swaps_and_views_follow(store: GTDStore) -> None:
    a = store.add_task(title="a")
    b = store.add_task(title="b")
    store.reorder_tasks([a, b])
    assert (store.get_task(a).order, store.get_task(b).order) == (0, 1)

    store.reorder_tasks([b, "ghost", a])

    assert store.get_task(b).order == 0
    assert store.get_task(a).order == 2
    assert [t.id for t in resolve(store.tasks, ViewType.INBOX)] == [b, a]


def test_reorder_with_only_unknown_ids_does_not_commit(store: GTDStore, repo) -> None:
    store.add_task(title="a")
    store.reorder_tasks(["nope", "nada"])
    assert len(repo.saved) == 1


def test_checklist_operations(store: GTDStore) -> None:
    task_id = store.add_task(title="pack")
    stamp0 = store.get_task(task_id).updated_at

    socks = store.add_checklist_item(task_id, "socks")
    shirt = store.add_checklist_item(task_id, "shirt")
    assert [i.title for i in store.get_task(task_id).checklist] == ["socks", "shirt"]
    assert store.get_task(task_id).updated_at > stamp0

    store.toggle_checklist_item(task_id, socks)
    assert store.get_task(task_id).checklist[0].completed is True

    store.update_checklist_item(task_id, shirt, title="two shirts", color="red")
    assert store.get_task(task_id).checklist[1].title == "two shirts"

    store.delete_checklist_item(task_id, socks)
    assert [i.id for i in store.get_task(task_id).checklist] == [shirt]


def test_checklist_misses_are_noops(store: GTDStore, repo) -> None:
    task_id = store.add_task(title="t")
    stamp = store.get_task(task_id).updated_at

    assert store.add_checklist_item("missing", "x") is None
    store.toggle_checklist_item(task_id, "missing")
    store.update_checklist_item(task_id, "missing", title="x")
    store.toggle_checklist_item("missing", "missing")
    store.delete_checklist_item("missing", "missing")

    assert store.get_task(task_id).updated_at == stamp
    assert len(repo.saved) == 1


def test_clear_completed_and_empty_trash(store: GTDStore) -> None:
    keep = store.add_task(title="keep")
    done = store.add_task(title="done")
    junk = store.add_task(title="junk")
    store.complete_task(done)
    store.move_task_to_trash(junk)

    store.clear_completed()
    assert {t.id for t in store.tasks} == {keep, junk}

    store.empty_trash()
    assert [t.id for t in store.tasks] == [keep]


def test_entities_cannot_be_mutated_from_outside(store: GTDStore) -> None:
    task = store.get_task(store.add_task(title="t"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        task.status = TaskStatus.TRASH  # type: ignore[misc]


def test_add_task_rejects_non_collection_tags_and_checklist(store: GTDStore) -> None:
    bad_tags = store.get_task(store.add_task(title="x", tags=5))
    bad_items = store.get_task(store.add_task(title="y", checklist=7))
    text_items = store.get_task(store.add_task(title="z", checklist="buy stamps"))

    assert bad_tags.title == "x" and bad_tags.tags == ()
    assert bad_items.checklist == ()
    assert text_items.checklist == ()


def test_a_bare_string_is_one_tag_id(store: GTDStore) -> None:
    task_id = store.add_task(title="x", tags="work")
    assert store.get_task(task_id).tags == ("work",)

    store.update_task(task_id, tags="home")
    assert store.get_task(task_id).tags == ("home",)


def test_update_task_keeps_collections_on_invalid_values(store: GTDStore) -> None:
    task_id = store.add_task(title="x", tags=["a", "b"])
    item = store.add_checklist_item(task_id, "step")

    store.update_task(task_id, tags=3.5, checklist={"id": "not-a-list"}, notes="kept")

    task = store.get_task(task_id)
    assert task.tags == ("a", "b")
    assert [i.id for i in task.checklist] == [item]
    assert task.notes == "kept"


def test_failing_commit_listener_does_not_break_mutations(clock) -> None:
    store = GTDStore(on_commit=FailingStateRepo().save, clock=clock)
    task_id = store.add_task(title="still works")
    store.complete_task(task_id)
    assert store.get_task(task_id).status is TaskStatus.COMPLETED


def test_completion_invariant_holds_under_random_operations(store: GTDStore) -> None:
    rng = random.Random(1234)
    statuses = ["inbox", "today", "anytime", "someday", "completed", "trash"]
    ids = [store.add_task(title=f"t{i}", status=rng.choice(statuses)) for i in range(8)]

    ops = [
        lambda tid: store.complete_task(tid),
        lambda tid: store.uncomplete_task(tid),
        lambda tid: store.move_task_to_trash(tid),
        lambda tid: store.restore_task(tid),
        lambda tid: store.update_task(tid, status=rng.choice(statuses)),
        lambda tid: store.update_task(tid, title="renamed"),
        lambda tid: store.reorder_tasks([tid]),
    ]
    for _ in range(300):
        rng.choice(ops)(rng.choice(ids + ["ghost"]))
        for task in store.tasks:
            assert (task.completed_at is not None) == (task.status is TaskStatus.COMPLETED)
