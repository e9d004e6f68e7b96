# src/gtd_planner/core/engine.py

from __future__ import annotations

import logging
import random
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any, TypeVar

from .models import (
    AREA_EDITABLE_FIELDS,
    PROJECT_EDITABLE_FIELDS,
    TAG_COLORS,
    TAG_EDITABLE_FIELDS,
    TASK_EDITABLE_FIELDS,
    Area,
    ChecklistItem,
    Project,
    RepeatRule,
    StoreSnapshot,
    Tag,
    Task,
    TaskStatus,
    UIState,
    ViewType,
)
from .views import visible_tasks

logger = logging.getLogger(__name__)

CommitListener = Callable[[StoreSnapshot], None]
Clock = Callable[[], datetime]

_E = TypeVar("_E", Task, Project, Area, Tag)

DEFAULT_PROJECT_TITLE = "New Project"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


def _next_order(items: Iterable[Any]) -> float:
    return max((item.order for item in items), default=0) + 1


def _find(items: list[_E], entity_id: str) -> int | None:
    for i, item in enumerate(items):
        if item.id == entity_id:
            return i
    return None


def _clean_date(name: str, value: Any) -> tuple[bool, str | None]:
    """Normalize a calendar date to YYYY-MM-DD. Returns (ok, value)."""
    if value is None:
        return True, None
    if isinstance(value, datetime):
        return True, value.date().isoformat()
    if isinstance(value, date):
        return True, value.isoformat()
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return True, None
        try:
            return True, date.fromisoformat(raw[:10]).isoformat()
        except ValueError:
            pass
    logger.warning("Ignoring invalid %s=%r", name, value)
    return False, None


def _as_items(name: str, value: Any) -> list[Any] | None:
    """A list/tuple/set-like collection as a list; None (with a warning) otherwise."""
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        logger.warning("Ignoring invalid %s=%r", name, value)
        return None
    return list(value)


def _clean_tags(value: Any) -> tuple[bool, tuple[str, ...]]:
    """Normalize tag ids; a bare string is one tag id. Returns (ok, value)."""
    if isinstance(value, str):
        return True, ((value,) if value else ())
    items = _as_items("tags", value)
    if items is None:
        return False, ()
    # dict keeps first-seen order while dropping duplicates
    return True, tuple(dict.fromkeys(str(t) for t in items if t))


def _clean_ref(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _clean_checklist(value: Any) -> tuple[bool, tuple[ChecklistItem, ...]]:
    items = _as_items("checklist", value)
    if items is None:
        return False, ()
    out: list[ChecklistItem] = []
    for raw in items:
        if isinstance(raw, ChecklistItem):
            out.append(raw)
        elif isinstance(raw, Mapping):
            out.append(
                ChecklistItem(
                    id=str(raw.get("id") or _new_id()),
                    title=str(raw.get("title") or ""),
                    completed=bool(raw.get("completed", False)),
                )
            )
        else:
            logger.warning("Ignoring invalid checklist item %r", raw)
    return True, tuple(out)


def _clean_fields(kind: str, allowed: frozenset[str], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Filter and normalize caller-supplied fields for one entity kind."""
    out: dict[str, Any] = {}
    for name, value in changes.items():
        if name not in allowed:
            logger.warning("Ignoring unknown %s field %r", kind, name)
            continue

        if name in ("title", "notes", "name", "color"):
            out[name] = "" if value is None else str(value)
        elif name == "status":
            status = TaskStatus.parse(value)
            if status is None:
                logger.warning("Ignoring invalid task status %r", value)
                continue
            out[name] = status
        elif name in ("project_id", "area_id"):
            out[name] = _clean_ref(value)
        elif name == "tags":
            ok, tags = _clean_tags(value)
            if ok:
                out[name] = tags
        elif name == "checklist":
            ok, items = _clean_checklist(value)
            if ok:
                out[name] = items
        elif name in ("scheduled_date", "deadline"):
            ok, day = _clean_date(name, value)
            if ok:
                out[name] = day
        elif name == "repeat_rule":
            if value is not None and not isinstance(value, RepeatRule):
                logger.warning("Ignoring invalid repeat_rule %r", value)
                continue
            out[name] = value
        elif name == "completed_at":
            out[name] = str(value) if value else None
        elif name == "order":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning("Ignoring invalid order %r", value)
                continue
            out[name] = value
        else:
            out[name] = value
    return out


class GTDStore:
    """
    In-memory GTD store: the only writer of tasks, projects, areas and tags.

    Contract:
    - every mutation runs under one re-entrant lock, so calls never interleave
    - operations on unknown ids are silent no-ops (logged at DEBUG), never errors
    - entities are frozen; updates replace them, so handed-out objects never change
    - after each successful mutation `on_commit` receives a fresh snapshot
      (still under the lock, so listeners see commits in order)
    """

    def __init__(
        self,
        initial: StoreSnapshot | None = None,
        *,
        on_commit: CommitListener | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        initial = initial or StoreSnapshot()
        self._tasks: list[Task] = list(initial.tasks)
        self._projects: list[Project] = list(initial.projects)
        self._areas: list[Area] = list(initial.areas)
        self._tags: list[Tag] = list(initial.tags)
        self._ui: UIState = initial.ui

        self._lock = threading.RLock()
        self._listeners: list[CommitListener] = [on_commit] if on_commit else []
        self._clock: Clock = clock or _utc_now
        self._rng = rng or random.Random()

    # ---- internals ----

    def _now(self) -> str:
        return self._clock().isoformat()

    def _snapshot_locked(self) -> StoreSnapshot:
        return StoreSnapshot(
            tasks=tuple(self._tasks),
            projects=tuple(self._projects),
            areas=tuple(self._areas),
            tags=tuple(self._tags),
            ui=self._ui,
        )

    def _commit(self, action: str) -> None:
        if not self._listeners:
            return
        snapshot = self._snapshot_locked()
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Commit listener failed after %s", action)

    def _touch_task(self, idx: int, now: str | None = None, **changes: Any) -> Task:
        task = replace(self._tasks[idx], updated_at=now or self._now(), **changes)
        self._tasks[idx] = task
        return task

    def _set_status(self, task_id: str, status: TaskStatus, action: str) -> None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("%s: no task id=%s", action, task_id)
                return
            now = self._now()
            completed_at = now if status is TaskStatus.COMPLETED else None
            self._touch_task(idx, now, status=status, completed_at=completed_at)
            logger.debug("%s id=%s status=%s", action, task_id, status.value)
            self._commit(action)

    # ---- observers / reads ----

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return tuple(self._tasks)

    @property
    def projects(self) -> tuple[Project, ...]:
        with self._lock:
            return tuple(self._projects)

    @property
    def areas(self) -> tuple[Area, ...]:
        with self._lock:
            return tuple(self._areas)

    @property
    def tags(self) -> tuple[Tag, ...]:
        with self._lock:
            return tuple(self._tags)

    @property
    def ui(self) -> UIState:
        return self._ui

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            return None if idx is None else self._tasks[idx]

    def get_project(self, project_id: str) -> Project | None:
        with self._lock:
            idx = _find(self._projects, project_id)
            return None if idx is None else self._projects[idx]

    def get_area(self, area_id: str) -> Area | None:
        with self._lock:
            idx = _find(self._areas, area_id)
            return None if idx is None else self._areas[idx]

    def get_tag(self, tag_id: str) -> Tag | None:
        with self._lock:
            idx = _find(self._tags, tag_id)
            return None if idx is None else self._tags[idx]

    def current_tasks(self, *, today: date | None = None) -> list[Task]:
        """Tasks visible under the current UI selection (view, scope, search)."""
        snap = self.snapshot()
        return visible_tasks(
            snap,
            snap.ui.current_view,
            snap.ui.selected_item_id,
            query=snap.ui.search_query,
            today=today,
        )

    # ---- tasks ----

    def add_task(self, **fields: Any) -> str:
        """
        Create a task and return its id.

        Unset fields get defaults (empty title, inbox, no refs, no dates).
        `order` is always max(existing) + 1.
        """
        fields.pop("order", None)
        clean = _clean_fields("task", TASK_EDITABLE_FIELDS, fields)
        with self._lock:
            now = self._now()
            status = clean.get("status", TaskStatus.INBOX)
            task = Task(
                id=_new_id(),
                created_at=now,
                updated_at=now,
                completed_at=now if status is TaskStatus.COMPLETED else None,
                order=_next_order(self._tasks),
                **clean,
            )
            self._tasks.append(task)
            logger.debug(
                "Task added id=%s status=%s order=%s", task.id, task.status.value, task.order
            )
            self._commit("add_task")
            return task.id

    def update_task(self, task_id: str, **changes: Any) -> None:
        """
        Merge `changes` into a task. No-op if the id is unknown.

        `completed_at` follows the resulting status: stamped when the task
        becomes completed, cleared when it leaves completed.
        """
        clean = _clean_fields("task", TASK_EDITABLE_FIELDS, changes)
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("update_task: no task id=%s", task_id)
                return
            current = self._tasks[idx]
            now = self._now()
            new_status = clean.get("status", current.status)
            if new_status is not TaskStatus.COMPLETED:
                clean["completed_at"] = None
            elif current.status is not TaskStatus.COMPLETED:
                clean["completed_at"] = now
            self._touch_task(idx, now, **clean)
            logger.debug("Task updated id=%s fields=%s", task_id, sorted(clean))
            self._commit("update_task")

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("delete_task: no task id=%s", task_id)
                return
            del self._tasks[idx]
            logger.debug("Task deleted id=%s", task_id)
            self._commit("delete_task")

    def move_task_to_trash(self, task_id: str) -> None:
        self._set_status(task_id, TaskStatus.TRASH, "move_task_to_trash")

    def restore_task(self, task_id: str) -> None:
        # Restored tasks always land in the inbox, whatever they were before.
        self._set_status(task_id, TaskStatus.INBOX, "restore_task")

    def complete_task(self, task_id: str) -> None:
        self._set_status(task_id, TaskStatus.COMPLETED, "complete_task")

    def uncomplete_task(self, task_id: str) -> None:
        self._set_status(task_id, TaskStatus.INBOX, "uncomplete_task")

    def reorder_tasks(self, ordered_ids: Iterable[str]) -> None:
        """Set `order = position` for every known id in `ordered_ids`."""
        with self._lock:
            now = self._now()
            touched = 0
            for position, task_id in enumerate(ordered_ids):
                idx = _find(self._tasks, task_id)
                if idx is None:
                    continue
                self._touch_task(idx, now, order=position)
                touched += 1
            if not touched:
                logger.debug("reorder_tasks: no known ids")
                return
            logger.debug("Tasks reordered count=%s", touched)
            self._commit("reorder_tasks")

    def clear_completed(self) -> None:
        self._purge(TaskStatus.COMPLETED, "clear_completed")

    def empty_trash(self) -> None:
        self._purge(TaskStatus.TRASH, "empty_trash")

    def _purge(self, status: TaskStatus, action: str) -> None:
        with self._lock:
            before = len(self._tasks)
            self._tasks = [t for t in self._tasks if t.status is not status]
            removed = before - len(self._tasks)
            if not removed:
                return
            logger.debug("%s removed=%s", action, removed)
            self._commit(action)

    # ---- checklist ----

    def add_checklist_item(self, task_id: str, title: str) -> str | None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("add_checklist_item: no task id=%s", task_id)
                return None
            item = ChecklistItem(id=_new_id(), title=title, completed=False)
            self._touch_task(idx, checklist=self._tasks[idx].checklist + (item,))
            self._commit("add_checklist_item")
            return item.id

    def update_checklist_item(self, task_id: str, item_id: str, **changes: Any) -> None:
        allowed = {k: v for k, v in changes.items() if k in ("title", "completed")}
        if len(allowed) != len(changes):
            logger.warning("Ignoring unknown checklist fields %s", sorted(set(changes) - set(allowed)))
        self._edit_checklist_item(
            task_id, item_id, "update_checklist_item", lambda item: replace(item, **allowed)
        )

    def toggle_checklist_item(self, task_id: str, item_id: str) -> None:
        self._edit_checklist_item(
            task_id,
            item_id,
            "toggle_checklist_item",
            lambda item: replace(item, completed=not item.completed),
        )

    def _edit_checklist_item(
        self,
        task_id: str,
        item_id: str,
        action: str,
        edit: Callable[[ChecklistItem], ChecklistItem],
    ) -> None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("%s: no task id=%s", action, task_id)
                return
            checklist = list(self._tasks[idx].checklist)
            pos = next((i for i, it in enumerate(checklist) if it.id == item_id), None)
            if pos is None:
                logger.debug("%s: no item id=%s in task id=%s", action, item_id, task_id)
                return
            checklist[pos] = edit(checklist[pos])
            self._touch_task(idx, checklist=tuple(checklist))
            self._commit(action)

    def delete_checklist_item(self, task_id: str, item_id: str) -> None:
        with self._lock:
            idx = _find(self._tasks, task_id)
            if idx is None:
                logger.debug("delete_checklist_item: no task id=%s", task_id)
                return
            checklist = tuple(it for it in self._tasks[idx].checklist if it.id != item_id)
            self._touch_task(idx, checklist=checklist)
            self._commit("delete_checklist_item")

    # ---- projects ----

    def add_project(self, **fields: Any) -> str:
        fields.pop("order", None)
        clean = _clean_fields("project", PROJECT_EDITABLE_FIELDS, fields)
        if not clean.get("title"):
            clean["title"] = DEFAULT_PROJECT_TITLE
        with self._lock:
            now = self._now()
            project = Project(
                id=_new_id(),
                created_at=now,
                updated_at=now,
                order=_next_order(self._projects),
                **clean,
            )
            self._projects.append(project)
            logger.debug("Project added id=%s title=%r", project.id, project.title)
            self._commit("add_project")
            return project.id

    def update_project(self, project_id: str, **changes: Any) -> None:
        clean = _clean_fields("project", PROJECT_EDITABLE_FIELDS, changes)
        with self._lock:
            idx = _find(self._projects, project_id)
            if idx is None:
                logger.debug("update_project: no project id=%s", project_id)
                return
            self._projects[idx] = replace(self._projects[idx], updated_at=self._now(), **clean)
            self._commit("update_project")

    def complete_project(self, project_id: str) -> None:
        with self._lock:
            idx = _find(self._projects, project_id)
            if idx is None:
                logger.debug("complete_project: no project id=%s", project_id)
                return
            now = self._now()
            self._projects[idx] = replace(self._projects[idx], completed_at=now, updated_at=now)
            self._commit("complete_project")

    def delete_project(self, project_id: str) -> None:
        """Remove a project and detach its tasks (tasks keep their status)."""
        with self._lock:
            idx = _find(self._projects, project_id)
            if idx is None:
                logger.debug("delete_project: no project id=%s", project_id)
                return
            del self._projects[idx]
            detached = 0
            for i, task in enumerate(self._tasks):
                if task.project_id == project_id:
                    self._tasks[i] = replace(task, project_id=None)
                    detached += 1
            logger.debug("Project deleted id=%s detached_tasks=%s", project_id, detached)
            self._commit("delete_project")

    # ---- areas ----

    def add_area(self, title: str) -> str:
        with self._lock:
            area = Area(id=_new_id(), title=title, order=_next_order(self._areas))
            self._areas.append(area)
            logger.debug("Area added id=%s title=%r", area.id, area.title)
            self._commit("add_area")
            return area.id

    def update_area(self, area_id: str, **changes: Any) -> None:
        clean = _clean_fields("area", AREA_EDITABLE_FIELDS, changes)
        with self._lock:
            idx = _find(self._areas, area_id)
            if idx is None:
                logger.debug("update_area: no area id=%s", area_id)
                return
            self._areas[idx] = replace(self._areas[idx], **clean)
            self._commit("update_area")

    def delete_area(self, area_id: str) -> None:
        """Remove an area and detach every task and project that points at it."""
        with self._lock:
            idx = _find(self._areas, area_id)
            if idx is None:
                logger.debug("delete_area: no area id=%s", area_id)
                return
            del self._areas[idx]
            for i, task in enumerate(self._tasks):
                if task.area_id == area_id:
                    self._tasks[i] = replace(task, area_id=None)
            for i, project in enumerate(self._projects):
                if project.area_id == area_id:
                    self._projects[i] = replace(project, area_id=None)
            logger.debug("Area deleted id=%s", area_id)
            self._commit("delete_area")

    # ---- tags ----

    def _pick_tag_color(self) -> str:
        used = {t.color for t in self._tags}
        for color in TAG_COLORS:
            if color not in used:
                return color
        return self._rng.choice(TAG_COLORS)

    def add_tag(self, name: str, color: str | None = None) -> str:
        with self._lock:
            tag = Tag(id=_new_id(), name=name, color=color or self._pick_tag_color())
            self._tags.append(tag)
            logger.debug("Tag added id=%s name=%r color=%s", tag.id, tag.name, tag.color)
            self._commit("add_tag")
            return tag.id

    def update_tag(self, tag_id: str, **changes: Any) -> None:
        clean = _clean_fields("tag", TAG_EDITABLE_FIELDS, changes)
        with self._lock:
            idx = _find(self._tags, tag_id)
            if idx is None:
                logger.debug("update_tag: no tag id=%s", tag_id)
                return
            self._tags[idx] = replace(self._tags[idx], **clean)
            self._commit("update_tag")

    def delete_tag(self, tag_id: str) -> None:
        """Remove a tag and strip it from every task and project."""
        with self._lock:
            idx = _find(self._tags, tag_id)
            if idx is None:
                logger.debug("delete_tag: no tag id=%s", tag_id)
                return
            del self._tags[idx]
            for i, task in enumerate(self._tasks):
                if tag_id in task.tags:
                    self._tasks[i] = replace(task, tags=tuple(t for t in task.tags if t != tag_id))
            for i, project in enumerate(self._projects):
                if tag_id in project.tags:
                    self._projects[i] = replace(
                        project, tags=tuple(t for t in project.tags if t != tag_id)
                    )
            logger.debug("Tag deleted id=%s", tag_id)
            self._commit("delete_tag")

    # ---- UI selection ----

    def _set_ui(self, action: str, edit: Callable[[UIState], UIState]) -> None:
        with self._lock:
            self._ui = edit(self._ui)
            self._commit(action)

    def set_current_view(self, view: ViewType | str, item_id: str | None = None) -> None:
        parsed = ViewType.parse(view)
        if parsed is None:
            logger.warning("Ignoring unknown view %r", view)
            return
        self._set_ui(
            "set_current_view",
            lambda ui: replace(
                ui, current_view=parsed, selected_item_id=item_id, selected_task_id=None
            ),
        )

    def set_selected_task_id(self, task_id: str | None) -> None:
        self._set_ui("set_selected_task_id", lambda ui: replace(ui, selected_task_id=task_id))

    def toggle_sidebar(self) -> None:
        self._set_ui(
            "toggle_sidebar", lambda ui: replace(ui, sidebar_collapsed=not ui.sidebar_collapsed)
        )

    def set_search_query(self, query: str) -> None:
        self._set_ui("set_search_query", lambda ui: replace(ui, search_query=query or ""))

    def toggle_quick_entry(self) -> None:
        self._set_ui(
            "toggle_quick_entry",
            lambda ui: replace(ui, is_quick_entry_open=not ui.is_quick_entry_open),
        )
