# src/gtd_planner/core/views.py

"""
View resolver: which tasks appear in which view, in which order.

Everything here is a pure function of the collections passed in. Nothing is
cached, so results can always be re-derived from the current store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from .models import Project, StoreSnapshot, Task, TaskStatus, ViewType

_CLOSED = (TaskStatus.COMPLETED, TaskStatus.TRASH)

VIEW_TITLES: dict[ViewType, str] = {
    ViewType.INBOX: "Inbox",
    ViewType.TODAY: "Today",
    ViewType.UPCOMING: "Upcoming",
    ViewType.ANYTIME: "Anytime",
    ViewType.SOMEDAY: "Someday",
    ViewType.LOGBOOK: "Logbook",
    ViewType.TRASH: "Trash",
    ViewType.PROJECT: "Project",
    ViewType.AREA: "Area",
    ViewType.TAG: "Tag",
}

# Views whose name doubles as the status of a task created there.
_STATUS_VIEWS: dict[ViewType, TaskStatus] = {
    ViewType.INBOX: TaskStatus.INBOX,
    ViewType.TODAY: TaskStatus.TODAY,
    ViewType.ANYTIME: TaskStatus.ANYTIME,
    ViewType.SOMEDAY: TaskStatus.SOMEDAY,
}


def _is_open(task: Task) -> bool:
    return task.status not in _CLOSED


def _is_due(task: Task, today_iso: str) -> bool:
    return bool(task.scheduled_date) and task.scheduled_date <= today_iso and _is_open(task)


def _predicate(view: ViewType, scope_id: str | None, today_iso: str) -> Callable[[Task], bool]:
    if view is ViewType.INBOX:
        return lambda t: t.status is TaskStatus.INBOX and t.project_id is None
    if view is ViewType.TODAY:
        return lambda t: t.status is TaskStatus.TODAY or _is_due(t, today_iso)
    if view is ViewType.UPCOMING:
        return lambda t: bool(t.scheduled_date) and _is_open(t)
    if view is ViewType.ANYTIME:
        return lambda t: t.status is TaskStatus.ANYTIME
    if view is ViewType.SOMEDAY:
        return lambda t: t.status is TaskStatus.SOMEDAY
    if view is ViewType.LOGBOOK:
        return lambda t: t.status is TaskStatus.COMPLETED
    if view is ViewType.TRASH:
        return lambda t: t.status is TaskStatus.TRASH
    if scope_id is None:
        return lambda t: False
    if view is ViewType.PROJECT:
        return lambda t: t.project_id == scope_id and t.status is not TaskStatus.TRASH
    if view is ViewType.AREA:
        return lambda t: t.area_id == scope_id and t.status is not TaskStatus.TRASH
    if view is ViewType.TAG:
        return lambda t: scope_id in t.tags and t.status is not TaskStatus.TRASH
    return lambda t: False


def resolve(
    tasks: Iterable[Task],
    view: ViewType | str,
    scope_id: str | None = None,
    *,
    today: date | None = None,
) -> list[Task]:
    """
    Return the tasks of `view`, ordered for display.

    Ordering:
    - upcoming: scheduled date ascending (ties by `order`)
    - logbook: completion time descending (ties by `order`)
    - everything else: `order` ascending

    Unknown views resolve to an empty list.
    """
    parsed = ViewType.parse(view)
    if parsed is None:
        return []

    today_iso = (today or date.today()).isoformat()
    keep = _predicate(parsed, scope_id, today_iso)
    matches = [t for t in tasks if keep(t)]

    # sort() is stable: sort by order first, then by the view's primary key.
    matches.sort(key=lambda t: t.order)
    if parsed is ViewType.UPCOMING:
        matches.sort(key=lambda t: t.scheduled_date or "")
    elif parsed is ViewType.LOGBOOK:
        matches.sort(key=lambda t: t.completed_at or "", reverse=True)
    return matches


def filter_by_search(tasks: Iterable[Task], query: str | None) -> list[Task]:
    """Case-insensitive substring match on title or notes. Keeps input order.

    The query is matched as typed: only an empty query keeps everything.
    """
    needle = (query or "").lower()
    if not needle:
        return list(tasks)
    return [t for t in tasks if needle in t.title.lower() or needle in t.notes.lower()]


def detach_dangling(snapshot: StoreSnapshot) -> list[Task]:
    """Tasks with references to missing projects/areas/tags read as unset."""
    project_ids = {p.id for p in snapshot.projects}
    area_ids = {a.id for a in snapshot.areas}
    tag_ids = {t.id for t in snapshot.tags}

    out: list[Task] = []
    for task in snapshot.tasks:
        changes: dict[str, Any] = {}
        if task.project_id is not None and task.project_id not in project_ids:
            changes["project_id"] = None
        if task.area_id is not None and task.area_id not in area_ids:
            changes["area_id"] = None
        if any(t not in tag_ids for t in task.tags):
            changes["tags"] = tuple(t for t in task.tags if t in tag_ids)
        out.append(replace(task, **changes) if changes else task)
    return out


def visible_tasks(
    snapshot: StoreSnapshot,
    view: ViewType | str,
    scope_id: str | None = None,
    *,
    query: str | None = None,
    today: date | None = None,
) -> list[Task]:
    """What a front end shows: resolve over clean references, then search."""
    resolved = resolve(detach_dangling(snapshot), view, scope_id, today=today)
    return filter_by_search(resolved, query)


@dataclass(frozen=True, slots=True)
class SidebarCounts:
    inbox: int = 0
    today: int = 0
    upcoming: int = 0
    projects: dict[str, int] = field(default_factory=dict)
    tags: dict[str, int] = field(default_factory=dict)


def active_projects(projects: Iterable[Project]) -> list[Project]:
    return sorted((p for p in projects if p.completed_at is None), key=lambda p: p.order)


def sidebar_counts(snapshot: StoreSnapshot, *, today: date | None = None) -> SidebarCounts:
    tasks = detach_dangling(snapshot)
    open_tasks = [t for t in tasks if _is_open(t)]
    return SidebarCounts(
        inbox=len(resolve(tasks, ViewType.INBOX, today=today)),
        today=len(resolve(tasks, ViewType.TODAY, today=today)),
        upcoming=len(resolve(tasks, ViewType.UPCOMING, today=today)),
        projects={
            p.id: sum(1 for t in open_tasks if t.project_id == p.id)
            for p in active_projects(snapshot.projects)
        },
        tags={tag.id: sum(1 for t in open_tasks if tag.id in t.tags) for tag in snapshot.tags},
    )


def view_title(snapshot: StoreSnapshot, view: ViewType | str, scope_id: str | None = None) -> str:
    parsed = ViewType.parse(view)
    if parsed is None:
        return str(view)
    if scope_id is not None:
        if parsed is ViewType.PROJECT:
            project = next((p for p in snapshot.projects if p.id == scope_id), None)
            if project is not None:
                return project.title
        elif parsed is ViewType.AREA:
            area = next((a for a in snapshot.areas if a.id == scope_id), None)
            if area is not None:
                return area.title
        elif parsed is ViewType.TAG:
            tag = next((t for t in snapshot.tags if t.id == scope_id), None)
            if tag is not None:
                return tag.name
    return VIEW_TITLES[parsed]


def new_task_defaults(view: ViewType | str, scope_id: str | None = None) -> dict[str, Any]:
    """Fields for a task created while `view` is selected."""
    parsed = ViewType.parse(view)
    return {
        "title": "",
        "status": _STATUS_VIEWS.get(parsed, TaskStatus.INBOX) if parsed else TaskStatus.INBOX,
        "project_id": scope_id if parsed is ViewType.PROJECT else None,
        "area_id": scope_id if parsed is ViewType.AREA else None,
        "tags": [scope_id] if parsed is ViewType.TAG and scope_id else [],
    }


def checklist_progress(task: Task) -> tuple[int, int]:
    return sum(1 for item in task.checklist if item.completed), len(task.checklist)
