# src/gtd_planner/storage/codec.py

"""
Store snapshot <-> JSON document.

The document uses camelCase keys and ISO-8601 strings for every date field.
Decoding is tolerant: anything malformed is skipped (or defaulted) with a
warning instead of failing startup.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.models import (
    Area,
    ChecklistItem,
    Project,
    RepeatRule,
    RepeatType,
    StoreSnapshot,
    Tag,
    Task,
    TaskStatus,
    UIState,
    ViewType,
)

logger = logging.getLogger(__name__)


# ---- encode ----


def repeat_rule_to_dict(rule: RepeatRule) -> dict[str, Any]:
    out: dict[str, Any] = {"type": rule.type.value, "interval": rule.interval}
    if rule.days_of_week is not None:
        out["daysOfWeek"] = list(rule.days_of_week)
    if rule.day_of_month is not None:
        out["dayOfMonth"] = rule.day_of_month
    return out


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "notes": task.notes,
        "status": task.status.value,
        "projectId": task.project_id,
        "areaId": task.area_id,
        "tags": list(task.tags),
        "checklist": [
            {"id": it.id, "title": it.title, "completed": it.completed} for it in task.checklist
        ],
        "scheduledDate": task.scheduled_date,
        "deadline": task.deadline,
        "repeatRule": repeat_rule_to_dict(task.repeat_rule) if task.repeat_rule else None,
        "createdAt": task.created_at,
        "updatedAt": task.updated_at,
        "completedAt": task.completed_at,
        "order": task.order,
    }


def project_to_dict(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "notes": project.notes,
        "areaId": project.area_id,
        "tags": list(project.tags),
        "deadline": project.deadline,
        "createdAt": project.created_at,
        "updatedAt": project.updated_at,
        "completedAt": project.completed_at,
        "order": project.order,
    }


def snapshot_to_document(snapshot: StoreSnapshot) -> dict[str, Any]:
    ui = snapshot.ui
    return {
        "tasks": [task_to_dict(t) for t in snapshot.tasks],
        "projects": [project_to_dict(p) for p in snapshot.projects],
        "areas": [{"id": a.id, "title": a.title, "order": a.order} for a in snapshot.areas],
        "tags": [{"id": t.id, "name": t.name, "color": t.color} for t in snapshot.tags],
        "currentView": ui.current_view.value,
        "selectedItemId": ui.selected_item_id,
        "selectedTaskId": ui.selected_task_id,
        "sidebarCollapsed": ui.sidebar_collapsed,
        "searchQuery": ui.search_query,
        "isQuickEntryOpen": ui.is_quick_entry_open,
    }


# ---- decode ----


def _opt_str(raw: Any) -> str | None:
    return raw if isinstance(raw, str) and raw != "" else None


def _str(raw: Any) -> str:
    return raw if isinstance(raw, str) else ""


def _order(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return 0
    return raw


def _str_list(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(dict.fromkeys(x for x in raw if isinstance(x, str) and x))


def repeat_rule_from_dict(raw: Any) -> RepeatRule | None:
    if not isinstance(raw, dict):
        return None
    try:
        rule_type = RepeatType(raw.get("type"))
    except ValueError:
        logger.warning("Dropping repeat rule with unknown type %r", raw.get("type"))
        return None

    interval = raw.get("interval", 1)
    days = raw.get("daysOfWeek")
    day_of_month = raw.get("dayOfMonth")
    return RepeatRule(
        type=rule_type,
        interval=interval if isinstance(interval, int) and not isinstance(interval, bool) else 1,
        days_of_week=tuple(d for d in days if isinstance(d, int)) if isinstance(days, list) else None,
        day_of_month=day_of_month if isinstance(day_of_month, int) else None,
    )


def _checklist_from_list(raw: Any) -> tuple[ChecklistItem, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[ChecklistItem] = []
    for item in raw:
        if not isinstance(item, dict) or not _opt_str(item.get("id")):
            continue
        out.append(
            ChecklistItem(
                id=item["id"],
                title=_str(item.get("title")),
                completed=bool(item.get("completed", False)),
            )
        )
    return tuple(out)


def task_from_dict(raw: Any) -> Task | None:
    if not isinstance(raw, dict) or not _opt_str(raw.get("id")):
        return None

    status = TaskStatus.parse(raw.get("status"))
    if status is None:
        logger.warning("Task id=%s has unknown status %r; using inbox", raw["id"], raw.get("status"))
        status = TaskStatus.INBOX

    created_at = _str(raw.get("createdAt"))
    completed_at = _opt_str(raw.get("completedAt"))
    # keep the completion invariant even if the stored document broke it
    if status is TaskStatus.COMPLETED and completed_at is None:
        completed_at = _opt_str(raw.get("updatedAt")) or created_at
    elif status is not TaskStatus.COMPLETED:
        completed_at = None

    return Task(
        id=raw["id"],
        title=_str(raw.get("title")),
        notes=_str(raw.get("notes")),
        status=status,
        project_id=_opt_str(raw.get("projectId")),
        area_id=_opt_str(raw.get("areaId")),
        tags=_str_list(raw.get("tags")),
        checklist=_checklist_from_list(raw.get("checklist")),
        scheduled_date=_opt_str(raw.get("scheduledDate")),
        deadline=_opt_str(raw.get("deadline")),
        repeat_rule=repeat_rule_from_dict(raw.get("repeatRule")),
        created_at=created_at,
        updated_at=_str(raw.get("updatedAt")) or created_at,
        completed_at=completed_at,
        order=_order(raw.get("order")),
    )


def project_from_dict(raw: Any) -> Project | None:
    if not isinstance(raw, dict) or not _opt_str(raw.get("id")):
        return None
    created_at = _str(raw.get("createdAt"))
    return Project(
        id=raw["id"],
        title=_str(raw.get("title")),
        notes=_str(raw.get("notes")),
        area_id=_opt_str(raw.get("areaId")),
        tags=_str_list(raw.get("tags")),
        deadline=_opt_str(raw.get("deadline")),
        created_at=created_at,
        updated_at=_str(raw.get("updatedAt")) or created_at,
        completed_at=_opt_str(raw.get("completedAt")),
        order=_order(raw.get("order")),
    )


def area_from_dict(raw: Any) -> Area | None:
    if not isinstance(raw, dict) or not _opt_str(raw.get("id")):
        return None
    return Area(id=raw["id"], title=_str(raw.get("title")), order=_order(raw.get("order")))


def tag_from_dict(raw: Any) -> Tag | None:
    if not isinstance(raw, dict) or not _opt_str(raw.get("id")):
        return None
    return Tag(id=raw["id"], name=_str(raw.get("name")), color=_str(raw.get("color")))


def _decode_list(doc: dict[str, Any], key: str, decode) -> tuple:
    raw = doc.get(key)
    if raw is None:
        return ()
    if not isinstance(raw, list):
        logger.warning("Persisted %s is not a list; ignoring it", key)
        return ()

    out = []
    seen: set[str] = set()
    for item in raw:
        entity = decode(item)
        if entity is None:
            logger.warning("Skipping malformed %s entry: %r", key, item)
            continue
        if entity.id in seen:
            logger.warning("Skipping duplicate %s id=%s", key, entity.id)
            continue
        seen.add(entity.id)
        out.append(entity)
    return tuple(out)


def snapshot_from_document(doc: Any) -> StoreSnapshot:
    """Decode a persisted document. Non-dict input yields the empty default."""
    if not isinstance(doc, dict):
        logger.warning("Persisted state is not an object (%s); using defaults", type(doc).__name__)
        return StoreSnapshot()

    view = ViewType.parse(doc.get("currentView", ViewType.INBOX))
    if view is None:
        logger.warning("Unknown persisted view %r; using inbox", doc.get("currentView"))
        view = ViewType.INBOX

    query = doc.get("searchQuery")
    ui = UIState(
        current_view=view,
        selected_item_id=_opt_str(doc.get("selectedItemId")),
        selected_task_id=_opt_str(doc.get("selectedTaskId")),
        sidebar_collapsed=bool(doc.get("sidebarCollapsed", False)),
        search_query=query if isinstance(query, str) else "",
        is_quick_entry_open=bool(doc.get("isQuickEntryOpen", False)),
    )

    return StoreSnapshot(
        tasks=_decode_list(doc, "tasks", task_from_dict),
        projects=_decode_list(doc, "projects", project_from_dict),
        areas=_decode_list(doc, "areas", area_from_dict),
        tags=_decode_list(doc, "tags", tag_from_dict),
        ui=ui,
    )
