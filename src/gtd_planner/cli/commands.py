# src/gtd_planner/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date
from typing import TypeVar

from ..core.models import SCOPED_VIEWS, Area, Project, Tag, Task, TaskStatus, ViewType
from ..core.state import AppState
from ..core.views import (
    active_projects,
    checklist_progress,
    new_task_defaults,
    sidebar_counts,
    view_title,
)

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

_N = TypeVar("_N", Project, Area, Tag)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."
        return handler(state, parts[1:])

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- lookups ----


def _find_task(state: AppState, ref: str) -> Task | None:
    """`ref` is a 1-based position in the current listing or an id prefix."""
    if ref.isdigit():
        listing = state.store.current_tasks()
        pos = int(ref) - 1
        return listing[pos] if 0 <= pos < len(listing) else None
    matches = [t for t in state.store.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _find_named(items: Iterable[_N], ref: str) -> _N | None:
    """Match by id prefix first, then by case-insensitive title/name."""
    items = list(items)
    by_id = [it for it in items if it.id.startswith(ref)]
    if len(by_id) == 1:
        return by_id[0]
    needle = ref.lower()
    for it in items:
        label = it.name if isinstance(it, Tag) else it.title
        if label.lower() == needle:
            return it
    return None


def _format_task(state: AppState, pos: int, task: Task) -> str:
    mark = "x" if task.status is TaskStatus.COMPLETED else " "
    parts = [f"{pos}. [{mark}] {task.title or '<untitled>'}"]
    if task.scheduled_date:
        parts.append(f"@{task.scheduled_date}")
    if task.deadline:
        parts.append(f"!{task.deadline}")
    done, total = checklist_progress(task)
    if total:
        parts.append(f"({done}/{total})")
    tag_names = [t.name for tid in task.tags if (t := state.store.get_tag(tid)) is not None]
    if tag_names:
        parts.append(" ".join(f"#{n}" for n in tag_names))
    parts.append(f"<{task.id[:8]}>")
    return " ".join(parts)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_ls(state: AppState, args: list[str]) -> str:
    ui = state.store.ui
    title = view_title(state.store.snapshot(), ui.current_view, ui.selected_item_id)
    header = f"{title}" + (f" (search: {ui.search_query!r})" if ui.search_query else "")
    tasks = state.store.current_tasks()
    if not tasks:
        return f"{header}\n  (empty)"
    lines = [header] + [f"  {_format_task(state, i, t)}" for i, t in enumerate(tasks, start=1)]
    return "\n".join(lines)


def cmd_view(state: AppState, args: list[str]) -> str:
    """
    /view inbox|today|upcoming|anytime|someday|logbook|trash
    /view project|area|tag <name or id>
    """
    if not args:
        names = ", ".join(v.value for v in ViewType)
        return f"Usage: /view <name> [scope]. Views: {names}"
    view = ViewType.parse(args[0].lower())
    if view is None:
        return f"Unknown view: {args[0]}"

    scope_id: str | None = None
    if view in SCOPED_VIEWS:
        if len(args) < 2:
            return f"Usage: /view {view.value} <name or id>"
        ref = " ".join(args[1:])
        pool: Iterable[Project | Area | Tag] = {
            ViewType.PROJECT: state.store.projects,
            ViewType.AREA: state.store.areas,
            ViewType.TAG: state.store.tags,
        }[view]
        found = _find_named(pool, ref)
        if found is None:
            return f"No {view.value} matching {ref!r}."
        scope_id = found.id

    state.store.set_current_view(view, scope_id)
    return cmd_ls(state, [])


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add <title>"
    ui = state.store.ui
    fields = new_task_defaults(ui.current_view, ui.selected_item_id)
    fields["title"] = " ".join(args)
    task_id = state.store.add_task(**fields)
    return f"Added <{task_id[:8]}> {fields['title']}"


def _task_action(method: str, verb: str) -> CommandHandler:
    """Handler that applies one single-id GTDStore operation to a task ref."""

    def handler(state: AppState, args: list[str]) -> str:
        if not args:
            return f"Usage: /{verb} <task #|id>"
        task = _find_task(state, args[0])
        if task is None:
            return f"No task {args[0]!r} in this view."
        getattr(state.store, method)(task.id)
        return f"{verb.capitalize()}: {task.title or '<untitled>'}"

    return handler


def cmd_status(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /status <task #|id> inbox|today|anytime|someday"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r} in this view."
    status = TaskStatus.parse(args[1].lower())
    if status not in (TaskStatus.INBOX, TaskStatus.TODAY, TaskStatus.ANYTIME, TaskStatus.SOMEDAY):
        return "Status must be one of: inbox, today, anytime, someday."
    state.store.update_task(task.id, status=status)
    return f"{task.title or '<untitled>'} -> {status.value}"


def cmd_schedule(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /schedule <task #|id> <YYYY-MM-DD|today|none>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r} in this view."
    raw = args[1].lower()
    if raw == "none":
        day = None
    elif raw == "today":
        day = date.today().isoformat()
    else:
        try:
            day = date.fromisoformat(raw).isoformat()
        except ValueError:
            return f"Not a date: {args[1]}"
    state.store.update_task(task.id, scheduled_date=day)
    return f"{task.title or '<untitled>'} scheduled: {day or 'none'}"


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <task #|id> <position> - reorder within the current listing."""
    if len(args) < 2 or not args[1].isdigit():
        return "Usage: /move <task #|id> <position>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r} in this view."
    ids = [t.id for t in state.store.current_tasks() if t.id != task.id]
    pos = max(0, min(len(ids), int(args[1]) - 1))
    ids.insert(pos, task.id)
    state.store.reorder_tasks(ids)
    return cmd_ls(state, [])


def cmd_search(state: AppState, args: list[str]) -> str:
    state.store.set_search_query(" ".join(args))
    return cmd_ls(state, [])


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project            -> list active projects
    /project add <title>
    /project done <name or id>
    /project rm <name or id>
    """
    if not args:
        counts = sidebar_counts(state.store.snapshot())
        projects = active_projects(state.store.projects)
        if not projects:
            return "No active projects."
        return "\n".join(f"  {p.title} ({counts.projects.get(p.id, 0)}) <{p.id[:8]}>" for p in projects)

    sub, rest = args[0].lower(), " ".join(args[1:])
    if sub == "add":
        project_id = state.store.add_project(title=rest)
        return f"Project added <{project_id[:8]}>"
    project = _find_named(state.store.projects, rest) if rest else None
    if project is None:
        return f"Usage: /project add|done|rm <name or id> (no match for {rest!r})"
    if sub == "done":
        state.store.complete_project(project.id)
        return f"Project completed: {project.title}"
    if sub == "rm":
        state.store.delete_project(project.id)
        return f"Project deleted: {project.title} (its tasks were kept)"
    return "Usage: /project add|done|rm <name or id>"


def cmd_area(state: AppState, args: list[str]) -> str:
    if not args:
        areas = sorted(state.store.areas, key=lambda a: a.order)
        return "\n".join(f"  {a.title} <{a.id[:8]}>" for a in areas) or "No areas."
    sub, rest = args[0].lower(), " ".join(args[1:])
    if sub == "add" and rest:
        area_id = state.store.add_area(rest)
        return f"Area added <{area_id[:8]}>"
    if sub == "rm":
        area = _find_named(state.store.areas, rest)
        if area is None:
            return f"No area matching {rest!r}."
        state.store.delete_area(area.id)
        return f"Area deleted: {area.title}"
    return "Usage: /area add <title> | /area rm <name or id>"


def cmd_tag(state: AppState, args: list[str]) -> str:
    """
    /tag add <name>
    /tag rm <name or id>
    /tag on <task #|id> <tag>   -> attach
    /tag off <task #|id> <tag>  -> detach
    """
    if not args:
        counts = sidebar_counts(state.store.snapshot())
        tags = state.store.tags
        if not tags:
            return "No tags."
        return "\n".join(f"  #{t.name} {t.color} ({counts.tags.get(t.id, 0)})" for t in tags)

    sub = args[0].lower()
    if sub == "add" and len(args) > 1:
        tag_id = state.store.add_tag(" ".join(args[1:]))
        return f"Tag added <{tag_id[:8]}>"
    if sub == "rm" and len(args) > 1:
        tag = _find_named(state.store.tags, " ".join(args[1:]))
        if tag is None:
            return f"No tag matching {' '.join(args[1:])!r}."
        state.store.delete_tag(tag.id)
        return f"Tag deleted: {tag.name}"
    if sub in ("on", "off") and len(args) > 2:
        task = _find_task(state, args[1])
        tag = _find_named(state.store.tags, " ".join(args[2:]))
        if task is None or tag is None:
            return "No such task or tag."
        if sub == "on":
            tags = task.tags + (tag.id,)
        else:
            tags = tuple(t for t in task.tags if t != tag.id)
        state.store.update_task(task.id, tags=tags)
        return f"{task.title or '<untitled>'}: tags updated"
    return "Usage: /tag add|rm <name> | /tag on|off <task #|id> <tag>"


def cmd_check(state: AppState, args: list[str]) -> str:
    """
    /check add <task #|id> <title>
    /check toggle <task #|id> <item #>
    /check rm <task #|id> <item #>
    """
    if len(args) < 3:
        return "Usage: /check add <task> <title> | /check toggle|rm <task> <item #>"
    sub = args[0].lower()
    task = _find_task(state, args[1])
    if task is None:
        return f"No task {args[1]!r} in this view."
    if sub == "add":
        state.store.add_checklist_item(task.id, " ".join(args[2:]))
        return f"Checklist item added to {task.title or '<untitled>'}"

    if not args[2].isdigit() or not 1 <= int(args[2]) <= len(task.checklist):
        return f"No checklist item {args[2]!r}."
    item = task.checklist[int(args[2]) - 1]
    if sub == "toggle":
        state.store.toggle_checklist_item(task.id, item.id)
        return f"Toggled: {item.title}"
    if sub == "rm":
        state.store.delete_checklist_item(task.id, item.id)
        return f"Removed: {item.title}"
    return "Usage: /check add <task> <title> | /check toggle|rm <task> <item #>"


def cmd_counts(state: AppState, args: list[str]) -> str:
    counts = sidebar_counts(state.store.snapshot())
    return f"Inbox: {counts.inbox}  Today: {counts.today}  Upcoming: {counts.upcoming}"


def cmd_empty_trash(state: AppState, args: list[str]) -> str:
    state.store.empty_trash()
    return "Trash emptied."


def cmd_clear_completed(state: AppState, args: list[str]) -> str:
    state.store.clear_completed()
    return "Completed tasks removed."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("ls", cmd_ls, help_text="List tasks in the current view.", aliases=["list"])
registry.register("view", cmd_view, help_text="Switch view: /view today | /view project <name>.")
registry.register("add", cmd_add, help_text="Add a task to the current view: /add <title>.")
registry.register("done", _task_action("complete_task", "done"), help_text="Complete a task.")
registry.register("undone", _task_action("uncomplete_task", "undone"), help_text="Reopen a task.")
registry.register("trash", _task_action("move_task_to_trash", "trashed"), help_text="Move to trash.")
registry.register("restore", _task_action("restore_task", "restored"), help_text="Restore to inbox.")
registry.register("rm", _task_action("delete_task", "deleted"), help_text="Delete a task for good.")
registry.register("status", cmd_status, help_text="Set status: /status <#|id> today.")
registry.register("schedule", cmd_schedule, help_text="Schedule: /schedule <#|id> 2024-01-31.")
registry.register("move", cmd_move, help_text="Reorder: /move <#|id> <position>.")
registry.register("search", cmd_search, help_text="Filter by text: /search <query> (empty clears).")
registry.register("project", cmd_project, help_text="Projects: /project [add|done|rm] ...")
registry.register("area", cmd_area, help_text="Areas: /area [add|rm] ...")
registry.register("tag", cmd_tag, help_text="Tags: /tag [add|rm|on|off] ...")
registry.register("check", cmd_check, help_text="Checklist: /check add|toggle|rm ...")
registry.register("counts", cmd_counts, help_text="Show inbox/today/upcoming counts.")
registry.register("empty-trash", cmd_empty_trash, help_text="Delete every trashed task.")
registry.register("clear-completed", cmd_clear_completed, help_text="Delete every completed task.")
