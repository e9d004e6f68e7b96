# src/gtd_planner/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "scheduled" is reserved for schema compatibility with stored data. No store
      operation assigns it and no view matches it.
    """

    INBOX = "inbox"
    TODAY = "today"
    SCHEDULED = "scheduled"  # reserved, inert
    ANYTIME = "anytime"
    SOMEDAY = "someday"
    COMPLETED = "completed"
    TRASH = "trash"

    @classmethod
    def parse(cls, raw: object) -> TaskStatus | None:
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw))
        except ValueError:
            return None


class ViewType(StrEnum):
    INBOX = "inbox"
    TODAY = "today"
    UPCOMING = "upcoming"
    ANYTIME = "anytime"
    SOMEDAY = "someday"
    LOGBOOK = "logbook"
    TRASH = "trash"
    PROJECT = "project"
    AREA = "area"
    TAG = "tag"

    @classmethod
    def parse(cls, raw: object) -> ViewType | None:
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw))
        except ValueError:
            return None


# Views scoped by a project/area/tag id.
SCOPED_VIEWS: frozenset[ViewType] = frozenset({ViewType.PROJECT, ViewType.AREA, ViewType.TAG})


class RepeatType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True, slots=True)
class RepeatRule:
    """Repeat descriptor. Stored and round-tripped, never expanded into occurrences."""

    type: RepeatType
    interval: int = 1
    days_of_week: tuple[int, ...] | None = None  # 0-6, weekly only
    day_of_month: int | None = None  # 1-31, monthly only


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    id: str
    title: str
    completed: bool = False


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    created_at: str
    updated_at: str

    title: str = ""
    notes: str = ""
    status: TaskStatus = TaskStatus.INBOX

    project_id: str | None = None
    area_id: str | None = None
    tags: tuple[str, ...] = ()
    checklist: tuple[ChecklistItem, ...] = ()

    scheduled_date: str | None = None  # YYYY-MM-DD
    deadline: str | None = None  # YYYY-MM-DD
    repeat_rule: RepeatRule | None = None

    completed_at: str | None = None
    order: float = 0


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    created_at: str
    updated_at: str

    title: str = ""
    notes: str = ""
    area_id: str | None = None
    tags: tuple[str, ...] = ()
    deadline: str | None = None
    completed_at: str | None = None
    order: float = 0


@dataclass(frozen=True, slots=True)
class Area:
    id: str
    title: str
    order: float = 0


@dataclass(frozen=True, slots=True)
class Tag:
    id: str
    name: str
    color: str


@dataclass(frozen=True, slots=True)
class UIState:
    """Selection state persisted next to the collections."""

    current_view: ViewType = ViewType.INBOX
    selected_item_id: str | None = None
    selected_task_id: str | None = None
    sidebar_collapsed: bool = False
    search_query: str = ""
    is_quick_entry_open: bool = False


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Point-in-time copy of the whole store (what gets persisted)."""

    tasks: tuple[Task, ...] = ()
    projects: tuple[Project, ...] = ()
    areas: tuple[Area, ...] = ()
    tags: tuple[Tag, ...] = ()
    ui: UIState = field(default_factory=UIState)


# Fields a caller may pass to add/update operations.
TASK_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "notes",
        "status",
        "project_id",
        "area_id",
        "tags",
        "checklist",
        "scheduled_date",
        "deadline",
        "repeat_rule",
        "order",
    }
)

PROJECT_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "notes", "area_id", "tags", "deadline", "completed_at", "order"}
)

AREA_EDITABLE_FIELDS: frozenset[str] = frozenset({"title", "order"})

TAG_EDITABLE_FIELDS: frozenset[str] = frozenset({"name", "color"})

TAG_COLORS: tuple[str, ...] = (
    "#EF4444",
    "#F97316",
    "#F59E0B",
    "#84CC16",
    "#22C55E",
    "#14B8A6",
    "#06B6D4",
    "#3B82F6",
    "#6366F1",
    "#8B5CF6",
    "#A855F7",
    "#EC4899",
)
