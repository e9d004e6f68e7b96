# src/gtd_planner/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .engine import GTDStore
from .ports import StateRepo


@dataclass(slots=True)
class AppState:
    """
    Runtime state shared by the front end.

    Notes:
    - `settings` is typed as Any so tests can pass a lightweight SimpleNamespace.
    - `repo` is None when the state database could not be opened.
    """

    settings: Any
    store: GTDStore
    repo: StateRepo | None = None
