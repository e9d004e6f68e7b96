# src/gtd_planner/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- reads the persisted snapshot exactly once,
- wires the SQLite slot as the store's commit listener.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.engine import GTDStore
from ..core.models import StoreSnapshot
from ..core.ports import StateRepo
from ..core.state import AppState
from ..storage.state_store import StateStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, repo: StateRepo | None = None) -> AppState:
    """
    Build AppState from settings.

    `repo` is injectable for tests; by default a StateStore is opened at
    settings.state_db_path under settings.storage_key.
    """
    if settings is None:
        settings = get_settings()

    initial = StoreSnapshot()
    try:
        if repo is None:
            _ensure_local_dirs(settings)
            repo = StateStore(settings.state_db_path, key=settings.storage_key)
        initial = repo.load()
    except Exception:
        logger.exception("Failed to load persisted state; starting empty.")

    save_on_commit = repo is not None and getattr(settings, "save_on_commit", True)
    on_commit = repo.save if save_on_commit else None
    store = GTDStore(initial, on_commit=on_commit)
    logger.info(
        "Store ready tasks=%d projects=%d save_on_commit=%s",
        len(initial.tasks),
        len(initial.projects),
        on_commit is not None,
    )
    return AppState(settings=settings, store=store, repo=repo)
