# tests/conftest.py

from __future__ import annotations

import random
from pathlib import Path
from types import SimpleNamespace

import pytest

from gtd_planner.core.engine import GTDStore
from gtd_planner.core.state import AppState

from .fakes import FakeClock, InMemoryStateRepo


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="gtd-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        state_db_path=tmp_path / "state.sqlite3",
        storage_key="gtd-storage",
        save_on_commit=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def repo() -> InMemoryStateRepo:
    return InMemoryStateRepo()


@pytest.fixture()
def store(clock: FakeClock, repo: InMemoryStateRepo) -> GTDStore:
    return GTDStore(on_commit=repo.save, clock=clock, rng=random.Random(7))


@pytest.fixture()
def state(settings: SimpleNamespace, store: GTDStore, repo: InMemoryStateRepo) -> AppState:
    return AppState(settings=settings, store=store, repo=repo)
