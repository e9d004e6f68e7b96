# src/gtd_planner/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The store only needs somewhere to load the initial snapshot from and somewhere
to mirror commits to. SQLite is the default; tests use an in-memory fake.
"""

from typing import Protocol

from .models import StoreSnapshot


class StateRepo(Protocol):
    """Durable slot holding the whole store."""

    def load(self) -> StoreSnapshot: ...

    def save(self, snapshot: StoreSnapshot) -> None: ...
