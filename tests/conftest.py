# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from task_tracker.config import Settings
from task_tracker.infra.db.kv_store_memory import InMemoryKeyValueStore
from task_tracker.services.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Memory-backed settings with logs kept under tmp_path."""
    return Settings(
        storage_backend="memory",
        db_path=str(tmp_path / "tracker.db"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def store(backend: InMemoryKeyValueStore, settings: Settings) -> TaskStore:
    return TaskStore(backend, settings)
