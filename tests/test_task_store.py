# tests/test_task_store.py

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date

import pytest

from task_tracker.config import Settings
from task_tracker.domain.errors import (
    ImportFormatError,
    NotFoundError,
    PersistenceWarning,
    ValidationError,
)
from task_tracker.domain.task_models import TaskPriority, TaskUpdate
from task_tracker.infra.db.kv_store_memory import InMemoryKeyValueStore
from task_tracker.services import query_engine
from task_tracker.services.task_store import TaskStore

from fakes import FailingBackend


def _new(store: TaskStore, title: str = "Buy milk", **extra) -> str:
    payload = {"title": title, "dueDate": "2025-06-20", **extra}
    return store.create(payload).id


def test_create_applies_defaults_and_persists(store: TaskStore, backend: InMemoryKeyValueStore) -> None:
    task = store.create({"title": "  Buy milk  ", "dueDate": "2025-06-20", "dueTime": ""})

    assert task.title == "Buy milk"
    assert task.description == ""
    assert task.due_time is None
    assert task.category == "other"
    assert task.priority == TaskPriority.medium
    assert task.completed is False
    assert task.completed_at is None

    stored = json.loads(backend.get("taskflow_tasks"))
    assert len(stored) == 1
    assert stored[0]["id"] == task.id
    assert stored[0]["dueDate"] == "2025-06-20"
    assert "createdAt" in stored[0]


def test_create_many_yields_distinct_ids(store: TaskStore) -> None:
    ids = [_new(store, f"task {i}") for i in range(50)]
    assert len(set(ids)) == 50
    assert [t.id for t in store.tasks] == ids


def test_create_empty_title_rejected(store: TaskStore) -> None:
    with pytest.raises(ValidationError) as exc_info:
        store.create({"title": "", "dueDate": "2025-01-01"})

    assert "title" in exc_info.value.fields
    assert store.tasks == []


def test_create_reports_every_bad_field(store: TaskStore) -> None:
    with pytest.raises(ValidationError) as exc_info:
        store.create({"title": "   ", "dueDate": "2025-02-30", "dueTime": "25:00"})

    assert set(exc_info.value.fields) == {"title", "dueDate", "dueTime"}


def test_create_missing_due_date_rejected(store: TaskStore) -> None:
    with pytest.raises(ValidationError) as exc_info:
        store.create({"title": "No date"})
    assert exc_info.value.fields == ["dueDate"]


def test_create_without_configured_defaults_requires_category(backend: InMemoryKeyValueStore, settings: Settings) -> None:
    strict = TaskStore(backend, replace(settings, default_category=None, default_priority=None))

    with pytest.raises(ValidationError) as exc_info:
        strict.create({"title": "Call mom", "dueDate": "2025-06-20"})

    assert set(exc_info.value.fields) == {"category", "priority"}
    assert strict.tasks == []


def test_create_rejects_unknown_category_unless_configured(backend: InMemoryKeyValueStore, settings: Settings) -> None:
    store = TaskStore(backend, settings)
    with pytest.raises(ValidationError):
        store.create({"title": "Post office", "dueDate": "2025-06-20", "category": "errands"})

    extended = TaskStore(backend, replace(settings, categories=settings.categories + ("errands",)))
    task = extended.create({"title": "Post office", "dueDate": "2025-06-20", "category": "Errands"})
    assert task.category == "errands"


def test_update_merges_editable_fields_only(store: TaskStore) -> None:
    task_id = _new(store, description="2 liters", dueTime="09:30", priority="high")

    updated = store.update(task_id, {"title": "Buy oat milk", "dueTime": "", "completed": True, "category": "work"})

    assert updated.title == "Buy oat milk"
    assert updated.description == "2 liters"
    assert updated.due_time is None
    assert updated.completed is False
    assert updated.category == "other"
    assert updated.priority == TaskPriority.high
    assert store.get(task_id) == updated


def test_update_accepts_model_patch(store: TaskStore) -> None:
    task_id = _new(store)
    updated = store.update(task_id, TaskUpdate(due_date="2025-07-01"))
    assert updated.due_date == "2025-07-01"
    assert updated.title == "Buy milk"


def test_update_null_optional_fields_clear_them(store: TaskStore) -> None:
    task_id = _new(store, description="2 liters", dueTime="09:30")

    updated = store.update(task_id, {"description": None, "dueTime": None})

    assert updated.description == ""
    assert updated.due_time is None
    assert store.get(task_id).description == ""
    # a cleared description still searches as text
    assert query_engine.search(store.tasks, "zzz") == []
    assert [t.id for t in query_engine.search(store.tasks, "MILK")] == [task_id]


def test_update_null_title_rejected(store: TaskStore) -> None:
    task_id = _new(store)

    with pytest.raises(ValidationError) as exc_info:
        store.update(task_id, {"title": None, "dueDate": None})

    assert set(exc_info.value.fields) == {"title", "dueDate"}
    assert store.get(task_id).title == "Buy milk"


def test_update_unknown_id(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.update("missing", {"title": "x"})


def test_update_invalid_patch_leaves_task_unchanged(store: TaskStore) -> None:
    task_id = _new(store)
    before = store.get(task_id)

    with pytest.raises(ValidationError) as exc_info:
        store.update(task_id, {"title": ""})

    assert exc_info.value.fields == ["title"]
    assert store.get(task_id) == before


def test_toggle_complete_is_its_own_inverse(store: TaskStore) -> None:
    task_id = _new(store)
    original = store.get(task_id)

    done = store.toggle_complete(task_id)
    assert done.completed is True
    assert done.completed_at is not None

    back = store.toggle_complete(task_id)
    assert back.completed == original.completed
    assert back.completed_at is None
    assert back == original


def test_toggle_unknown_id(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.toggle_complete("missing")


def test_delete_is_idempotent(store: TaskStore) -> None:
    keep = _new(store, "keep")
    gone = _new(store, "gone")

    store.delete(gone)
    snapshot = store.tasks
    store.delete(gone)
    store.delete("never-existed")

    assert store.tasks == snapshot
    assert [t.id for t in snapshot] == [keep]


def test_clear_all_persists_empty_collection(store: TaskStore, backend: InMemoryKeyValueStore) -> None:
    _new(store)
    _new(store, "another")
    store.clear_all()

    assert store.tasks == []
    assert json.loads(backend.get("taskflow_tasks")) == []


def test_returned_tasks_are_copies(store: TaskStore) -> None:
    task = store.create({"title": "Original", "dueDate": "2025-06-20"})
    task.title = "Changed outside"
    assert store.get(task.id).title == "Original"


def test_reload_from_same_backend(store: TaskStore, backend: InMemoryKeyValueStore, settings: Settings) -> None:
    task_id = _new(store)
    store.toggle_complete(task_id)

    reopened = TaskStore(backend, settings)
    assert reopened.tasks == store.tasks


def test_load_missing_key_is_empty(settings: Settings) -> None:
    assert TaskStore(InMemoryKeyValueStore(), settings).load() == []


@pytest.mark.parametrize("raw", ["{not json", '{"tasks": []}', "[1, 2]", '[{"title": "no date"}]'])
def test_load_malformed_content_is_empty(raw: str, settings: Settings) -> None:
    backend = InMemoryKeyValueStore()
    backend.set(settings.storage_key, raw)

    with pytest.warns(PersistenceWarning):
        store = TaskStore(backend, settings)

    assert store.tasks == []


def test_save_failure_is_not_fatal(settings: Settings) -> None:
    backend = FailingBackend()
    store = TaskStore(backend, settings)

    with pytest.warns(PersistenceWarning, match="disk full"):
        task = store.create({"title": "Still here", "dueDate": "2025-06-20"})

    assert backend.writes == 1
    assert [t.id for t in store.tasks] == [task.id]


def test_quota_exceeded_keeps_memory_state(settings: Settings) -> None:
    store = TaskStore(InMemoryKeyValueStore(max_bytes=64), settings)

    with pytest.warns(PersistenceWarning, match="quota exceeded"):
        store.create({"title": "A task with a long enough title", "dueDate": "2025-06-20"})

    assert len(store.tasks) == 1


def test_export_then_import_round_trip(store: TaskStore, settings: Settings) -> None:
    a = _new(store, "Write report", description="Q3 numbers", dueTime="14:30", category="work", priority="high")
    _new(store, "Gym", category="health", priority="low")
    store.toggle_complete(a)

    text = store.export_snapshot()
    assert text.startswith("[\n  {")

    fresh = TaskStore(InMemoryKeyValueStore(), settings)
    result = fresh.import_snapshot(text)

    assert result.imported == 2
    assert result.total == 2
    assert sorted(fresh.tasks, key=lambda t: t.id) == sorted(store.tasks, key=lambda t: t.id)


def test_import_appends_without_deduplicating(store: TaskStore) -> None:
    _new(store)
    text = store.export_snapshot()

    result = store.import_snapshot(text)

    assert result.imported == 1
    assert result.total == 2
    ids = [t.id for t in store.tasks]
    assert ids[0] == ids[1]

    store.delete(ids[0])
    assert store.tasks == []


def test_import_browser_export_format(store: TaskStore) -> None:
    exported = json.dumps(
        [
            {
                "id": "1",
                "title": "Complete project proposal",
                "description": "Finish the quarterly proposal",
                "dueDate": "2025-06-15",
                "dueTime": "14:30",
                "category": "work",
                "priority": "high",
                "completed": False,
                "createdAt": "2025-06-14T08:00:00.000Z",
                "completedAt": None,
            },
            {
                "id": "3",
                "title": "Morning workout",
                "dueDate": "2025-06-15",
                "dueTime": "",
                "completed": True,
                "createdAt": "2025-06-14T08:00:00.000Z",
                "completedAt": "2025-06-15T07:30:00.000Z",
            },
        ]
    )

    result = store.import_snapshot(exported)

    assert result.imported == 2
    workout = store.get("3")
    assert workout.category == "other"
    assert workout.priority == TaskPriority.medium
    assert workout.due_time is None
    assert workout.completed_at is not None


@pytest.mark.parametrize(
    "text",
    [
        "not json at all",
        '{"id": "1"}',
        '["a", "b"]',
        '[{"id": "1", "title": "x"}]',
        '[{"id": "1", "title": "x", "dueDate": "tomorrow", "createdAt": "2025-06-14T08:00:00"}]',
        '[{"id": "9", "title": "", "dueDate": "2025-06-20", "createdAt": "2025-06-14T08:00:00"}]',
        '[{"id": "9", "title": "   ", "dueDate": "2025-06-20", "createdAt": "2025-06-14T08:00:00"}]',
        '[{"id": "9", "title": "x", "dueDate": "2025-06-20", "dueTime": "7pm", "createdAt": "2025-06-14T08:00:00"}]',
        '[{"id": "9", "title": "x", "dueDate": "2025-06-20", "completed": true, "createdAt": "2025-06-14T08:00:00"}]',
    ],
)
def test_import_rejects_non_task_content(store: TaskStore, text: str) -> None:
    _new(store)
    before = store.tasks

    with pytest.raises(ImportFormatError):
        store.import_snapshot(text)

    assert store.tasks == before


def test_import_rejects_invalid_utf8(store: TaskStore) -> None:
    _new(store)
    before = store.tasks

    with pytest.raises(ImportFormatError, match="UTF-8"):
        store.import_snapshot(b'[{"id": "9", "title": "caf\xe9"}]')

    assert store.tasks == before


def test_import_accepts_utf8_bytes(store: TaskStore) -> None:
    text = json.dumps(
        [{"id": "9", "title": "Caf\u00e9 run", "dueDate": "2025-06-20", "createdAt": "2025-06-14T08:00:00"}],
        ensure_ascii=False,
    )

    store.import_snapshot(text.encode("utf-8"))

    assert store.get("9").title == "Caf\u00e9 run"


def test_export_filename_embeds_date() -> None:
    assert TaskStore.export_filename(date(2025, 6, 15)) == "tasks-2025-06-15.json"
