"""Authoritative task collection, mirrored to a key-value string store.

The whole collection is serialized as one JSON array under a single key on
every mutation. The in-memory list is the source of truth: if the backend
cannot be read or written the store logs a ``PersistenceWarning`` and carries on.
"""
from __future__ import annotations

import json
import logging
import threading
import time
import warnings
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Protocol, Union

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from task_tracker.config import Settings
from task_tracker.domain.errors import (
    ImportFormatError,
    NotFoundError,
    PersistenceWarning,
    StorageError,
    ValidationError,
)
from task_tracker.domain.task_models import ImportResult, Task, TaskCreate, TaskPriority, TaskUpdate

logger = logging.getLogger("tracker.storage")

_collection = TypeAdapter(List[Task])


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class TaskStore:
    def __init__(self, backend: KeyValueStore, settings: Optional[Settings] = None):
        self.backend = backend
        self.settings = settings or Settings()
        self._lock = threading.RLock()
        self._tasks: List[Task] = []
        self._last_id = 0
        self._tasks = self.load()

    @property
    def key(self) -> str:
        return self.settings.storage_key

    @property
    def tasks(self) -> List[Task]:
        with self._lock:
            return [t.model_copy() for t in self._tasks]

    def get(self, task_id: str) -> Task:
        with self._lock:
            return self._find(task_id).model_copy()

    # ---- mutators ----

    def create(self, data: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        try:
            if isinstance(data, TaskCreate):
                data = TaskCreate.model_validate(data.model_dump())
            else:
                data = TaskCreate.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        category = data.category or self.settings.default_category
        priority = data.priority or self.settings.default_priority
        errors = []
        if not category:
            errors.append({"field": "category", "message": "Please select a category"})
        elif category not in self.settings.categories:
            errors.append({"field": "category", "message": f"Unknown category: {category}"})
        if not priority:
            errors.append({"field": "priority", "message": "Please select a priority"})
        elif priority not in {p.value for p in TaskPriority}:
            errors.append({"field": "priority", "message": f"Unknown priority: {priority}"})
        if errors:
            raise ValidationError(errors)

        with self._lock:
            task = Task(
                id=self._new_id(),
                title=data.title,
                description=data.description,
                due_date=data.due_date,
                due_time=data.due_time,
                category=category,
                priority=TaskPriority(priority),
                completed=False,
                created_at=datetime.now(),
            )
            self._tasks.append(task)
            self.save()
            return task.model_copy()

    def update(self, task_id: str, patch: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        try:
            if isinstance(patch, TaskUpdate):
                changes = patch.model_dump(exclude_unset=True)
            else:
                changes = TaskUpdate.model_validate(patch).model_dump(exclude_unset=True)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        with self._lock:
            idx = self._index(task_id)
            try:
                merged = Task.model_validate({**self._tasks[idx].model_dump(), **changes})
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e) from e
            self._tasks[idx] = merged
            self.save()
            return merged.model_copy()

    def toggle_complete(self, task_id: str) -> Task:
        with self._lock:
            idx = self._index(task_id)
            task = self._tasks[idx]
            if task.completed:
                toggled = task.model_copy(update={"completed": False, "completed_at": None})
            else:
                toggled = task.model_copy(update={"completed": True, "completed_at": datetime.now()})
            self._tasks[idx] = toggled
            self.save()
            return toggled.model_copy()

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._tasks = [t for t in self._tasks if t.id != task_id]
            self.save()

    def clear_all(self) -> None:
        with self._lock:
            self._tasks = []
            self.save()

    # ---- persistence ----

    def load(self) -> List[Task]:
        try:
            raw = self.backend.get(self.key)
        except StorageError as e:
            self._warn("snapshot.load_failed", f"could not read tasks: {e}")
            return []
        if raw is None:
            return []
        try:
            return self._decode(raw)
        except ImportFormatError as e:
            self._warn("snapshot.load_failed", f"stored tasks unreadable, starting empty: {e}")
            return []

    def save(self) -> None:
        with self._lock:
            payload = _collection.dump_json(self._tasks, by_alias=True).decode("utf-8")
            try:
                self.backend.set(self.key, payload)
            except StorageError as e:
                self._warn("snapshot.save_failed", f"could not save tasks: {e}")

    def export_snapshot(self) -> str:
        with self._lock:
            records = _collection.dump_python(self._tasks, mode="json", by_alias=True)
        return json.dumps(records, indent=2, ensure_ascii=False)

    def import_snapshot(self, text: Union[str, bytes]) -> ImportResult:
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ImportFormatError(f"not UTF-8 text: {e}") from e
        imported = self._decode(text)
        with self._lock:
            self._tasks.extend(imported)
            self.save()
            total = len(self._tasks)
        logger.info(
            "snapshot.import",
            extra={"category": "tasks", "event": "snapshot.import", "imported": len(imported), "total": total},
        )
        return ImportResult(imported=len(imported), total=total)

    @staticmethod
    def export_filename(today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"tasks-{today.isoformat()}.json"

    # ---- helpers ----

    def _decode(self, text: str) -> List[Task]:
        try:
            records = json.loads(text)
        except (TypeError, ValueError) as e:
            raise ImportFormatError(f"not valid JSON: {e}") from e
        if not isinstance(records, list):
            raise ImportFormatError("expected a list of tasks")
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                raise ImportFormatError(f"record {i} is not an object")
            if record.get("category") in (None, "") and self.settings.default_category:
                record["category"] = self.settings.default_category
            if record.get("priority") in (None, "") and self.settings.default_priority:
                record["priority"] = self.settings.default_priority
        try:
            return _collection.validate_python(records)
        except PydanticValidationError as e:
            raise ImportFormatError(f"records are not tasks: {e.error_count()} error(s)") from e

    def _new_id(self) -> str:
        # millisecond timestamp, bumped past any id already in use
        taken = {t.id for t in self._tasks}
        candidate = max(int(time.time() * 1000), self._last_id + 1)
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _index(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise NotFoundError(task_id)

    def _find(self, task_id: str) -> Task:
        return self._tasks[self._index(task_id)]

    @staticmethod
    def _warn(event: str, message: str) -> None:
        logger.warning(message, extra={"category": "storage", "event": event})
        warnings.warn(message, PersistenceWarning, stacklevel=3)
