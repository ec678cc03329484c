import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

from task_tracker.domain.task_models import (
    ImportResult,
    Task,
    TaskCreate,
    TaskInsights,
    TaskStats,
    TaskUpdate,
    TaskView,
)
from task_tracker.services import query_engine
from task_tracker.services.task_store import TaskStore

logger = logging.getLogger("tracker.tasks")

class TaskService:
    def __init__(self, store: TaskStore):
        self.store = store

    def create_task(self, data: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        task = self.store.create(data)
        logger.info("task.create", extra={"category": "tasks", "event": "task.create", "task_id": task.id, "title": task.title})
        return task

    def get_task(self, task_id: str) -> Task:
        return self.store.get(task_id)

    def update_task(self, task_id: str, patch: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        task = self.store.update(task_id, patch)
        logger.info("task.update", extra={"category": "tasks", "event": "task.update", "task_id": task_id})
        return task

    def toggle_task(self, task_id: str) -> Task:
        task = self.store.toggle_complete(task_id)
        logger.info(
            "task.toggle",
            extra={"category": "tasks", "event": "task.toggle", "task_id": task_id, "completed": task.completed},
        )
        return task

    def delete_task(self, task_id: str) -> None:
        self.store.delete(task_id)
        logger.info("task.delete", extra={"category": "tasks", "event": "task.delete", "task_id": task_id})

    def clear_tasks(self) -> None:
        self.store.clear_all()
        logger.info("task.clear", extra={"category": "tasks", "event": "task.clear"})

    def list_tasks(self, filter_name: str = "all", term: Optional[str] = None, now: Optional[datetime] = None) -> List[TaskView]:
        now = now or datetime.now()
        view = query_engine.filter_tasks(self.store.tasks, filter_name, now)
        view = query_engine.search(view, term)
        return [query_engine.annotate(t, now) for t in view]

    def stats(self) -> TaskStats:
        return query_engine.compute_stats(self.store.tasks)

    def insights(self, now: Optional[datetime] = None) -> TaskInsights:
        return query_engine.compute_insights(self.store.tasks, now)

    def export_tasks(self) -> str:
        return self.store.export_snapshot()

    def import_tasks(self, text: Union[str, bytes]) -> ImportResult:
        return self.store.import_snapshot(text)
