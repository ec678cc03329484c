from typing import List, Optional

from fastapi import APIRouter, Query, Request, Response
from task_tracker.domain.task_models import (
    ImportResult,
    Task,
    TaskCreate,
    TaskInsights,
    TaskStats,
    TaskUpdate,
    TaskView,
)
from task_tracker.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def get_service() -> TaskService:
    # Overwritten in main.py:
    # tasks.get_service = lambda: svc
    raise RuntimeError("TaskService not wired")


@router.post("", response_model=Task, status_code=201)
def create_task(payload: TaskCreate):
    return get_service().create_task(payload)


@router.get("", response_model=List[TaskView])
def list_tasks(filter: str = "all", q: Optional[str] = Query(default=None, max_length=200)):
    return get_service().list_tasks(filter, q)


@router.delete("", status_code=204)
def clear_tasks():
    get_service().clear_tasks()
    return Response(status_code=204)


@router.get("/stats", response_model=TaskStats)
def task_stats():
    return get_service().stats()


@router.get("/insights", response_model=TaskInsights)
def task_insights():
    return get_service().insights()


@router.get("/export")
def export_tasks():
    svc = get_service()
    filename = svc.store.export_filename()
    return Response(
        content=svc.export_tasks(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResult)
async def import_tasks(request: Request):
    # raw file bytes; encoding and format errors are reported by the store
    return get_service().import_tasks(await request.body())


@router.get("/{task_id}", response_model=Task)
def get_task(task_id: str):
    return get_service().get_task(task_id)


@router.patch("/{task_id}", response_model=Task)
def update_task(task_id: str, payload: TaskUpdate):
    return get_service().update_task(task_id, payload)


@router.post("/{task_id}/toggle", response_model=Task)
def toggle_task(task_id: str):
    return get_service().toggle_task(task_id)


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: str):
    get_service().delete_task(task_id)
    return Response(status_code=204)
