import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from task_tracker.app.routes import tasks
from task_tracker.app.middleware.access_log import AccessLogMiddleware
from task_tracker.config import Settings, get_settings
from task_tracker.domain.errors import ImportFormatError, NotFoundError, ValidationError
from task_tracker.infra.db.kv_store_memory import InMemoryKeyValueStore
from task_tracker.infra.db.kv_store_sqlite import Base, SQLiteKeyValueStore
from task_tracker.infra.db.sqlite import make_sqlite_url, make_engine, make_sessionmaker
from task_tracker.observability.logging import setup_logging
from task_tracker.services.task_service import TaskService
from task_tracker.services.task_store import KeyValueStore, TaskStore

logger = logging.getLogger("tracker.system")


def make_backend(settings: Settings) -> KeyValueStore:
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()

    # --- SQLite wiring ---
    engine = make_engine(make_sqlite_url(settings.db_path))
    Base.metadata.create_all(engine)
    logger.info(
        "storage.ready",
        extra={"category": "system", "event": "storage.ready", "db_path": settings.db_path},
    )
    return SQLiteKeyValueStore(make_sessionmaker(engine))


def create_app(settings: Optional[Settings] = None, backend: Optional[KeyValueStore] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    logger.info("system.start", extra={"category": "system", "event": "system.start"})

    app = FastAPI(title="Task Tracker")
    app.add_middleware(AccessLogMiddleware)

    store = TaskStore(backend or make_backend(settings), settings)
    svc = TaskService(store)
    tasks.get_service = lambda: svc
    app.state.service = svc

    app.include_router(tasks.router)

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Task not found", "task_id": exc.task_id})

    @app.exception_handler(ImportFormatError)
    async def _bad_import(request: Request, exc: ImportFormatError):
        logger.warning(
            "snapshot.import_rejected",
            extra={"category": "tasks", "event": "snapshot.import_rejected", "reason": str(exc)},
        )
        return JSONResponse(status_code=400, content={"detail": f"Error importing tasks: {exc}"})

    @app.get("/health")
    def health():
        return {"status": "ok", "tasks": len(store.tasks)}

    return app


def run() -> None:
    import uvicorn

    uvicorn.run("task_tracker.app.main:create_app", factory=True, host="127.0.0.1", port=8000)
