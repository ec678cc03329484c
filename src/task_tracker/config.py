"""Settings read from environment variables.

The variable names match the ones the service has always used (``DB_PATH``,
``LOG_LEVEL``, ``LOG_DIR``); the rest configure the task store.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_CATEGORIES: Tuple[str, ...] = ("work", "personal", "health", "other")


def _env_optional(name: str, default: str) -> Optional[str]:
    # empty string disables the value
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    return raw or None


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    storage_backend: str = "sqlite"
    db_path: str = "./data/tracker.db"
    storage_key: str = "taskflow_tasks"
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES
    default_category: Optional[str] = "other"
    default_priority: Optional[str] = "medium"
    log_level: str = "INFO"
    log_dir: str = "./logs"


def get_settings() -> Settings:
    return Settings(
        storage_backend=os.getenv("STORAGE_BACKEND", "sqlite").strip().lower(),
        db_path=os.getenv("DB_PATH", "./data/tracker.db"),
        storage_key=os.getenv("STORAGE_KEY", "taskflow_tasks"),
        categories=_env_list("TASK_CATEGORIES", DEFAULT_CATEGORIES),
        default_category=_env_optional("DEFAULT_CATEGORY", "other"),
        default_priority=_env_optional("DEFAULT_PRIORITY", "medium"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR", "./logs"),
    )
