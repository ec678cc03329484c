from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from enum import Enum
from datetime import date, datetime
from typing import Dict, Optional
import re

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskFilter(str, Enum):
    all = "all"
    pending = "pending"
    completed = "completed"
    today = "today"
    overdue = "overdue"
    high = "high"


def _check_due_date(value: str) -> str:
    if len(value) != 10:
        raise ValueError("dueDate must be a calendar date (YYYY-MM-DD)")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError("dueDate must be a calendar date (YYYY-MM-DD)") from None
    return value


def _check_due_time(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not TIME_RE.match(value):
        raise ValueError("dueTime must be a 24-hour time (HH:MM)")
    return value


class CamelModel(BaseModel):
    # JSON keys stay camelCase so snapshots match the browser format
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=140)
    description: str = Field(default="", max_length=4000)
    due_date: str
    due_time: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[TaskPriority] = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return "" if v is None else v

    @field_validator("due_date")
    @classmethod
    def _valid_date(cls, v: str) -> str:
        return _check_due_date(v)

    @field_validator("due_time")
    @classmethod
    def _valid_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_time(v)

    @field_validator("category")
    @classmethod
    def _blank_category(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else None


class TaskUpdate(CamelModel):
    """Editable fields. Anything else in a patch (``completed`` included) is ignored."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=4000)
    due_date: Optional[str] = None
    due_time: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        # a null description clears it
        return "" if v is None else v

    @field_validator("title", "due_date")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v

    @field_validator("due_date")
    @classmethod
    def _valid_date(cls, v: str) -> str:
        return _check_due_date(v)

    @field_validator("due_time")
    @classmethod
    def _valid_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_time(v)


class Task(CamelModel):
    id: str
    title: str = Field(min_length=1)
    description: str = ""
    due_date: str
    due_time: Optional[str] = None
    category: str
    priority: TaskPriority
    completed: bool = False
    created_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return "" if v is None else v

    @field_validator("due_date")
    @classmethod
    def _valid_date(cls, v: str) -> str:
        return _check_due_date(v)

    @field_validator("due_time")
    @classmethod
    def _valid_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_time(v)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @model_validator(mode="after")
    def _completion_consistent(self) -> "Task":
        if not self.completed:
            self.completed_at = None
        elif self.completed_at is None:
            raise ValueError("completed task requires completedAt")
        return self


class TaskView(Task):
    is_overdue: bool = False
    is_today: bool = False


class TaskStats(CamelModel):
    total: int
    completed: int
    pending: int


class TaskInsights(CamelModel):
    total: int
    completed: int
    completion_rate: int
    overdue_count: int
    category_breakdown: Dict[str, int] = Field(default_factory=dict)
    most_used_category: str = "None"


class ImportResult(CamelModel):
    imported: int
    total: int
