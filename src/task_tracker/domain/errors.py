from __future__ import annotations
from typing import Dict, List

from pydantic import ValidationError as PydanticValidationError


class TrackerError(Exception):
    """Base class for errors raised by the task store."""


class ValidationError(TrackerError):
    """Input rejected on create/update. ``errors`` holds one entry per field."""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        fields = ", ".join(e["field"] for e in errors)
        super().__init__(f"invalid task input: {fields}")

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        errors = []
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            errors.append({"field": field, "message": err["msg"]})
        return cls(errors)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


class NotFoundError(TrackerError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"task not found: {task_id}")


class ImportFormatError(TrackerError):
    pass


class StorageError(TrackerError):
    """Raised by key-value backends when a read or write fails."""


class PersistenceWarning(UserWarning):
    pass
