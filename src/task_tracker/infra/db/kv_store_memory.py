from __future__ import annotations
from typing import Dict, Optional

from task_tracker.domain.errors import StorageError


class InMemoryKeyValueStore:
    """
    Dict-backed key-value string store.
    ``max_bytes`` mimics a browser storage quota; writes past it fail.
    """
    def __init__(self, max_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            size = len(value.encode("utf-8"))
            if size > self.max_bytes:
                raise StorageError(f"quota exceeded: {size} > {self.max_bytes} bytes")
        self._data[key] = value
