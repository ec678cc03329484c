from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Text, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker as Sessionmaker

from task_tracker.domain.errors import StorageError


class Base(DeclarativeBase):
    pass


class KeyValueRow(Base):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SQLiteKeyValueStore:
    def __init__(self, sessionmaker: Sessionmaker):
        self.sessionmaker = sessionmaker

    def get(self, key: str) -> Optional[str]:
        try:
            with self.sessionmaker() as session:
                row = session.get(KeyValueRow, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"read failed for {key!r}: {e}") from e

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc)
        try:
            with self.sessionmaker() as session:
                session.merge(KeyValueRow(key=key, value=value, updated_at=now))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"write failed for {key!r}: {e}") from e
