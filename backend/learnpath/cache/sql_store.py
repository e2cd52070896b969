"""SQLAlchemy-backed key/value store with the same quota semantics as the memory store."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import CacheRecordModel
from ..db.session import session_scope
from ..errors import StoreQuotaExceeded
from .store import DEFAULT_CAPACITY_BYTES, item_size


class SqlKeyValueStore:
    """Durable store shared by every process pointed at the same database."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        capacity_bytes: int = DEFAULT_CAPACITY_BYTES,
    ) -> None:
        self.capacity_bytes = capacity_bytes
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        with session_scope(self._session_factory, commit=False) as session:
            record = session.get(CacheRecordModel, key)
            return record.value if record is not None else None

    def set_item(self, key: str, value: str) -> None:
        size = item_size(key, value)
        with session_scope(self._session_factory) as session:
            record = session.get(CacheRecordModel, key)
            released = record.size_bytes if record is not None else 0
            projected = self._usage(session) - released + size
            if projected > self.capacity_bytes:
                raise StoreQuotaExceeded(
                    f"Writing {key!r} needs {projected} bytes; capacity is {self.capacity_bytes}."
                )
            if record is None:
                session.add(CacheRecordModel(key=key, value=value, size_bytes=size))
            else:
                record.value = value
                record.size_bytes = size

    def remove_item(self, key: str) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(delete(CacheRecordModel).where(CacheRecordModel.key == key))

    def keys(self) -> List[str]:
        with session_scope(self._session_factory, commit=False) as session:
            rows = session.execute(
                select(CacheRecordModel.key).order_by(CacheRecordModel.created_at, CacheRecordModel.key)
            )
            return [row[0] for row in rows]

    def usage_bytes(self) -> int:
        with session_scope(self._session_factory, commit=False) as session:
            return self._usage(session)

    @staticmethod
    def _usage(session: Session) -> int:
        total = session.execute(
            select(func.coalesce(func.sum(CacheRecordModel.size_bytes), 0))
        ).scalar_one()
        return int(total)


__all__ = ["SqlKeyValueStore"]
