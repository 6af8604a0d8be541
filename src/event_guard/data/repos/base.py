"""
Append-Only Repository

Base class for stores that only ever add records. Backed by a Supabase-style
table client when one is given, otherwise by a process-local list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)

# Upper bound for reads that post-filter in Python
SCAN_LIMIT = 10_000


class AppendOnlyRepository(ABC, Generic[M]):
    """
    Records can be appended and read back in insertion order.

    There are no update or delete methods.
    """

    def __init__(self, client: Any = None):
        """
        Args:
            client: Table client exposing table(name).insert/select, or None
                to keep records in memory
        """
        self.client = client
        self._in_memory_store: list[M] = []

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Backing table for client mode."""

    @property
    @abstractmethod
    def model_class(self) -> type[M]:
        """Model rows are parsed into."""

    async def append(self, record: M) -> M:
        """Store one record and return it as persisted."""
        if self.client is None:
            self._in_memory_store.append(record)
            return record

        row = record.model_dump(mode="json", by_alias=True)
        response = self.client.table(self.table_name).insert(row).execute()
        return self.model_class(**response.data[0])

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[M]:
        """
        Read a page of records.

        filters are equality matches: on field names in memory, on column
        names in client mode.
        """
        if self.client is not None:
            return [self.model_class(**row) for row in self._select(filters, limit, offset)]

        records = self._in_memory_store
        if filters:
            records = [r for r in records if self._matches(r, filters)]
        return records[offset:offset + limit]

    async def count(self) -> int:
        if self.client is not None:
            return len(self._select(None, SCAN_LIMIT, 0))
        return len(self._in_memory_store)

    @staticmethod
    def _matches(record: M, filters: dict[str, Any]) -> bool:
        return all(getattr(record, name, None) == expected for name, expected in filters.items())

    def _select(self, filters: Optional[dict[str, Any]], limit: int, offset: int) -> list[dict]:
        query = self.client.table(self.table_name).select("*")
        for column, expected in (filters or {}).items():
            query = query.eq(column, expected)
        return query.range(offset, offset + limit - 1).execute().data
