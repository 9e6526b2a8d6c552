"""In-memory record store used by the API scaffold and tests."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from typing import Literal
from uuid import uuid4

from registrar.repositories.base import Record, RecordConflictError, RecordNotFoundError, RecordStore, RecordStoreError

StoreOperation = Literal["find", "list", "insert", "update", "delete"]


@dataclass(slots=True)
class InMemoryRecordStore(RecordStore):
    """Simple, deterministic persistence layer for scaffolding and tests.

    ``fail_next`` arms a one-shot failpoint for a ``(table, operation)`` pair,
    which lets tests exercise partial-failure paths of multi-write workflows.
    """

    tables: dict[str, dict[str, Record]] = field(default_factory=dict)
    write_count: int = 0
    failpoints: dict[tuple[str, str], str] = field(default_factory=dict)

    def fail_next(self, table: str, operation: StoreOperation, message: str = "Injected store failure") -> None:
        self.failpoints[(table, operation)] = message

    async def find(self, table: str, filters: dict[str, Any]) -> Record | None:
        self._maybe_raise_failpoint(table, "find")
        for record in self._rows(table).values():
            if self._matches(record, filters):
                return deepcopy(record)
        return None

    async def list(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        self._maybe_raise_failpoint(table, "list")
        records = [deepcopy(record) for record in self._rows(table).values() if self._matches(record, filters or {})]
        if order_by is not None:
            records.sort(key=lambda record: record.get(order_by), reverse=descending)
        return records

    async def insert(self, table: str, record: Record) -> Record:
        self._maybe_raise_failpoint(table, "insert")
        stored = deepcopy(record)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", datetime.now(UTC))
        rows = self._rows(table)
        if stored["id"] in rows:
            raise RecordStoreError(f"Duplicate id in {table}")
        rows[stored["id"]] = stored
        self.write_count += 1
        return deepcopy(stored)

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Record,
        *,
        expected: dict[str, Any] | None = None,
    ) -> Record:
        # No await between the check and the write.
        self._maybe_raise_failpoint(table, "update")
        stored = self._rows(table).get(record_id)
        if stored is None:
            raise RecordNotFoundError(f"No record {record_id!r} in {table}")
        if expected and not self._matches(stored, expected):
            raise RecordConflictError(f"Record {record_id!r} in {table} changed concurrently")
        stored.update(deepcopy(patch))
        stored["updated_at"] = datetime.now(UTC)
        self.write_count += 1
        return deepcopy(stored)

    async def delete(self, table: str, record_id: str) -> None:
        self._maybe_raise_failpoint(table, "delete")
        if self._rows(table).pop(record_id, None) is not None:
            self.write_count += 1

    def _rows(self, table: str) -> dict[str, Record]:
        return self.tables.setdefault(table, {})

    @staticmethod
    def _matches(record: Record, filters: dict[str, Any]) -> bool:
        return all(record.get(key) == value for key, value in filters.items())

    def _maybe_raise_failpoint(self, table: str, operation: StoreOperation) -> None:
        message = self.failpoints.pop((table, operation), None)
        if message is not None:
            raise RecordStoreError(message)


__all__ = ["InMemoryRecordStore"]
