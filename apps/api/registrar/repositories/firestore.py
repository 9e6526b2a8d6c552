"""Firestore-backed record store.

Each table is a top-level collection and each record a document whose id is
duplicated in the ``id`` field. The client is synchronous, so every call runs
in a worker thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import uuid4

from registrar.adapters.firebase_app import ensure_firebase_app
from registrar.repositories.base import Record, RecordConflictError, RecordNotFoundError, RecordStore, RecordStoreError

T = TypeVar("T")


def _default_client(project_id: str | None) -> Any:
    try:
        ensure_firebase_app(project_id)
        from firebase_admin import firestore
    except ImportError as exc:  # pragma: no cover - depends on optional package
        raise RecordStoreError("Firestore store is unavailable") from exc
    return firestore.client()


def _equality_filter(field_path: str, value: Any) -> Any:
    from google.cloud.firestore_v1.base_query import FieldFilter

    return FieldFilter(field_path, "==", value)


def _in_transaction(client: Any, operation: Callable[[Any], T]) -> T:
    """Run ``operation(transaction)`` inside a Firestore transaction, retried on contention."""
    from firebase_admin import firestore

    return firestore.transactional(operation)(client.transaction())


def _guarded_update(document: Any, changes: Record, expected: dict[str, Any]) -> Callable[[Any], Record]:
    def apply(transaction: Any) -> Record:
        snapshot = document.get(transaction=transaction)
        if not snapshot.exists:
            raise RecordNotFoundError(f"No record {document.id!r}")
        current = snapshot.to_dict() or {}
        if any(current.get(key) != value for key, value in expected.items()):
            raise RecordConflictError(f"Record {document.id!r} changed concurrently")
        transaction.update(document, changes)
        return {**FirestoreRecordStore._to_record(snapshot), **changes}

    return apply


class FirestoreRecordStore(RecordStore):
    def __init__(self, client: Any | None = None, *, project_id: str | None = None) -> None:
        self._client = client
        self._project_id = project_id

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = _default_client(self._project_id)
        return self._client

    async def find(self, table: str, filters: dict[str, Any]) -> Record | None:
        if set(filters) == {"id"}:
            snapshot = await self._run(lambda: self.client.collection(table).document(filters["id"]).get())
            return self._to_record(snapshot) if snapshot.exists else None

        query = self._filtered(table, filters).limit(1)
        snapshots = await self._run(lambda: list(query.stream()))
        return self._to_record(snapshots[0]) if snapshots else None

    async def list(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        query = self._filtered(table, filters or {})
        if order_by is not None:
            direction = "DESCENDING" if descending else "ASCENDING"
            query = query.order_by(order_by, direction=direction)
        snapshots = await self._run(lambda: list(query.stream()))
        return [self._to_record(snapshot) for snapshot in snapshots]

    async def insert(self, table: str, record: Record) -> Record:
        stored = dict(record)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", datetime.now(UTC))
        document = self.client.collection(table).document(stored["id"])
        await self._run(lambda: document.create(stored))
        return stored

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Record,
        *,
        expected: dict[str, Any] | None = None,
    ) -> Record:
        document = self.client.collection(table).document(record_id)
        changes = {**patch, "updated_at": datetime.now(UTC)}
        if expected:
            return await self._run(lambda: _in_transaction(self.client, _guarded_update(document, changes, expected)))

        snapshot = await self._run(document.get)
        if not snapshot.exists:
            raise RecordNotFoundError(f"No record {record_id!r} in {table}")

        await self._run(lambda: document.update(changes))
        return {**self._to_record(snapshot), **changes}

    async def delete(self, table: str, record_id: str) -> None:
        document = self.client.collection(table).document(record_id)
        await self._run(document.delete)

    def _filtered(self, table: str, filters: dict[str, Any]) -> Any:
        query = self.client.collection(table)
        for key, value in filters.items():
            query = query.where(filter=_equality_filter(key, value))
        return query

    @staticmethod
    def _to_record(snapshot: Any) -> Record:
        record = dict(snapshot.to_dict() or {})
        record.setdefault("id", snapshot.id)
        return record

    @staticmethod
    async def _run(call: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(call)
        except RecordStoreError:
            raise
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise RecordStoreError(str(exc) or "Firestore request failed") from exc


__all__ = ["FirestoreRecordStore"]
