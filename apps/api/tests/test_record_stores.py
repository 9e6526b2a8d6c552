"""Record store backend tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import unittest
from unittest.mock import patch

from registrar.repositories import firestore as firestore_store
from registrar.repositories.base import PROFILES, RecordConflictError, RecordNotFoundError, RecordStoreError
from registrar.repositories.firestore import FirestoreRecordStore
from registrar.repositories.memory import InMemoryRecordStore


class _FakeSnapshot:
    def __init__(self, doc_id: str, data: dict | None) -> None:
        self.id = doc_id
        self.exists = data is not None
        self._data = data

    def to_dict(self) -> dict | None:
        return dict(self._data) if self._data is not None else None


class _FakeDocument:
    def __init__(self, collection: "_FakeCollection", doc_id: str) -> None:
        self._collection = collection
        self.id = doc_id

    def get(self, transaction=None) -> _FakeSnapshot:
        if transaction is not None:
            transaction.reads.append(self.id)
        return _FakeSnapshot(self.id, self._collection.docs.get(self.id))

    def create(self, data: dict) -> None:
        if self.id in self._collection.docs:
            raise RuntimeError("409 Document already exists")
        self._collection.docs[self.id] = dict(data)

    def update(self, changes: dict) -> None:
        self._collection.docs[self.id].update(changes)

    def delete(self) -> None:
        self._collection.docs.pop(self.id, None)


class _FakeTransaction:
    def __init__(self) -> None:
        self.reads: list[str] = []
        self.writes: list[tuple[str, dict]] = []

    def update(self, document: _FakeDocument, changes: dict) -> None:
        self.writes.append((document.id, changes))
        document.update(changes)


class _FakeQuery:
    def __init__(self, collection: "_FakeCollection", filters=(), order=None, limit=None) -> None:
        self._collection = collection
        self._filters = list(filters)
        self._order = order
        self._limit = limit

    def where(self, *, filter) -> "_FakeQuery":
        self._collection.seen_ops.append(filter.op_string)
        return _FakeQuery(self._collection, [*self._filters, (filter.field_path, filter.value)], self._order, self._limit)

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "_FakeQuery":
        return _FakeQuery(self._collection, self._filters, (field_path, direction), self._limit)

    def limit(self, count: int) -> "_FakeQuery":
        return _FakeQuery(self._collection, self._filters, self._order, count)

    def stream(self):
        if self._collection.fail_reads:
            raise RuntimeError("503 Service Unavailable")
        rows = [
            (doc_id, data)
            for doc_id, data in self._collection.docs.items()
            if all(data.get(key) == value for key, value in self._filters)
        ]
        if self._order is not None:
            field_path, direction = self._order
            rows.sort(key=lambda row: row[1].get(field_path), reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[: self._limit]
        return iter(_FakeSnapshot(doc_id, data) for doc_id, data in rows)


class _FakeCollection(_FakeQuery):
    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.seen_ops: list[str] = []
        self.fail_reads = False
        super().__init__(self)

    def document(self, doc_id: str) -> _FakeDocument:
        return _FakeDocument(self, doc_id)


class _FakeFirestoreClient:
    def __init__(self) -> None:
        self.collections: dict[str, _FakeCollection] = {}

    def collection(self, name: str) -> _FakeCollection:
        return self.collections.setdefault(name, _FakeCollection())


class InMemoryRecordStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_insert_generates_id_and_returns_copies(self) -> None:
        store = InMemoryRecordStore()

        created = await store.insert(PROFILES, {"principal_id": "user-1", "status": "pending"})
        created["status"] = "active"
        found = await store.find(PROFILES, {"principal_id": "user-1"})

        self.assertTrue(created["id"])
        self.assertIn("created_at", found)
        self.assertEqual(found["status"], "pending")
        self.assertEqual(store.write_count, 1)

    async def test_update_stamps_updated_at_and_rejects_missing_record(self) -> None:
        store = InMemoryRecordStore()
        created = await store.insert(PROFILES, {"status": "pending"})

        updated = await store.update(PROFILES, created["id"], {"status": "active"})

        self.assertEqual(updated["status"], "active")
        self.assertIn("updated_at", updated)
        with self.assertRaises(RecordNotFoundError):
            await store.update(PROFILES, "missing", {"status": "active"})

    async def test_list_filters_and_orders(self) -> None:
        store = InMemoryRecordStore()
        now = datetime.now(UTC)
        await store.insert(PROFILES, {"id": "p1", "role": "staff", "created_at": now - timedelta(minutes=2)})
        await store.insert(PROFILES, {"id": "p2", "role": "staff", "created_at": now})
        await store.insert(PROFILES, {"id": "p3", "role": "student", "created_at": now - timedelta(minutes=1)})

        newest_first = await store.list(PROFILES, {"role": "staff"}, order_by="created_at", descending=True)

        self.assertEqual([record["id"] for record in newest_first], ["p2", "p1"])

    async def test_conditional_update_writes_only_when_expected_values_hold(self) -> None:
        store = InMemoryRecordStore()
        created = await store.insert(PROFILES, {"status": "pending"})

        updated = await store.update(PROFILES, created["id"], {"status": "active"}, expected={"status": "pending"})
        writes = store.write_count
        with self.assertRaises(RecordConflictError):
            await store.update(PROFILES, created["id"], {"status": "rejected"}, expected={"status": "pending"})

        self.assertEqual(updated["status"], "active")
        self.assertEqual(store.write_count, writes)
        self.assertEqual((await store.find(PROFILES, {"id": created["id"]}))["status"], "active")

    async def test_failpoint_fires_once(self) -> None:
        store = InMemoryRecordStore()
        store.fail_next(PROFILES, "insert", "disk full")

        with self.assertRaisesRegex(RecordStoreError, "disk full"):
            await store.insert(PROFILES, {"status": "pending"})
        await store.insert(PROFILES, {"status": "pending"})

        self.assertEqual(store.write_count, 1)

    async def test_delete_missing_record_is_a_no_op(self) -> None:
        store = InMemoryRecordStore()

        await store.delete(PROFILES, "missing")

        self.assertEqual(store.write_count, 0)


class FirestoreRecordStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = _FakeFirestoreClient()
        self.store = FirestoreRecordStore(self.client)

    async def test_insert_and_find_by_id_and_by_field(self) -> None:
        created = await self.store.insert(PROFILES, {"principal_id": "user-1", "status": "pending"})

        by_id = await self.store.find(PROFILES, {"id": created["id"]})
        by_field = await self.store.find(PROFILES, {"principal_id": "user-1"})
        missing = await self.store.find(PROFILES, {"principal_id": "user-2"})

        self.assertEqual(by_id["id"], created["id"])
        self.assertEqual(by_field["status"], "pending")
        self.assertIsNone(missing)
        self.assertEqual(self.client.collection(PROFILES).seen_ops, ["==", "=="])

    async def test_list_orders_by_field(self) -> None:
        now = datetime.now(UTC)
        await self.store.insert(PROFILES, {"id": "p1", "role": "staff", "created_at": now - timedelta(minutes=1)})
        await self.store.insert(PROFILES, {"id": "p2", "role": "staff", "created_at": now})

        ascending = await self.store.list(PROFILES, {"role": "staff"}, order_by="created_at")
        descending = await self.store.list(PROFILES, order_by="created_at", descending=True)

        self.assertEqual([record["id"] for record in ascending], ["p1", "p2"])
        self.assertEqual([record["id"] for record in descending], ["p2", "p1"])

    async def test_update_merges_patch_and_rejects_missing_record(self) -> None:
        created = await self.store.insert(PROFILES, {"status": "pending", "role": "staff"})

        updated = await self.store.update(PROFILES, created["id"], {"status": "active"})

        self.assertEqual(updated["status"], "active")
        self.assertEqual(updated["role"], "staff")
        self.assertEqual(self.client.collection(PROFILES).docs[created["id"]]["status"], "active")
        with self.assertRaises(RecordNotFoundError):
            await self.store.update(PROFILES, "missing", {"status": "active"})

    async def test_conditional_update_runs_in_a_transaction(self) -> None:
        created = await self.store.insert(PROFILES, {"status": "pending"})
        transactions: list[_FakeTransaction] = []

        def run_in_fake_transaction(client, operation):
            transaction = _FakeTransaction()
            transactions.append(transaction)
            return operation(transaction)

        with patch.object(firestore_store, "_in_transaction", run_in_fake_transaction):
            updated = await self.store.update(
                PROFILES, created["id"], {"status": "active"}, expected={"status": "pending"}
            )
            with self.assertRaises(RecordConflictError):
                await self.store.update(PROFILES, created["id"], {"status": "rejected"}, expected={"status": "pending"})
            with self.assertRaises(RecordNotFoundError):
                await self.store.update(PROFILES, "missing", {"status": "active"}, expected={"status": "pending"})

        self.assertEqual(updated["status"], "active")
        self.assertEqual([t.reads for t in transactions], [[created["id"]], [created["id"]], ["missing"]])
        self.assertEqual(len(transactions[0].writes), 1)
        self.assertEqual(transactions[1].writes, [])
        self.assertEqual(self.client.collection(PROFILES).docs[created["id"]]["status"], "active")

    async def test_delete_removes_document(self) -> None:
        created = await self.store.insert(PROFILES, {"status": "pending"})

        await self.store.delete(PROFILES, created["id"])

        self.assertIsNone(await self.store.find(PROFILES, {"id": created["id"]}))

    async def test_client_failures_become_store_errors(self) -> None:
        await self.store.insert(PROFILES, {"id": "p1", "status": "pending"})
        self.client.collection(PROFILES).fail_reads = True

        with self.assertRaises(RecordStoreError):
            await self.store.list(PROFILES)
        with self.assertRaises(RecordStoreError):
            await self.store.insert(PROFILES, {"id": "p1", "status": "pending"})


if __name__ == "__main__":
    unittest.main()
