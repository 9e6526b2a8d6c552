"""Record store interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

PROFILES = "profiles"
APPROVAL_REQUESTS = "approval_requests"

Record = dict[str, Any]


class RecordStoreError(Exception):
    """Raised when the store cannot complete a read or write."""


class RecordNotFoundError(RecordStoreError):
    """Raised when an update targets a record that does not exist."""


class RecordConflictError(RecordStoreError):
    """Raised when a conditional update finds the record no longer in the expected state."""


class RecordStore(ABC):
    """Keyed record CRUD with equality filters and ordering only.

    Implementations generate ``id`` and ``created_at`` on insert and stamp
    ``updated_at`` on update. Returned records are copies.
    """

    @abstractmethod
    async def find(self, table: str, filters: dict[str, Any]) -> Record | None:
        """Return the single record matching every filter, or ``None``."""

    @abstractmethod
    async def list(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        """Return all records matching every filter."""

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        """Persist a new record and return it with store-generated fields."""

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: str,
        patch: Record,
        *,
        expected: dict[str, Any] | None = None,
    ) -> Record:
        """Merge ``patch`` into an existing record and return the result.

        When ``expected`` is given, the record must still hold those field
        values at write time or ``RecordConflictError`` is raised and nothing
        is written. The check and the write are a single step.
        """

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """Remove a record; deleting a missing record is a no-op."""


__all__ = [
    "APPROVAL_REQUESTS",
    "PROFILES",
    "Record",
    "RecordConflictError",
    "RecordNotFoundError",
    "RecordStore",
    "RecordStoreError",
]
