"""In-memory registry of in-flight calls."""

import asyncio
import logging
from typing import Any, Iterator, Optional

from ..errors import CallRecordConflict
from ..models.state import MATCHABLE_FIELDS, CallRecord

logger = logging.getLogger(__name__)


class CallRegistry:
    """Map from bridge-participant id to :class:`CallRecord`.

    Records are kept in insertion order. Secondary indices on the phone leg
    and SIP leg call ids point at the same records, so a webhook carrying
    either id resolves without scanning. Each key also owns an
    ``asyncio.Lock`` that serializes read-modify-write sequences spanning an
    await on the same record.
    """

    def __init__(self):
        self._records: dict[str, CallRecord] = {}
        self._by_phone_call: dict[str, str] = {}
        self._by_bridge_call: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[CallRecord]:
        return iter(list(self._records.values()))

    def records(self) -> list[CallRecord]:
        """Snapshot of all records in insertion order."""
        return list(self._records.values())

    def put(self, record: CallRecord) -> None:
        """Register a new record under its bridge-participant id.

        Raises:
            CallRecordConflict: If the key or one of its call ids is already registered
        """
        if record.key in self._records:
            raise CallRecordConflict(f"call record {record.key} already registered")
        if record.phone_call_id:
            self._check_unclaimed(self._by_phone_call, record.phone_call_id, record.key)
        if record.bridge_call_id:
            self._check_unclaimed(self._by_bridge_call, record.bridge_call_id, record.key)

        self._records[record.key] = record
        if record.phone_call_id:
            self._index(self._by_phone_call, record.phone_call_id, record.key)
        if record.bridge_call_id:
            self._index(self._by_bridge_call, record.bridge_call_id, record.key)
        logger.info(f"Registered {record}")

    def get(self, key: str) -> Optional[CallRecord]:
        return self._records.get(key)

    def delete(self, key: str) -> bool:
        """Remove a record. Returns False if it was already absent."""
        record = self._records.pop(key, None)
        self._locks.pop(key, None)
        if record is None:
            return False

        if record.phone_call_id and self._by_phone_call.get(record.phone_call_id) == key:
            del self._by_phone_call[record.phone_call_id]
        if record.bridge_call_id and self._by_bridge_call.get(record.bridge_call_id) == key:
            del self._by_bridge_call[record.bridge_call_id]
        logger.info(f"Removed call record {key}")
        return True

    def by_phone_call(self, call_id: Optional[str]) -> Optional[CallRecord]:
        if not call_id:
            return None
        key = self._by_phone_call.get(call_id)
        return self._records.get(key) if key else None

    def by_bridge_call(self, call_id: Optional[str]) -> Optional[CallRecord]:
        if not call_id:
            return None
        key = self._by_bridge_call.get(call_id)
        return self._records.get(key) if key else None

    def find_matching(self, **filters: Any) -> Optional[CallRecord]:
        """Return the first record whose fields equal every supplied filter.

        Absent filters are wildcards; an empty filter returns the first record.
        Call-id filters with a value are answered from the secondary indices.

        Raises:
            ValueError: If a filter names an unknown field
        """
        unknown = set(filters) - MATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"unknown call record fields: {sorted(unknown)}")

        # A None filter asks for records that lack the id, so it has to scan.
        if filters.get("phone_call_id") is not None:
            record = self.by_phone_call(filters["phone_call_id"])
            candidates = [record] if record else []
        elif filters.get("bridge_call_id") is not None:
            record = self.by_bridge_call(filters["bridge_call_id"])
            candidates = [record] if record else []
        elif filters.get("key") is not None:
            record = self.get(filters["key"])
            candidates = [record] if record else []
        else:
            candidates = self.records()

        for record in candidates:
            if record.matches(filters):
                return record
        return None

    def bind_phone_call(self, record: CallRecord, call_id: str) -> bool:
        """Set the phone leg call id of ``record`` and index it.

        Returns:
            False if the record already carried this id

        Raises:
            CallRecordConflict: If the record has a different id, or the id belongs to another record
        """
        self._check_unclaimed(self._by_phone_call, call_id, record.key)
        changed = record.set_phone_call_id(call_id)
        if record.key in self._records:
            self._index(self._by_phone_call, call_id, record.key)
        return changed

    def bind_bridge_call(self, record: CallRecord, call_id: str) -> bool:
        """Set the SIP leg call id of ``record`` and index it.

        Returns:
            False if the record already carried this id

        Raises:
            CallRecordConflict: If the record has a different id, or the id belongs to another record
        """
        self._check_unclaimed(self._by_bridge_call, call_id, record.key)
        changed = record.set_bridge_call_id(call_id)
        if record.key in self._records:
            self._index(self._by_bridge_call, call_id, record.key)
        return changed

    def lock(self, key: str) -> asyncio.Lock:
        """Per-record lock."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _check_unclaimed(self, index: dict[str, str], call_id: str, key: str) -> None:
        owner = index.get(call_id)
        if owner is not None and owner != key:
            raise CallRecordConflict(f"call {call_id} already belongs to record {owner}")

    def _index(self, index: dict[str, str], call_id: str, key: str) -> None:
        self._check_unclaimed(index, call_id, key)
        index[call_id] = key
