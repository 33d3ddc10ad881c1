"""In-memory key-value store.

Implements the KeyValueStore protocol with plain dicts guarded by an
asyncio.Lock, which makes every operation atomic with respect to other
coroutines on the same event loop. Suitable for local development and tests;
each instance owns its own tables, nothing is process-global.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Optional

from meterly.core.exceptions import ConditionFailedError
from meterly.core.protocols.kv_store import ConditionalPut, Item, KeyValueStore, Page

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed implementation of the KeyValueStore protocol.

    Items are deep-copied on the way in and out so callers can never mutate
    stored state by accident.
    """

    def __init__(self) -> None:
        """Initialize with no tables."""
        self._tables: dict[str, dict[str, Item]] = {}
        self._lock = asyncio.Lock()

    def _table(self, table: str) -> dict[str, Item]:
        return self._tables.setdefault(table, {})

    @staticmethod
    def _matches(item: Optional[Item], condition: Item) -> bool:
        if item is None:
            return False
        return all(item.get(k) == v for k, v in condition.items())

    async def put(self, table: str, key: str, item: Item) -> None:
        """Insert or replace an item."""
        async with self._lock:
            self._table(table)[key] = copy.deepcopy(item)

    async def put_if_absent(self, table: str, key: str, item: Item) -> bool:
        """Insert an item only if the key is free."""
        async with self._lock:
            rows = self._table(table)
            if key in rows:
                return False
            rows[key] = copy.deepcopy(item)
            return True

    async def get(self, table: str, key: str) -> Optional[Item]:
        """Fetch a copy of an item."""
        async with self._lock:
            item = self._table(table).get(key)
            return copy.deepcopy(item) if item is not None else None

    async def update(
        self,
        table: str,
        key: str,
        fields: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        """Merge ``fields`` into an item, optionally guarded by ``condition``."""
        async with self._lock:
            rows = self._table(table)
            current = rows.get(key)
            if condition is not None and not self._matches(current, condition):
                raise ConditionFailedError(table, key)
            updated = {**(current or {}), **copy.deepcopy(fields)}
            rows[key] = updated
            return copy.deepcopy(updated)

    async def delete(self, table: str, key: str, condition: Optional[Item] = None) -> bool:
        """Delete an item if present (and matching ``condition``)."""
        async with self._lock:
            rows = self._table(table)
            current = rows.get(key)
            if current is None:
                return False
            if condition is not None and not self._matches(current, condition):
                return False
            del rows[key]
            return True

    async def atomic_increment(
        self,
        table: str,
        key: str,
        field: str,
        delta: int = 1,
        marker: Optional[ConditionalPut] = None,
    ) -> Optional[int]:
        """Increment a counter field, optionally together with a marker insert."""
        async with self._lock:
            if marker is not None:
                marker_rows = self._table(marker.table)
                if marker.key in marker_rows:
                    return None
                marker_rows[marker.key] = copy.deepcopy(marker.item)

            row = self._table(table).setdefault(key, {})
            row[field] = int(row.get(field) or 0) + delta
            return row[field]

    async def scan(self, table: str) -> list[Item]:
        """Return copies of every item in a table."""
        async with self._lock:
            return [copy.deepcopy(item) for item in self._table(table).values()]

    async def scan_page(
        self, table: str, cursor: Optional[str] = None, limit: int = 100
    ) -> Page:
        """Return items in key order; the cursor is the last key returned."""
        async with self._lock:
            keys = sorted(self._table(table))
            if cursor is not None:
                keys = [k for k in keys if k > cursor]
            page_keys = keys[:limit]
            items = [copy.deepcopy(self._table(table)[k]) for k in page_keys]
            next_cursor = page_keys[-1] if len(keys) > limit else None
            return Page(items=items, next_cursor=next_cursor)

    # Test helpers

    def tables(self) -> dict[str, dict[str, Item]]:
        """Snapshot of all tables (for assertions)."""
        return copy.deepcopy(self._tables)

    def clear(self) -> None:
        """Drop all tables."""
        self._tables.clear()
