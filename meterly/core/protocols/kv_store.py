"""KeyValueStore protocol: the pipeline's only shared state.

All coordination between concurrently running stages happens through this
store's atomic operations. Implementations must guarantee:

- ``atomic_increment`` is a server-side increment: N concurrent calls on the
  same field add exactly N * delta.
- ``put_if_absent`` and conditional ``update``/``delete`` are atomic
  compare-and-set operations.
- ``atomic_increment`` with a ``marker`` writes the marker and the increment in
  one transaction, or neither.

Items are flat dicts of JSON-compatible values keyed by a string key within
a named table.

Implementations:
- RedisKeyValueStore: adapters/kv_store/redis.py
- InMemoryKeyValueStore: adapters/kv_store/in_memory.py (local dev, tests)
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

Item = dict[str, Any]


@dataclass(frozen=True)
class ConditionalPut:
    """An item to insert only if ``table/key`` does not exist yet."""

    table: str
    key: str
    item: Item = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    """One page of a cursor-based scan.

    ``next_cursor`` is None when the scan is complete.
    """

    items: list[Item]
    next_cursor: Optional[str] = None


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for the key-value store backing every stage."""

    async def put(self, table: str, key: str, item: Item) -> None:
        """Insert or replace an item."""
        ...

    async def put_if_absent(self, table: str, key: str, item: Item) -> bool:
        """Insert an item only if the key does not exist.

        Returns:
            True if inserted, False if an item already existed.
        """
        ...

    async def get(self, table: str, key: str) -> Optional[Item]:
        """Fetch an item, or None if absent."""
        ...

    async def update(
        self,
        table: str,
        key: str,
        fields: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        """Set ``fields`` on an item and return the updated item.

        Without a condition a missing item is created. With a condition every
        ``condition`` field must equal the stored value.

        Raises:
            ConditionFailedError: If the condition does not hold (or the item is missing).
        """
        ...

    async def delete(self, table: str, key: str, condition: Optional[Item] = None) -> bool:
        """Delete an item. Returns False if absent or the condition does not hold."""
        ...

    async def atomic_increment(
        self,
        table: str,
        key: str,
        field: str,
        delta: int = 1,
        marker: Optional[ConditionalPut] = None,
    ) -> Optional[int]:
        """Atomically add ``delta`` to a numeric field (missing counts as 0).

        Args:
            table: Table name.
            key: Item key.
            field: Numeric field to increment.
            delta: Amount to add.
            marker: Optional item inserted in the same transaction. If the
                marker already exists, nothing is written.

        Returns:
            The new value, or None if the marker already existed.
        """
        ...

    async def scan(self, table: str) -> list[Item]:
        """Return every item in a table (unbounded)."""
        ...

    async def scan_page(
        self, table: str, cursor: Optional[str] = None, limit: int = 100
    ) -> Page:
        """Return one page of a table, starting at ``cursor`` (None = start)."""
        ...
