"""Redis-backed key-value store.

Each item is a Redis hash at ``<prefix>:<table>:<key>`` whose field values
are JSON-encoded; a per-table set ``<prefix>:<table>:__index__`` lists the
item keys so tables can be scanned with ``SSCAN``.

Atomicity comes from Redis itself:
- counters use ``HINCRBY`` (server-side increment);
- conditional writes run as Lua scripts, which Redis executes atomically.

All keys touched by one script share the same prefix; the store assumes a
single Redis primary (no cluster slot routing).
"""

from __future__ import annotations

import functools
import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from meterly.core.exceptions import ConditionFailedError, StorageError
from meterly.core.protocols.kv_store import ConditionalPut, Item, KeyValueStore, Page

logger = logging.getLogger(__name__)

_PUT_IF_ABSENT = """
if redis.call('EXISTS', KEYS[1]) == 1 then return 0 end
redis.call('HSET', KEYS[1], unpack(ARGV, 2))
redis.call('SADD', KEYS[2], ARGV[1])
return 1
"""

# ARGV: item key, condition count, condition pairs..., field pairs...
_CONDITIONAL_UPDATE = """
local ncond = tonumber(ARGV[2])
if ncond > 0 then
  if redis.call('EXISTS', KEYS[1]) == 0 then return false end
  for i = 0, ncond - 1 do
    if redis.call('HGET', KEYS[1], ARGV[3 + i * 2]) ~= ARGV[4 + i * 2] then return false end
  end
end
local start = 3 + ncond * 2
if #ARGV >= start then redis.call('HSET', KEYS[1], unpack(ARGV, start)) end
redis.call('SADD', KEYS[2], ARGV[1])
return redis.call('HGETALL', KEYS[1])
"""

# ARGV: item key, condition pairs...
_CONDITIONAL_DELETE = """
if redis.call('EXISTS', KEYS[1]) == 0 then return 0 end
for i = 2, #ARGV, 2 do
  if redis.call('HGET', KEYS[1], ARGV[i]) ~= ARGV[i + 1] then return 0 end
end
redis.call('DEL', KEYS[1])
redis.call('SREM', KEYS[2], ARGV[1])
return 1
"""

# KEYS: counter, counter index, marker, marker index
# ARGV: counter key, field, delta, marker key, marker pairs...
_INCREMENT_ONCE = """
if redis.call('EXISTS', KEYS[3]) == 1 then return false end
redis.call('HSET', KEYS[3], unpack(ARGV, 5))
redis.call('SADD', KEYS[4], ARGV[4])
local value = redis.call('HINCRBY', KEYS[1], ARGV[2], ARGV[3])
redis.call('SADD', KEYS[2], ARGV[1])
return value
"""


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _decode(raw: str) -> Any:
    return json.loads(raw)


def _flatten(item: Item) -> list[str]:
    pairs: list[str] = []
    for field, value in item.items():
        pairs.extend([field, _encode(value)])
    return pairs


def _wrap_redis_errors(fn):
    """Decorator: translate RedisError into StorageError at the adapter boundary."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except RedisError as e:
            raise StorageError("redis", str(e)) from e

    return wrapper


class RedisKeyValueStore(KeyValueStore):
    """Redis implementation of the KeyValueStore protocol.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, client: Redis, prefix: str = "meterly") -> None:
        """Initialize with a Redis client and a key prefix."""
        self._client = client
        self._prefix = prefix.rstrip(":")
        self._put_if_absent = client.register_script(_PUT_IF_ABSENT)
        self._conditional_update = client.register_script(_CONDITIONAL_UPDATE)
        self._conditional_delete = client.register_script(_CONDITIONAL_DELETE)
        self._increment_once = client.register_script(_INCREMENT_ONCE)

    def _item_key(self, table: str, key: str) -> str:
        return f"{self._prefix}:{table}:{key}"

    def _index_key(self, table: str) -> str:
        return f"{self._prefix}:{table}:__index__"

    @staticmethod
    def _decode_hash(raw: dict[str, str]) -> Optional[Item]:
        if not raw:
            return None
        return {field: _decode(value) for field, value in raw.items()}

    @_wrap_redis_errors
    async def put(self, table: str, key: str, item: Item) -> None:
        """Replace an item (DEL + HSET + SADD in one MULTI/EXEC)."""
        item_key = self._item_key(table, key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(item_key)
            pipe.hset(item_key, mapping={f: _encode(v) for f, v in item.items()})
            pipe.sadd(self._index_key(table), key)
            await pipe.execute()

    @_wrap_redis_errors
    async def put_if_absent(self, table: str, key: str, item: Item) -> bool:
        """Insert an item only if absent (Lua)."""
        inserted = await self._put_if_absent(
            keys=[self._item_key(table, key), self._index_key(table)],
            args=[key, *_flatten(item)],
        )
        return bool(inserted)

    @_wrap_redis_errors
    async def get(self, table: str, key: str) -> Optional[Item]:
        """Fetch an item with HGETALL."""
        raw = await self._client.hgetall(self._item_key(table, key))
        return self._decode_hash(raw)

    @_wrap_redis_errors
    async def update(
        self,
        table: str,
        key: str,
        fields: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        """Set fields, optionally guarded by a condition (Lua)."""
        condition = condition or {}
        result = await self._conditional_update(
            keys=[self._item_key(table, key), self._index_key(table)],
            args=[key, len(condition), *_flatten(condition), *_flatten(fields)],
        )
        if not result:
            raise ConditionFailedError(table, key)
        flat = list(result)
        return {flat[i]: _decode(flat[i + 1]) for i in range(0, len(flat), 2)}

    @_wrap_redis_errors
    async def delete(self, table: str, key: str, condition: Optional[Item] = None) -> bool:
        """Delete an item, optionally guarded by a condition (Lua)."""
        deleted = await self._conditional_delete(
            keys=[self._item_key(table, key), self._index_key(table)],
            args=[key, *_flatten(condition or {})],
        )
        return bool(deleted)

    @_wrap_redis_errors
    async def atomic_increment(
        self,
        table: str,
        key: str,
        field: str,
        delta: int = 1,
        marker: Optional[ConditionalPut] = None,
    ) -> Optional[int]:
        """HINCRBY a field; with a marker, insert it in the same script."""
        if marker is None:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hincrby(self._item_key(table, key), field, delta)
                pipe.sadd(self._index_key(table), key)
                value, _ = await pipe.execute()
            return int(value)

        value = await self._increment_once(
            keys=[
                self._item_key(table, key),
                self._index_key(table),
                self._item_key(marker.table, marker.key),
                self._index_key(marker.table),
            ],
            args=[key, field, delta, marker.key, *_flatten(marker.item)],
        )
        return int(value) if value is not None else None

    async def _load(self, table: str, keys: list[str]) -> list[Item]:
        if not keys:
            return []
        async with self._client.pipeline(transaction=False) as pipe:
            for key in keys:
                pipe.hgetall(self._item_key(table, key))
            raws = await pipe.execute()
        # Index entries can briefly outlive a deleted item; skip them.
        return [item for item in (self._decode_hash(raw) for raw in raws) if item is not None]

    @_wrap_redis_errors
    async def scan(self, table: str) -> list[Item]:
        """Load every item listed in the table index."""
        keys = sorted(await self._client.smembers(self._index_key(table)))
        return await self._load(table, keys)

    @_wrap_redis_errors
    async def scan_page(
        self, table: str, cursor: Optional[str] = None, limit: int = 100
    ) -> Page:
        """SSCAN the table index from ``cursor``."""
        next_cursor, keys = await self._client.sscan(
            self._index_key(table), cursor=int(cursor or 0), count=limit
        )
        items = await self._load(table, sorted(keys))
        return Page(items=items, next_cursor=str(next_cursor) if int(next_cursor) else None)
