"""Key-value store adapters."""

from meterly.adapters.kv_store.in_memory import InMemoryKeyValueStore
from meterly.adapters.kv_store.redis import RedisKeyValueStore

__all__ = ["InMemoryKeyValueStore", "RedisKeyValueStore"]
