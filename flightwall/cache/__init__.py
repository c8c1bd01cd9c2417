"""Cache tiers: instance edge cache, shared KV store and permanent rows."""

from .edge import EdgeCache
from .entries import CacheEntry
from .kv import KVStore, MemoryKVStore, RedisKVStore, build_kv_store
from .manager import TIER_EDGE, TIER_KV, TIER_ROWS, TIERS, CacheTierManager
from .rows import RowStore

__all__ = [
    "CacheEntry",
    "CacheTierManager",
    "EdgeCache",
    "KVStore",
    "MemoryKVStore",
    "RedisKVStore",
    "RowStore",
    "TIERS",
    "TIER_EDGE",
    "TIER_KV",
    "TIER_ROWS",
    "build_kv_store",
]
