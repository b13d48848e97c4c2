# Infrastructure Storage Adapters Package
from .kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from .memory_remote import MemoryProgressStore
from .supabase import SupabaseProgressStore

__all__ = [
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "MemoryProgressStore",
    "SupabaseProgressStore",
]
