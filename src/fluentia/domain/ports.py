"""
Ports (interfaces) for progress storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import ProgressRecord


class RemoteProgressStore(ABC):
    """
    Port for the authoritative, server-side copy of a learner's progress.

    Implementations:
        - SupabaseProgressStore: PostgREST `user_progress` table over HTTP.
        - MemoryProgressStore: In-process dict, for tests and offline use.
    """

    @abstractmethod
    async def fetch(self, user_id: str) -> ProgressRecord | None:
        """
        Fetch the learner's progress row.

        Returns:
            The parsed record, or None when no row exists yet.

        Raises:
            RemoteStoreError: On transport failure.
        """
        pass

    @abstractmethod
    async def upsert(self, user_id: str, record: ProgressRecord) -> None:
        """
        Create or replace the learner's progress row.

        Raises:
            PushError: On transport failure.
        """
        pass


class KeyValueStore(ABC):
    """
    Port for durable device-local storage: a flat key -> string blob store.

    Implementations:
        - JsonFileKeyValueStore: One JSON object on disk.
        - MemoryKeyValueStore: In-process dict.
    """

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Return the stored string, or None if the key is unset. Raises CacheError."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a string under key. Raises CacheError."""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete key if present. Raises CacheError."""
        pass
