"""
Device-local progress cache.

Best-effort by contract: a failed write is logged and dropped, and a failed
read or a corrupt payload reads as "no cache". The cache speeds things up
and keeps progress offline; it is never the reason an operation fails.
"""

import logging

from fluentia.domain.constants import CURRENT_CACHE_SCHEMA_VERSION, cache_key
from fluentia.domain.errors import CacheError
from fluentia.domain.models import ProgressRecord
from fluentia.domain.ports import KeyValueStore

from .schemas import decode_cached, encode_cached

logger = logging.getLogger(__name__)


class LocalProgressCache:
    """
    Stores one ProgressRecord under a schema-versioned key.

    `owner` scopes the key to one learner when several share a store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        schema_version: int = CURRENT_CACHE_SCHEMA_VERSION,
        owner: str | None = None,
    ):
        self._store = store
        self.key = cache_key(schema_version, owner)

    async def read(self) -> ProgressRecord | None:
        try:
            raw = await self._store.get_item(self.key)
        except CacheError as e:
            logger.warning(f"Progress cache read failed: {e}")
            return None
        if not raw:
            return None

        record = decode_cached(raw)
        if record is None:
            logger.warning(f"Ignoring corrupt progress cache at '{self.key}'")
        return record

    async def write(self, record: ProgressRecord) -> bool:
        """Persist `record`. Returns False if the store refused the write."""
        try:
            await self._store.set_item(self.key, encode_cached(record))
            return True
        except CacheError as e:
            logger.warning(f"Progress cache write failed: {e}")
            return False

    async def clear(self) -> None:
        try:
            await self._store.remove_item(self.key)
        except CacheError as e:
            logger.warning(f"Progress cache clear failed: {e}")
