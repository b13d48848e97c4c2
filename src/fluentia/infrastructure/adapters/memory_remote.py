"""In-process remote store, for tests and for running without a backend."""

import logging

from fluentia.domain.errors import PushError, RemoteStoreError
from fluentia.domain.models import ProgressRecord
from fluentia.domain.ports import RemoteProgressStore

logger = logging.getLogger(__name__)


class MemoryProgressStore(RemoteProgressStore):
    """
    Keeps one record per user in a dict.

    Set `online = False` to simulate lost connectivity: every call then
    raises the same errors a network adapter would.
    """

    def __init__(self, rows: dict[str, ProgressRecord] | None = None):
        self.rows: dict[str, ProgressRecord] = dict(rows or {})
        self.online = True
        self.upserts: list[tuple[str, ProgressRecord]] = []

    async def fetch(self, user_id: str) -> ProgressRecord | None:
        if not self.online:
            raise RemoteStoreError("remote store is offline")
        return self.rows.get(user_id)

    async def upsert(self, user_id: str, record: ProgressRecord) -> None:
        if not self.online:
            raise PushError("remote store is offline")
        self.rows[user_id] = record
        self.upserts.append((user_id, record))
        logger.debug(f"Stored progress for user={user_id} version={record.version}")
