import logging
from typing import Any

import httpx
from pydantic import ValidationError

from fluentia.domain.constants import PROGRESS_TABLE, REQUEST_TIMEOUT
from fluentia.domain.errors import PushError, RemoteStoreError
from fluentia.domain.models import ProgressRecord
from fluentia.domain.ports import RemoteProgressStore
from fluentia.infrastructure.schemas import RemoteProgressRow

# PostgREST "no rows" code for single-object requests
NO_ROWS_CODE = "PGRST116"
SELECT_COLUMNS = "completed,updated_at,version,schedules"


class SupabaseProgressStore(RemoteProgressStore):
    """Adapter for the `user_progress` table behind Supabase's PostgREST API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = PROGRESS_TABLE,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.base_url = url.rstrip("/")
        self.endpoint = f"{self.base_url}/rest/v1/{table}"
        self.table = table
        self.timeout = timeout
        self._api_key = api_key
        self._client = client
        self.logger.debug(f"SupabaseProgressStore initialized with endpoint={self.endpoint}")

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, user_id: str) -> ProgressRecord | None:
        params = {"user_id": f"eq.{user_id}", "select": SELECT_COLUMNS, "limit": "1"}
        self.logger.debug(f"Fetching progress for user={user_id}")
        try:
            resp = await self._get_client().get(
                self.endpoint, params=params, headers=self._headers()
            )
            if resp.status_code == 406 and self._error_code(resp) == NO_ROWS_CODE:
                return None
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            self.logger.error(f"Progress fetch failed for user={user_id}: {e}")
            raise RemoteStoreError(f"fetch failed: {e}") from e
        except ValueError as e:
            raise RemoteStoreError(f"fetch returned invalid JSON: {e}") from e

        rows = data if isinstance(data, list) else [data]
        if not rows or rows[0] is None:
            return None
        if not isinstance(rows[0], dict):
            raise RemoteStoreError(f"fetch returned unexpected payload: {type(rows[0]).__name__}")

        try:
            return RemoteProgressRow.model_validate(rows[0]).to_record()
        except ValidationError as e:
            raise RemoteStoreError(f"fetch returned malformed row: {e}") from e

    async def upsert(self, user_id: str, record: ProgressRecord) -> None:
        payload = RemoteProgressRow.dump_record(user_id, record)
        self.logger.debug(f"Upserting progress for user={user_id} version={record.version}")
        try:
            resp = await self._get_client().post(
                self.endpoint,
                params={"on_conflict": "user_id"},
                json=payload,
                headers=self._headers(Prefer="resolution=merge-duplicates,return=minimal"),
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise PushError(f"upsert failed: {e}") from e

    @staticmethod
    def _error_code(resp: httpx.Response) -> Any:
        try:
            body = resp.json()
        except ValueError:
            return None
        return body.get("code") if isinstance(body, dict) else None
