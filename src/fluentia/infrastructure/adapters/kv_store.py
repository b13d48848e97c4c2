"""Key/value storage adapters for the device-local cache."""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from fluentia.domain.errors import CacheError
from fluentia.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store. Contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Keeps every key in a single JSON object file.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash never leaves a half-written file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise CacheError(f"Cannot read {self.path}: {e}") from e
        except ValueError:
            # Whole-file corruption: start over rather than wedge the app
            logger.warning(f"Storage file {self.path} is not valid JSON; ignoring it")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object; ignoring it")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheError(f"Cannot write {self.path}: {e}") from e

    async def get_item(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        def update():
            data = self._load()
            data[key] = value
            self._dump(data)

        await asyncio.to_thread(update)

    async def remove_item(self, key: str) -> None:
        def update():
            data = self._load()
            if data.pop(key, None) is not None:
                self._dump(data)

        await asyncio.to_thread(update)
