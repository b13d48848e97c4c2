import json

import pytest

from fluentia.domain.errors import CacheError
from fluentia.infrastructure.adapters.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore


@pytest.mark.asyncio
async def test_memory_store_round_trip():
    store = MemoryKeyValueStore()
    assert await store.get_item("k") is None
    await store.set_item("k", "v")
    assert await store.get_item("k") == "v"
    await store.remove_item("k")
    await store.remove_item("k")
    assert await store.get_item("k") is None


@pytest.mark.asyncio
async def test_file_store_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "dir" / "storage.json"
    store = JsonFileKeyValueStore(path)

    await store.set_item("fluentia:progress:v2", '{"completed": []}')

    assert json.loads(path.read_text()) == {"fluentia:progress:v2": '{"completed": []}'}
    assert await store.get_item("fluentia:progress:v2") == '{"completed": []}'


@pytest.mark.asyncio
async def test_file_store_keeps_other_keys(tmp_path):
    store = JsonFileKeyValueStore(tmp_path / "storage.json")
    await store.set_item("a", "1")
    await store.set_item("b", "2")
    await store.remove_item("a")

    assert await store.get_item("a") is None
    assert await store.get_item("b") == "2"


@pytest.mark.asyncio
async def test_file_store_survives_reopen(tmp_path):
    path = tmp_path / "storage.json"
    await JsonFileKeyValueStore(path).set_item("k", "v")
    assert await JsonFileKeyValueStore(path).get_item("k") == "v"


@pytest.mark.asyncio
async def test_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{{{ garbage")
    store = JsonFileKeyValueStore(path)

    assert await store.get_item("k") is None
    await store.set_item("k", "v")
    assert await store.get_item("k") == "v"


@pytest.mark.asyncio
async def test_file_store_ignores_non_object_file(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("[1, 2, 3]")
    assert await JsonFileKeyValueStore(path).get_item("k") is None


@pytest.mark.asyncio
async def test_file_store_write_errors_raise_cache_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    store = JsonFileKeyValueStore(blocker / "storage.json")

    with pytest.raises(CacheError):
        await store.set_item("k", "v")
