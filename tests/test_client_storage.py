# tests/test_client_storage.py

import time

import pytest

from app.client.storage import (
    MAX_STORED_AGE_SECONDS,
    FileSessionStorage,
    MemorySessionStorage,
    MultiSessionStorage,
)
from app.models.session import Identity, Session


def make_session(expires_at=0):
    return Session(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=expires_at,
        user=Identity(id="user-1"),
    )


@pytest.mark.asyncio
async def test_memory_save_and_load():
    storage = MemorySessionStorage()
    await storage.save(make_session(expires_at=int(time.time()) + 3600))

    stored = await storage.load()
    assert stored.access_token == "access-1"
    assert stored.refresh_token == "refresh-1"
    assert stored.user_id == "user-1"


@pytest.mark.asyncio
async def test_expired_access_token_is_still_loaded():
    storage = MemorySessionStorage()
    await storage.save(make_session(expires_at=int(time.time()) - 10))

    stored = await storage.load()
    assert stored.refresh_token == "refresh-1"
    assert stored.is_expired(time.time())


@pytest.mark.asyncio
async def test_record_older_than_thirty_days_is_cleared():
    storage = MemorySessionStorage()
    await storage.save(make_session())

    later = time.time() + MAX_STORED_AGE_SECONDS + 60
    assert await storage.load(now=later) is None
    assert await storage._read() is None


@pytest.mark.asyncio
async def test_malformed_record_is_cleared():
    storage = MemorySessionStorage()
    await storage._write({"access_token": "only-half"})

    assert await storage.load() is None
    assert await storage._read() is None


@pytest.mark.asyncio
async def test_file_storage_survives_reopen(tmp_path):
    path = tmp_path / "session.json"
    await FileSessionStorage(path).save(make_session())

    stored = await FileSessionStorage(path).load()
    assert stored.access_token == "access-1"

    await FileSessionStorage(path).clear()
    assert not path.exists()


@pytest.mark.asyncio
async def test_file_storage_unreadable_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert await FileSessionStorage(path).load() is None


@pytest.mark.asyncio
async def test_multi_storage_falls_back_to_backup():
    primary, backup = MemorySessionStorage(), MemorySessionStorage()
    await backup.save(make_session())

    stored = await MultiSessionStorage(primary, backup).load()
    assert stored.user_id == "user-1"


@pytest.mark.asyncio
async def test_multi_storage_writes_and_clears_both():
    primary, backup = MemorySessionStorage(), MemorySessionStorage()
    multi = MultiSessionStorage(primary, backup)

    await multi.save(make_session())
    assert await primary.load() is not None
    assert await backup.load() is not None

    await multi.clear()
    assert await primary.load() is None
    assert await backup.load() is None
