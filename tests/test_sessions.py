import asyncio
import re
import threading

import pytest
from fastapi import Request, Response

from libshare.core.sessions import SessionManager
from libshare.domain.exceptions import NotAuthenticatedError
from libshare.infrastructure.sessions.memory import InMemorySessionStore, ReadWriteLock
from libshare.infrastructure.sessions.redis_store import RedisSessionStore


def _request(cookie=None):
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def hset(self, key, mapping):
        self.data.setdefault(key, {}).update(mapping)

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def hgetall(self, key):
        return dict(self.data.get(key, {}))

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


def test_memory_store_lifecycle():
    async def scenario():
        store = InMemorySessionStore()
        session = await store.create(7)
        assert re.fullmatch(r"[0-9a-f]{32}", session.id)
        assert session.user_id == 7
        assert await store.get(session.id) == session

        assert await store.delete(session.id) is True
        assert await store.get(session.id) is None
        assert await store.delete(session.id) is False

    asyncio.run(scenario())


def test_tokens_are_unique():
    async def scenario():
        store = InMemorySessionStore()
        tokens = {(await store.create(1)).id for _ in range(200)}
        assert len(tokens) == 200
        assert len(store) == 200

    asyncio.run(scenario())


def test_rw_lock_writer_waits_for_readers():
    lock = ReadWriteLock()
    events = []
    reader_in = threading.Event()
    release_reader = threading.Event()

    def reader():
        with lock.read():
            reader_in.set()
            release_reader.wait(timeout=5)
            events.append("read-done")

    def writer():
        reader_in.wait(timeout=5)
        with lock.write():
            events.append("write")

    threads = [threading.Thread(target=reader), threading.Thread(target=writer)]
    for t in threads:
        t.start()
    reader_in.wait(timeout=5)
    release_reader.set()
    for t in threads:
        t.join(timeout=5)

    assert events == ["read-done", "write"]


def test_rw_lock_allows_concurrent_readers():
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=5)

    def reader():
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not both_inside.broken


def test_manager_sets_cookie_and_checks_it():
    async def scenario():
        manager = SessionManager(InMemorySessionStore())
        response = Response()
        session = await manager.create(response, 3)

        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith(f"session_id={session.id}")
        assert "httponly" in cookie
        assert "path=/" in cookie
        assert "samesite=lax" in cookie
        assert "max-age=7776000" in cookie

        assert await manager.check(_request(f"session_id={session.id}")) == session
        assert await manager.check(_request()) is None
        assert await manager.check(_request("session_id=deadbeef")) is None

    asyncio.run(scenario())


def test_manager_destroy_revokes_and_expires_cookie():
    async def scenario():
        manager = SessionManager(InMemorySessionStore())
        session = await manager.create(Response(), 3)

        response = Response()
        await manager.destroy(response, session)

        cookie = response.headers["set-cookie"].lower()
        assert 'session_id=""' in cookie or "session_id=;" in cookie
        assert "max-age=0" in cookie
        assert await manager.check(_request(f"session_id={session.id}")) is None

        with pytest.raises(NotAuthenticatedError):
            await manager.destroy(Response(), None)

    asyncio.run(scenario())


def test_redis_store_round_trip():
    async def scenario():
        client = FakeRedis()
        store = RedisSessionStore(client, ttl_seconds=60)
        session = await store.create(11)

        assert client.ttls[f"session:{session.id}"] == 60
        loaded = await store.get(session.id)
        assert loaded.user_id == 11
        assert loaded.created_at == session.created_at

        assert await store.delete(session.id) is True
        assert await store.get(session.id) is None

    asyncio.run(scenario())
