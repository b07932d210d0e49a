import asyncio
import os
import tempfile

# Settings are read at import time, so point them at a scratch directory first.
TEST_ROOT = tempfile.mkdtemp(prefix="libshare-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_ROOT}/test.db"
os.environ["STORAGE_PATH"] = os.path.join(TEST_ROOT, "static")
os.environ["SESSION_BACKEND"] = "memory"
os.environ["MAX_UPLOAD_MB"] = "1"

import pytest
from fastapi.testclient import TestClient

from libshare.core.dependencies import get_session_store
from libshare.infrastructure.database.connection import async_session_maker, engine
from libshare.infrastructure.database.models import Base
from libshare.main import app


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_db():
    asyncio.run(_reset_schema())
    get_session_store.cache_clear()
    yield


@pytest.fixture
def storage_path():
    return os.environ["STORAGE_PATH"]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def run_db():
    """Run ``scenario(session)`` against the test database on a fresh event loop."""

    def runner(scenario):
        async def _go():
            async with async_session_maker() as session:
                return await scenario(session)

        return asyncio.run(_go())

    return runner


@pytest.fixture
def signup(client):
    """Register a user through the form; the client keeps the new session cookie."""

    def _signup(username="alice", email="a@x.com", password="pw1"):
        client.cookies.clear()
        response = client.post(
            "/register",
            data={"username": username, "email": email, "password": password},
            follow_redirects=False,
        )
        assert response.status_code == 302
        return response

    return _signup


@pytest.fixture
def upload(client):
    def _upload(title="Foo", author="Ann Author", tags="", filename="foo.txt",
                content=b"Once upon a time", description="", cover=None):
        files = {"book_file": (filename, content, "text/plain")}
        if cover is not None:
            files["cover_image"] = cover
        response = client.post(
            "/upload",
            data={"title": title, "author": author, "tags": tags, "description": description},
            files=files,
            follow_redirects=False,
        )
        return response

    return _upload
