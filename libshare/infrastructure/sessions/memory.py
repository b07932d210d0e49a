"""In-process session store."""

import logging
import secrets
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from libshare.domain.entities import Session
from libshare.domain.repositories import ISessionStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16


def new_token() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemorySessionStore(ISessionStore):
    """Token -> session map shared by every request of this process.

    All access goes through ``_lock``. Sessions are immutable, so a reader
    never needs the lock after it has its ``Session`` in hand. Nothing
    survives a restart.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()

    async def create(self, user_id: int) -> Session:
        session = Session(id=new_token(), user_id=user_id)
        with self._lock.write():
            self._sessions[session.id] = session
        logger.debug("Session created for user %s", user_id)
        return session

    async def get(self, token: str) -> Optional[Session]:
        with self._lock.read():
            return self._sessions.get(token)

    async def delete(self, token: str) -> bool:
        with self._lock.write():
            removed = self._sessions.pop(token, None)
        return removed is not None

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._sessions)
