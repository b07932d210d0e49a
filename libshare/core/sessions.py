"""Cookie-based session handling on top of a pluggable ``ISessionStore``."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response

from libshare.domain.entities import Session
from libshare.domain.exceptions import NotAuthenticatedError
from libshare.domain.repositories import ISessionStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Issues, resolves and revokes sessions carried in the ``session_id`` cookie.

    A missing cookie and an unknown token are the same outcome for callers:
    ``check`` returns ``None`` in both cases.
    """

    def __init__(
        self,
        store: ISessionStore,
        cookie_name: str = "session_id",
        max_age_seconds: int = 90 * 24 * 60 * 60,
        secure: bool = False,
    ):
        self.store = store
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.secure = secure

    async def create(self, response: Response, user_id: int) -> Session:
        session = await self.store.create(user_id)
        response.set_cookie(
            key=self.cookie_name,
            value=session.id,
            max_age=self.max_age_seconds,
            expires=self.max_age_seconds,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
        logger.info("Session issued for user %s", user_id)
        return session

    async def check(self, request: Request) -> Optional[Session]:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        return await self.store.get(token)

    async def destroy(self, response: Response, session: Optional[Session]) -> None:
        if session is None:
            raise NotAuthenticatedError("No session found")
        await self.store.delete(session.id)
        response.set_cookie(
            key=self.cookie_name,
            value="",
            max_age=0,
            expires=datetime.now(timezone.utc) - timedelta(days=1),
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
        logger.info("Session revoked for user %s", session.user_id)
