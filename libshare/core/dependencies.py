"""Dependency injection container."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from libshare.core.config import settings
from libshare.core.redis_client import get_redis
from libshare.core.security import PasslibPasswordHasher
from libshare.core.sessions import SessionManager
from libshare.domain.entities import Session, User
from libshare.domain.exceptions import NotAuthenticatedError
from libshare.domain.repositories import (
    IBookRepository,
    IPasswordHasher,
    ISessionStore,
    IStorageService,
    IUserRepository,
)
from libshare.domain.services import IAuthService, IBookService, IProfileService
from libshare.infrastructure.database.connection import get_db
from libshare.infrastructure.database.repository import BookRepository, UserRepository
from libshare.infrastructure.sessions.memory import InMemorySessionStore
from libshare.infrastructure.sessions.redis_store import RedisSessionStore
from libshare.infrastructure.storage.local import LocalStorageService
from libshare.services.auth_service import AuthService
from libshare.services.book_service import BookService
from libshare.services.profile_service import ProfileService


class LoginRequired(NotAuthenticatedError):
    """Raised by protected routes; answered with a redirect to the login page."""


# ---------------------------------------------------------------------------
# Infrastructure providers
# ---------------------------------------------------------------------------
def get_storage_service() -> IStorageService:
    return LocalStorageService(settings.storage_path)


@lru_cache()
def get_password_hasher() -> IPasswordHasher:
    return PasslibPasswordHasher()


@lru_cache()
def get_session_store() -> ISessionStore:
    """Return the process-wide session store for the configured backend."""
    if settings.session_backend == "memory":
        return InMemorySessionStore()
    elif settings.session_backend == "redis":
        return RedisSessionStore(get_redis(), ttl_seconds=settings.session_max_age_seconds)
    raise ValueError(f"Unknown session backend: {settings.session_backend}")


def get_session_manager(
    store: Annotated[ISessionStore, Depends(get_session_store)],
) -> SessionManager:
    return SessionManager(
        store,
        cookie_name=settings.session_cookie_name,
        max_age_seconds=settings.session_max_age_seconds,
        secure=settings.session_cookie_secure,
    )


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------
async def get_user_repository(session: AsyncSession = Depends(get_db)) -> IUserRepository:
    return UserRepository(session)


async def get_book_repository(session: AsyncSession = Depends(get_db)) -> IBookRepository:
    return BookRepository(session)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------
async def get_auth_service(
    user_repo: IUserRepository = Depends(get_user_repository),
    hasher: IPasswordHasher = Depends(get_password_hasher),
) -> IAuthService:
    return AuthService(user_repository=user_repo, password_hasher=hasher)


async def get_book_service(
    repo: IBookRepository = Depends(get_book_repository),
    storage: IStorageService = Depends(get_storage_service),
) -> IBookService:
    return BookService(
        book_repository=repo,
        storage_service=storage,
        max_upload_bytes=settings.max_upload_bytes,
    )


async def get_profile_service(
    user_repo: IUserRepository = Depends(get_user_repository),
    storage: IStorageService = Depends(get_storage_service),
    auth_service: IAuthService = Depends(get_auth_service),
    hasher: IPasswordHasher = Depends(get_password_hasher),
) -> IProfileService:
    return ProfileService(
        user_repository=user_repo,
        storage_service=storage,
        auth_service=auth_service,
        password_hasher=hasher,
        max_upload_bytes=settings.max_upload_bytes,
    )


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------
async def get_optional_session(
    request: Request,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Optional[Session]:
    """Resolve the session cookie, or ``None`` for anonymous requests. Never rejects."""
    return await sessions.check(request)


async def require_session(
    session: Annotated[Optional[Session], Depends(get_optional_session)],
) -> Session:
    """Like ``get_optional_session`` but sends anonymous requests to ``/login``."""
    if session is None:
        raise LoginRequired("Login required")
    return session


async def get_viewer(
    session: Annotated[Optional[Session], Depends(get_optional_session)],
    auth_service: Annotated[IAuthService, Depends(get_auth_service)],
) -> Optional[User]:
    """The logged-in user for page chrome, ``None`` when anonymous."""
    if session is None:
        return None
    return await auth_service.get_user(session.user_id)
