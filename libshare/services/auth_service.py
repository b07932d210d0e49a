"""Authentication service."""

import logging
from typing import Optional

from libshare.domain.entities import User
from libshare.domain.exceptions import InvalidPasswordError, UserNotFoundError
from libshare.domain.repositories import IPasswordHasher, IUserRepository
from libshare.domain.services import IAuthService

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """Handles registration, credential checks and user lookups."""

    def __init__(self, user_repository: IUserRepository, password_hasher: IPasswordHasher):
        self.user_repository = user_repository
        self.password_hasher = password_hasher

    async def register(self, username: str, email: str, password: str) -> User:
        """Register a new user. Duplicates surface as ``StorageError``."""
        user = User(
            id=None,
            username=username,
            email=email,
            password_hash=self.password_hasher.hash(password),
        )
        created = await self.user_repository.create(user)
        logger.info(f"User registered: {created.id}")
        return created

    async def authorize(self, username: str, password: str) -> User:
        user = await self.user_repository.get_by_username(username)
        if user is None:
            raise UserNotFoundError(f"No user named {username!r}")
        if not self.password_hasher.verify(password, user.password_hash):
            raise InvalidPasswordError("Invalid password")
        logger.info(f"User logged in: {user.id}")
        return user

    async def check_password(self, user_id: int, password: str) -> bool:
        password_hash = await self.user_repository.get_password_hash(user_id)
        if password_hash is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return self.password_hasher.verify(password, password_hash)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.user_repository.get_by_id(user_id)
