"""Profile service: account edits and avatars."""

import logging
from typing import Optional

from libshare.domain.entities import User
from libshare.domain.exceptions import InvalidPasswordError, UserNotFoundError, ValidationError
from libshare.domain.repositories import IPasswordHasher, IStorageService, IUserRepository
from libshare.domain.services import IAuthService, IProfileService
from libshare.services.formats import extension

logger = logging.getLogger(__name__)

AVATAR_DIR = "avatars"


class ProfileService(IProfileService):

    def __init__(
        self,
        user_repository: IUserRepository,
        storage_service: IStorageService,
        auth_service: IAuthService,
        password_hasher: IPasswordHasher,
        max_upload_bytes: int,
    ):
        self.user_repository = user_repository
        self.storage_service = storage_service
        self.auth_service = auth_service
        self.password_hasher = password_hasher
        self.max_upload_bytes = max_upload_bytes

    async def update_profile(
        self,
        user_id: int,
        username: str = "",
        email: str = "",
        current_password: str = "",
        new_password: str = "",
        avatar_content: Optional[bytes] = None,
        avatar_filename: Optional[str] = None,
    ) -> User:
        """Apply the non-empty changes one field at a time.

        Changing username, email or password requires ``current_password``.
        An avatar alone can be changed without it. Every check runs before
        the first write, so a rejected request changes nothing.
        """
        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")

        if avatar_content and len(avatar_content) > self.max_upload_bytes:
            raise ValidationError("File too large")

        username_changed = bool(username) and username != user.username
        email_changed = bool(email) and email != user.email
        if username_changed or email_changed or new_password:
            if not await self.auth_service.check_password(user_id, current_password):
                raise InvalidPasswordError("Invalid current password")

        if username_changed:
            await self.user_repository.update_username(user_id, username)
        if email_changed:
            await self.user_repository.update_email(user_id, email)
        if new_password:
            await self.user_repository.update_password(
                user_id, self.password_hasher.hash(new_password)
            )

        if avatar_content and avatar_filename:
            await self._replace_avatar(user_id, avatar_content, avatar_filename)

        logger.info("Profile updated for user %s", user_id)
        return await self.user_repository.get_by_id(user_id)

    async def _replace_avatar(self, user_id: int, content: bytes, filename: str) -> None:
        avatar_path = await self.storage_service.save_file(
            content, f"{AVATAR_DIR}/avatar_{user_id}{extension(filename)}"
        )
        try:
            await self.user_repository.update_avatar(user_id, avatar_path)
        except Exception:
            logger.error("Update avatar in DB failed, removing %s", avatar_path)
            await self.storage_service.delete_file(avatar_path)
            raise
