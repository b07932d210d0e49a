"""Repository interfaces (ports) for dependency inversion."""

from abc import ABC, abstractmethod
from typing import Optional

from libshare.domain.entities import Book, Session, User


class IUserRepository(ABC):

    @abstractmethod
    async def create(self, user: User) -> User:
        """Insert a user. Duplicate username or email raises ``StorageError``."""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Fetch a user without its password hash."""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_password_hash(self, user_id: int) -> Optional[str]:
        pass

    @abstractmethod
    async def update_username(self, user_id: int, username: str) -> None:
        pass

    @abstractmethod
    async def update_email(self, user_id: int, email: str) -> None:
        pass

    @abstractmethod
    async def update_password(self, user_id: int, password_hash: str) -> None:
        pass

    @abstractmethod
    async def update_avatar(self, user_id: int, avatar_path: str) -> None:
        pass


class IBookRepository(ABC):

    @abstractmethod
    async def create(self, book: Book) -> int:
        pass

    @abstractmethod
    async def get_by_id(self, book_id: int) -> Optional[Book]:
        pass

    @abstractmethod
    async def get_by_id_with_user_rating(self, book_id: int, user_id: int) -> Optional[Book]:
        pass

    @abstractmethod
    async def get_latest(self, limit: int) -> list[Book]:
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: int) -> list[Book]:
        pass

    @abstractmethod
    async def search(self, query: str, tags: list[str], sort_by: str) -> list[Book]:
        """Substring search over title, author, description and the tag field.

        ``tags`` are OR-ed together and AND-ed with ``query``.  ``sort_by`` is
        one of ``rating``, ``newest`` or ``popular``; anything else sorts
        newest first.
        """
        pass

    @abstractmethod
    async def get_popular_tags(self, limit: int) -> list[str]:
        pass

    @abstractmethod
    async def update(
        self, book_id: int, user_id: int,
        title: str, author: str, description: str, tags: str,
    ) -> bool:
        """Owner-only metadata update. ``False`` when nothing matched."""
        pass

    @abstractmethod
    async def delete(self, book_id: int, user_id: int) -> bool:
        """Owner-only delete. ``False`` when nothing matched."""
        pass

    @abstractmethod
    async def rate_book(self, user_id: int, book_id: int, rating: int) -> None:
        """Upsert a rating and recompute the book aggregate atomically."""
        pass

    @abstractmethod
    async def get_user_rating(self, user_id: int, book_id: int) -> int:
        pass


class IStorageService(ABC):

    @abstractmethod
    async def save_file(self, file_content: bytes, file_path: str) -> str:
        pass

    @abstractmethod
    async def get_file(self, file_path: str) -> bytes:
        pass

    @abstractmethod
    async def delete_file(self, file_path: str) -> bool:
        pass

    @abstractmethod
    async def exists(self, file_path: str) -> bool:
        pass


class ISessionStore(ABC):

    @abstractmethod
    async def create(self, user_id: int) -> Session:
        pass

    @abstractmethod
    async def get(self, token: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def delete(self, token: str) -> bool:
        pass


class IPasswordHasher(ABC):

    @abstractmethod
    def hash(self, password: str) -> str:
        pass

    @abstractmethod
    def verify(self, password: str, password_hash: str) -> bool:
        pass
