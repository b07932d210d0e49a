"""Domain-level application service interfaces (ports).

Route handlers depend on these contracts only; the concrete services in
``libshare/services/`` are wired by ``libshare/core/dependencies.py`` and can
be replaced through ``app.dependency_overrides``.
"""

from abc import ABC, abstractmethod
from typing import Optional

from libshare.domain.entities import Book, BookMetadata, User


class IAuthService(ABC):

    @abstractmethod
    async def register(self, username: str, email: str, password: str) -> User:
        pass

    @abstractmethod
    async def authorize(self, username: str, password: str) -> User:
        """Return the user or raise ``UserNotFoundError`` / ``InvalidPasswordError``."""
        pass

    @abstractmethod
    async def check_password(self, user_id: int, password: str) -> bool:
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        pass


class IBookService(ABC):

    @abstractmethod
    async def upload_book(
        self,
        user_id: int,
        file_content: bytes,
        filename: str,
        metadata: BookMetadata,
        cover_content: Optional[bytes] = None,
        cover_filename: Optional[str] = None,
    ) -> int:
        """Store the book file (and cover), then insert the row.

        If the insert fails the files written for it are removed again.
        """
        pass

    @abstractmethod
    async def get_book(self, book_id: int, viewer_id: Optional[int] = None) -> Optional[Book]:
        pass

    @abstractmethod
    async def latest(self, limit: int) -> list[Book]:
        pass

    @abstractmethod
    async def books_of(self, user_id: int) -> list[Book]:
        pass

    @abstractmethod
    async def search(self, query: str, tags: list[str], sort_by: str) -> list[Book]:
        pass

    @abstractmethod
    async def popular_tags(self, limit: int) -> list[str]:
        pass

    @abstractmethod
    async def read_book(self, book_id: int) -> tuple[Book, Optional[str]]:
        pass

    @abstractmethod
    async def editable_book(self, book_id: int, user_id: int) -> tuple[Book, Optional[str]]:
        pass

    @abstractmethod
    async def edit_book(
        self, book_id: int, user_id: int, metadata: BookMetadata, content: str = ""
    ) -> None:
        pass

    @abstractmethod
    async def delete_book(self, book_id: int, user_id: int) -> None:
        pass

    @abstractmethod
    async def rate(self, user_id: int, book_id: int, rating: int) -> None:
        pass

    @abstractmethod
    async def user_rating(self, user_id: int, book_id: int) -> int:
        pass


class IProfileService(ABC):

    @abstractmethod
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
        pass
